"""CLI handlers for config commands."""

from __future__ import annotations

from pathlib import Path

import click

from schedlink.config import DEFAULT_CONFIG_PATH, init_config, load_config


@click.group("config")
def config_group():
    """Manage configuration."""
    pass


@config_group.command("init")
@click.option("--path", type=click.Path(path_type=Path), default=None, help="Where to write the file")
def config_init(path: Path | None):
    """Create default configuration file."""
    path = init_config(path)
    click.echo(f"Configuration created at: {path}")


@config_group.command("show")
@click.option("--path", type=click.Path(path_type=Path), default=None, help="Config file to read")
def config_show(path: Path | None):
    """Show current configuration."""
    config = load_config(path)
    click.echo(f"Config file: {config.config_path}")
    click.echo(f"  Version line: {config.agent.version}")
    click.echo(f"  Start sentinel: {config.protocol.start_sentinel}")
    click.echo(f"  Max line length: {config.protocol.max_line_length}")
    click.echo(f"  Heartbeat interval: {config.heartbeat.interval}s")


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--path", type=click.Path(path_type=Path), default=None, help="Config file to edit")
def config_set(key: str, value: str, path: Path | None):
    """Set a configuration value.

    Key uses dot notation, e.g. heartbeat.interval, agent.version
    """
    import tomli_w

    path = path or DEFAULT_CONFIG_PATH
    if not path.exists():
        click.echo("No config file found. Run 'schedlink config init' first.", err=True)
        return

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    with open(path, "rb") as f:
        data = tomllib.load(f)

    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})

    # Type coercion
    final_key = parts[-1]
    if value.lower() in ("true", "false"):
        target[final_key] = value.lower() == "true"
    elif value.isdigit():
        target[final_key] = int(value)
    else:
        try:
            target[final_key] = float(value)
        except ValueError:
            target[final_key] = value

    with open(path, "wb") as f:
        tomli_w.dump(data, f)

    click.echo(f"Set {key} = {value}")
