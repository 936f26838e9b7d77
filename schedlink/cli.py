"""Click CLI definitions - main entry point."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import click

from schedlink.commands.agent_cmd import echo_command, run_command
from schedlink.commands.config_cmd import config_group


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug: bool) -> None:
    """schedlink - scheduler-driven agent runner."""
    level = logging.DEBUG if debug else logging.WARNING
    # stdout carries the scheduler protocol, so logs only ever go to stderr
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


cli.add_command(config_group, "config")
cli.add_command(run_command, "run")
cli.add_command(echo_command, "echo")


def main() -> None:
    """Console entry point.

    The scheduler appends its start sentinel as the final argument. It is
    kept from click here; the handshake itself is sent by the agent commands
    (run, echo) once click has picked one, so config commands never write
    to the protocol stream.
    """
    from schedlink.context import AgentContext

    argv = sys.argv[1:]
    config_path = os.environ.get("SCHEDLINK_CONFIG")
    try:
        agent = AgentContext(config_path=Path(config_path) if config_path else None)
    except ValueError as e:
        raise SystemExit(f"Invalid configuration: {e}") from e

    launch_argv = list(argv)
    if agent.connection.launched_by_scheduler(argv):
        argv = argv[:-1]
    cli.main(
        args=argv,
        prog_name="schedlink",
        obj={"agent": agent, "launch_argv": launch_argv},
    )


if __name__ == "__main__":
    main()
