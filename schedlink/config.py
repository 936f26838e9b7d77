"""Configuration loading: TOML file + environment variable overlay."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]


DEFAULT_CONFIG_DIR = Path.home() / ".config" / "schedlink"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

try:
    PACKAGE_VERSION = version("schedlink")
except PackageNotFoundError:
    # Running from a source checkout that was never installed
    PACKAGE_VERSION = "0+unknown"
DEFAULT_VERSION = f"schedlink {PACKAGE_VERSION}"
DEFAULT_START_SENTINEL = "--scheduler_start"
DEFAULT_MAX_LINE_LENGTH = 2048
DEFAULT_HEARTBEAT_INTERVAL = 30.0

DEFAULT_CONFIG_TOML = f"""\
[agent]
version = "{DEFAULT_VERSION}"

[protocol]
start_sentinel = "{DEFAULT_START_SENTINEL}"
max_line_length = {DEFAULT_MAX_LINE_LENGTH}

[heartbeat]
# seconds between HEART lines
interval = {int(DEFAULT_HEARTBEAT_INTERVAL)}
"""


@dataclass
class AgentConfig:
    version: str = DEFAULT_VERSION


@dataclass
class ProtocolConfig:
    start_sentinel: str = DEFAULT_START_SENTINEL
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH


@dataclass
class HeartbeatConfig:
    interval: float = DEFAULT_HEARTBEAT_INTERVAL


@dataclass
class AppConfig:
    agent: AgentConfig = field(default_factory=AgentConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    heartbeat: HeartbeatConfig = field(default_factory=HeartbeatConfig)
    config_path: Path = DEFAULT_CONFIG_PATH


def _env_overlay(config: AppConfig) -> None:
    """Override config values with environment variables where applicable."""
    if version := os.environ.get("SCHEDLINK_VERSION"):
        config.agent.version = version
    if sentinel := os.environ.get("SCHEDLINK_START_SENTINEL"):
        config.protocol.start_sentinel = sentinel
    if interval := os.environ.get("SCHEDLINK_HEARTBEAT_INTERVAL"):
        try:
            config.heartbeat.interval = float(interval)
        except ValueError as e:
            raise ValueError(
                f"SCHEDLINK_HEARTBEAT_INTERVAL must be a number, got {interval!r}"
            ) from e


def _validate(config: AppConfig) -> None:
    if config.heartbeat.interval <= 0:
        raise ValueError("heartbeat.interval must be positive")
    if config.protocol.max_line_length < 2:
        raise ValueError("protocol.max_line_length must be at least 2")
    if not config.protocol.start_sentinel:
        raise ValueError("protocol.start_sentinel must not be empty")


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file with env var overlay."""
    path = config_path or DEFAULT_CONFIG_PATH

    try:
        if path.exists():
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        else:
            raw = tomllib.loads(DEFAULT_CONFIG_TOML)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e

    agent_raw = raw.get("agent", {})
    protocol_raw = raw.get("protocol", {})
    heartbeat_raw = raw.get("heartbeat", {})

    config = AppConfig(
        agent=AgentConfig(
            version=str(agent_raw.get("version", DEFAULT_VERSION)),
        ),
        protocol=ProtocolConfig(
            start_sentinel=str(protocol_raw.get("start_sentinel", DEFAULT_START_SENTINEL)),
            max_line_length=int(protocol_raw.get("max_line_length", DEFAULT_MAX_LINE_LENGTH)),
        ),
        heartbeat=HeartbeatConfig(
            interval=float(heartbeat_raw.get("interval", DEFAULT_HEARTBEAT_INTERVAL)),
        ),
        config_path=path,
    )

    _env_overlay(config)
    _validate(config)
    return config


def init_config(config_path: Path | None = None) -> Path:
    """Create default config file."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TOML)
    return path
