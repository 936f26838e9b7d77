"""Tests for the click CLI and the AgentContext wiring it drives."""

from __future__ import annotations

import io
import logging
import subprocess
import sys

import pytest
from click.testing import CliRunner

from schedlink.cli import cli, main
from schedlink.config import DEFAULT_VERSION, AppConfig, HeartbeatConfig
from schedlink.context import AgentContext


def make_agent(text: str, out: io.StringIO, **kwargs) -> AgentContext:
    config = AppConfig(heartbeat=HeartbeatConfig(interval=60))
    return AgentContext(config=config, stdin=io.StringIO(text), stdout=out, **kwargs)


@pytest.fixture
def runner():
    return CliRunner()


class TestAgentContext:
    def test_full_session(self):
        out = io.StringIO()
        agent = make_agent("END\na\nVERBOSE 1\nb\nCLOSE\n", out)
        argv = ["--scheduler_start"]
        agent.connect(argv)
        assert argv == []

        items = []
        while (item := agent.next()) is not None:
            items.append(item)
            agent.record_progress(1)
        assert items == ["a", "b"]
        assert agent.current() is None

        agent.connection.heartbeat.fire()
        with pytest.raises(SystemExit):
            agent.disconnect()

        assert out.getvalue().splitlines() == [
            agent.config.agent.version, "OK", "OK", "HEART: 2", "BYE",
        ]

    def test_verbose_toggles_package_debug_logging(self):
        pkg_logger = logging.getLogger("schedlink")
        original = pkg_logger.level
        seen = []
        agent = make_agent("VERBOSE 2\na\nVERBOSE 0\nb\n", io.StringIO(), on_verbose=seen.append)
        try:
            assert agent.next() == "a"
            assert pkg_logger.level == logging.DEBUG
            assert agent.next() == "b"
            assert pkg_logger.level == original
        finally:
            pkg_logger.setLevel(original)
        assert seen == [2, 0]


class TestEchoCommand:
    def test_echoes_items_and_exits_zero(self, runner):
        out = io.StringIO()
        agent = make_agent("one\ntwo\nCLOSE\n", out)
        agent.connect([])

        result = runner.invoke(cli, ["echo"], obj={"agent": agent})
        assert result.exit_code == 0
        assert "item: one" in result.output
        assert "item: two" in result.output
        assert agent.session.progress.value == 2
        assert out.getvalue() == ""


class TestRunCommand:
    def test_runs_command_per_item(self, runner, monkeypatch):
        calls = []

        def fake_run(args, **kwargs):
            calls.append(args)
            return subprocess.CompletedProcess(args, 0, stdout="done\n", stderr="")

        monkeypatch.setattr("schedlink.commands.agent_cmd.subprocess.run", fake_run)
        out = io.StringIO()
        agent = make_agent("x.txt\nEND\ny.txt\n", out)
        agent.connect(["--scheduler_start"])

        result = runner.invoke(cli, ["run", "wc", "-l"], obj={"agent": agent})
        assert result.exit_code == 0
        assert calls == [["wc", "-l", "x.txt"], ["wc", "-l", "y.txt"]]
        assert agent.session.progress.value == 2
        assert "done" not in out.getvalue()
        assert out.getvalue().splitlines()[-1] == "BYE"

    def test_failing_item_is_not_fatal(self, runner, monkeypatch):
        def fake_run(args, **kwargs):
            return subprocess.CompletedProcess(args, 1, stdout="", stderr="boom")

        monkeypatch.setattr("schedlink.commands.agent_cmd.subprocess.run", fake_run)
        agent = make_agent("a\nb\n", io.StringIO())
        agent.connect([])

        result = runner.invoke(cli, ["run", "false"], obj={"agent": agent})
        assert result.exit_code == 0
        assert agent.session.progress.value == 2

    def test_missing_program(self, runner, monkeypatch):
        def fake_run(args, **kwargs):
            raise FileNotFoundError(args[0])

        monkeypatch.setattr("schedlink.commands.agent_cmd.subprocess.run", fake_run)
        agent = make_agent("a\n", io.StringIO())
        agent.connect([])

        result = runner.invoke(cli, ["run", "no-such-tool"], obj={"agent": agent})
        assert result.exit_code == 0
        assert agent.session.progress.value == 1


class TestConfigCommands:
    def test_init_show_set(self, runner, tmp_path):
        path = tmp_path / "config.toml"
        result = runner.invoke(cli, ["config", "init", "--path", str(path)])
        assert result.exit_code == 0
        assert path.exists()

        result = runner.invoke(cli, ["config", "set", "heartbeat.interval", "5", "--path", str(path)])
        assert result.exit_code == 0

        result = runner.invoke(cli, ["config", "show", "--path", str(path)])
        assert result.exit_code == 0
        assert "Heartbeat interval: 5.0s" in result.output


@pytest.fixture
def process_io(monkeypatch, tmp_path):
    """Run main() against byte-level process streams with strict decoding."""
    for var in ("SCHEDLINK_VERSION", "SCHEDLINK_START_SENTINEL", "SCHEDLINK_HEARTBEAT_INTERVAL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("SCHEDLINK_CONFIG", str(tmp_path / "missing.toml"))

    def run(argv: list[str], stdin: bytes) -> tuple[int, list[bytes], str]:
        out_bytes = io.BytesIO()
        stdout = io.TextIOWrapper(out_bytes, encoding="utf-8")
        stderr = io.StringIO()
        monkeypatch.setattr(sys, "argv", ["schedlink", *argv])
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(stdin), encoding="utf-8"))
        monkeypatch.setattr(sys, "stdout", stdout)
        monkeypatch.setattr(sys, "stderr", stderr)

        with pytest.raises(SystemExit) as exc_info:
            main()
        stdout.flush()
        return exc_info.value.code, out_bytes.getvalue().splitlines(), stderr.getvalue()

    return run


class TestMain:
    def test_scheduler_session_end_to_end(self, process_io):
        code, lines, err = process_io(["echo", "--scheduler_start"], b"END\na\nCLOSE\n")
        assert code == 0
        assert lines == [DEFAULT_VERSION.encode(), b"OK", b"OK", b"BYE"]
        assert "item: a" in err

    def test_standalone_writes_nothing(self, process_io):
        code, lines, err = process_io(["echo"], b"a\nb\n")
        assert code == 0
        assert lines == []
        assert "item: b" in err

    def test_undecodable_item_is_data_not_a_crash(self, process_io):
        code, lines, err = process_io(
            ["echo", "--scheduler_start"], b"good.txt\n\xff\xfebad.bin\nCLOSE\n",
        )
        assert code == 0
        assert lines == [DEFAULT_VERSION.encode(), b"OK", b"BYE"]
        assert "item: good.txt" in err
        assert "bad.bin" in err

    def test_version_request_after_undecodable_item(self, process_io):
        code, lines, _ = process_io(
            ["echo", "--scheduler_start"], b"\xe9\nVERSION\nCLOSE\n",
        )
        assert code == 0
        assert lines == [DEFAULT_VERSION.encode(), b"OK", DEFAULT_VERSION.encode(), b"BYE"]

    def test_config_command_skips_handshake(self, process_io, tmp_path):
        path = tmp_path / "config.toml"
        code, lines, _ = process_io(
            ["config", "show", "--path", str(path), "--scheduler_start"], b"",
        )
        assert code == 0
        assert lines[0].startswith(b"Config file:")
        assert b"OK" not in lines
        assert DEFAULT_VERSION.encode() not in lines
