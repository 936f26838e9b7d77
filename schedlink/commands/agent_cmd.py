"""CLI handlers for agent commands: run, echo."""

from __future__ import annotations

import logging
import subprocess

import click

from schedlink.commands._helpers import get_agent

logger = logging.getLogger(__name__)


def _run_item(command: tuple[str, ...], item: str) -> int:
    """Run ``command`` with the work item appended. Returns the exit code."""
    args = [*command, item]
    try:
        # The child's stdout must not reach ours; it is the protocol stream
        proc = subprocess.run(
            args,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.error("Could not start %s: %s", command[0], e)
        return 127

    if proc.stdout:
        logger.debug("%s stdout: %s", command[0], proc.stdout.rstrip())
    if proc.returncode != 0:
        logger.warning(
            "%s exited with %d for item %r: %s",
            command[0], proc.returncode, item, proc.stderr.rstrip(),
        )
    return proc.returncode


@click.command("run", context_settings={"ignore_unknown_options": True})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def run_command(ctx, command: tuple[str, ...]):
    """Run COMMAND once per work item, passing the item as the last argument."""
    agent = get_agent(ctx)
    failures = 0

    for item in agent.interpreter:
        if _run_item(command, item) != 0:
            failures += 1
        agent.record_progress(1)

    logger.info("Work finished, %d item(s) failed", failures)
    agent.disconnect()


@click.command("echo")
@click.pass_context
def echo_command(ctx):
    """Log every work item to stderr and count it. Useful to test a scheduler."""
    agent = get_agent(ctx)

    for item in agent.interpreter:
        click.echo(f"item: {item}", err=True)
        agent.record_progress(1)

    agent.disconnect()
