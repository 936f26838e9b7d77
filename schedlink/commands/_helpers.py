"""CLI helpers for reaching the agent context."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from schedlink.context import AgentContext


def get_agent(ctx: click.Context) -> AgentContext:
    """Return the AgentContext created by main(), connecting it on first use.

    main() leaves the original argument list under ``launch_argv``; the
    handshake happens here so only agent commands ever send it. A context
    handed in without ``launch_argv`` is taken as already connected.
    """
    from schedlink.context import AgentContext

    obj = ctx.ensure_object(dict)
    agent = obj.get("agent")
    if agent is None:
        agent = AgentContext()
        obj["agent"] = agent
        obj.setdefault("launch_argv", [])

    launch_argv = obj.pop("launch_argv", None)
    if launch_argv is not None:
        agent.connect(launch_argv)
    return agent
