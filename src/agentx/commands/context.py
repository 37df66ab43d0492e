"""agentx context/focus/summary - orientation views for starting a session."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.models import format_timestamp
from agentx.utils import format_issue_row


@click.command("context")
@pass_ctx
def context(ctx: AgentxContext) -> None:
    """Show what is in flight: active, blocked and high-priority issues."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    data = ctx.store.context()

    if ctx.json_output:
        ctx.output({
            "active": [i.summary_dict() for i in data["active"]],
            "blocked": [i.summary_dict() for i in data["blocked"]],
            "high_priority": [i.summary_dict() for i in data["high_priority"]],
            "total_open": data["total_open"],
            "backlog_count": data["backlog_count"],
        })
        return

    for heading, key in (("Active", "active"), ("Blocked", "blocked"),
                         ("High priority", "high_priority")):
        issues = data[key]
        if not issues:
            continue
        click.echo(f"{heading}:")
        for issue in issues:
            click.echo(f"  {format_issue_row(issue)}")
        click.echo()

    click.echo(f"{data['total_open']} open issue(s), {data['backlog_count']} in backlog")


@click.command("focus")
@click.option("--limit", default=5, type=int, help="How many issues to show")
@pass_ctx
def focus(ctx: AgentxContext, limit: int) -> None:
    """Suggest what to work on next."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issues = ctx.store.focus(limit)

    if ctx.json_output:
        ctx.output([i.summary_dict() for i in issues])
        return

    if not issues:
        click.echo("Nothing to focus on.")
        return

    for issue in issues:
        click.echo(format_issue_row(issue))


@click.command("summary")
@click.option("--hours", default=24, type=int, help="Look-back window in hours")
@pass_ctx
def summary(ctx: AgentxContext, hours: int) -> None:
    """Summarize recent activity."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    data = ctx.store.summary(hours)

    if ctx.json_output:
        ctx.output({
            "since": format_timestamp(data["since"]),
            "hours": hours,
            "started": data["started"],
            "closed": data["closed"],
            "checkpointed": data["checkpointed"],
        })
        return

    click.echo(f"Last {hours}h:")
    for label, key in (("Started", "started"), ("Closed", "closed"),
                       ("Checkpointed", "checkpointed")):
        ids = data[key]
        listing = ", ".join(f"#{i}" for i in ids) if ids else "-"
        click.echo(f"  {label + ':':<14} {listing}")
