"""agentx stats - show project statistics."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.models import Priority


@click.command("stats")
@click.option("--days", default=7, type=int, help="Period for opened/closed counts")
@pass_ctx
def stats(ctx: AgentxContext, days: int) -> None:
    """Show project statistics."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    s = ctx.store.statistics(days)

    if ctx.json_output:
        data = s.to_dict()
        data["period_days"] = days
        ctx.output(data)
        return

    click.echo("Project Statistics")
    click.echo("─" * 40)
    click.echo(f"  Total:       {s.total_issues}")
    click.echo(f"  Open:        {s.open_issues}")
    click.echo(f"  Active:      {s.active_issues}")
    click.echo(f"  Blocked:     {s.blocked_issues}")
    click.echo(f"  Done:        {s.done_issues}")
    click.echo(f"  Backlog:     {s.backlog_issues}")
    click.echo(f"  Ready:       {s.ready_issues}")
    click.echo(f"  Closed:      {s.closed_issues}")

    click.echo(f"\nLast {days} day(s):")
    click.echo(f"  Opened:      {s.opened_in_period}")
    click.echo(f"  Closed:      {s.closed_in_period}")
    if s.closed_in_period:
        click.echo(f"  Avg close:   {s.avg_close_time_hours}h")

    if s.by_priority:
        click.echo(f"\nBy Priority:")
        for p in sorted(s.by_priority, key=Priority.sort_key):
            click.echo(f"  {p:<12} {s.by_priority[p]}")
