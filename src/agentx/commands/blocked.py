"""agentx blocked - show blocked issues."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.utils import truncate


@click.command("blocked")
@pass_ctx
def blocked(ctx: AgentxContext) -> None:
    """Show issues that are blocked, by status or by unfinished dependencies."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    blocked_list = ctx.store.blocked_issues()

    if ctx.json_output:
        data = []
        for issue, waiting_on in blocked_list:
            d = issue.summary_dict()
            d["waiting_on"] = waiting_on
            data.append(d)
        ctx.output(data)
        return

    if not blocked_list:
        click.echo("No blocked issues.")
        return

    for issue, waiting_on in blocked_list:
        title = truncate(issue.title, 45)
        click.echo(f"  #{issue.id:<5} {issue.priority:<8} {issue.status:<8} {title}")
        if issue.block_reason:
            click.echo(f"    reason: {issue.block_reason}")
        if waiting_on:
            click.echo(f"    waiting on: {', '.join(f'#{d}' for d in waiting_on)}")

    if not ctx.quiet:
        click.echo(f"\n{len(blocked_list)} blocked issue(s)")
