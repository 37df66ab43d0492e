"""agentx search - search issues."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.utils import format_issue_row


@click.command("search")
@click.argument("query")
@click.option("--limit", default=20, type=int, help="Max results")
@click.option("--all", "show_all", is_flag=True, help="Include closed")
@click.option("--long", "-L", "long_format", is_flag=True, help="Long format")
@pass_ctx
def search(ctx: AgentxContext, query: str, limit: int, show_all: bool,
           long_format: bool) -> None:
    """Search issues by text query."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issues = ctx.store.search(query, include_closed=show_all)
    if limit:
        issues = issues[:limit]

    if ctx.json_output:
        ctx.output([i.to_dict() for i in issues])
        return

    if not issues:
        click.echo(f"No issues matching '{query}'")
        return

    for issue in issues:
        click.echo(format_issue_row(issue, long_format=long_format))

    click.echo(f"\n{len(issues)} result(s)")
