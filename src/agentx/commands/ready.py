"""agentx ready / wins - show issues ready to work on."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.utils import format_issue_row, format_minutes, matches_tags, parse_duration


@click.command("ready")
@click.option("--tag", "tags", multiple=True, help="Filter by tag")
@click.option("--limit", default=0, type=int, help="Max issues")
@click.option("--long", "-L", "long_format", is_flag=True, help="Long format")
@pass_ctx
def ready(ctx: AgentxContext, tags: tuple[str, ...], limit: int,
          long_format: bool) -> None:
    """Show issues that are ready to work on (open, dependencies finished)."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issues = ctx.store.ready_issues()
    if tags:
        issues = [i for i in issues if matches_tags(i, list(tags))]
    if limit:
        issues = issues[:limit]

    if ctx.json_output:
        ctx.output([i.to_dict() for i in issues])
        return

    if not issues:
        click.echo("No ready issues.")
        return

    for issue in issues:
        click.echo(format_issue_row(issue, long_format=long_format))

    if not ctx.quiet:
        click.echo(f"\n{len(issues)} ready issue(s)")


@click.command("wins")
@click.option("--under", "threshold", default="1h",
              help="Effort threshold (strictly less than), e.g. 30m, 2h")
@pass_ctx
def wins(ctx: AgentxContext, threshold: str) -> None:
    """Show quick wins: unfinished issues estimated under a threshold."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    minutes = parse_duration(threshold)
    issues = ctx.store.quick_wins(minutes)

    if ctx.json_output:
        ctx.output([i.summary_dict() for i in issues])
        return

    if not issues:
        click.echo(f"No quick wins under {format_minutes(minutes)}.")
        return

    for issue in issues:
        click.echo(f"{format_minutes(issue.effort_minutes):>6}  {format_issue_row(issue)}")

    if not ctx.quiet:
        click.echo(f"\n{len(issues)} quick win(s)")
