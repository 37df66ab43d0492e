"""agentx list - list issues."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.models import IssueFilter, Priority, Status
from agentx.utils import format_issue_row, parse_duration

STATUS_CHOICES = [Status.OPEN, Status.ACTIVE, Status.BLOCKED, Status.DONE,
                  Status.CLOSED, Status.BACKLOG]


@click.command("list")
@click.option("--status", "-s", "status", default=None,
              type=click.Choice(STATUS_CHOICES), help="Filter by status")
@click.option("--priority", "-p", default=None,
              type=click.Choice(list(Priority.ORDER), case_sensitive=False),
              help="Filter by priority")
@click.option("--tag", "tags", multiple=True, help="Filter by tag (AND, fuzzy)")
@click.option("--max-effort", default=None, help="Only issues estimated at most this long")
@click.option("--limit", default=0, type=int, help="Max issues to show")
@click.option("--all", "show_all", is_flag=True, help="Include closed issues")
@click.option("--long", "-L", "long_format", is_flag=True, help="Long format with extra fields")
@pass_ctx
def list_cmd(ctx: AgentxContext, status: str | None, priority: str | None,
             tags: tuple[str, ...], max_effort: str | None, limit: int,
             show_all: bool, long_format: bool) -> None:
    """List issues with filters."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    f = IssueFilter(include_closed=show_all, limit=limit)
    if status:
        f.status = status
    if priority:
        f.priority = priority.lower()
    if tags:
        f.tags = list(tags)
    if max_effort:
        f.max_effort = parse_duration(max_effort)

    issues = ctx.store.list_issues(f)

    if ctx.json_output:
        ctx.output([i.to_dict() for i in issues])
        return

    if not issues:
        click.echo("No issues found.")
        return

    for issue in issues:
        click.echo(format_issue_row(issue, long_format=long_format))

    if not ctx.quiet:
        click.echo(f"\n{len(issues)} issue(s)")
