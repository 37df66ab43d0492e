"""agentx create - create a new issue."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.models import IssueSpec, Priority
from agentx.utils import format_minutes


@click.command("create")
@click.option("--title", "-t", required=True, help="Issue title")
@click.option("--issue", "-i", "description", default="", help="What is wrong")
@click.option("--impact", default="", help="Why it matters")
@click.option("--acceptance", "-a", default="", help="How to tell it is fixed")
@click.option("--priority", "-p", default=None,
              type=click.Choice(list(Priority.ORDER), case_sensitive=False),
              help="Priority (default from config)")
@click.option("--effort", "-e", default=None, help="Effort estimate, e.g. 30m, 2h, 1.5d")
@click.option("--file", "-f", "files", multiple=True, help="Affected file (repeatable)")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--depends-on", "-d", "depends_on", multiple=True,
              help="Issue id or alias this one depends on (repeatable)")
@click.option("--context", "-c", "context_text", default=None, help="Extra context")
@click.option("--backlog", is_flag=True, help="Create in the backlog")
@click.option("--alias", "alias_name", default=None, help="Alias for the new issue")
@click.option("--silent", is_flag=True, help="Only output the issue ID")
@pass_ctx
def create(ctx: AgentxContext, title: str, description: str, impact: str,
           acceptance: str, priority: str | None, effort: str | None,
           files: tuple[str, ...], tags: tuple[str, ...],
           depends_on: tuple[str, ...], context_text: str | None, backlog: bool,
           alias_name: str | None, silent: bool) -> None:
    """Create a new issue."""
    ctx.ensure_initialized()
    assert ctx.store is not None and ctx.config is not None

    spec = IssueSpec(
        title=title,
        description=description,
        impact=impact,
        acceptance=acceptance,
        priority=(priority or ctx.config.default_priority).lower(),
        effort=effort,
        files=list(files),
        tags=list(tags),
        depends_on=list(depends_on),
        context=context_text,
        backlog=backlog,
    )
    issue = ctx.store.create_issue(spec)

    if alias_name:
        ctx.store.add_alias(issue.id, alias_name)

    if ctx.json_output:
        data = issue.to_dict()
        if alias_name:
            data["alias"] = alias_name
        ctx.output(data)
    elif silent:
        click.echo(issue.id)
    else:
        click.echo(f"Created #{issue.id}: {issue.title}")
        if not ctx.quiet:
            click.echo(f"  Priority: {issue.priority}, effort: {format_minutes(issue.effort_minutes)}")
            click.echo(f"  File: {ctx.store.record_path(issue.id)}")
