"""agentx show - display issue details."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.models import format_timestamp
from agentx.utils import format_minutes, format_time_ago


def _echo_section(label: str, text: str | None) -> None:
    if not text:
        return
    click.echo(f"\n  {label}:")
    for line in text.split("\n"):
        click.echo(f"    {line}")


@click.command("show")
@click.argument("reference")
@click.option("--raw", is_flag=True, help="Print the record file as stored")
@pass_ctx
def show(ctx: AgentxContext, reference: str, raw: bool) -> None:
    """Show detailed view of an issue (by id or alias)."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issue = ctx.store.get_issue(reference)
    deps, dependents = ctx.store.dependencies(issue.id)
    aliases = ctx.store.aliases_for(issue.id)

    if raw:
        with open(ctx.store.record_path(issue.id), encoding="utf-8") as f:
            click.echo(f.read(), nl=False)
        return

    if ctx.json_output:
        data = issue.to_dict()
        data["aliases"] = aliases
        data["dependents"] = [d.id for d in dependents]
        ctx.output(data)
        return

    # Header
    click.echo(f"{'─' * 60}")
    click.echo(f"  #{issue.id}: {issue.title}")
    click.echo(f"{'─' * 60}")
    click.echo(f"  Status:   {issue.status}")
    click.echo(f"  Priority: {issue.priority}")
    click.echo(f"  Effort:   {format_minutes(issue.effort_minutes)}")
    if aliases:
        click.echo(f"  Aliases:  {', '.join(aliases)}")
    if issue.tags:
        click.echo(f"  Tags:     {', '.join(issue.tags)}")
    if issue.files:
        click.echo(f"  Files:    {', '.join(issue.files)}")

    click.echo(f"  Created:  {format_time_ago(issue.created_at)}")
    if issue.started_at:
        click.echo(f"  Started:  {format_time_ago(issue.started_at)}")
    if issue.closed_at:
        click.echo(f"  Closed:   {format_time_ago(issue.closed_at)}")
    if issue.block_reason:
        click.echo(f"  Blocked:  {issue.block_reason}")

    _echo_section("Issue", issue.description)
    _echo_section("Impact", issue.impact)
    _echo_section("Acceptance", issue.acceptance)
    _echo_section("Context", issue.context)

    if deps:
        click.echo(f"\n  Depends on:")
        for d in deps:
            click.echo(f"    → #{d.id} ({d.status}) {d.title}")
    missing = sorted(set(issue.depends_on) - {d.id for d in deps})
    for dep_id in missing:
        click.echo(f"    → #{dep_id} (missing)")

    if dependents:
        click.echo(f"\n  Blocks:")
        for d in dependents:
            click.echo(f"    ← #{d.id} ({d.status}) {d.title}")

    if issue.checkpoints:
        click.echo(f"\n  Checkpoints ({len(issue.checkpoints)}):")
        for cp in issue.checkpoints:
            click.echo(f"    [{format_timestamp(cp.timestamp)}] {cp.text}")

    click.echo()
