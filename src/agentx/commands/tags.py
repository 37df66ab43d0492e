"""agentx tag - manage tags."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx


@click.group("tag")
def tag() -> None:
    """Manage issue tags."""


@tag.command("add")
@click.argument("reference")
@click.argument("tags", nargs=-1, required=True)
@pass_ctx
def tag_add(ctx: AgentxContext, reference: str, tags: tuple[str, ...]) -> None:
    """Add tags to an issue."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issue = ctx.store.add_tags(reference, list(tags))

    if ctx.json_output:
        ctx.output({"id": issue.id, "tags": issue.tags})
    elif not ctx.quiet:
        click.echo(f"Tags on #{issue.id}: {', '.join(issue.tags)}")


@tag.command("remove")
@click.argument("reference")
@click.argument("tags", nargs=-1, required=True)
@pass_ctx
def tag_remove(ctx: AgentxContext, reference: str, tags: tuple[str, ...]) -> None:
    """Remove tags from an issue."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issue = ctx.store.remove_tags(reference, list(tags))

    if ctx.json_output:
        ctx.output({"id": issue.id, "tags": issue.tags})
    elif not ctx.quiet:
        click.echo(f"Tags on #{issue.id}: {', '.join(issue.tags) or '(none)'}")


@tag.command("list")
@click.argument("reference", required=False)
@pass_ctx
def tag_list(ctx: AgentxContext, reference: str | None) -> None:
    """List tags for an issue, or tag counts across open issues."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    if reference:
        issue = ctx.store.get_issue(reference)
        if ctx.json_output:
            ctx.output(issue.tags)
        elif not issue.tags:
            click.echo(f"No tags on #{issue.id}")
        else:
            for t in issue.tags:
                click.echo(f"  {t}")
        return

    counts: dict[str, int] = {}
    for issue in ctx.store.all_issues():
        if issue.is_closed:
            continue
        for t in issue.tags:
            counts[t] = counts.get(t, 0) + 1

    if ctx.json_output:
        ctx.output(dict(sorted(counts.items())))
        return

    if not counts:
        click.echo("No tags.")
        return

    for t, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
        click.echo(f"  {t:<24} {count}")
