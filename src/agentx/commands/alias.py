"""agentx alias - manage issue aliases."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx


@click.group("alias")
def alias() -> None:
    """Manage issue aliases."""


@alias.command("add")
@click.argument("reference")
@click.argument("name")
@pass_ctx
def alias_add(ctx: AgentxContext, reference: str, name: str) -> None:
    """Point alias NAME at an issue."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issue_id = ctx.store.add_alias(reference, name)

    if ctx.json_output:
        ctx.output({"alias": name.strip(), "id": issue_id})
    elif not ctx.quiet:
        click.echo(f"Alias '{name.strip()}' → #{issue_id}")


@alias.command("remove")
@click.argument("name")
@pass_ctx
def alias_remove(ctx: AgentxContext, name: str) -> None:
    """Remove an alias."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issue_id = ctx.store.remove_alias(name)

    if ctx.json_output:
        ctx.output({"alias": name, "id": issue_id})
    elif not ctx.quiet:
        click.echo(f"Removed alias '{name}' (was #{issue_id})")


@alias.command("list")
@pass_ctx
def alias_list(ctx: AgentxContext) -> None:
    """List all aliases."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    aliases = ctx.store.list_aliases()

    if ctx.json_output:
        ctx.output({a: i for a, i in aliases})
        return

    if not aliases:
        click.echo("No aliases.")
        return

    for name, issue_id in aliases:
        click.echo(f"  {name:<24} #{issue_id}")
