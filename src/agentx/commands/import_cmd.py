"""agentx import - create issues in bulk from a YAML file."""

from __future__ import annotations

import sys

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.importer import import_specs, parse_specs


@click.command("import")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--dry-run", is_flag=True, help="Parse and report without creating")
@pass_ctx
def import_cmd(ctx: AgentxContext, source, dry_run: bool) -> None:
    """Import issues from a YAML list (use - for stdin)."""
    ctx.ensure_initialized()
    assert ctx.store is not None and ctx.config is not None

    specs = parse_specs(source.read(), default_priority=ctx.config.default_priority)

    if dry_run:
        if ctx.json_output:
            ctx.output([{"title": s.title, "priority": s.priority} for s in specs])
        else:
            for s in specs:
                click.echo(f"Would create: {s.title} ({s.priority})")
        return

    result = import_specs(ctx.store, specs, verbose=ctx.verbose)

    if ctx.json_output:
        ctx.output(result.to_dict())
    else:
        for failure in result.failed:
            click.echo(f"Error: item {failure.index} ({failure.title}): {failure.message}",
                       err=True)
        if not ctx.quiet:
            created = ", ".join(f"#{i}" for i in result.created) or "none"
            click.echo(f"Imported {len(result.created)} issue(s): {created}")

    if result.failed:
        sys.exit(1)
