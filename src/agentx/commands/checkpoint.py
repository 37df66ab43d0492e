"""agentx checkpoint - record progress on an issue."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx


@click.command("checkpoint")
@click.argument("reference")
@click.argument("note", nargs=-1, required=True)
@pass_ctx
def checkpoint(ctx: AgentxContext, reference: str, note: tuple[str, ...]) -> None:
    """Append a progress note to an issue.

    Notes starting with BLOCKED:, FIXED: or DONE: also move the issue to
    blocked or done when that transition is allowed.
    """
    ctx.ensure_initialized()
    assert ctx.store is not None

    result = ctx.store.add_checkpoint(reference, " ".join(note))

    if ctx.json_output:
        ctx.output({
            "id": result.issue.id,
            "checkpoint": result.checkpoint.to_dict(),
            "status": result.issue.status,
            "applied_action": result.applied_action,
        })
        return

    if not ctx.quiet:
        click.echo(f"Checkpoint added to #{result.issue.id}")
    if result.applied_action:
        click.echo(f"  Status is now {result.issue.status}")
