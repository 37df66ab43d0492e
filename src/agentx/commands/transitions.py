"""agentx start/block/unblock/done/reopen/defer/activate - status changes.

Each command takes one or more references and reports an outcome per
reference; one failing id never stops the rest.
"""

from __future__ import annotations

import sys
from typing import Any

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.errors import GitError
from agentx.git import GitRepo, branch_name
from agentx.models import BulkOutcome
from agentx.status import Action

PAST_TENSE = {
    Action.START: "Started",
    Action.BLOCK: "Blocked",
    Action.UNBLOCK: "Unblocked",
    Action.DONE: "Done",
    Action.CLOSE: "Closed",
    Action.REOPEN: "Reopened",
    Action.DEFER: "Deferred",
    Action.ACTIVATE: "Activated",
}


def report_outcomes(ctx: AgentxContext, action: str, outcomes: list[BulkOutcome],
                    git: dict[str, Any] | None = None) -> None:
    """Print per-reference results and exit 1 if any of them (or git) failed."""
    failed = [o for o in outcomes if not o.ok]
    git_failed = bool(git and "error" in git)

    if ctx.json_output:
        payload: dict[str, Any] = {"action": action, "results": [o.to_dict() for o in outcomes]}
        if git:
            payload["git"] = git
        ctx.output(payload)
    else:
        for o in outcomes:
            if o.ok:
                if not ctx.quiet:
                    click.echo(f"{PAST_TENSE[action]} #{o.issue_id} ({o.status})")
            else:
                click.echo(f"Error: {o.reference}: {o.error}", err=True)
        if git_failed:
            click.echo(f"Error: git: {git['error']}", err=True)
        elif git and not ctx.quiet:
            click.echo(git["message"])

    if failed or git_failed:
        sys.exit(1)


def _action_command(action: str, help_text: str) -> click.Command:
    @click.command(action, help=help_text)
    @click.argument("references", nargs=-1, required=True)
    @pass_ctx
    def command(ctx: AgentxContext, references: tuple[str, ...]) -> None:
        ctx.ensure_initialized()
        assert ctx.store is not None
        report_outcomes(ctx, action, ctx.store.bulk_apply(list(references), action))

    return command


unblock = _action_command(Action.UNBLOCK, "Resume blocked issues.")
done = _action_command(Action.DONE, "Mark issues done (awaiting close).")
reopen = _action_command(Action.REOPEN, "Reopen closed issues.")
defer = _action_command(Action.DEFER, "Move issues to the backlog.")
activate = _action_command(Action.ACTIVATE, "Bring backlog issues back to open.")


@click.command("block")
@click.argument("references", nargs=-1, required=True)
@click.option("--reason", "-r", required=True, help="Why the work is blocked")
@pass_ctx
def block(ctx: AgentxContext, references: tuple[str, ...], reason: str) -> None:
    """Block one or more issues with a reason."""
    ctx.ensure_initialized()
    assert ctx.store is not None
    report_outcomes(ctx, Action.BLOCK,
                    ctx.store.bulk_apply(list(references), Action.BLOCK, reason=reason))


def use_git(flag: bool | None, configured: bool) -> bool:
    return configured if flag is None else flag


@click.command("start")
@click.argument("references", nargs=-1, required=True)
@click.option("--branch/--no-branch", default=None,
              help="Create and switch to a git branch for the issue (overrides config)")
@pass_ctx
def start(ctx: AgentxContext, references: tuple[str, ...], branch: bool | None) -> None:
    """Start work on one or more issues."""
    ctx.ensure_initialized()
    assert ctx.store is not None and ctx.config is not None
    want_branch = use_git(branch, ctx.config.git_branch_on_start)
    if want_branch and len(references) > 1:
        raise click.UsageError("--branch takes a single reference")

    outcomes = ctx.store.bulk_apply(list(references), Action.START)
    git: dict[str, str] | None = None
    if want_branch and outcomes[0].ok:
        issue = ctx.store.get_issue(outcomes[0].issue_id)
        try:
            name = GitRepo.discover(ctx.issues_root()).create_branch(branch_name(issue))
        except GitError as e:
            git = {"error": str(e)}
        else:
            git = {"branch": name, "message": f"Switched to new branch '{name}'"}
    report_outcomes(ctx, Action.START, outcomes, git)
