"""agentx close - close one or more issues."""

from __future__ import annotations

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.commands.transitions import report_outcomes, use_git
from agentx.errors import GitError
from agentx.git import GitRepo, close_message
from agentx.status import Action
from agentx.utils import format_issue_row


@click.command("close")
@click.argument("references", nargs=-1, required=True)
@click.option("--note", "-n", default="", help="Closing note (recorded as a checkpoint)")
@click.option("--commit/--no-commit", default=None,
              help="Commit the issues directory to git after closing (overrides config)")
@click.option("--suggest-next", is_flag=True, help="Suggest next issue to work on")
@pass_ctx
def close(ctx: AgentxContext, references: tuple[str, ...], note: str,
          commit: bool | None, suggest_next: bool) -> None:
    """Close one or more issues."""
    ctx.ensure_initialized()
    assert ctx.store is not None and ctx.config is not None

    outcomes = ctx.store.bulk_apply(list(references), Action.CLOSE, note=note or None)

    git: dict[str, str] | None = None
    closed = [ctx.store.get_issue(o.issue_id) for o in outcomes if o.ok]
    if use_git(commit, ctx.config.git_commit_on_close) and closed:
        try:
            repo = GitRepo.discover(ctx.issues_root())
            repo.stage([ctx.store.issues_dir])
            sha = repo.commit(close_message(closed))
        except GitError as e:
            git = {"error": str(e)}
        else:
            git = {"commit": sha, "message": f"Committed {sha[:7]}"}

    if suggest_next and closed and not ctx.json_output:
        ready = ctx.store.ready_issues()[:3]
        if ready:
            click.echo("Suggested next:")
            for r in ready:
                click.echo(f"  {format_issue_row(r)}")

    report_outcomes(ctx, Action.CLOSE, outcomes, git)
