"""agentx doctor - health checks."""

from __future__ import annotations

import os
import sys

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.storage.file_store import CLOSED_DIR, OPEN_DIR


@click.command("doctor")
@pass_ctx
def doctor(ctx: AgentxContext) -> None:
    """Run health checks on the issue records."""
    ctx.ensure_initialized()
    assert ctx.store is not None and ctx.config is not None

    report = ctx.store.validate()
    problems = (len(report["load_errors"]) + len(report["corrupted"])
                + len(report["cycles"]) + len(report["dangling_dependencies"])
                + len(report["dangling_aliases"]) + len(report["misplaced"]))

    if ctx.json_output:
        ctx.output({
            "path": ctx.store.issues_dir,
            "config": ctx.config.path,
            "problems": problems,
            "load_errors": [{"path": p, "message": m} for p, m in report["load_errors"]],
            "corrupted": {str(k): v for k, v in report["corrupted"].items()},
            "cycles": report["cycles"],
            "dangling_dependencies": [list(e) for e in report["dangling_dependencies"]],
            "dangling_aliases": [list(e) for e in report["dangling_aliases"]],
            "misplaced": report["misplaced"],
        })
        if problems:
            sys.exit(1)
        return

    click.echo("agentx doctor")
    click.echo("─" * 40)

    click.echo(f"  Issues directory: {ctx.store.issues_dir}")
    for name in (OPEN_DIR, CLOSED_DIR):
        if os.path.isdir(os.path.join(ctx.store.issues_dir, name)):
            click.echo(f"    [OK] {name}/ exists")
        else:
            click.echo(f"    [INFO] {name}/ not created yet")
    click.echo(f"  Config: {ctx.config.path or '(defaults)'}")

    if report["load_errors"]:
        click.echo("\n  [ERROR] Unreadable records:")
        for path, message in report["load_errors"]:
            click.echo(f"      {path}: {message}")
    for issue_id, detail in sorted(report["corrupted"].items()):
        click.echo(f"  [ERROR] #{issue_id}: {detail}")

    click.echo("\n  Checking dependencies...")
    for cycle in report["cycles"]:
        click.echo(f"    [WARN] cycle: {' → '.join(f'#{n}' for n in cycle)}")
    for issue_id, dep_id in report["dangling_dependencies"]:
        click.echo(f"    [WARN] #{issue_id} depends on missing #{dep_id}")
    if not report["cycles"] and not report["dangling_dependencies"]:
        click.echo("    [OK] no cycles or dangling references")

    for name, issue_id in report["dangling_aliases"]:
        click.echo(f"  [WARN] alias '{name}' points at missing #{issue_id}")
    for issue_id in report["misplaced"]:
        click.echo(f"  [WARN] #{issue_id} is stored in the wrong partition")

    # Summary
    click.echo()
    if problems:
        click.echo(f"Found {problems} problem(s)")
        sys.exit(1)
    click.echo("All checks passed!")
