"""agentx init - initialize a new issues/ directory."""

from __future__ import annotations

import os

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.config import CONFIG_FILE, AgentxConfig
from agentx.storage.file_store import (
    ALIASES_FILE, CLOSED_DIR, ISSUES_DIR, OPEN_DIR,
)


@click.command("init")
@click.option("--no-config", is_flag=True, help=f"Do not write a {CONFIG_FILE}")
@pass_ctx
def init_cmd(ctx: AgentxContext, no_config: bool) -> None:
    """Initialize a new agentx project."""
    root = ctx.issues_root()
    issues_dir = os.path.join(root, ISSUES_DIR)

    if os.path.isdir(issues_dir):
        if ctx.json_output:
            ctx.output({"initialized": False, "path": issues_dir})
        else:
            click.echo(f"agentx already initialized at {issues_dir}")
        return

    os.makedirs(os.path.join(issues_dir, OPEN_DIR), exist_ok=True)
    os.makedirs(os.path.join(issues_dir, CLOSED_DIR), exist_ok=True)

    aliases_path = os.path.join(issues_dir, ALIASES_FILE)
    with open(aliases_path, "w", encoding="utf-8") as f:
        f.write("{}\n")

    config_path = os.path.join(os.getcwd(), CONFIG_FILE)
    wrote_config = False
    if not no_config and ctx.dir_override is None and not os.path.exists(config_path):
        AgentxConfig().save(config_path)
        wrote_config = True

    if ctx.json_output:
        ctx.output({"initialized": True, "path": issues_dir})
        return

    click.echo(f"Initialized agentx in {issues_dir}")
    if wrote_config and not ctx.quiet:
        click.echo(f"  Config: {config_path}")
