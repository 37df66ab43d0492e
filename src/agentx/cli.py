"""Click CLI root and global flags for agentx."""

from __future__ import annotations

import json
import os
import sys
from typing import Any

import click

from agentx import __version__
from agentx.config import AgentxConfig, find_config, resolve_issues_dir
from agentx.errors import AgentxError
from agentx.storage.file_store import ISSUES_DIR, FileStorage


class AgentxContext:
    """Shared context for all commands."""

    def __init__(self) -> None:
        self.dir_override: str | None = None
        self.root: str | None = None
        self.store: FileStorage | None = None
        self.config: AgentxConfig | None = None
        self.json_output: bool = False
        self.verbose: bool = False
        self.quiet: bool = False

    def load_config(self) -> AgentxConfig:
        if self.config is None:
            config_path = find_config()
            self.config = AgentxConfig.load(config_path)
            if self.verbose:
                click.echo(f"Config: {config_path or '(defaults)'}", err=True)
            if not self.json_output:
                self.json_output = self.config.json_output
        return self.config

    def issues_root(self) -> str:
        if self.root is None:
            self.root = resolve_issues_dir(self.load_config(), self.dir_override)
        return self.root

    def ensure_initialized(self) -> None:
        """Ensure the issues directory and storage are available."""
        if self.store is not None:
            return
        root = self.issues_root()
        if not os.path.isdir(os.path.join(root, ISSUES_DIR)):
            click.echo(f"Error: not an agentx project (no {ISSUES_DIR}/ directory in {root})",
                       err=True)
            click.echo("Run 'agentx init' to create one", err=True)
            sys.exit(1)
        assert self.config is not None
        self.store = FileStorage(root, auto_status=self.config.auto_status_detection,
                                 verbose=self.verbose)
        if self.store.load_errors and not self.quiet:
            click.echo(f"Warning: {len(self.store.load_errors)} record(s) could not be read "
                       f"(run 'agentx doctor')", err=True)

    def output(self, data: Any) -> None:
        """Output data as JSON."""
        click.echo(json.dumps(data, indent=2, default=str))

    def report_error(self, error: AgentxError) -> None:
        if self.json_output:
            self.output(error.to_dict())
        else:
            click.echo(f"Error: {error}", err=True)


pass_ctx = click.make_pass_decorator(AgentxContext, ensure=True)


class AgentxGroup(click.Group):
    """Root group that turns tracker errors into a message and exit status 1."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except AgentxError as e:
            actx = ctx.ensure_object(AgentxContext)
            actx.report_error(e)
            ctx.exit(1)


@click.group(cls=AgentxGroup, invoke_without_command=True)
@click.option("--dir", "issues_dir", envvar="AGENTX_DIR",
              help="Directory holding issues/ (overrides config)")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.version_option(__version__, prog_name="agentx")
@click.pass_context
def cli(ctx: click.Context, issues_dir: str | None, json_output: bool,
        verbose: bool, quiet: bool) -> None:
    """agentx - markdown issue tracker for humans and coding agents"""
    actx = ctx.ensure_object(AgentxContext)
    actx.verbose = verbose
    actx.quiet = quiet
    if json_output:
        actx.json_output = True
    if issues_dir:
        actx.dir_override = issues_dir

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# --- Register all command groups ---

from agentx.commands.init_cmd import init_cmd
from agentx.commands.create import create
from agentx.commands.list_cmd import list_cmd
from agentx.commands.show import show
from agentx.commands.transitions import (
    activate, block, defer, done, reopen, start, unblock,
)
from agentx.commands.close import close
from agentx.commands.checkpoint import checkpoint
from agentx.commands.dep import dep
from agentx.commands.alias import alias
from agentx.commands.tags import tag
from agentx.commands.context import context, focus, summary
from agentx.commands.ready import ready, wins
from agentx.commands.blocked import blocked
from agentx.commands.search import search
from agentx.commands.stats import stats
from agentx.commands.import_cmd import import_cmd
from agentx.commands.doctor import doctor

cli.add_command(init_cmd, "init")
cli.add_command(create, "create")
cli.add_command(create, "new")  # Alias
cli.add_command(list_cmd, "list")
cli.add_command(show, "show")
cli.add_command(show, "view")  # Alias
cli.add_command(start, "start")
cli.add_command(block, "block")
cli.add_command(unblock, "unblock")
cli.add_command(done, "done")
cli.add_command(close, "close")
cli.add_command(reopen, "reopen")
cli.add_command(defer, "defer")
cli.add_command(activate, "activate")
cli.add_command(checkpoint, "checkpoint")
cli.add_command(dep, "dep")
cli.add_command(alias, "alias")
cli.add_command(tag, "tag")
cli.add_command(context, "context")
cli.add_command(focus, "focus")
cli.add_command(summary, "summary")
cli.add_command(ready, "ready")
cli.add_command(wins, "wins")
cli.add_command(blocked, "blocked")
cli.add_command(search, "search")
cli.add_command(stats, "stats")
cli.add_command(import_cmd, "import")
cli.add_command(doctor, "doctor")


def main() -> None:
    cli(auto_envvar_prefix="AGENTX")
