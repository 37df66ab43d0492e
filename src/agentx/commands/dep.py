"""agentx dep - manage dependencies."""

from __future__ import annotations

import sys

import click

from agentx.cli import AgentxContext, pass_ctx
from agentx.graph import DependencyGraph
from agentx.models import Issue
from agentx.utils import format_minutes, status_symbol, truncate


@click.group("dep")
def dep() -> None:
    """Manage issue dependencies."""


@dep.command("add")
@click.argument("reference")
@click.argument("depends_on")
@pass_ctx
def dep_add(ctx: AgentxContext, reference: str, depends_on: str) -> None:
    """Add a dependency: REFERENCE depends on DEPENDS_ON."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issue = ctx.store.add_dependency(reference, depends_on)
    dep_id = ctx.store.resolve_id(depends_on)

    if ctx.json_output:
        ctx.output({"id": issue.id, "depends_on": issue.depends_on})
    elif not ctx.quiet:
        click.echo(f"Added dependency: #{issue.id} depends on #{dep_id}")


@dep.command("remove")
@click.argument("reference")
@click.argument("depends_on")
@pass_ctx
def dep_remove(ctx: AgentxContext, reference: str, depends_on: str) -> None:
    """Remove a dependency."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issue = ctx.store.remove_dependency(reference, depends_on)

    if ctx.json_output:
        ctx.output({"id": issue.id, "depends_on": issue.depends_on})
    elif not ctx.quiet:
        click.echo(f"Removed dependency: #{issue.id} → {depends_on}")


@dep.command("list")
@click.argument("reference")
@pass_ctx
def dep_list(ctx: AgentxContext, reference: str) -> None:
    """List dependencies for an issue."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    issue_id = ctx.store.resolve_id(reference)
    deps, dependents = ctx.store.dependencies(issue_id)

    if ctx.json_output:
        ctx.output({
            "id": issue_id,
            "dependencies": [d.summary_dict() for d in deps],
            "dependents": [d.summary_dict() for d in dependents],
        })
        return

    if deps:
        click.echo(f"Dependencies of #{issue_id}:")
        for d in deps:
            click.echo(f"  → #{d.id} ({d.status}) {truncate(d.title)}")
    else:
        click.echo(f"No dependencies for #{issue_id}")

    if dependents:
        click.echo(f"\nDepended on by:")
        for d in dependents:
            click.echo(f"  ← #{d.id} ({d.status}) {truncate(d.title)}")


def _echo_tree(graph: DependencyGraph, issues: dict[int, Issue], node: int,
               depth: int, seen: set[int]) -> None:
    issue = issues.get(node)
    label = f"[{status_symbol(issue.status)}] #{node} {truncate(issue.title, 50)}" \
        if issue else f"[?] #{node} (missing)"
    suffix = " (see above)" if node in seen else ""
    click.echo(f"{'  ' * depth}{label}{suffix}")
    if node in seen or node not in graph:
        return
    seen.add(node)
    for d in graph.dependencies_of(node):
        _echo_tree(graph, issues, d, depth + 1, seen)


@dep.command("graph")
@click.argument("reference", required=False)
@pass_ctx
def dep_graph(ctx: AgentxContext, reference: str | None) -> None:
    """Show the dependency tree (for one issue, or everything with edges)."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    graph = ctx.store.graph()
    issues = {i.id: i for i in ctx.store.all_issues()}

    if reference:
        root = ctx.store.resolve_id(reference)
        members = graph.subgraph(root)
        edges = {n: ds for n, ds in graph.edges().items() if n in members}
    else:
        root = None
        edges = {n: ds for n, ds in graph.edges().items() if ds}

    if ctx.json_output:
        ctx.output({"edges": {str(n): list(ds) for n, ds in edges.items()}})
        return

    if not any(edges.values()):
        click.echo("No dependencies.")
        return

    if root is not None:
        roots = [root] + [n for n in graph.dependents_of(root)]
    else:
        depended = {d for ds in edges.values() for d in ds}
        roots = [n for n in edges if edges[n] and n not in depended]

    seen: set[int] = set()
    for n in roots:
        _echo_tree(graph, issues, n, 0, seen)


@dep.command("critical-path")
@pass_ctx
def dep_critical_path(ctx: AgentxContext) -> None:
    """Show the longest dependency chain, first thing to do first."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    path = ctx.store.critical_path()

    if ctx.json_output:
        ctx.output([i.summary_dict() for i in path])
        return

    if not path:
        click.echo("No dependency chains.")
        return

    for step, issue in enumerate(path, 1):
        click.echo(f"  {step}. #{issue.id} ({issue.status}) "
                   f"{format_minutes(issue.effort_minutes):>6}  {truncate(issue.title, 50)}")
    total = sum(i.effort_minutes or 0 for i in path)
    if not ctx.quiet:
        click.echo(f"\n{len(path)} issue(s), {format_minutes(total)} estimated")


@dep.command("validate")
@pass_ctx
def dep_validate(ctx: AgentxContext) -> None:
    """Report dependency cycles and dangling references."""
    ctx.ensure_initialized()
    assert ctx.store is not None

    report = ctx.store.validate()
    cycles = report["cycles"]
    dangling = report["dangling_dependencies"]

    if ctx.json_output:
        ctx.output({"cycles": cycles, "dangling": [list(e) for e in dangling]})
    else:
        for cycle in cycles:
            click.echo(f"Cycle: {' → '.join(f'#{n}' for n in cycle)}")
        for issue_id, dep_id in dangling:
            click.echo(f"Dangling: #{issue_id} depends on missing #{dep_id}")
        if not cycles and not dangling:
            click.echo("Dependency graph is valid.")

    if cycles or dangling:
        sys.exit(1)
