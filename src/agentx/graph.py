"""Dependency graph over issue ids.

Nodes are issue ids; an edge ``a -> b`` means "a depends on b". The graph
is an adjacency mapping built from a snapshot of the store, never a web of
object references, so cycle checks are plain reachability searches.
"""

from __future__ import annotations

import heapq
from typing import Iterable

from agentx.errors import CycleDetected, NotFound, SelfDependency
from agentx.models import Issue, Status


class DependencyGraph:

    def __init__(self, edges: dict[int, Iterable[int]], statuses: dict[int, str],
                 efforts: dict[int, int | None] | None = None) -> None:
        self._deps: dict[int, set[int]] = {n: set(ds) for n, ds in edges.items()}
        for n in statuses:
            self._deps.setdefault(n, set())
        self._statuses = dict(statuses)
        self._efforts = dict(efforts or {})

    @classmethod
    def from_issues(cls, issues: Iterable[Issue]) -> DependencyGraph:
        edges: dict[int, list[int]] = {}
        statuses: dict[int, str] = {}
        efforts: dict[int, int | None] = {}
        for issue in issues:
            edges[issue.id] = list(issue.depends_on)
            statuses[issue.id] = issue.status
            efforts[issue.id] = issue.effort_minutes
        return cls(edges, statuses, efforts)

    def copy(self) -> DependencyGraph:
        return DependencyGraph(self._deps, self._statuses, self._efforts)

    # --- Inspection ---

    def __contains__(self, node: object) -> bool:
        return node in self._statuses

    @property
    def nodes(self) -> list[int]:
        return sorted(self._statuses)

    def edges(self) -> dict[int, tuple[int, ...]]:
        """Snapshot copy of the adjacency mapping."""
        return {n: tuple(sorted(ds)) for n, ds in sorted(self._deps.items())}

    def _require(self, node: int) -> None:
        if node not in self._statuses:
            raise NotFound(node)

    def dependencies_of(self, node: int) -> list[int]:
        self._require(node)
        return sorted(self._deps.get(node, ()))

    def dependents_of(self, node: int) -> list[int]:
        """Ids whose depends_on contains node, i.e. what node blocks."""
        self._require(node)
        return sorted(n for n, ds in self._deps.items() if node in ds)

    def reachable(self, start: int, target: int) -> bool:
        """True if target can be reached from start by following dependencies."""
        stack = [start]
        seen = {start}
        while stack:
            current = stack.pop()
            if current == target:
                return True
            for nxt in self._deps.get(current, ()):
                if nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
        return False

    # --- Mutation ---

    def add_edge(self, a: int, b: int) -> bool:
        """Record that a depends on b. Returns False if the edge already existed.

        Raises:
            SelfDependency: a == b.
            CycleDetected: a is reachable from b; the graph is left unchanged.
        """
        if a == b:
            raise SelfDependency(a)
        self._require(a)
        self._require(b)
        if b in self._deps[a]:
            return False
        if self.reachable(b, a):
            raise CycleDetected(a, b)
        self._deps[a].add(b)
        return True

    def remove_edge(self, a: int, b: int) -> bool:
        deps = self._deps.get(a)
        if deps is None or b not in deps:
            return False
        deps.discard(b)
        return True

    def set_status(self, node: int, status: str) -> None:
        self._require(node)
        self._statuses[node] = status

    # --- Queries ---

    def is_ready(self, node: int) -> bool:
        """True iff every dependency is done or closed (vacuously for none)."""
        self._require(node)
        return all(self._statuses.get(d) in Status.FINISHED for d in self._deps[node])

    def ready_ids(self) -> list[int]:
        """Open issues whose dependencies are all finished."""
        return [n for n in self.nodes
                if self._statuses[n] == Status.OPEN and self.is_ready(n)]

    def unfinished_dependencies(self, node: int) -> list[int]:
        self._require(node)
        return sorted(d for d in self._deps[node]
                      if self._statuses.get(d) not in Status.FINISHED)

    def dangling(self) -> list[tuple[int, int]]:
        """Edges pointing at ids the graph does not know about."""
        return [(n, d) for n, ds in sorted(self._deps.items())
                for d in sorted(ds) if d not in self._statuses]

    def subgraph(self, node: int) -> list[int]:
        """Every id connected to node in either direction."""
        self._require(node)
        reverse: dict[int, set[int]] = {}
        for n, ds in self._deps.items():
            for d in ds:
                reverse.setdefault(d, set()).add(n)
        seen = {node}
        stack = [node]
        while stack:
            current = stack.pop()
            for nxt in self._deps.get(current, set()) | reverse.get(current, set()):
                if nxt in self._statuses and nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
        return sorted(seen)

    def validate_all(self) -> list[list[int]]:
        """Report every cycle in the graph as a sorted list of its members.

        Uses Tarjan's strongly connected components; any component with
        more than one node, or a node depending on itself, is a cycle.
        Nothing is repaired.
        """
        index_of: dict[int, int] = {}
        lowlink: dict[int, int] = {}
        on_stack: set[int] = set()
        stack: list[int] = []
        cycles: list[list[int]] = []
        counter = 0

        for root in sorted(self._deps):
            if root in index_of:
                continue
            work: list[tuple[int, list[int]]] = [(root, sorted(self._deps[root]))]
            index_of[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            while work:
                node, pending = work[-1]
                if pending:
                    nxt = pending.pop(0)
                    if nxt not in self._deps:
                        continue
                    if nxt not in index_of:
                        index_of[nxt] = lowlink[nxt] = counter
                        counter += 1
                        stack.append(nxt)
                        on_stack.add(nxt)
                        work.append((nxt, sorted(self._deps[nxt])))
                    elif nxt in on_stack:
                        lowlink[node] = min(lowlink[node], index_of[nxt])
                    continue
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index_of[node]:
                    component = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1 or node in self._deps[node]:
                        cycles.append(sorted(component))
        return sorted(cycles)

    def topological_order(self) -> list[int]:
        """Ids ordered so every dependency precedes its dependents.

        Raises:
            CycleDetected: the graph is not acyclic.
        """
        pending = {n: len([d for d in ds if d in self._deps]) for n, ds in self._deps.items()}
        dependents: dict[int, list[int]] = {}
        for n, ds in self._deps.items():
            for d in ds:
                if d in self._deps:
                    dependents.setdefault(d, []).append(n)

        heap = [n for n, count in pending.items() if count == 0]
        heapq.heapify(heap)
        order: list[int] = []
        while heap:
            node = heapq.heappop(heap)
            order.append(node)
            for n in dependents.get(node, ()):
                pending[n] -= 1
                if pending[n] == 0:
                    heapq.heappush(heap, n)

        if len(order) != len(self._deps):
            cycle = self.validate_all()[0]
            raise CycleDetected(cycle[0], cycle[-1])
        return order

    def critical_path(self) -> list[int]:
        """Longest dependency chain, root dependency first.

        Chains are compared by edge count, then by summed effort (missing
        effort counts as zero), then by lowest ids. For ``A -> B -> C`` the
        result is ``[C, B, A]``. An edgeless graph has no chain: ``[]``.
        """
        # best[n] = (edges, effort) of the longest chain from n down to a root;
        # via[n] is the dependency that chain continues through.
        best: dict[int, tuple[int, int]] = {}
        via: dict[int, int | None] = {}
        for node in self.topological_order():
            own = self._efforts.get(node) or 0
            length, effort, step = 0, own, None
            for d in sorted(self._deps[node]):
                if d not in best:
                    continue
                d_len, d_effort = best[d]
                if (d_len + 1, d_effort + own) > (length, effort):
                    length, effort, step = d_len + 1, d_effort + own, d
            best[node] = (length, effort)
            via[node] = step

        winner: int | None = None
        for node in sorted(best):
            if best[node][0] > 0 and (winner is None or best[node] > best[winner]):
                winner = node

        path: list[int] = []
        while winner is not None:
            path.append(winner)
            winner = via[winner]
        path.reverse()
        return path
