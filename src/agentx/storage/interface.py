"""Storage interface (abstract base) for agentx."""

from __future__ import annotations

from abc import ABC, abstractmethod

from agentx.graph import DependencyGraph
from agentx.models import (
    BulkOutcome, CheckpointResult, Issue, IssueFilter, IssueSpec, Statistics,
)


class Storage(ABC):
    """Abstract base class defining all storage operations."""

    @abstractmethod
    def path(self) -> str:
        """Return the issues root directory."""

    @abstractmethod
    def close(self) -> None:
        """Flush pending state and release the store."""

    # --- Identity ---

    @abstractmethod
    def resolve_id(self, reference: str | int) -> int:
        """Resolve an id or alias to a canonical id. Raises NotFound."""

    @abstractmethod
    def add_alias(self, reference: str | int, alias: str) -> int:
        """Point alias at the referenced issue. Raises AliasConflict."""

    @abstractmethod
    def remove_alias(self, alias: str) -> int:
        """Drop an alias, returning the id it pointed to. Raises NotFound."""

    @abstractmethod
    def list_aliases(self) -> list[tuple[str, int]]:
        """All (alias, id) pairs sorted by alias."""

    # --- Issue CRUD ---

    @abstractmethod
    def create_issue(self, spec: IssueSpec) -> Issue:
        """Allocate an id and persist a new issue."""

    @abstractmethod
    def get_issue(self, reference: str | int) -> Issue:
        """Get an issue by id or alias. Raises NotFound."""

    @abstractmethod
    def apply_action(self, reference: str | int, action: str,
                     reason: str | None = None, note: str | None = None) -> Issue:
        """Run a status action through the status engine and persist it."""

    @abstractmethod
    def bulk_apply(self, references: list[str], action: str,
                   reason: str | None = None, note: str | None = None) -> list[BulkOutcome]:
        """Apply one action to many issues, isolating per-item failures."""

    @abstractmethod
    def add_checkpoint(self, reference: str | int, note: str) -> CheckpointResult:
        """Append a checkpoint note, then attempt any implied transition."""

    @abstractmethod
    def add_tags(self, reference: str | int, tags: list[str]) -> Issue:
        """Add normalized tags to an issue."""

    @abstractmethod
    def remove_tags(self, reference: str | int, tags: list[str]) -> Issue:
        """Remove tags from an issue (absent tags are ignored)."""

    # --- Query ---

    @abstractmethod
    def list_issues(self, filter: IssueFilter) -> list[Issue]:
        """List issues matching the filter, ordered by priority then id."""

    @abstractmethod
    def search(self, query: str, include_closed: bool = False) -> list[Issue]:
        """Full-text search across titles, narrative and checkpoints."""

    @abstractmethod
    def context(self) -> dict[str, list[Issue] | int]:
        """Active, blocked and high-priority buckets plus counts."""

    @abstractmethod
    def ready_issues(self) -> list[Issue]:
        """Open issues whose dependencies are all done or closed."""

    @abstractmethod
    def quick_wins(self, threshold_minutes: int) -> list[Issue]:
        """Unfinished issues with effort below the threshold, smallest first."""

    @abstractmethod
    def blocked_issues(self) -> list[tuple[Issue, list[int]]]:
        """Blocked issues with the ids still holding them up."""

    @abstractmethod
    def statistics(self, period_days: int | None = 7) -> Statistics:
        """Aggregate counts for the project."""

    # --- Dependencies ---

    @abstractmethod
    def graph(self) -> DependencyGraph:
        """Dependency graph over the current snapshot."""

    @abstractmethod
    def add_dependency(self, reference: str | int, depends_on: str | int) -> Issue:
        """Make an issue depend on another. Raises SelfDependency/CycleDetected."""

    @abstractmethod
    def remove_dependency(self, reference: str | int, depends_on: str | int) -> Issue:
        """Remove a dependency edge (no-op if absent)."""

    @abstractmethod
    def dependencies(self, reference: str | int) -> tuple[list[Issue], list[Issue]]:
        """(what the issue depends on, what depends on the issue)."""

    @abstractmethod
    def critical_path(self) -> list[Issue]:
        """Issues on the longest dependency chain, root dependency first."""
