"""File-backed storage: one markdown record per issue, split into partitions.

Layout under the issues root::

    issues/open/07-fix-login-redirect.md
    issues/closed/03-crash-on-start.md
    issues/.aliases.yaml

The full record set is loaded into memory on construction. Every mutation
works on a copy of the record, writes it, and only then replaces the
in-memory entry.
"""

from __future__ import annotations

import copy
import os
import sys
import threading
from datetime import timedelta
from typing import Any, Callable

from agentx.aliases import AliasTable, parse_id, resolve_reference
from agentx.codec import decode, encode, id_from_filename, record_filename
from agentx.errors import (
    AgentxError, CodecError, Corrupted, InvalidTransition, Malformed, MissingField,
    NotFound,
)
from agentx.graph import DependencyGraph
from agentx.models import (
    BulkOutcome, Checkpoint, CheckpointResult, Issue, IssueFilter, IssueSpec,
    Priority, Statistics, Status, normalize_tags, now_utc,
)
from agentx.status import Action, detect_checkpoint_action, transition
from agentx.storage.interface import Storage
from agentx.utils import coerce_effort, matches_tags


ISSUES_DIR = "issues"
OPEN_DIR = "open"
CLOSED_DIR = "closed"
ALIASES_FILE = ".aliases.yaml"

HIGH_PRIORITIES = (Priority.CRITICAL, Priority.HIGH)


def _priority_order(issue: Issue) -> tuple[int, int]:
    return Priority.sort_key(issue.priority), issue.id


def _matches_query(issue: Issue, query: str) -> bool:
    needle = query.lower()
    haystack = [issue.title, issue.description, issue.impact, issue.acceptance,
                issue.context or "", issue.block_reason or ""]
    haystack.extend(cp.text for cp in issue.checkpoints)
    haystack.extend(issue.tags)
    haystack.extend(issue.files)
    return any(needle in text.lower() for text in haystack)


class FileStorage(Storage):
    """Markdown-record storage backend."""

    def __init__(self, root: str, auto_status: bool = True,
                 verbose: bool = False):
        self._root = os.path.abspath(root)
        self._auto_status = auto_status
        self._verbose = verbose
        self._lock = threading.RLock()
        self._issues: dict[int, Issue] = {}
        self._paths: dict[int, str] = {}
        self._corrupted: dict[int, str] = {}
        self._graph: DependencyGraph | None = None
        self._aliases = AliasTable()
        self._max_seen_id = 0
        self.load_errors: list[tuple[str, str]] = []
        self.load()

    def __enter__(self) -> FileStorage:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # --- Layout ---

    def path(self) -> str:
        return self._root

    def close(self) -> None:
        # Records are written as each mutation happens; only caches remain.
        with self._lock:
            self._graph = None

    @property
    def issues_dir(self) -> str:
        return os.path.join(self._root, ISSUES_DIR)

    @property
    def aliases_path(self) -> str:
        return os.path.join(self.issues_dir, ALIASES_FILE)

    def partition_dir(self, partition: str) -> str:
        name = CLOSED_DIR if partition == "closed" else OPEN_DIR
        return os.path.join(self.issues_dir, name)

    def record_path(self, reference: str | int) -> str:
        with self._lock:
            return self._paths[self.resolve_id(reference)]

    # --- Loading ---

    def _warn(self, message: str) -> None:
        if self._verbose:
            print(f"Warning: {message}", file=sys.stderr)

    def load(self) -> None:
        """(Re)load every record and the alias table from disk."""
        with self._lock:
            self._issues.clear()
            self._paths.clear()
            self._corrupted.clear()
            self.load_errors = []
            self._graph = None
            self._max_seen_id = 0

            for partition in ("open", "closed"):
                directory = self.partition_dir(partition)
                if not os.path.isdir(directory):
                    continue
                for name in sorted(os.listdir(directory)):
                    file_id = id_from_filename(name)
                    if file_id is None:
                        continue
                    self._max_seen_id = max(self._max_seen_id, file_id)
                    record_path = os.path.join(directory, name)
                    try:
                        with open(record_path, encoding="utf-8") as f:
                            issue = decode(f.read())
                    except (OSError, CodecError) as e:
                        self.load_errors.append((record_path, str(e)))
                        self._warn(f"skipping unreadable record {record_path}: {e}")
                        continue

                    if issue.id in self._issues:
                        self._corrupted[issue.id] = (
                            f"duplicate records {self._paths[issue.id]} and {record_path}"
                        )
                        self._warn(self._corrupted[issue.id])
                        continue
                    self._issues[issue.id] = issue
                    self._paths[issue.id] = record_path
                    self._max_seen_id = max(self._max_seen_id, issue.id)

            self._aliases = AliasTable.load(self.aliases_path)
            if self._verbose:
                print(f"Loaded {len(self._issues)} issues from {self.issues_dir}",
                      file=sys.stderr)

    # --- Persistence helpers (caller holds the lock) ---

    def _next_id(self) -> int:
        highest = self._max_seen_id
        for partition in ("open", "closed"):
            directory = self.partition_dir(partition)
            if not os.path.isdir(directory):
                continue
            for name in os.listdir(directory):
                file_id = id_from_filename(name)
                if file_id is not None:
                    highest = max(highest, file_id)
        return highest + 1

    def _write_record(self, issue: Issue, directory: str) -> str:
        os.makedirs(directory, exist_ok=True)
        record_path = os.path.join(directory, record_filename(issue))
        tmp_path = record_path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(encode(issue))
            os.replace(tmp_path, record_path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return record_path

    def _move_record(self, issue: Issue, old_path: str, directory: str) -> str:
        """Write the record into its new partition, confirm it, then drop the old copy."""
        new_path = os.path.join(directory, record_filename(issue))
        try:
            self._write_record(issue, directory)
            with open(new_path, encoding="utf-8") as f:
                confirmed = decode(f.read())
            if confirmed != issue:
                raise Malformed("re-read record does not match what was written")
        except (OSError, CodecError) as e:
            detail = f"could not write {new_path}: {e}; old copy kept at {old_path}"
            if os.path.exists(new_path) and new_path != old_path:
                try:
                    os.unlink(new_path)
                except OSError:
                    detail += f"; partial copy left at {new_path}"
            self._corrupted[issue.id] = detail
            raise Corrupted(issue.id, detail) from e

        try:
            os.unlink(old_path)
        except OSError as e:
            self._issues[issue.id] = issue
            self._paths[issue.id] = new_path
            self._graph = None
            detail = f"moved to {new_path} but could not remove {old_path}: {e}"
            self._corrupted[issue.id] = detail
            raise Corrupted(issue.id, detail) from e
        return new_path

    def _persist(self, issue: Issue) -> None:
        old_path = self._paths.get(issue.id)
        directory = self.partition_dir(issue.partition)
        if old_path is not None and os.path.dirname(old_path) != directory:
            new_path = self._move_record(issue, old_path, directory)
            if self._verbose:
                print(f"Moved #{issue.id} to {issue.partition}", file=sys.stderr)
        else:
            new_path = self._write_record(issue, directory)
            if old_path is not None and old_path != new_path and os.path.exists(old_path):
                os.unlink(old_path)
        self._issues[issue.id] = issue
        self._paths[issue.id] = new_path
        self._graph = None

    def _check_writable(self, issue_id: int) -> None:
        if issue_id in self._corrupted:
            raise Corrupted(issue_id, f"{self._corrupted[issue_id]} (inspect before changing it)")

    def _mutate(self, issue_id: int, change: Callable[[Issue], None]) -> Issue:
        with self._lock:
            self._check_writable(issue_id)
            updated = copy.deepcopy(self._issues[issue_id])
            change(updated)
            self._persist(updated)
            return copy.deepcopy(updated)

    # --- Identity ---

    def exists(self, issue_id: int) -> bool:
        return issue_id in self._issues

    def resolve_id(self, reference: str | int) -> int:
        with self._lock:
            return resolve_reference(reference, self._aliases, self.exists)

    def add_alias(self, reference: str | int, alias: str) -> int:
        with self._lock:
            issue_id = self.resolve_id(reference)
            if self._aliases.add(issue_id, alias):
                self._aliases.save(self.aliases_path)
            return issue_id

    def remove_alias(self, alias: str) -> int:
        with self._lock:
            issue_id = self._aliases.remove(alias)
            self._aliases.save(self.aliases_path)
            return issue_id

    def list_aliases(self) -> list[tuple[str, int]]:
        with self._lock:
            return self._aliases.items()

    def aliases_for(self, reference: str | int) -> list[str]:
        with self._lock:
            return self._aliases.aliases_for(self.resolve_id(reference))

    # --- Issue CRUD ---

    def create_issue(self, spec: IssueSpec) -> Issue:
        title = (spec.title or "").strip()
        if not title:
            raise MissingField("title")
        for label, value in (("issue", spec.description), ("impact", spec.impact),
                             ("acceptance", spec.acceptance)):
            if not value or not str(value).strip():
                raise MissingField(label)
        priority = Priority.normalize(spec.priority or Priority.MEDIUM)
        if not Priority.is_valid(priority):
            raise Malformed(f"invalid priority: {spec.priority}")
        effort = coerce_effort(spec.effort)

        files: list[str] = []
        for f in spec.files:
            if f and f not in files:
                files.append(f)

        with self._lock:
            depends_on = sorted({self.resolve_id(ref) for ref in spec.depends_on})
            issue = Issue(
                id=self._next_id(),
                title=title,
                priority=priority,
                status=Status.BACKLOG if spec.backlog else Status.OPEN,
                created_at=now_utc(),
                effort_minutes=effort,
                files=files,
                tags=normalize_tags(spec.tags),
                depends_on=depends_on,
                description=str(spec.description).strip(),
                impact=str(spec.impact).strip(),
                acceptance=str(spec.acceptance).strip(),
                context=spec.context.strip() if spec.context else None,
            )
            err = issue.validate()
            if err:
                raise Malformed(err)
            self._persist(issue)
            self._max_seen_id = max(self._max_seen_id, issue.id)
            return copy.deepcopy(issue)

    def get_issue(self, reference: str | int) -> Issue:
        with self._lock:
            return copy.deepcopy(self._issues[self.resolve_id(reference)])

    def all_issues(self) -> list[Issue]:
        with self._lock:
            return [copy.deepcopy(self._issues[i]) for i in sorted(self._issues)]

    def apply_action(self, reference: str | int, action: str,
                     reason: str | None = None, note: str | None = None) -> Issue:
        if not Action.is_valid(action):
            raise InvalidTransition("-", action, f"unknown action: {action}")
        with self._lock:
            issue_id = self.resolve_id(reference)

            def change(issue: Issue) -> None:
                transition(issue, action, reason)
                if note and note.strip():
                    text = note.strip()
                    if action == Action.CLOSE:
                        text = f"Closed: {text}"
                    issue.checkpoints.append(Checkpoint(text=text))

            return self._mutate(issue_id, change)

    def bulk_apply(self, references: list[str], action: str,
                   reason: str | None = None, note: str | None = None) -> list[BulkOutcome]:
        outcomes: list[BulkOutcome] = []
        for reference in references:
            outcome = BulkOutcome(reference=str(reference))
            try:
                outcome.issue_id = self.resolve_id(reference)
                issue = self.apply_action(outcome.issue_id, action, reason, note)
            except AgentxError as e:
                outcome.error = str(e)
                outcome.error_code = e.code
            else:
                outcome.ok = True
                outcome.status = issue.status
            outcomes.append(outcome)
        return outcomes

    def add_checkpoint(self, reference: str | int, note: str) -> CheckpointResult:
        text = (note or "").strip()
        if not text:
            raise MissingField("note")
        checkpoint = Checkpoint(text=text)
        detected = detect_checkpoint_action(text) if self._auto_status else None
        applied: list[str] = []

        def change(issue: Issue) -> None:
            issue.checkpoints.append(checkpoint)
            if detected is None:
                return
            action, reason = detected
            try:
                transition(issue, action, reason, now=checkpoint.timestamp)
            except InvalidTransition:
                return  # implied transitions are best-effort
            applied.append(action)

        with self._lock:
            issue = self._mutate(self.resolve_id(reference), change)
        return CheckpointResult(issue=issue, checkpoint=checkpoint,
                                applied_action=applied[0] if applied else None)

    def add_tags(self, reference: str | int, tags: list[str]) -> Issue:
        with self._lock:
            issue_id = self.resolve_id(reference)

            def change(issue: Issue) -> None:
                issue.tags = normalize_tags(list(issue.tags) + list(tags))

            return self._mutate(issue_id, change)

    def remove_tags(self, reference: str | int, tags: list[str]) -> Issue:
        drop = set(normalize_tags(tags))
        with self._lock:
            issue_id = self.resolve_id(reference)

            def change(issue: Issue) -> None:
                issue.tags = [t for t in issue.tags if t not in drop]

            return self._mutate(issue_id, change)

    # --- Query ---

    def list_issues(self, filter: IssueFilter) -> list[Issue]:
        with self._lock:
            candidates = sorted(self._issues.values(), key=_priority_order)
            result: list[Issue] = []
            for issue in candidates:
                if filter.status is not None:
                    if issue.status != filter.status:
                        continue
                elif issue.is_closed and not filter.include_closed:
                    continue
                if filter.priority is not None and issue.priority != filter.priority:
                    continue
                if filter.tags and not matches_tags(issue, filter.tags):
                    continue
                if filter.max_effort is not None and (
                        issue.effort_minutes is None or issue.effort_minutes > filter.max_effort):
                    continue
                if filter.query and not _matches_query(issue, filter.query):
                    continue
                result.append(copy.deepcopy(issue))
                if filter.limit and len(result) >= filter.limit:
                    break
            return result

    def search(self, query: str, include_closed: bool = False) -> list[Issue]:
        return self.list_issues(IssueFilter(query=query, include_closed=include_closed))

    def context(self) -> dict[str, Any]:
        with self._lock:
            active: list[Issue] = []
            blocked: list[Issue] = []
            high_priority: list[Issue] = []
            backlog_count = 0
            total_open = 0
            for issue in sorted(self._issues.values(), key=_priority_order):
                if issue.is_closed:
                    continue
                if issue.status == Status.BACKLOG:
                    backlog_count += 1
                    continue
                total_open += 1
                if issue.status == Status.ACTIVE:
                    active.append(copy.deepcopy(issue))
                elif issue.status == Status.BLOCKED:
                    blocked.append(copy.deepcopy(issue))
                elif issue.status == Status.OPEN and issue.priority in HIGH_PRIORITIES:
                    high_priority.append(copy.deepcopy(issue))
            return {
                "active": active,
                "blocked": blocked,
                "high_priority": high_priority,
                "total_open": total_open,
                "backlog_count": backlog_count,
            }

    def ready_issues(self) -> list[Issue]:
        with self._lock:
            ids = self._current_graph().ready_ids()
            return sorted((copy.deepcopy(self._issues[i]) for i in ids), key=_priority_order)

    def quick_wins(self, threshold_minutes: int) -> list[Issue]:
        with self._lock:
            wins = [
                copy.deepcopy(i) for i in self._issues.values()
                if i.status not in Status.FINISHED
                and i.effort_minutes is not None
                and i.effort_minutes < threshold_minutes
            ]
        return sorted(wins, key=lambda i: (i.effort_minutes, Priority.sort_key(i.priority), i.id))

    def blocked_issues(self) -> list[tuple[Issue, list[int]]]:
        with self._lock:
            graph = self._current_graph()
            result = []
            for issue in sorted(self._issues.values(), key=_priority_order):
                if issue.status in Status.FINISHED:
                    continue
                waiting_on = graph.unfinished_dependencies(issue.id)
                if issue.status == Status.BLOCKED or waiting_on:
                    result.append((copy.deepcopy(issue), waiting_on))
            return result

    def focus(self, limit: int = 5) -> list[Issue]:
        """What to work on next: in-flight issues first, then by priority."""
        with self._lock:
            candidates = [i for i in self._issues.values()
                          if i.status in (Status.OPEN, Status.ACTIVE, Status.BLOCKED)]

        def key(issue: Issue) -> tuple[int, int]:
            if issue.status in (Status.ACTIVE, Status.BLOCKED):
                return -1, issue.id
            return Priority.sort_key(issue.priority), issue.id

        return [copy.deepcopy(i) for i in sorted(candidates, key=key)[:limit]]

    def summary(self, hours: int = 24) -> dict[str, Any]:
        """Ids started, closed and checkpointed within the last `hours`."""
        since = now_utc() - timedelta(hours=hours)
        with self._lock:
            issues = sorted(self._issues.values(), key=lambda i: i.id)
            return {
                "since": since,
                "hours": hours,
                "started": [i.id for i in issues if i.started_at and i.started_at > since],
                "closed": [i.id for i in issues if i.closed_at and i.closed_at > since],
                "checkpointed": [i.id for i in issues
                                 if any(cp.timestamp > since for cp in i.checkpoints)],
            }

    def statistics(self, period_days: int | None = 7) -> Statistics:
        stats = Statistics()
        since = now_utc() - timedelta(days=period_days) if period_days else None
        close_hours: list[float] = []
        with self._lock:
            stats.ready_issues = len(self._current_graph().ready_ids())
            for issue in self._issues.values():
                stats.total_issues += 1
                if issue.status == Status.OPEN:
                    stats.open_issues += 1
                elif issue.status == Status.ACTIVE:
                    stats.active_issues += 1
                elif issue.status == Status.BLOCKED:
                    stats.blocked_issues += 1
                elif issue.status == Status.DONE:
                    stats.done_issues += 1
                elif issue.status == Status.BACKLOG:
                    stats.backlog_issues += 1
                elif issue.status == Status.CLOSED:
                    stats.closed_issues += 1
                if not issue.is_closed:
                    stats.by_priority[issue.priority] = stats.by_priority.get(issue.priority, 0) + 1
                if since is None or issue.created_at > since:
                    stats.opened_in_period += 1
                if issue.closed_at and (since is None or issue.closed_at > since):
                    stats.closed_in_period += 1
                    close_hours.append((issue.closed_at - issue.created_at).total_seconds() / 3600)
        if close_hours:
            stats.avg_close_time_hours = round(sum(close_hours) / len(close_hours), 1)
        return stats

    # --- Dependencies ---

    def _current_graph(self) -> DependencyGraph:
        if self._graph is None:
            self._graph = DependencyGraph.from_issues(self._issues.values())
        return self._graph

    def graph(self) -> DependencyGraph:
        """Detached snapshot; editing it does not touch the store."""
        with self._lock:
            return self._current_graph().copy()

    def add_dependency(self, reference: str | int, depends_on: str | int) -> Issue:
        with self._lock:
            issue_id = self.resolve_id(reference)
            dep_id = self.resolve_id(depends_on)
            self._check_writable(issue_id)
            if not self._current_graph().add_edge(issue_id, dep_id):
                return copy.deepcopy(self._issues[issue_id])

            def change(issue: Issue) -> None:
                issue.depends_on = sorted(set(issue.depends_on) | {dep_id})

            try:
                return self._mutate(issue_id, change)
            finally:
                self._graph = None

    def remove_dependency(self, reference: str | int, depends_on: str | int) -> Issue:
        with self._lock:
            issue_id = self.resolve_id(reference)
            try:
                dep_id = self.resolve_id(depends_on)
            except NotFound:
                # The dependency may point at a record that no longer loads
                dep_id = parse_id(depends_on)
                if dep_id is None:
                    raise
            if dep_id not in self._issues[issue_id].depends_on:
                return copy.deepcopy(self._issues[issue_id])

            def change(issue: Issue) -> None:
                issue.depends_on = [d for d in issue.depends_on if d != dep_id]

            return self._mutate(issue_id, change)

    def dependencies(self, reference: str | int) -> tuple[list[Issue], list[Issue]]:
        with self._lock:
            issue_id = self.resolve_id(reference)
            graph = self._current_graph()
            deps = [copy.deepcopy(self._issues[d]) for d in graph.dependencies_of(issue_id)
                    if d in self._issues]
            dependents = [copy.deepcopy(self._issues[d]) for d in graph.dependents_of(issue_id)]
            return deps, dependents

    def critical_path(self) -> list[Issue]:
        with self._lock:
            return [copy.deepcopy(self._issues[i]) for i in self._current_graph().critical_path()]

    def validate(self) -> dict[str, Any]:
        """Consistency report: cycles, dangling references, misplaced and corrupted records."""
        with self._lock:
            graph = self._current_graph()
            misplaced = [
                i for i, issue in sorted(self._issues.items())
                if os.path.dirname(self._paths[i]) != self.partition_dir(issue.partition)
            ]
            return {
                "cycles": graph.validate_all(),
                "dangling_dependencies": graph.dangling(),
                "dangling_aliases": [(a, i) for a, i in self._aliases.items() if i not in self._issues],
                "misplaced": misplaced,
                "corrupted": dict(self._corrupted),
                "load_errors": list(self.load_errors),
            }
