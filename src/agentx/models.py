"""Core data models for issues, checkpoints and queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


# --- Status constants ---

class Status:
    OPEN = "open"
    ACTIVE = "active"
    BLOCKED = "blocked"
    DONE = "done"
    CLOSED = "closed"
    BACKLOG = "backlog"

    _VALID = {OPEN, ACTIVE, BLOCKED, DONE, CLOSED, BACKLOG}

    # Statuses whose records live in the open partition
    ACTIVE_STATES = (OPEN, ACTIVE, BLOCKED, DONE, BACKLOG)

    # Dependencies in these states no longer hold anything up
    FINISHED = (DONE, CLOSED)

    @classmethod
    def is_valid(cls, s: str) -> bool:
        return s in cls._VALID


# --- Priority constants ---

class Priority:
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    ORDER = (CRITICAL, HIGH, MEDIUM, LOW)

    @classmethod
    def is_valid(cls, p: str) -> bool:
        return p in cls.ORDER

    @classmethod
    def sort_key(cls, p: str) -> int:
        try:
            return cls.ORDER.index(p)
        except ValueError:
            return len(cls.ORDER)

    @classmethod
    def normalize(cls, p: str) -> str:
        lower = p.strip().lower()
        if lower in ("crit", "p0"):
            return cls.CRITICAL
        if lower in ("med", "normal"):
            return cls.MEDIUM
        return lower


# --- Helper: RFC3339 timestamp handling ---

def parse_timestamp(s: str | datetime | None) -> datetime | None:
    """Parse RFC3339 timestamp string to datetime."""
    if s is None:
        return None
    if isinstance(s, datetime):
        # PyYAML hands back datetimes for unquoted timestamps
        return s if s.tzinfo else s.replace(tzinfo=timezone.utc)
    s = s.strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        pass
    else:
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(s, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise ValueError(f"Cannot parse timestamp: {s}")


def format_timestamp(dt: datetime | None) -> str | None:
    """Format datetime to RFC3339 string."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    s = dt.isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s


def now_utc() -> datetime:
    """Current time in UTC, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def normalize_tag(tag: str) -> str:
    return tag.strip().lstrip("#").strip().lower()


def normalize_tags(tags: list[str] | tuple[str, ...]) -> list[str]:
    return sorted({t for t in (normalize_tag(t) for t in tags) if t})


# --- Dataclasses ---

@dataclass
class Checkpoint:
    """A timestamped progress note appended to an issue body."""

    timestamp: datetime = field(default_factory=now_utc)
    text: str = ""

    def to_dict(self) -> dict:
        return {"timestamp": format_timestamp(self.timestamp), "text": self.text}


@dataclass
class Issue:
    id: int = 0
    title: str = ""
    priority: str = Priority.MEDIUM
    status: str = Status.OPEN

    created_at: datetime = field(default_factory=now_utc)
    started_at: datetime | None = None
    closed_at: datetime | None = None

    effort_minutes: int | None = None
    files: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    depends_on: list[int] = field(default_factory=list)
    block_reason: str | None = None

    # Body sections
    description: str = ""
    impact: str = ""
    acceptance: str = ""
    context: str | None = None
    checkpoints: list[Checkpoint] = field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        return self.status == Status.CLOSED

    @property
    def partition(self) -> str:
        return "closed" if self.status == Status.CLOSED else "open"

    def validate(self) -> str | None:
        """Validate issue fields. Returns error message or None if valid."""
        if self.id < 1:
            return f"id must be a positive integer (got {self.id})"
        if not self.title.strip():
            return "title is required"
        if not Priority.is_valid(self.priority):
            return f"invalid priority: {self.priority}"
        if not Status.is_valid(self.status):
            return f"invalid status: {self.status}"
        if self.effort_minutes is not None and self.effort_minutes < 0:
            return "effort_minutes cannot be negative"
        if self.id in self.depends_on:
            return "an issue cannot depend on itself"
        if self.status == Status.CLOSED and self.closed_at is None:
            return "closed issues must have closed_at timestamp"
        if self.status != Status.CLOSED and self.closed_at is not None:
            return "non-closed issues cannot have closed_at timestamp"
        if self.status != Status.BLOCKED and self.block_reason:
            return "only blocked issues carry a block reason"
        return None

    def to_dict(self) -> dict:
        """Serialize to the JSON shape used by --json output."""
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "priority": self.priority,
            "status": self.status,
            "created_at": format_timestamp(self.created_at),
        }
        if self.started_at:
            d["started_at"] = format_timestamp(self.started_at)
        if self.closed_at:
            d["closed_at"] = format_timestamp(self.closed_at)
        if self.effort_minutes is not None:
            d["effort_minutes"] = self.effort_minutes
        d["files"] = list(self.files)
        d["tags"] = list(self.tags)
        d["depends_on"] = list(self.depends_on)
        if self.block_reason:
            d["block_reason"] = self.block_reason
        d["issue"] = self.description
        d["impact"] = self.impact
        d["acceptance"] = self.acceptance
        if self.context:
            d["context"] = self.context
        if self.checkpoints:
            d["checkpoints"] = [c.to_dict() for c in self.checkpoints]
        return d

    def summary_dict(self) -> dict:
        """Short form used in list/context views."""
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "priority": self.priority,
            "status": self.status,
        }
        if self.block_reason:
            d["block_reason"] = self.block_reason
        if self.effort_minutes is not None:
            d["effort_minutes"] = self.effort_minutes
        return d


@dataclass
class IssueSpec:
    """Everything needed to create a new issue."""
    title: str
    description: str = ""
    impact: str = ""
    acceptance: str = ""
    priority: str = Priority.MEDIUM
    effort: str | int | None = None
    files: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    depends_on: list[str | int] = field(default_factory=list)
    context: str | None = None
    backlog: bool = False
    ref: str = ""  # Batch-local name used by import


@dataclass
class IssueFilter:
    """Filter for issue queries."""
    status: str | None = None
    priority: str | None = None
    tags: list[str] = field(default_factory=list)
    max_effort: int | None = None
    query: str = ""
    include_closed: bool = False
    limit: int = 0


@dataclass
class BulkOutcome:
    """Result of one item in a bulk operation."""
    reference: str
    issue_id: int | None = None
    ok: bool = False
    status: str | None = None
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"ref": self.reference, "ok": self.ok}
        if self.issue_id is not None:
            d["id"] = self.issue_id
        if self.status:
            d["status"] = self.status
        if self.error:
            d["error"] = self.error_code
            d["message"] = self.error
        return d


@dataclass
class CheckpointResult:
    issue: Issue
    checkpoint: Checkpoint
    applied_action: str | None = None


@dataclass
class Statistics:
    total_issues: int = 0
    open_issues: int = 0
    active_issues: int = 0
    blocked_issues: int = 0
    done_issues: int = 0
    backlog_issues: int = 0
    closed_issues: int = 0
    ready_issues: int = 0
    closed_in_period: int = 0
    opened_in_period: int = 0
    avg_close_time_hours: float = 0.0
    by_priority: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_issues": self.total_issues,
            "open_issues": self.open_issues,
            "active_issues": self.active_issues,
            "blocked_issues": self.blocked_issues,
            "done_issues": self.done_issues,
            "backlog_issues": self.backlog_issues,
            "closed_issues": self.closed_issues,
            "ready_issues": self.ready_issues,
            "closed_in_period": self.closed_in_period,
            "opened_in_period": self.opened_in_period,
            "avg_close_time_hours": self.avg_close_time_hours,
            "by_priority": self.by_priority,
        }
