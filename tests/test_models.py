"""Tests for data models."""

from datetime import datetime, timezone

from agentx.models import (
    BulkOutcome, Checkpoint, Issue, Priority, Status, format_timestamp,
    normalize_tags, parse_timestamp,
)


def _issue(**kwargs) -> Issue:
    defaults = dict(
        id=1, title="Fix login", description="d", impact="i", acceptance="a",
        created_at=datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
    )
    defaults.update(kwargs)
    return Issue(**defaults)


def test_issue_defaults():
    issue = Issue()
    assert issue.status == Status.OPEN
    assert issue.priority == Priority.MEDIUM
    assert issue.depends_on == []
    assert issue.partition == "open"


def test_issue_validate_empty_title():
    issue = _issue(title="")
    assert "title is required" in issue.validate()


def test_issue_validate_priority():
    issue = _issue(priority="urgent")
    assert "invalid priority" in issue.validate()


def test_issue_validate_closed_without_closed_at():
    issue = _issue(status=Status.CLOSED)
    assert "closed issues must have closed_at" in issue.validate()


def test_issue_validate_self_dependency():
    issue = _issue(depends_on=[1])
    assert "itself" in issue.validate()


def test_issue_validate_valid():
    assert _issue().validate() is None


def test_closed_issue_lives_in_closed_partition():
    issue = _issue(status=Status.CLOSED, closed_at=datetime.now(timezone.utc))
    assert issue.is_closed
    assert issue.partition == "closed"
    for status in (Status.OPEN, Status.ACTIVE, Status.BLOCKED, Status.DONE, Status.BACKLOG):
        assert _issue(status=status).partition == "open"


def test_issue_to_dict_omits_unset():
    d = _issue().to_dict()
    assert d["id"] == 1
    assert d["created_at"] == "2026-01-15T10:00:00Z"
    assert d["issue"] == "d"
    assert "started_at" not in d
    assert "closed_at" not in d
    assert "effort_minutes" not in d
    assert "block_reason" not in d
    assert "checkpoints" not in d
    assert d["depends_on"] == []


def test_issue_to_dict_with_checkpoints():
    ts = datetime(2026, 1, 15, 11, 0, 0, tzinfo=timezone.utc)
    d = _issue(checkpoints=[Checkpoint(ts, "started")]).to_dict()
    assert d["checkpoints"] == [{"timestamp": "2026-01-15T11:00:00Z", "text": "started"}]


def test_summary_dict():
    d = _issue(status=Status.BLOCKED, block_reason="waiting", effort_minutes=30).summary_dict()
    assert d == {"id": 1, "title": "Fix login", "priority": Priority.MEDIUM,
                 "status": Status.BLOCKED, "block_reason": "waiting", "effort_minutes": 30}


def test_priority_sort_key():
    ordered = sorted([Priority.LOW, Priority.CRITICAL, Priority.MEDIUM, Priority.HIGH],
                     key=Priority.sort_key)
    assert ordered == [Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW]
    assert Priority.sort_key("bogus") > Priority.sort_key(Priority.LOW)


def test_priority_normalize():
    assert Priority.normalize(" HIGH ") == Priority.HIGH
    assert Priority.normalize("crit") == Priority.CRITICAL
    assert Priority.normalize("normal") == Priority.MEDIUM


def test_normalize_tags():
    assert normalize_tags(["#Auth", "auth", " ui ", "", "#"]) == ["auth", "ui"]


def test_timestamp_roundtrip():
    ts = "2026-01-15T10:00:00Z"
    dt = parse_timestamp(ts)
    assert dt is not None
    assert dt.year == 2026
    assert dt.month == 1
    assert dt.hour == 10
    assert format_timestamp(dt) == ts


def test_parse_timestamp_fallback_formats():
    assert parse_timestamp("2026-01-15 10:30") == datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2026-01-15") == datetime(2026, 1, 15, tzinfo=timezone.utc)
    assert parse_timestamp("") is None


def test_parse_timestamp_naive_datetime_is_utc():
    dt = parse_timestamp(datetime(2026, 1, 15, 10, 0, 0))
    assert dt.tzinfo is not None


def test_bulk_outcome_to_dict():
    ok = BulkOutcome(reference="3", issue_id=3, ok=True, status=Status.ACTIVE)
    assert ok.to_dict() == {"ref": "3", "ok": True, "id": 3, "status": "active"}
    failed = BulkOutcome(reference="x", error="issue not found: x", error_code="not_found")
    assert failed.to_dict() == {"ref": "x", "ok": False, "error": "not_found",
                                "message": "issue not found: x"}
