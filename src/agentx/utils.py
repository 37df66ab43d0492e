"""Utility functions for agentx: effort durations and display helpers."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from agentx.errors import InvalidDuration
from agentx.models import Issue, Status


MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 8  # working day
DAYS_PER_WEEK = 5  # working week

_UNIT_MINUTES = {
    "m": 1, "min": 1, "minute": 1, "minutes": 1,
    "h": MINUTES_PER_HOUR, "hr": MINUTES_PER_HOUR,
    "hour": MINUTES_PER_HOUR, "hours": MINUTES_PER_HOUR,
    "d": MINUTES_PER_HOUR * HOURS_PER_DAY,
    "day": MINUTES_PER_HOUR * HOURS_PER_DAY,
    "days": MINUTES_PER_HOUR * HOURS_PER_DAY,
    "w": MINUTES_PER_HOUR * HOURS_PER_DAY * DAYS_PER_WEEK,
    "week": MINUTES_PER_HOUR * HOURS_PER_DAY * DAYS_PER_WEEK,
    "weeks": MINUTES_PER_HOUR * HOURS_PER_DAY * DAYS_PER_WEEK,
}

_DURATION_RE = re.compile(r"^([+-]?)(\d+(?:\.\d+)?|\.\d+)\s*([A-Za-z]+)$")


def parse_duration(s: str) -> int:
    """Parse an effort string like '2h', '1.5d' or '30 minutes' into minutes.

    Days are 8-hour working days and weeks are 5 working days. Decimal
    magnitudes round half-up to the nearest minute.

    Raises:
        InvalidDuration: empty input, negative magnitude or unknown unit.
    """
    if s is None:
        raise InvalidDuration("", "empty")
    text = s.strip()
    if not text:
        raise InvalidDuration(s, "empty")

    m = _DURATION_RE.match(text)
    if m is None:
        raise InvalidDuration(s, "expected <number><unit>")
    sign, magnitude, unit = m.groups()
    if sign == "-":
        raise InvalidDuration(s, "negative")

    factor = _UNIT_MINUTES.get(unit.lower())
    if factor is None:
        raise InvalidDuration(s, f"unknown unit '{unit}'")

    try:
        value = Decimal(magnitude) * factor
    except InvalidOperation:
        raise InvalidDuration(s, "bad number") from None
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def coerce_effort(value: str | int | None) -> int | None:
    """Accept an effort given either as minutes or as a duration string."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidDuration(str(value), "not a duration")
    if isinstance(value, int):
        if value < 0:
            raise InvalidDuration(str(value), "negative")
        return value
    return parse_duration(str(value))


def format_minutes(minutes: int | None) -> str:
    """Render a minute count in the largest exact unit: 90 → '1h30m'."""
    if minutes is None:
        return "-"
    if minutes == 0:
        return "0m"
    hours, mins = divmod(minutes, MINUTES_PER_HOUR)
    if not hours:
        return f"{mins}m"
    if not mins:
        return f"{hours}h"
    return f"{hours}h{mins}m"


def fuzzy_match_tag(query: str, tag: str) -> bool:
    """Case-insensitive substring match: 'sec' matches 'security'."""
    return query.strip().lstrip("#").lower() in tag.lower()


def matches_tags(issue: Issue, queries: list[str]) -> bool:
    """Every query must match at least one of the issue's tags."""
    return all(any(fuzzy_match_tag(q, t) for t in issue.tags) for q in queries)


def status_symbol(status: str) -> str:
    """Return a symbol for status display."""
    symbols = {
        Status.OPEN: " ",
        Status.ACTIVE: ">",
        Status.BLOCKED: "!",
        Status.DONE: "+",
        Status.CLOSED: "x",
        Status.BACKLOG: "~",
    }
    return symbols.get(status, "?")


def format_time_ago(dt: datetime) -> str:
    """Format a datetime as a relative time string."""
    now = datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    seconds = int((now - dt).total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 30:
        return f"{days}d ago"
    months = days // 30
    if months < 12:
        return f"{months}mo ago"
    return f"{days // 365}y ago"


def truncate(s: str, max_len: int = 60) -> str:
    """Truncate a string with ellipsis."""
    if len(s) <= max_len:
        return s
    return s[:max_len - 3] + "..."


def format_issue_row(issue: Issue, long_format: bool = False) -> str:
    """Format an issue as a single-line row for list display."""
    sym = status_symbol(issue.status)
    ref = f"#{issue.id}"
    pri = issue.priority.upper()
    title = truncate(issue.title, 50)

    if long_format:
        effort = format_minutes(issue.effort_minutes)
        tags = ",".join(issue.tags) or "-"
        return f"[{sym}] {ref:<6} {pri:<8} {effort:>6} {tags:<20} {title}"
    row = f"[{sym}] {ref:<6} {pri:<8} {title}"
    if issue.status == Status.BLOCKED and issue.block_reason:
        row += f"  (blocked: {truncate(issue.block_reason, 40)})"
    return row
