"""Record codec: one issue <-> one markdown document with a YAML header.

Layout::

    ---
    id: 7
    title: ...
    ---

    # BUG-7: ...

    **Issue**: ...
    **Impact**: ...
    **Acceptance**: ...
    **Context**: ...            (optional)
    **Checkpoint** (<ts>): ...  (zero or more, in order)

Header keys may appear in any order. Body sections are found by label,
not position. Lines of user text that look like a label are written with an
extra leading backslash, which decoding removes.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

from agentx.errors import InvalidDuration, Malformed, MissingField
from agentx.models import (
    Checkpoint, Issue, Priority, Status, format_timestamp, parse_timestamp,
)
from agentx.utils import parse_duration


RECORD_SUFFIXES = (".md", ".mdx")

_FRONTMATTER_RE = re.compile(r"\A\s*---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n(.*))?\Z", re.S)
_LABEL_RE = re.compile(
    r"^[ \t]*\*\*(Issue|Impact|Acceptance|Context|Checkpoint)\*\*"
    r"(?:[ \t]*\(([^)\n]*)\))?[ \t]*:[ \t]?",
    re.I | re.M,
)
# Label-shaped lines inside user text get one extra leading backslash.
_ESCAPE_RE = re.compile(
    r"^([ \t]*)(\\*\*\*(?:Issue|Impact|Acceptance|Context|Checkpoint)\*\*)",
    re.I | re.M,
)
_UNESCAPE_RE = re.compile(
    r"^([ \t]*)\\(\\*\*\*(?:Issue|Impact|Acceptance|Context|Checkpoint)\*\*)",
    re.I | re.M,
)
_FILENAME_RE = re.compile(r"^(\d+)-.*\.mdx?$")

_NARRATIVE = (("issue", "description"), ("impact", "impact"), ("acceptance", "acceptance"))


def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.strip().lower())
    return slug.strip("-")[:60].rstrip("-") or "issue"


def record_filename(issue: Issue) -> str:
    return f"{issue.id:02d}-{slugify(issue.title)}.md"


def id_from_filename(name: str) -> int | None:
    m = _FILENAME_RE.match(name)
    return int(m.group(1)) if m else None


# --- Encoding ---

def _escape(text: str) -> str:
    return _ESCAPE_RE.sub(r"\1\\\2", text)


def _unescape(text: str) -> str:
    return _UNESCAPE_RE.sub(r"\1\2", text)


def encode(issue: Issue) -> str:
    """Serialize an issue to its textual document."""
    meta: dict[str, Any] = {
        "id": issue.id,
        "title": issue.title,
        "priority": issue.priority,
        "status": issue.status,
        "created_at": format_timestamp(issue.created_at),
    }
    if issue.started_at is not None:
        meta["started_at"] = format_timestamp(issue.started_at)
    if issue.closed_at is not None:
        meta["closed_at"] = format_timestamp(issue.closed_at)
    if issue.effort_minutes is not None:
        meta["effort_minutes"] = issue.effort_minutes
    meta["files"] = list(issue.files)
    meta["tags"] = list(issue.tags)
    meta["depends_on"] = list(issue.depends_on)
    if issue.block_reason:
        meta["block_reason"] = issue.block_reason

    header = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True,
                            default_flow_style=False)

    # The heading is display only; the title is read back from the header.
    parts = [f"# BUG-{issue.id}: {' '.join(issue.title.split())}"]
    parts.append(f"**Issue**: {_escape(issue.description)}")
    parts.append(f"**Impact**: {_escape(issue.impact)}")
    parts.append(f"**Acceptance**: {_escape(issue.acceptance)}")
    if issue.context is not None:
        parts.append(f"**Context**: {_escape(issue.context)}")
    for cp in issue.checkpoints:
        parts.append(f"**Checkpoint** ({format_timestamp(cp.timestamp)}): {_escape(cp.text)}")

    return f"---\n{header}---\n\n" + "\n\n".join(parts) + "\n"


# --- Decoding ---

def _split(document: str) -> tuple[dict[str, Any], str]:
    m = _FRONTMATTER_RE.match(document)
    if m is None:
        raise Malformed("missing '---' metadata block")
    try:
        meta = yaml.safe_load(m.group(1))
    except yaml.YAMLError as e:
        raise Malformed(f"metadata block is not valid YAML: {e}") from None
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise Malformed("metadata block must be a key-value mapping")
    return meta, m.group(2) or ""


def _parse_body(body: str) -> tuple[dict[str, str], list[Checkpoint]]:
    """Collect labelled sections and checkpoints from the body."""
    sections: dict[str, str] = {}
    checkpoints: list[Checkpoint] = []
    matches = list(_LABEL_RE.finditer(body))
    for i, m in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(body)
        text = _unescape(body[m.end():end].strip())
        label = m.group(1).lower()
        if label == "checkpoint":
            if m.group(2) is None:
                raise Malformed("checkpoint without timestamp")
            try:
                ts = parse_timestamp(m.group(2))
            except ValueError as e:
                raise Malformed(str(e)) from None
            checkpoints.append(Checkpoint(timestamp=ts, text=text))
        elif label not in sections:
            sections[label] = text
    return sections, checkpoints


def _list_of(meta: dict[str, Any], key: str) -> list[Any]:
    value = meta.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise Malformed(f"'{key}' must be a list")
    return value


def _timestamp(meta: dict[str, Any], key: str):
    try:
        return parse_timestamp(meta.get(key))
    except (ValueError, TypeError):
        raise Malformed(f"'{key}' is not a valid timestamp") from None


def decode(document: str) -> Issue:
    """Parse a document back into an Issue.

    Raises:
        Malformed: the header is missing or is not a key-value mapping, or a
            value has the wrong shape.
        MissingField: id, title or one of the narrative sections is absent.
    """
    meta, body = _split(document)

    if meta.get("id") is None:
        raise MissingField("id")
    title = meta.get("title")
    if title is None or not str(title).strip():
        raise MissingField("title")

    sections, checkpoints = _parse_body(body)
    for label, _attr in _NARRATIVE:
        if label not in sections:
            raise MissingField(label)

    try:
        issue_id = int(meta["id"])
    except (TypeError, ValueError):
        raise Malformed(f"id must be an integer (got {meta['id']!r})") from None

    priority = str(meta.get("priority") or Priority.MEDIUM)
    if not Priority.is_valid(priority):
        raise Malformed(f"invalid priority: {priority}")
    status = str(meta.get("status") or Status.OPEN)
    if not Status.is_valid(status):
        raise Malformed(f"invalid status: {status}")

    effort = meta.get("effort_minutes")
    if effort is None and meta.get("effort") not in (None, ""):
        try:
            effort = parse_duration(str(meta["effort"]))
        except InvalidDuration as e:
            raise Malformed(str(e)) from None
    if effort is not None:
        try:
            effort = int(effort)
        except (TypeError, ValueError):
            raise Malformed(f"effort_minutes must be an integer (got {effort!r})") from None

    try:
        depends_on = [int(d) for d in _list_of(meta, "depends_on")]
    except (TypeError, ValueError):
        raise Malformed("depends_on must list integer ids") from None

    created_at = _timestamp(meta, "created_at")
    if created_at is None:
        raise MissingField("created_at")

    block_reason = meta.get("block_reason")
    return Issue(
        id=issue_id,
        title=str(title),
        priority=priority,
        status=status,
        created_at=created_at,
        started_at=_timestamp(meta, "started_at"),
        closed_at=_timestamp(meta, "closed_at"),
        effort_minutes=effort,
        files=[str(f) for f in _list_of(meta, "files")],
        tags=[str(t) for t in _list_of(meta, "tags")],
        depends_on=depends_on,
        block_reason=str(block_reason) if block_reason else None,
        description=sections["issue"],
        impact=sections["impact"],
        acceptance=sections["acceptance"],
        context=sections.get("context"),
        checkpoints=checkpoints,
    )
