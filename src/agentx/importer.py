"""Bulk import - create issues from a YAML list.

Each item is a mapping with the same fields `create` takes::

    - ref: login
      title: Fix login redirect
      priority: high
      issue: Users land on a blank page after login.
      impact: Nobody can sign in from the marketing site.
      acceptance: Login returns to the page it started from.
      effort: 2h
      tags: [auth]
    - title: Add login regression test
      issue: ...
      impact: ...
      acceptance: ...
      depends_on: [login]

``depends_on`` entries may name an existing id or alias, or the ``ref``
(or exact title) of an item created earlier in the same batch.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from agentx.errors import AgentxError, Malformed, MissingField
from agentx.models import IssueSpec, Priority

if TYPE_CHECKING:
    from agentx.storage.interface import Storage


@dataclass
class ImportFailure:
    index: int
    title: str
    code: str
    message: str

    def to_dict(self) -> dict:
        return {"index": self.index, "title": self.title,
                "error": self.code, "message": self.message}


@dataclass
class ImportResult:
    created: list[int] = field(default_factory=list)
    failed: list[ImportFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"created": list(self.created),
                "failed": [f.to_dict() for f in self.failed]}


def _as_list(value: Any, key: str, index: int) -> list:
    if value is None:
        return []
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return [value]
    if not isinstance(value, list):
        raise Malformed(f"item {index}: '{key}' must be a list")
    return value


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def parse_specs(text: str, default_priority: str = Priority.MEDIUM) -> list[IssueSpec]:
    """Parse a YAML document into creation requests.

    Accepts either a top-level list or a mapping with an ``issues`` list.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise Malformed(f"import file is not valid YAML: {e}") from None
    if isinstance(data, dict) and "issues" in data:
        data = data["issues"]
    if data is None:
        return []
    if not isinstance(data, list):
        raise Malformed("import file must contain a list of issues")

    specs: list[IssueSpec] = []
    for index, item in enumerate(data, 1):
        if not isinstance(item, dict):
            raise Malformed(f"item {index} must be a mapping")
        title = _text(item.get("title")).strip()
        if not title:
            raise MissingField("title")
        effort = item.get("effort", item.get("effort_minutes"))
        specs.append(IssueSpec(
            title=title,
            description=_text(item.get("issue", item.get("description"))),
            impact=_text(item.get("impact")),
            acceptance=_text(item.get("acceptance")),
            priority=_text(item.get("priority")) or default_priority,
            effort=effort if isinstance(effort, int) else (_text(effort) or None),
            files=[str(f) for f in _as_list(item.get("files"), "files", index)],
            tags=[str(t) for t in _as_list(item.get("tags"), "tags", index)],
            depends_on=list(_as_list(item.get("depends_on"), "depends_on", index)),
            context=_text(item.get("context")) or None,
            backlog=bool(item.get("backlog", False)),
            ref=_text(item.get("ref")).strip(),
        ))
    return specs


def import_specs(store: Storage, specs: list[IssueSpec],
                 verbose: bool = False) -> ImportResult:
    """Create each spec in order; one failing item never stops the batch."""
    result = ImportResult()
    batch: dict[str, int] = {}

    for index, spec in enumerate(specs, 1):
        depends_on: list[str | int] = []
        for dep in spec.depends_on:
            key = str(dep).strip()
            depends_on.append(batch.get(key, dep))
        try:
            issue = store.create_issue(IssueSpec(
                title=spec.title,
                description=spec.description,
                impact=spec.impact,
                acceptance=spec.acceptance,
                priority=spec.priority,
                effort=spec.effort,
                files=list(spec.files),
                tags=list(spec.tags),
                depends_on=depends_on,
                context=spec.context,
                backlog=spec.backlog,
            ))
        except AgentxError as e:
            print(f"Warning: skipping item {index} ({spec.title}): {e}", file=sys.stderr)
            result.failed.append(ImportFailure(index, spec.title, e.code, str(e)))
            continue

        result.created.append(issue.id)
        batch.setdefault(spec.title, issue.id)
        if spec.ref:
            batch[spec.ref] = issue.id
        if verbose:
            print(f"Imported #{issue.id}: {issue.title}", file=sys.stderr)

    if verbose:
        print(f"Import: {len(result.created)} created, {len(result.failed)} failed",
              file=sys.stderr)
    return result
