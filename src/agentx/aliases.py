"""Alias table and reference resolution.

A reference is either a positive integer id ("7", "#7") or an alias
("auth-bug"). Aliases live in one YAML file beside the partitions, so
they survive an issue moving between open and closed.
"""

from __future__ import annotations

import os
from typing import Callable, Iterator

import yaml

from agentx.errors import AliasConflict, Malformed, NotFound


def parse_id(reference: str | int) -> int | None:
    """Return the id if the reference is a positive integer, else None."""
    if isinstance(reference, bool):
        return None
    if isinstance(reference, int):
        return reference if reference > 0 else None
    text = reference.strip()
    if text.startswith("#"):
        text = text[1:]
    if text.isdigit() and int(text) > 0:
        return int(text)
    return None


class AliasTable:
    """Mapping of alias string -> issue id, unique per table."""

    def __init__(self, entries: dict[str, int] | None = None) -> None:
        self._entries: dict[str, int] = dict(entries or {})

    @classmethod
    def load(cls, path: str) -> AliasTable:
        if not os.path.exists(path):
            return cls()
        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise Malformed(f"alias table {path} is not valid YAML: {e}") from None
        if not isinstance(data, dict):
            raise Malformed(f"alias table {path} must be a mapping")
        try:
            return cls({str(k): int(v) for k, v in data.items()})
        except (TypeError, ValueError):
            raise Malformed(f"alias table {path} must map names to integer ids") from None

    def save(self, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        tmp_path = path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(dict(sorted(self._entries.items())), f,
                               default_flow_style=False, allow_unicode=True)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, alias: str) -> int | None:
        return self._entries.get(alias)

    def add(self, issue_id: int, alias: str) -> bool:
        """Map alias to issue_id. Returns False if it was already mapped there."""
        alias = alias.strip()
        if not alias:
            raise AliasConflict(alias, message="alias must not be empty")
        if parse_id(alias) is not None:
            raise AliasConflict(alias, message=f"alias '{alias}' would shadow an issue id")
        existing = self._entries.get(alias)
        if existing is not None:
            if existing == issue_id:
                return False
            raise AliasConflict(alias, existing)
        self._entries[alias] = issue_id
        return True

    def remove(self, alias: str) -> int:
        """Drop an alias and return the id it pointed to."""
        try:
            return self._entries.pop(alias)
        except KeyError:
            raise NotFound(alias, what="alias") from None

    def aliases_for(self, issue_id: int) -> list[str]:
        return sorted(a for a, i in self._entries.items() if i == issue_id)

    def items(self) -> list[tuple[str, int]]:
        return sorted(self._entries.items())

    def __contains__(self, alias: object) -> bool:
        return alias in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


def resolve_reference(reference: str | int, aliases: AliasTable,
                      exists: Callable[[int], bool]) -> int:
    """Map a user-supplied reference to a canonical issue id.

    Raises:
        NotFound: no such id, or no such alias, or the alias points at an
            id that no longer exists.
    """
    issue_id = parse_id(reference)
    if issue_id is None:
        if isinstance(reference, int):
            raise NotFound(reference)
        issue_id = aliases.get(reference.strip())
        if issue_id is None:
            raise NotFound(reference)
    if not exists(issue_id):
        raise NotFound(reference)
    return issue_id
