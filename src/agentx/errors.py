"""Error kinds raised by the issue store and its engines.

Every error carries a stable ``code`` so callers (CLI, server, dashboard)
can tell them apart without parsing messages.
"""

from __future__ import annotations

from typing import Any


class AgentxError(Exception):
    """Base class for all tracker errors."""

    code = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": str(self)}


class NotFound(AgentxError):
    code = "not_found"

    def __init__(self, reference: Any, what: str = "issue") -> None:
        self.reference = reference
        super().__init__(f"{what} not found: {reference}")


class AliasConflict(AgentxError):
    code = "alias_conflict"

    def __init__(self, alias: str, existing_id: int | None = None,
                 message: str = "") -> None:
        self.alias = alias
        self.existing_id = existing_id
        if not message:
            message = f"alias '{alias}' already points to #{existing_id}"
        super().__init__(message)


class InvalidTransition(AgentxError):
    code = "invalid_transition"

    def __init__(self, from_status: str, action: str, message: str = "") -> None:
        self.from_status = from_status
        self.action = action
        if not message:
            message = f"cannot {action} an issue that is {from_status}"
        super().__init__(message)


class SelfDependency(AgentxError):
    code = "self_dependency"

    def __init__(self, issue_id: int) -> None:
        self.issue_id = issue_id
        super().__init__(f"#{issue_id} cannot depend on itself")


class CycleDetected(AgentxError):
    code = "cycle_detected"

    def __init__(self, issue_id: int, depends_on_id: int) -> None:
        self.issue_id = issue_id
        self.depends_on_id = depends_on_id
        super().__init__(
            f"adding dependency #{issue_id} → #{depends_on_id} would create a cycle"
        )


class CodecError(AgentxError):
    code = "codec_error"


class MissingField(CodecError):
    code = "missing_field"

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"required field missing: {field_name}")


class Malformed(CodecError):
    code = "malformed"


class InvalidDuration(AgentxError):
    code = "invalid_duration"

    def __init__(self, text: str, detail: str = "") -> None:
        self.text = text
        message = f"invalid duration: {text!r}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class Corrupted(AgentxError):
    """A partition move left the record in an inconsistent state."""

    code = "corrupted"

    def __init__(self, issue_id: int, detail: str) -> None:
        self.issue_id = issue_id
        super().__init__(f"#{issue_id} is corrupted: {detail}")


class GitError(AgentxError):
    """A git command needed for branch-on-start or commit-on-close failed."""

    code = "git_error"
