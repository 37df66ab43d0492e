"""Status engine: the transition table and checkpoint auto-detection.

The table is the only place that decides whether an action is allowed.
Checkpoint detection only *suggests* an action; the store appends the note
first and then attempts the suggested transition, discarding a refusal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from agentx.errors import InvalidTransition
from agentx.models import Issue, Status, now_utc


class Action:
    START = "start"
    BLOCK = "block"
    UNBLOCK = "unblock"
    DONE = "done"
    CLOSE = "close"
    REOPEN = "reopen"
    DEFER = "defer"
    ACTIVATE = "activate"

    ALL = (START, BLOCK, UNBLOCK, DONE, CLOSE, REOPEN, DEFER, ACTIVATE)

    @classmethod
    def is_valid(cls, a: str) -> bool:
        return a in cls.ALL


@dataclass(frozen=True)
class Rule:
    sources: frozenset[str]
    result: str


TRANSITIONS: dict[str, Rule] = {
    Action.START: Rule(frozenset({Status.OPEN, Status.BLOCKED, Status.BACKLOG}), Status.ACTIVE),
    Action.BLOCK: Rule(frozenset({Status.OPEN, Status.ACTIVE}), Status.BLOCKED),
    Action.UNBLOCK: Rule(frozenset({Status.BLOCKED}), Status.ACTIVE),
    Action.DONE: Rule(frozenset({Status.ACTIVE, Status.BLOCKED}), Status.DONE),
    # close may skip done
    Action.CLOSE: Rule(
        frozenset({Status.DONE, Status.ACTIVE, Status.BLOCKED, Status.OPEN}), Status.CLOSED),
    Action.REOPEN: Rule(frozenset({Status.CLOSED}), Status.OPEN),
    Action.DEFER: Rule(frozenset(Status.ACTIVE_STATES), Status.BACKLOG),
    Action.ACTIVATE: Rule(frozenset({Status.BACKLOG}), Status.OPEN),
}

# Leading checkpoint token -> implied action
CHECKPOINT_PREFIXES = {
    "BLOCKED": Action.BLOCK,
    "FIXED": Action.DONE,
    "DONE": Action.DONE,
}


def can_apply(status: str, action: str) -> bool:
    rule = TRANSITIONS.get(action)
    return rule is not None and status in rule.sources


def check(issue: Issue, action: str, reason: str | None = None) -> str:
    """Validate an action without touching the issue. Returns the new status."""
    rule = TRANSITIONS.get(action)
    if rule is None:
        raise InvalidTransition(issue.status, action, f"unknown action: {action}")
    if issue.status not in rule.sources:
        raise InvalidTransition(issue.status, action)
    if action == Action.BLOCK and not (reason and reason.strip()):
        raise InvalidTransition(issue.status, action, "block requires a non-empty reason")
    return rule.result


def transition(issue: Issue, action: str, reason: str | None = None,
               now: datetime | None = None) -> str:
    """Apply an action to the issue in place and return the previous status.

    All validation happens before any field changes, so a refused action
    leaves the issue untouched.
    """
    new_status = check(issue, action, reason)
    now = now or now_utc()
    previous = issue.status

    issue.status = new_status
    if new_status != Status.BLOCKED:
        issue.block_reason = None

    if action == Action.START and issue.started_at is None:
        issue.started_at = now
    elif action == Action.UNBLOCK and issue.started_at is None:
        issue.started_at = now
    elif action == Action.BLOCK:
        issue.block_reason = reason.strip()  # type: ignore[union-attr]
    elif action == Action.CLOSE:
        issue.closed_at = now
    elif action == Action.REOPEN:
        issue.closed_at = None

    return previous


def detect_checkpoint_action(note: str) -> tuple[str, str] | None:
    """Return (action, reason) implied by a checkpoint's leading token.

    ``"BLOCKED: waiting on review"`` -> ``("block", "waiting on review")``;
    ``"fixed: typo"`` -> ``("done", "typo")``. Notes without a recognised
    ``TOKEN:`` prefix imply nothing.
    """
    if ":" not in note:
        return None
    token, remainder = note.split(":", 1)
    action = CHECKPOINT_PREFIXES.get(token.strip().upper())
    if action is None:
        return None
    return action, remainder.strip()
