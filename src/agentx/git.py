"""Git helpers: a branch per started issue and a commit when issues close.

Runs the ``git`` executable; nothing here touches issue records.
"""

from __future__ import annotations

import subprocess

from agentx.codec import slugify
from agentx.errors import GitError
from agentx.models import Issue

GIT_TIMEOUT = 30


def _run(args: list[str], cwd: str, check: bool = True) -> subprocess.CompletedProcess:
    cmd = ["git", *args]
    try:
        result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True,
                                timeout=GIT_TIMEOUT)
    except FileNotFoundError:
        raise GitError("git executable not found") from None
    except NotADirectoryError:
        raise GitError(f"not a directory: {cwd}") from None
    except subprocess.TimeoutExpired:
        raise GitError(f"'{' '.join(cmd)}' timed out") from None
    if check and result.returncode != 0:
        detail = result.stderr.strip() or result.stdout.strip()
        raise GitError(f"'{' '.join(cmd)}' failed: {detail}")
    return result


def branch_name(issue: Issue) -> str:
    slug = slugify(issue.title)[:40].rstrip("-")
    return f"bug-{issue.id}-{slug}"


def close_message(issues: list[Issue]) -> str:
    if len(issues) == 1:
        return f"Close BUG-{issues[0].id}: {issues[0].title}"
    return "Close " + ", ".join(f"BUG-{i.id}" for i in issues)


class GitRepo:
    """Working tree that contains a given path."""

    def __init__(self, toplevel: str) -> None:
        self.toplevel = toplevel

    @classmethod
    def discover(cls, path: str) -> GitRepo:
        result = _run(["rev-parse", "--show-toplevel"], cwd=path, check=False)
        if result.returncode != 0:
            raise GitError(f"not a git repository: {path}")
        return cls(result.stdout.strip())

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        return _run(list(args), cwd=self.toplevel, check=check)

    def current_branch(self) -> str:
        name = self._git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()
        if name == "HEAD":
            raise GitError("HEAD is detached")
        return name

    def branch_exists(self, name: str) -> bool:
        result = self._git("show-ref", "--verify", "--quiet", f"refs/heads/{name}", check=False)
        return result.returncode == 0

    def create_branch(self, name: str) -> str:
        """Create name from HEAD and switch to it."""
        if self.branch_exists(name):
            raise GitError(f"branch '{name}' already exists")
        self._git("checkout", "-b", name)
        return name

    def stage(self, paths: list[str]) -> None:
        self._git("add", "-A", "--", *paths)

    def has_staged_changes(self) -> bool:
        result = self._git("diff", "--cached", "--quiet", check=False)
        if result.returncode not in (0, 1):
            raise GitError(f"'git diff --cached' failed: {result.stderr.strip()}")
        return result.returncode == 1

    def commit(self, message: str) -> str:
        """Commit what is staged and return the new commit id."""
        if not self.has_staged_changes():
            raise GitError("no changes to commit")
        self._git("commit", "-m", message)
        return self._git("rev-parse", "HEAD").stdout.strip()
