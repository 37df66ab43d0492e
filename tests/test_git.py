"""Tests for the git branch/commit hooks on start and close."""

import json
import shutil
import subprocess

import pytest
from click.testing import CliRunner

from agentx.cli import cli
from agentx.errors import GitError
from agentx.git import GitRepo, branch_name, close_message
from agentx.models import Issue, now_utc

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(cwd, *args: str) -> str:
    return subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True,
                          check=True).stdout.strip()


@pytest.fixture
def repo(tmp_path, monkeypatch):
    """An initialized agentx project inside a git repository with one commit."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("AGENTX_DIR", raising=False)
    monkeypatch.delenv("AGENTX_JSON", raising=False)
    for var in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(var, "Tester")
    for var in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(var, "tester@example.com")
    _git(tmp_path, "init", "-q")
    _git(tmp_path, "commit", "-q", "--allow-empty", "-m", "initial")
    result = CliRunner().invoke(cli, ["init"])
    assert result.exit_code == 0, result.output
    return tmp_path


def _create(title: str) -> int:
    result = CliRunner().invoke(cli, [
        "create", "--title", title, "--issue", "It is broken.",
        "--impact", "Users notice.", "--acceptance", "It works.", "--silent",
    ])
    assert result.exit_code == 0, result.output
    return int(result.output.strip())


def _issue(issue_id: int, title: str) -> Issue:
    return Issue(id=issue_id, title=title, created_at=now_utc(), description="d",
                 impact="i", acceptance="a")


class TestNaming:
    def test_branch_name(self):
        assert branch_name(_issue(7, "Fix login redirect!")) == "bug-7-fix-login-redirect"

    def test_close_message(self):
        assert close_message([_issue(3, "Crash")]) == "Close BUG-3: Crash"
        assert close_message([_issue(3, "a"), _issue(4, "b")]) == "Close BUG-3, BUG-4"


class TestGitRepo:
    def test_discover_outside_repository(self, tmp_path):
        with pytest.raises(GitError):
            GitRepo.discover(str(tmp_path))

    def test_create_branch_and_refuse_duplicate(self, repo):
        git = GitRepo.discover(str(repo))
        assert git.create_branch("bug-1-x") == "bug-1-x"
        assert git.current_branch() == "bug-1-x"
        with pytest.raises(GitError):
            git.create_branch("bug-1-x")

    def test_commit_requires_staged_changes(self, repo):
        git = GitRepo.discover(str(repo))
        git.stage([str(repo / "issues")])
        git.commit("track issues")
        with pytest.raises(GitError):
            git.commit("nothing new")


class TestStartBranch:
    def test_branch_flag(self, repo):
        issue_id = _create("Fix login")
        result = CliRunner().invoke(cli, ["start", str(issue_id), "--branch"])
        assert result.exit_code == 0, result.output
        assert "bug-1-fix-login" in result.output
        assert _git(repo, "rev-parse", "--abbrev-ref", "HEAD") == "bug-1-fix-login"

    def test_no_branch_by_default(self, repo):
        _create("Fix login")
        before = _git(repo, "rev-parse", "--abbrev-ref", "HEAD")
        result = CliRunner().invoke(cli, ["start", "1"])
        assert result.exit_code == 0, result.output
        assert _git(repo, "rev-parse", "--abbrev-ref", "HEAD") == before

    def test_config_enables_and_flag_overrides(self, repo):
        (repo / ".agentxrc.yaml").write_text("git:\n  branch_on_start: true\n")
        _create("One")
        _create("Two")
        before = _git(repo, "rev-parse", "--abbrev-ref", "HEAD")
        assert CliRunner().invoke(cli, ["start", "1", "--no-branch"]).exit_code == 0
        assert _git(repo, "rev-parse", "--abbrev-ref", "HEAD") == before
        assert CliRunner().invoke(cli, ["start", "2"]).exit_code == 0
        assert _git(repo, "rev-parse", "--abbrev-ref", "HEAD") == "bug-2-two"

    def test_branch_needs_single_reference(self, repo):
        _create("One")
        _create("Two")
        result = CliRunner().invoke(cli, ["start", "1", "2", "--branch"])
        assert result.exit_code == 2

    def test_git_failure_keeps_status_change(self, repo):
        _create("Fix login")
        _git(repo, "branch", "bug-1-fix-login")
        result = CliRunner().invoke(cli, ["--json", "start", "1", "--branch"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["results"][0]["ok"] is True
        assert "already exists" in data["git"]["error"]


class TestCloseCommit:
    def test_commit_flag(self, repo):
        _create("Crash on start")
        result = CliRunner().invoke(cli, ["--json", "close", "1", "--commit"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["git"]["commit"] == _git(repo, "rev-parse", "HEAD")
        assert _git(repo, "log", "-1", "--format=%s") == "Close BUG-1: Crash on start"
        tracked = _git(repo, "ls-files", "issues")
        assert "issues/closed/01-crash-on-start.md" in tracked

    def test_config_commit_on_close(self, repo):
        (repo / ".agentxrc.yaml").write_text("git:\n  commit_on_close: true\n")
        _create("Crash")
        result = CliRunner().invoke(cli, ["close", "1"])
        assert result.exit_code == 0, result.output
        assert "Committed" in result.output
        assert _git(repo, "log", "-1", "--format=%s") == "Close BUG-1: Crash"

    def test_no_commit_without_request(self, repo):
        _create("Crash")
        assert CliRunner().invoke(cli, ["close", "1"]).exit_code == 0
        assert _git(repo, "log", "-1", "--format=%s") == "initial"

    def test_commit_outside_repository(self, tmp_path, monkeypatch):
        project = tmp_path / "plain"
        project.mkdir()
        monkeypatch.chdir(project)
        monkeypatch.setenv("HOME", str(project))
        monkeypatch.delenv("AGENTX_DIR", raising=False)
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
        assert CliRunner().invoke(cli, ["init"]).exit_code == 0
        _create("Crash")
        result = CliRunner().invoke(cli, ["close", "1", "--commit"])
        assert result.exit_code == 1
        assert "not a git repository" in result.output
