"""Tests for CLI commands using Click's test runner."""

import json
import os

import pytest
from click.testing import CliRunner

from agentx.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Create a temporary directory with agentx initialized."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("AGENTX_DIR", raising=False)
    monkeypatch.delenv("AGENTX_JSON", raising=False)
    r = CliRunner()
    result = r.invoke(cli, ["init"])
    assert result.exit_code == 0, result.output
    return tmp_path


def _create(runner: CliRunner, title: str, *extra: str) -> int:
    result = runner.invoke(cli, [
        "create", "--title", title, "--issue", "It is broken.",
        "--impact", "Users notice.", "--acceptance", "It works.", "--silent", *extra,
    ])
    assert result.exit_code == 0, result.output
    return int(result.output.strip())


def _json(runner: CliRunner, *args: str):
    result = runner.invoke(cli, ["--json", *args])
    return result, json.loads(result.output)


class TestInit:
    def test_init(self, runner: CliRunner, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.delenv("AGENTX_DIR", raising=False)
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "Initialized agentx" in result.output
        assert os.path.isdir("issues/open")
        assert os.path.isdir("issues/closed")
        assert os.path.exists("issues/.aliases.yaml")
        assert os.path.exists(".agentxrc.yaml")

    def test_init_twice(self, runner: CliRunner, project):
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "already initialized" in result.output

    def test_init_with_dir(self, runner: CliRunner, tmp_path):
        target = tmp_path / "elsewhere"
        result = runner.invoke(cli, ["--dir", str(target), "init"])
        assert result.exit_code == 0
        assert (target / "issues" / "open").is_dir()

    def test_requires_init(self, runner: CliRunner, tmp_path):
        result = runner.invoke(cli, ["--dir", str(tmp_path / "empty"), "list"])
        assert result.exit_code == 1
        assert "agentx init" in result.output


class TestCreate:
    def test_create_basic(self, runner: CliRunner, project):
        result = runner.invoke(cli, [
            "create", "--title", "Test Issue", "-i", "x", "--impact", "y", "-a", "z",
            "--priority", "high", "--effort", "2h",
        ])
        assert result.exit_code == 0
        assert "Created #1: Test Issue" in result.output
        assert os.path.exists("issues/open/01-test-issue.md")

    def test_create_silent(self, runner: CliRunner, project):
        assert _create(runner, "Silent") == 1

    def test_create_with_alias_and_tags(self, runner: CliRunner, project):
        _create(runner, "Tagged", "--tag", "Backend", "--tag", "#urgent", "--alias", "tagged")
        result, data = _json(runner, "show", "tagged")
        assert result.exit_code == 0
        assert data["tags"] == ["backend", "urgent"]
        assert data["aliases"] == ["tagged"]

    def test_create_missing_section(self, runner: CliRunner, project):
        result = runner.invoke(cli, ["create", "--title", "Incomplete"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not os.listdir("issues/open")

    def test_create_bad_effort_json_error(self, runner: CliRunner, project):
        result, data = _json(runner, "create", "--title", "t", "-i", "x", "--impact", "y",
                             "-a", "z", "--effort", "soon")
        assert result.exit_code == 1
        assert data["error"] == "invalid_duration"

    def test_default_priority_from_config(self, runner: CliRunner, project):
        (project / ".agentxrc.yaml").write_text("default_priority: low\n")
        _create(runner, "Low by default")
        _, data = _json(runner, "show", "1")
        assert data["priority"] == "low"


class TestList:
    def test_list_empty(self, runner: CliRunner, project):
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "No issues found" in result.output

    def test_list_with_issues(self, runner: CliRunner, project):
        _create(runner, "Issue 1")
        _create(runner, "Issue 2")
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "2 issue(s)" in result.output

    def test_list_filters(self, runner: CliRunner, project):
        _create(runner, "Quick", "--effort", "20m", "--tag", "ui")
        _create(runner, "Slow", "--effort", "2d")
        _, data = _json(runner, "list", "--max-effort", "1h")
        assert [d["title"] for d in data] == ["Quick"]
        _, data = _json(runner, "list", "--tag", "u")
        assert [d["title"] for d in data] == ["Quick"]


class TestShow:
    def test_show_by_id_and_hash(self, runner: CliRunner, project):
        _create(runner, "Visible")
        result = runner.invoke(cli, ["show", "#1"])
        assert result.exit_code == 0
        assert "#1: Visible" in result.output
        assert "It is broken." in result.output

    def test_show_raw(self, runner: CliRunner, project):
        _create(runner, "Raw")
        result = runner.invoke(cli, ["show", "1", "--raw"])
        assert result.output.startswith("---\n")
        assert "# BUG-1: Raw" in result.output

    def test_show_missing(self, runner: CliRunner, project):
        result = runner.invoke(cli, ["show", "99"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestStatusCommands:
    def test_lifecycle(self, runner: CliRunner, project):
        _create(runner, "Work")
        assert runner.invoke(cli, ["start", "1"]).exit_code == 0
        assert runner.invoke(cli, ["block", "1", "--reason", "waiting"]).exit_code == 0
        assert runner.invoke(cli, ["unblock", "1"]).exit_code == 0
        assert runner.invoke(cli, ["done", "1"]).exit_code == 0
        result = runner.invoke(cli, ["close", "1", "--note", "shipped"])
        assert result.exit_code == 0
        assert "Closed #1" in result.output
        assert os.listdir("issues/closed") == ["01-work.md"]
        _, data = _json(runner, "show", "1")
        assert data["status"] == "closed"
        assert data["checkpoints"][-1]["text"] == "Closed: shipped"
        assert runner.invoke(cli, ["reopen", "1"]).exit_code == 0
        assert os.listdir("issues/open") == ["01-work.md"]

    def test_invalid_transition(self, runner: CliRunner, project):
        _create(runner, "Fresh")
        result = runner.invoke(cli, ["done", "1"])
        assert result.exit_code == 1
        assert "cannot done" in result.output

    def test_bulk_reports_each_reference(self, runner: CliRunner, project):
        _create(runner, "One")
        _create(runner, "Two")
        result, data = _json(runner, "start", "1", "2", "77")
        assert result.exit_code == 1
        assert [r["ok"] for r in data["results"]] == [True, True, False]
        assert data["results"][2]["error"] == "not_found"
        _, shown = _json(runner, "show", "2")
        assert shown["status"] == "active"

    def test_defer_and_activate(self, runner: CliRunner, project):
        _create(runner, "Later")
        assert runner.invoke(cli, ["defer", "1"]).exit_code == 0
        _, data = _json(runner, "show", "1")
        assert data["status"] == "backlog"
        assert runner.invoke(cli, ["activate", "1"]).exit_code == 0


class TestCheckpoint:
    def test_checkpoint_note(self, runner: CliRunner, project):
        _create(runner, "Progress")
        result = runner.invoke(cli, ["checkpoint", "1", "looked", "at", "logs"])
        assert result.exit_code == 0
        _, data = _json(runner, "show", "1")
        assert data["checkpoints"][0]["text"] == "looked at logs"

    def test_checkpoint_blocked_prefix(self, runner: CliRunner, project):
        _create(runner, "Stuck")
        runner.invoke(cli, ["start", "1"])
        result, data = _json(runner, "checkpoint", "1", "BLOCKED: need keys")
        assert result.exit_code == 0
        assert data["applied_action"] == "block"
        assert data["status"] == "blocked"


class TestDep:
    def test_add_list_remove(self, runner: CliRunner, project):
        _create(runner, "Blocker")
        _create(runner, "Blocked")
        result = runner.invoke(cli, ["dep", "add", "2", "1"])
        assert result.exit_code == 0
        assert "#2 depends on #1" in result.output
        _, data = _json(runner, "dep", "list", "1")
        assert [d["id"] for d in data["dependents"]] == [2]
        assert runner.invoke(cli, ["dep", "remove", "2", "1"]).exit_code == 0
        _, data = _json(runner, "dep", "list", "2")
        assert data["dependencies"] == []

    def test_cycle_rejected(self, runner: CliRunner, project):
        _create(runner, "A")
        _create(runner, "B")
        runner.invoke(cli, ["dep", "add", "1", "2"])
        result, data = _json(runner, "dep", "add", "2", "1")
        assert result.exit_code == 1
        assert data["error"] == "cycle_detected"

    def test_self_dependency(self, runner: CliRunner, project):
        _create(runner, "A")
        result = runner.invoke(cli, ["dep", "add", "1", "1"])
        assert result.exit_code == 1

    def test_graph_and_critical_path(self, runner: CliRunner, project):
        _create(runner, "C")
        _create(runner, "B", "-d", "1")
        _create(runner, "A", "-d", "2")
        result = runner.invoke(cli, ["dep", "graph", "3"])
        assert result.exit_code == 0
        assert "#3" in result.output and "#1" in result.output
        _, data = _json(runner, "dep", "critical-path")
        assert [d["id"] for d in data] == [1, 2, 3]

    def test_validate_clean(self, runner: CliRunner, project):
        result = runner.invoke(cli, ["dep", "validate"])
        assert result.exit_code == 0
        assert "valid" in result.output


class TestAlias:
    def test_alias_roundtrip(self, runner: CliRunner, project):
        _create(runner, "Aliased")
        assert runner.invoke(cli, ["alias", "add", "1", "login"]).exit_code == 0
        _, data = _json(runner, "alias", "list")
        assert data == {"login": 1}
        _, shown = _json(runner, "show", "login")
        assert shown["id"] == 1
        assert runner.invoke(cli, ["alias", "remove", "login"]).exit_code == 0
        assert runner.invoke(cli, ["show", "login"]).exit_code == 1

    def test_alias_conflict(self, runner: CliRunner, project):
        _create(runner, "One")
        _create(runner, "Two")
        runner.invoke(cli, ["alias", "add", "1", "x"])
        result, data = _json(runner, "alias", "add", "2", "x")
        assert result.exit_code == 1
        assert data["error"] == "alias_conflict"


class TestTags:
    def test_add_remove_list(self, runner: CliRunner, project):
        _create(runner, "Tagged")
        runner.invoke(cli, ["tag", "add", "1", "Auth", "#ui"])
        _, data = _json(runner, "tag", "list", "1")
        assert data == ["auth", "ui"]
        runner.invoke(cli, ["tag", "remove", "1", "ui"])
        _, data = _json(runner, "tag", "list")
        assert data == {"auth": 1}


class TestViews:
    def test_ready_shows_unblocked(self, runner: CliRunner, project):
        _create(runner, "Ready One")
        _create(runner, "Waiting", "-d", "1")
        result = runner.invoke(cli, ["ready"])
        assert result.exit_code == 0
        assert "1 ready issue(s)" in result.output

    def test_wins(self, runner: CliRunner, project):
        _create(runner, "Tiny", "--effort", "10m")
        _create(runner, "Big", "--effort", "1d")
        _, data = _json(runner, "wins", "--under", "30m")
        assert [d["title"] for d in data] == ["Tiny"]

    def test_blocked(self, runner: CliRunner, project):
        _create(runner, "Base")
        _create(runner, "Waiting", "-d", "1")
        _, data = _json(runner, "blocked")
        assert data[0]["id"] == 2
        assert data[0]["waiting_on"] == [1]

    def test_context_focus_summary(self, runner: CliRunner, project):
        _create(runner, "Active", "--priority", "low")
        _create(runner, "Urgent", "--priority", "critical")
        runner.invoke(cli, ["start", "1"])
        _, ctx = _json(runner, "context")
        assert [i["id"] for i in ctx["active"]] == [1]
        assert [i["id"] for i in ctx["high_priority"]] == [2]
        _, focus = _json(runner, "focus")
        assert [i["id"] for i in focus] == [1, 2]
        _, summary = _json(runner, "summary")
        assert summary["started"] == [1]

    def test_search(self, runner: CliRunner, project):
        _create(runner, "Unique Searchable Title")
        result = runner.invoke(cli, ["search", "Searchable"])
        assert result.exit_code == 0
        assert "Unique Searchable Title" in result.output


class TestStats:
    def test_stats(self, runner: CliRunner, project):
        _create(runner, "Issue")
        result = runner.invoke(cli, ["stats"])
        assert result.exit_code == 0
        assert "Total:" in result.output


class TestImport:
    def test_import_file(self, runner: CliRunner, project):
        (project / "batch.yaml").write_text(
            "- ref: base\n  title: Base\n  issue: a\n  impact: b\n  acceptance: c\n"
            "- title: Next\n  issue: a\n  impact: b\n  acceptance: c\n  depends_on: [base]\n"
        )
        result, data = _json(runner, "import", "batch.yaml")
        assert result.exit_code == 0
        assert data["created"] == [1, 2]
        _, shown = _json(runner, "show", "2")
        assert shown["depends_on"] == [1]


class TestDoctor:
    def test_doctor(self, runner: CliRunner, project):
        result = runner.invoke(cli, ["doctor"])
        assert result.exit_code == 0
        assert "All checks passed" in result.output

    def test_doctor_reports_unreadable_record(self, runner: CliRunner, project):
        (project / "issues" / "open" / "03-bad.md").write_text("nonsense\n")
        result = runner.invoke(cli, ["doctor"])
        assert result.exit_code == 1
        assert "03-bad.md" in result.output


def test_version(runner: CliRunner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "agentx" in result.output
