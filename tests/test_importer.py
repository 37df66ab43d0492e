"""Tests for bulk YAML import."""

import pytest

from agentx.errors import Malformed, MissingField
from agentx.importer import import_specs, parse_specs
from agentx.models import Priority, Status
from agentx.storage.file_store import FileStorage

BATCH = """
- ref: login
  title: Fix login redirect
  priority: high
  issue: Users land on a blank page.
  impact: Nobody can sign in.
  acceptance: Login returns to the original page.
  effort: 2h
  tags: [auth, "#Web"]
- title: Add login regression test
  issue: No test covers the redirect.
  impact: It will break again.
  acceptance: A test fails when the redirect breaks.
  depends_on: [login]
- title: Broken item
  issue: x
  impact: y
  acceptance: z
  effort: someday
- title: Follow-up
  issue: x
  impact: y
  acceptance: z
  depends_on: [Add login regression test]
"""


@pytest.fixture
def store(tmp_path):
    return FileStorage(str(tmp_path))


class TestParseSpecs:
    def test_parse(self):
        specs = parse_specs(BATCH)
        assert len(specs) == 4
        first = specs[0]
        assert first.ref == "login"
        assert first.priority == Priority.HIGH
        assert first.effort == "2h"
        assert first.tags == ["auth", "#Web"]
        assert first.description == "Users land on a blank page."
        assert specs[1].depends_on == ["login"]
        assert specs[1].priority == Priority.MEDIUM

    def test_default_priority(self):
        specs = parse_specs("- title: t\n", default_priority=Priority.LOW)
        assert specs[0].priority == Priority.LOW

    def test_mapping_with_issues_key(self):
        assert len(parse_specs("issues:\n  - title: a\n  - title: b\n")) == 2

    def test_empty_document(self):
        assert parse_specs("") == []

    def test_not_a_list(self):
        with pytest.raises(Malformed):
            parse_specs("title: lonely\n")

    def test_item_without_title(self):
        with pytest.raises(MissingField):
            parse_specs("- issue: no title\n")

    def test_bad_yaml(self):
        with pytest.raises(Malformed):
            parse_specs("- [unclosed\n")


class TestImportSpecs:
    def test_batch_references_and_isolated_failures(self, store: FileStorage):
        result = import_specs(store, parse_specs(BATCH))
        assert result.created == [1, 2, 3]
        assert len(result.failed) == 1
        assert result.failed[0].title == "Broken item"
        assert result.failed[0].code == "invalid_duration"

        assert store.get_issue(1).tags == ["auth", "web"]
        assert store.get_issue(1).effort_minutes == 120
        assert store.get_issue(2).depends_on == [1]
        assert store.get_issue(3).title == "Follow-up"
        assert store.get_issue(3).depends_on == [2]

    def test_existing_ids_and_aliases(self, store: FileStorage):
        existing = store.create_issue(parse_specs(
            "- title: base\n  issue: a\n  impact: b\n  acceptance: c\n")[0])
        store.add_alias(existing.id, "base")
        specs = parse_specs(
            "- title: uses id\n  issue: a\n  impact: b\n  acceptance: c\n  depends_on: [1]\n"
            "- title: uses alias\n  issue: a\n  impact: b\n  acceptance: c\n  depends_on: [base]\n"
        )
        result = import_specs(store, specs)
        assert result.failed == []
        assert [store.get_issue(i).depends_on for i in result.created] == [[1], [1]]

    def test_unknown_reference_fails_only_that_item(self, store: FileStorage):
        specs = parse_specs(
            "- title: bad\n  issue: a\n  impact: b\n  acceptance: c\n  depends_on: [ghost]\n"
            "- title: good\n  issue: a\n  impact: b\n  acceptance: c\n  backlog: true\n"
        )
        result = import_specs(store, specs)
        assert result.created == [1]
        assert result.failed[0].code == "not_found"
        assert store.get_issue(1).status == Status.BACKLOG

    def test_result_to_dict(self, store: FileStorage):
        result = import_specs(store, parse_specs(BATCH))
        d = result.to_dict()
        assert d["created"] == [1, 2, 3]
        assert d["failed"][0]["error"] == "invalid_duration"
