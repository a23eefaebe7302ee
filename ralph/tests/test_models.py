"""Tests for data models and the backlog store."""

import json
from pathlib import Path

import pytest

from ralph.backlog import BacklogStore
from ralph.errors import BacklogError
from ralph.models import Backlog, RunStatus, Task, TokenUsage


class TestBacklogModel:
    """Tests for Backlog.from_dict()."""

    def test_parses_prd_format(self):
        backlog = Backlog.from_dict(
            {
                "project": "Acme",
                "branchName": "ralph/auth",
                "description": "Auth",
                "userStories": [
                    {
                        "id": "US-001",
                        "title": "Login",
                        "description": "As a user...",
                        "acceptanceCriteria": ["Form renders", "Typecheck passes"],
                        "priority": 1,
                        "passes": False,
                        "notes": "",
                    }
                ],
            }
        )

        assert backlog.branch_name == "ralph/auth"
        task = backlog.tasks[0]
        assert task == Task(
            id="US-001",
            title="Login",
            priority=1,
            passes=False,
            notes="",
            description="As a user...",
            acceptance_criteria=["Form renders", "Typecheck passes"],
        )

    def test_missing_metadata_defaults_to_empty(self):
        backlog = Backlog.from_dict({"userStories": []})

        assert backlog.project == ""
        assert backlog.branch_name == ""
        assert backlog.tasks == []

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate story id"):
            Backlog.from_dict(
                {"userStories": [{"id": "A", "priority": 1}, {"id": "A", "priority": 2}]}
            )

    def test_get_and_completed(self):
        backlog = Backlog.from_dict(
            {
                "userStories": [
                    {"id": "A", "priority": 1, "passes": True},
                    {"id": "B", "priority": 2},
                ]
            }
        )

        assert backlog.get("B").id == "B"
        assert backlog.get("Z") is None
        assert [t.id for t in backlog.completed] == ["A"]


class TestRunStatus:
    """Tests for terminal status mapping."""

    @pytest.mark.parametrize(
        "status, exit_code, hook_status",
        [
            (RunStatus.COMPLETED, 0, "success"),
            (RunStatus.ALREADY_COMPLETE, 0, "success"),
            (RunStatus.BUDGET_EXCEEDED, 1, "budget_exceeded"),
            (RunStatus.MAX_ITERATIONS, 1, "failed"),
        ],
    )
    def test_mapping(self, status, exit_code, hook_status):
        assert status.exit_code == exit_code
        assert status.hook_status == hook_status

    def test_token_usage_total(self):
        assert TokenUsage(input_tokens=3, output_tokens=4).total == 7


class TestBacklogStore:
    """Tests for BacklogStore."""

    def test_load_reads_fresh_each_time(self, tmp_path: Path):
        path = tmp_path / "prd.json"
        path.write_text(json.dumps({"userStories": [{"id": "A", "priority": 1}]}))
        store = BacklogStore(path)
        first = store.load()

        path.write_text(json.dumps({"userStories": [{"id": "A", "priority": 1, "passes": True}]}))

        assert first.tasks[0].passes is False
        assert store.load().tasks[0].passes is True

    def test_missing_file(self, tmp_path: Path):
        store = BacklogStore(tmp_path / "prd.json")

        assert not store.exists()
        with pytest.raises(BacklogError, match="not found"):
            store.load()

    @pytest.mark.parametrize(
        "content, message",
        [
            ("{oops", "not valid JSON"),
            ("[1, 2]", "JSON object"),
            ('{"userStories": [{"title": "no id"}]}', "malformed"),
            ('{"userStories": [{"id": "A", "priority": "high"}]}', "malformed"),
        ],
    )
    def test_invalid_content(self, tmp_path: Path, content: str, message: str):
        path = tmp_path / "prd.json"
        path.write_text(content)

        with pytest.raises(BacklogError, match=message):
            BacklogStore(path).load()

    def test_undecodable_file(self, tmp_path: Path):
        path = tmp_path / "prd.json"
        path.write_bytes(b"\xff\xfe{}")

        with pytest.raises(BacklogError, match="Cannot read backlog"):
            BacklogStore(path).load()

    def test_directory_instead_of_file(self, tmp_path: Path):
        path = tmp_path / "prd.json"
        path.mkdir()

        with pytest.raises(BacklogError, match="Cannot read backlog"):
            BacklogStore(path).load()

    def test_branch_name(self, tmp_path: Path):
        path = tmp_path / "prd.json"
        path.write_text(json.dumps({"branchName": "ralph/x", "userStories": []}))

        assert BacklogStore(path).branch_name() == "ralph/x"
        assert BacklogStore(tmp_path / "missing.json").branch_name() == ""
