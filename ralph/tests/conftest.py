"""Shared fixtures for ralph tests."""

import json
import logging
from pathlib import Path

import pytest

from ralph.config import WorkspacePaths
from ralph.worker import WorkerResult


def make_backlog_data(
    stories: list[dict] | None = None,
    branch_name: str = "ralph/feature-x",
    project: str = "Demo",
    description: str = "Demo feature",
) -> dict:
    """Build prd.json content."""
    if stories is None:
        stories = [
            {"id": "US-001", "title": "First", "priority": 1, "passes": False},
            {"id": "US-002", "title": "Second", "priority": 2, "passes": False},
        ]
    return {
        "project": project,
        "branchName": branch_name,
        "description": description,
        "userStories": stories,
    }


def write_backlog(paths: WorkspacePaths, data: dict) -> None:
    paths.backlog_file.write_text(json.dumps(data, indent=2))


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo configure_logging() so caplog sees ralph records in every test."""
    yield
    logger = logging.getLogger("ralph")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspacePaths:
    """Workspace with a two-story backlog and a prompt document."""
    paths = WorkspacePaths(tmp_path)
    write_backlog(paths, make_backlog_data())
    paths.prompt_file.write_text("Do the next story.")
    return paths


class ScriptedWorker:
    """Worker returning canned results in order, repeating the last one.

    An optional ``on_run`` callback receives the call index and task id, so
    tests can mutate the backlog the way the real agent would.
    """

    def __init__(self, results: list[WorkerResult], on_run=None) -> None:
        self.results = results
        self.on_run = on_run
        self.calls: list[tuple[str, str]] = []

    def run(self, prompt: str, task_id: str) -> WorkerResult:
        index = len(self.calls)
        self.calls.append((prompt, task_id))
        if self.on_run is not None:
            self.on_run(index, task_id)
        return self.results[min(index, len(self.results) - 1)]
