"""Prerequisite validation before a run starts.

Missing prerequisites are fatal: they are all collected into one
PrerequisiteError so the user can fix everything in a single pass.
"""

import shutil

from ralph.config import WorkspacePaths
from ralph.errors import PrerequisiteError


def validate_environment(
    paths: WorkspacePaths,
    worker_command: str = "claude",
    require_worker: bool = True,
) -> None:
    """Check that the worker CLI and the workspace documents exist.

    Creates the logs and archive directories once the checks pass.

    Args:
        paths: Workspace layout
        worker_command: Executable that must be on PATH
        require_worker: False in dry-run mode, where the worker never runs

    Raises:
        PrerequisiteError: If anything is missing. The message includes an
            actionable hint for each problem.
    """
    problems: list[str] = []

    if require_worker and shutil.which(worker_command) is None:
        problems.append(
            f"{worker_command} CLI is not installed. "
            "Install it from: https://github.com/anthropics/claude-code"
        )

    if not paths.backlog_file.is_file():
        problems.append(
            f"prd.json not found at {paths.backlog_file}. "
            "Create one with the PRD skill or copy prd.json.example"
        )

    if not paths.prompt_file.is_file():
        problems.append(f"prompt.md not found at {paths.prompt_file}")

    if problems:
        raise PrerequisiteError(problems)

    paths.logs_dir.mkdir(parents=True, exist_ok=True)
    paths.archive_dir.mkdir(parents=True, exist_ok=True)
