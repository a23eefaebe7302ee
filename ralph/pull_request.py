"""Pull request creation after a completed run.

Opens a PR with the GitHub CLI summarizing the completed stories and the
usage of the run. Any failure is reported as a warning only.
"""

import logging
import shutil
import subprocess
from typing import Callable

from ralph.budget import SessionTotals
from ralph.logging_setup import SUCCESS
from ralph.models import Backlog

logger = logging.getLogger(__name__)


def build_pr_body(backlog: Backlog, totals: SessionTotals) -> str:
    """Render the PR description."""
    completed = "\n".join(f"- {t.id}: {t.title}" for t in backlog.completed)
    return f"""## Summary
{backlog.description}

## Completed Stories
{completed}

## Usage Stats
- Total tokens: {totals.total_tokens}
- Estimated cost: ${totals.estimated_cost}
"""


def build_pr_title(backlog: Backlog) -> str:
    project = backlog.project or "Project"
    return f"feat: {project} - {backlog.description}"


def create_pull_request(
    backlog: Backlog,
    totals: SessionTotals,
    which: Callable[[str], str | None] = shutil.which,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> bool:
    """Create a pull request for the run's branch.

    Requires the ``gh`` CLI and a non-empty branch name in the backlog.

    Args:
        backlog: Backlog as it stands after the run
        totals: Usage totals for the PR body
        which: Executable lookup (injectable for tests)
        run: Subprocess runner (injectable for tests)

    Returns:
        True if the PR was created, False otherwise
    """
    if which("gh") is None:
        logger.warning("gh CLI not installed, skipping PR creation")
        return False

    if not backlog.branch_name:
        logger.warning("No branch name in prd.json, skipping PR creation")
        return False

    logger.info("Creating pull request...")

    try:
        result = run(
            [
                "gh",
                "pr",
                "create",
                "--title",
                build_pr_title(backlog),
                "--body",
                build_pr_body(backlog, totals),
            ],
            capture_output=True,
            text=True,
        )
    except OSError as e:
        logger.warning(f"Failed to create PR: {e}")
        return False

    if result.returncode != 0:
        logger.warning("Failed to create PR (may already exist or not on a branch)")
        if result.stderr:
            logger.debug(result.stderr.strip())
        return False

    if result.stdout:
        logger.info(result.stdout.strip())
    logger.log(SUCCESS, "Pull request created!")
    return True
