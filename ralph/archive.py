"""Archiving of previous runs.

When the backlog's branch name (the run identity) changes between
invocations, the artifacts of the previous run are copied into a dated
archive folder and the live progress log and checkpoint are reset.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable

from ralph.config import WorkspacePaths
from ralph.logging_setup import SUCCESS

logger = logging.getLogger(__name__)

PROGRESS_HEADER = "# Ralph Progress Log"

# Stripped from branch names when naming archive folders
BRANCH_PREFIX = "ralph/"


def write_progress_header(path: Path, now: datetime | None = None) -> None:
    """Start a fresh progress log, replacing any existing one."""
    now = now or datetime.now()
    path.write_text(f"{PROGRESS_HEADER}\nStarted: {now:%a %b %d %H:%M:%S %Y}\n---\n")


def init_progress_file(path: Path) -> None:
    """Create the progress log with its header if it does not exist yet."""
    if not path.exists():
        write_progress_header(path)


class ArchiveManager:
    """Detects a change of run identity and archives the previous run.

    Attributes:
        paths: Workspace layout
        clock: Callable returning the current time (injectable for tests)
    """

    def __init__(
        self,
        paths: WorkspacePaths,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.paths = paths
        self.clock = clock

    def read_last_identity(self) -> str:
        """Return the identity recorded by the previous invocation, or ""."""
        try:
            return self.paths.last_branch_file.read_text().strip()
        except FileNotFoundError:
            return ""

    def record_identity(self, identity: str) -> None:
        """Remember the current identity for the next invocation."""
        if identity:
            self.paths.last_branch_file.write_text(identity + "\n")

    def maybe_archive(self, current: str, last: str) -> Path | None:
        """Archive the previous run if the identity changed.

        No-op unless both identities are non-empty and they differ.

        Args:
            current: Branch name of the backlog about to run
            last: Branch name recorded by the previous invocation

        Returns:
            Path of the created archive folder, or None if nothing was archived
        """
        if not current or not last or current == last:
            return None

        folder_name = last.removeprefix(BRANCH_PREFIX).replace("/", "-")
        archive_folder = self.paths.archive_dir / f"{self.clock():%Y-%m-%d}-{folder_name}"

        logger.info(f"Archiving previous run: {last}")
        archive_folder.mkdir(parents=True, exist_ok=True)

        for source in (
            self.paths.backlog_file,
            self.paths.progress_file,
            self.paths.checkpoint_file,
        ):
            self._copy_file(source, archive_folder)
        self._copy_dir(self.paths.logs_dir, archive_folder)

        logger.log(SUCCESS, f"Archived to: {archive_folder}")

        # Fresh state for the new run
        write_progress_header(self.paths.progress_file, self.clock())
        self.paths.checkpoint_file.unlink(missing_ok=True)

        return archive_folder

    def prepare(self, current: str) -> Path | None:
        """Archive if needed, then record the current identity."""
        archived = self.maybe_archive(current, self.read_last_identity())
        self.record_identity(current)
        return archived

    def _copy_file(self, source: Path, dest_dir: Path) -> None:
        if not source.is_file():
            return
        try:
            shutil.copy2(source, dest_dir / source.name)
        except OSError as e:
            logger.warning(f"Could not archive {source}: {e}")

    def _copy_dir(self, source: Path, dest_dir: Path) -> None:
        if not source.is_dir():
            return
        try:
            shutil.copytree(source, dest_dir / source.name, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            logger.warning(f"Could not archive {source}: {e}")
