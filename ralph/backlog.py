"""Read-only access to the backlog file.

The external agent rewrites prd.json between (and during) iterations, so the
store never caches: every load() is a fresh read of the file.
"""

import json
import logging
from pathlib import Path

from ralph.errors import BacklogError
from ralph.models import Backlog

logger = logging.getLogger(__name__)


class BacklogStore:
    """View over the persisted backlog.

    Attributes:
        path: Location of the prd.json file
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Backlog:
        """Read and parse the backlog file.

        Returns:
            Backlog reflecting the file contents at the time of the call

        Raises:
            BacklogError: If the file is missing, unreadable, not JSON or malformed
        """
        try:
            raw = self.path.read_text()
        except FileNotFoundError as e:
            raise BacklogError(f"Backlog not found at {self.path}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise BacklogError(f"Cannot read backlog {self.path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BacklogError(f"Backlog {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise BacklogError(f"Backlog {self.path} must contain a JSON object")

        try:
            return Backlog.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise BacklogError(f"Backlog {self.path} is malformed: {e}") from e

    def branch_name(self) -> str:
        """Run identity of the current backlog, or "" if unreadable."""
        try:
            return self.load().branch_name
        except BacklogError as e:
            logger.debug(f"Could not read branch name: {e}")
            return ""
