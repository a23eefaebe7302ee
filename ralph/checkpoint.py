"""Checkpoint persistence for crash and interruption resume.

Provides RunState, the JSON-serializable snapshot of a run's cumulative
usage, and CheckpointStore which replaces the checkpoint file atomically
after every iteration.

The checkpoint is not authoritative for story progress (the backlog's
``passes`` flags are); it only lets a resumed run continue counting usage
and cost from where it stopped instead of from zero.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

from ralph.budget import SessionTotals

logger = logging.getLogger(__name__)


@dataclass
class RunState:
    """Persistent snapshot of run progress.

    Attributes:
        iteration: Last iteration that finished
        last_task_id: Story worked on in that iteration ("" if none)
        total_input_tokens: Cumulative input tokens
        total_output_tokens: Cumulative output tokens
        estimated_cost: Cumulative estimated USD cost
        session_id: Session that wrote the checkpoint
        saved_at: When the checkpoint was written (UTC)
    """

    iteration: int
    last_task_id: str
    total_input_tokens: int
    total_output_tokens: int
    estimated_cost: Decimal
    session_id: str
    saved_at: datetime

    @classmethod
    def capture(cls, iteration: int, last_task_id: str | None, totals: SessionTotals) -> "RunState":
        """Snapshot the current totals."""
        return cls(
            iteration=iteration,
            last_task_id=last_task_id or "",
            total_input_tokens=totals.input_tokens,
            total_output_tokens=totals.output_tokens,
            estimated_cost=totals.estimated_cost,
            session_id=totals.session_id,
            saved_at=datetime.now(timezone.utc).replace(microsecond=0),
        )

    def to_dict(self) -> dict:
        return {
            "lastIteration": self.iteration,
            "lastStory": self.last_task_id,
            "totalInputTokens": self.total_input_tokens,
            "totalOutputTokens": self.total_output_tokens,
            "estimatedCost": str(self.estimated_cost),
            "sessionId": self.session_id,
            "savedAt": self.saved_at.isoformat().replace("+00:00", "Z"),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RunState":
        saved_at = str(data.get("savedAt", ""))
        return cls(
            iteration=int(data.get("lastIteration", 0)),
            last_task_id=str(data.get("lastStory", "")),
            total_input_tokens=int(data.get("totalInputTokens", 0)),
            total_output_tokens=int(data.get("totalOutputTokens", 0)),
            estimated_cost=Decimal(str(data.get("estimatedCost", "0"))),
            session_id=str(data.get("sessionId", "")),
            saved_at=datetime.fromisoformat(saved_at.replace("Z", "+00:00")),
        )

    def restore_into(self, totals: SessionTotals) -> None:
        """Copy the cumulative counters into a session's totals.

        Only token and cost counters are restored; the session keeps its
        own identity.
        """
        totals.input_tokens = self.total_input_tokens
        totals.output_tokens = self.total_output_tokens
        totals.estimated_cost = self.estimated_cost


class CheckpointStore:
    """Reads and atomically writes the checkpoint file.

    Attributes:
        path: Location of the checkpoint JSON file
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def save(self, state: RunState) -> None:
        """Replace the checkpoint with the given state.

        Writes to a temporary file in the same directory and renames it over
        the checkpoint, so readers never see a partial file.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(state.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load(self) -> RunState | None:
        """Load the checkpoint if present and readable.

        Returns:
            RunState, or None if there is no checkpoint or it is corrupt
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise TypeError("checkpoint must contain a JSON object")
            return RunState.from_dict(data)
        except (OSError, ValueError, TypeError, InvalidOperation) as e:
            logger.warning(f"Ignoring unreadable checkpoint {self.path}: {e}")
            return None

    def delete(self) -> None:
        """Remove the checkpoint. Safe to call when none exists."""
        self.path.unlink(missing_ok=True)
