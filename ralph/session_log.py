"""Per-session and per-iteration log files.

Every run gets a session log with one summary line per iteration, and every
iteration gets its own file holding the full worker output plus the usage
recorded for it.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from ralph.models import IterationOutcome

RULE = "═" * 59


def new_session_id(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d_%H%M%S")


class SessionLog:
    """Writes the log files of one session.

    Attributes:
        logs_dir: Directory holding all log files
        session_id: Session identity, used in file names
    """

    def __init__(self, logs_dir: Path, session_id: str) -> None:
        self.logs_dir = logs_dir
        self.session_id = session_id

    @property
    def session_file(self) -> Path:
        return self.logs_dir / f"session_{self.session_id}.log"

    def iteration_file(self, iteration: int) -> Path:
        return self.logs_dir / f"iteration_{self.session_id}_{iteration}.log"

    def start(self, max_iterations: int, max_retries: int) -> None:
        """Create the session log with its header."""
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        lines = [
            RULE,
            "Ralph Session Log",
            f"Started: {datetime.now():%a %b %d %H:%M:%S %Y}",
            f"Session ID: {self.session_id}",
            f"Config: MAX_ITERATIONS={max_iterations}, MAX_RETRIES={max_retries}",
            RULE,
            "",
        ]
        self.session_file.write_text("\n".join(lines) + "\n")

    def record_iteration(self, outcome: IterationOutcome, cost: Decimal) -> Path:
        """Write the full record of one iteration.

        Returns:
            Path of the iteration log file
        """
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        story = outcome.task_id or "-"
        path = self.iteration_file(outcome.iteration)
        lines = [
            RULE,
            f"Iteration: {outcome.iteration}",
            f"Story: {story}",
            f"Status: {outcome.status.value}",
            f"Attempts: {outcome.attempts}",
            f"Timestamp: {datetime.now():%a %b %d %H:%M:%S %Y}",
            RULE,
            "",
            outcome.raw_output,
            "",
            f"Input tokens: {outcome.usage.input_tokens}",
            f"Output tokens: {outcome.usage.output_tokens}",
            f"Estimated cost: ${cost}",
        ]
        path.write_text("\n".join(lines) + "\n")

        with open(self.session_file, "a") as f:
            f.write(f"--- Iteration {outcome.iteration}: {story} - {outcome.status.value} ---\n")

        return path
