"""Data models for the Ralph loop.

Defines dataclasses for backlog stories, per-iteration outcomes and the
terminal status of a run. Backlog models are parsed from the prd.json
format written by the external agent.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class Task:
    """A user story from the backlog.

    ``passes`` is only ever flipped by the external agent; the loop reads it.
    """

    id: str
    title: str
    priority: int
    passes: bool = False
    notes: str = ""
    description: str = ""
    acceptance_criteria: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            priority=int(data.get("priority", 0)),
            passes=bool(data.get("passes", False)),
            notes=str(data.get("notes", "")),
            description=str(data.get("description", "")),
            acceptance_criteria=list(data.get("acceptanceCriteria", [])),
        )


@dataclass
class Backlog:
    """Ordered set of stories plus the run identity metadata.

    Attributes:
        project: Project name, used for PR titles
        branch_name: Run identity; a change triggers archiving of the previous run
        description: Free-form description of the feature set
        tasks: Stories in file order
    """

    project: str
    branch_name: str
    description: str
    tasks: list[Task] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Backlog":
        tasks = [Task.from_dict(item) for item in data.get("userStories", [])]
        seen: set[str] = set()
        for task in tasks:
            if task.id in seen:
                raise ValueError(f"Duplicate story id: {task.id}")
            seen.add(task.id)
        return cls(
            project=str(data.get("project") or ""),
            branch_name=str(data.get("branchName") or ""),
            description=str(data.get("description") or ""),
            tasks=tasks,
        )

    def get(self, task_id: str) -> Task | None:
        """Return the story with the given id, or None."""
        return next((t for t in self.tasks if t.id == task_id), None)

    @property
    def completed(self) -> list[Task]:
        return [t for t in self.tasks if t.passes]


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for a single worker invocation."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


class IterationStatus(str, Enum):
    """Resolved state of one iteration."""

    SUCCESS = "success"
    FAILED = "failed"
    COMPLETED = "completed"


@dataclass
class IterationOutcome:
    """Result of one iteration of the execution engine.

    Status values:
        success: Worker ran and made progress; loop continues
        failed: Retries exhausted or worker could not start; loop continues
        completed: Nothing eligible remains or the worker sent the sentinel

    ``task_id`` is None when the iteration found nothing to select.
    """

    iteration: int
    task_id: str | None
    status: IterationStatus
    raw_output: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    attempts: int = 0


class RunStatus(str, Enum):
    """Terminal status of a whole run."""

    COMPLETED = "completed"
    ALREADY_COMPLETE = "already_complete"
    BUDGET_EXCEEDED = "budget_exceeded"
    MAX_ITERATIONS = "max_iterations"

    @property
    def succeeded(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.ALREADY_COMPLETE)

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    @property
    def hook_status(self) -> str:
        """Status string handed to the on-complete hook."""
        if self.succeeded:
            return "success"
        if self is RunStatus.BUDGET_EXCEEDED:
            return "budget_exceeded"
        return "failed"
