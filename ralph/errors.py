"""Shared error types for the ralph package."""


class RalphError(Exception):
    """Base exception for ralph errors.

    Use this for user-facing errors that should have actionable messages.
    """

    pass


class ConfigError(RalphError):
    """Raised when the config file cannot be read or has invalid values."""

    pass


class PrerequisiteError(RalphError):
    """Raised before the first iteration when a required tool or file is missing."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("Missing prerequisites:\n" + "\n".join(f"  - {p}" for p in problems))


class BacklogError(RalphError):
    """Raised when the backlog file is missing or not valid JSON."""

    pass


class LockHeldError(RalphError):
    """Raised when another loop already drives this workspace."""

    pass
