"""Configuration for the Ralph loop.

Provides an immutable run configuration with sensible defaults, loaded once
from an optional JSON config file and then overridden field-by-field by
explicit CLI flags. Also derives the fixed file layout of a workspace.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from ralph.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "ralph.config.json"

# JSON key -> dataclass field
_FILE_KEYS = {
    "maxIterations": "max_iterations",
    "maxRetries": "max_retries",
    "retryDelay": "retry_delay_seconds",
    "maxTokens": "max_tokens",
    "maxCost": "max_cost",
    "webhookUrl": "webhook_url",
    "slackWebhook": "slack_webhook_url",
    "createPrOnComplete": "create_pr_on_complete",
    "enableHooks": "hooks_enabled",
}


@dataclass(frozen=True)
class RalphConfig:
    """Configuration for one invocation of the loop.

    Zero for ``max_tokens`` or ``max_cost`` means no ceiling for that
    dimension. The instance never changes once the run starts; use
    with_overrides() to derive a new one.
    """

    # Loop limits
    max_iterations: int = 10
    max_retries: int = 3
    retry_delay_seconds: int = 5
    iteration_pause_seconds: float = 2

    # Budget ceilings
    max_tokens: int = 0
    max_cost: Decimal = Decimal("0")

    # Lifecycle integrations
    hooks_enabled: bool = True
    webhook_url: str = ""
    slack_webhook_url: str = ""
    create_pr_on_complete: bool = False

    # Worker
    worker_command: str = "claude"

    # Telemetry settings
    otlp_endpoint: str = field(
        default_factory=lambda: os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
    )
    service_name: str = "ralph"

    @classmethod
    def from_file(cls, path: Path) -> "RalphConfig":
        """Load config from a JSON file, falling back to defaults.

        Every key is optional. A missing file is not an error.

        Args:
            path: Path to the JSON config file

        Returns:
            RalphConfig with file values applied over defaults

        Raises:
            ConfigError: If the file is unreadable, not valid JSON, or a value has the wrong type
        """
        if not path.exists():
            logger.debug(f"No config file at {path}, using defaults")
            return cls()

        logger.debug(f"Loading config from {path}")
        try:
            raw = path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")

        values = {}
        for key, field_name in _FILE_KEYS.items():
            if key in data and data[key] is not None:
                values[field_name] = _coerce(field_name, data[key], path)

        config = cls(**values)
        logger.debug(
            f"Config loaded: maxIterations={config.max_iterations}, "
            f"maxRetries={config.max_retries}, maxTokens={config.max_tokens}"
        )
        return config

    def with_overrides(self, **overrides: Any) -> "RalphConfig":
        """Return a copy with the given fields replaced.

        None values are skipped so that flags the user did not pass never
        clobber config file values.
        """
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown config fields: {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    @property
    def token_limit_enabled(self) -> bool:
        return self.max_tokens > 0

    @property
    def cost_limit_enabled(self) -> bool:
        return self.max_cost > 0


def _coerce(field_name: str, value: Any, path: Path) -> Any:
    """Convert a raw JSON value to the type of the named config field."""
    try:
        if field_name == "max_cost":
            if isinstance(value, bool):
                raise TypeError
            return Decimal(str(value))
        if field_name in ("hooks_enabled", "create_pr_on_complete"):
            if not isinstance(value, bool):
                raise TypeError
            return value
        if field_name in ("webhook_url", "slack_webhook_url"):
            if not isinstance(value, str):
                raise TypeError
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError
        if value < 0:
            raise ValueError
        return value
    except (TypeError, ValueError, InvalidOperation) as e:
        raise ConfigError(
            f"Invalid value for {field_name} in {path}: {value!r}"
        ) from e


@dataclass(frozen=True)
class WorkspacePaths:
    """File layout of a loop workspace.

    All run artifacts live next to the backlog: instruction prompt, progress
    log, iteration logs, archives, checkpoint and hook scripts.
    """

    root: Path

    @property
    def backlog_file(self) -> Path:
        return self.root / "prd.json"

    @property
    def prompt_file(self) -> Path:
        return self.root / "prompt.md"

    @property
    def progress_file(self) -> Path:
        return self.root / "progress.txt"

    @property
    def archive_dir(self) -> Path:
        return self.root / "archive"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    @property
    def last_branch_file(self) -> Path:
        return self.root / ".last-branch"

    @property
    def checkpoint_file(self) -> Path:
        return self.root / ".ralph-state.json"

    @property
    def lock_file(self) -> Path:
        return self.root / ".ralph.lock"

    @property
    def hooks_dir(self) -> Path:
        return self.root / "hooks"

    @property
    def default_config_file(self) -> Path:
        return self.root / DEFAULT_CONFIG_NAME
