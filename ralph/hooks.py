"""Lifecycle hooks for the Ralph loop.

Hooks are optional executables in the workspace ``hooks/`` directory. Each
hook receives a typed context, passed both as environment variables and as
a JSON object on stdin. Hook failures are advisory: they are logged as
warnings and never stop the run.
"""

import json
import logging
import os
import subprocess
from dataclasses import asdict, dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class HookName(str, Enum):
    PRE_ITERATION = "pre-iteration"
    POST_ITERATION = "post-iteration"
    ON_COMPLETE = "on-complete"


@dataclass(frozen=True)
class PreIterationContext:
    iteration: int

    hook = HookName.PRE_ITERATION

    def to_env(self) -> dict[str, str]:
        return {"ITERATION": str(self.iteration)}


@dataclass(frozen=True)
class PostIterationContext:
    iteration: int
    status: str
    story_id: str

    hook = HookName.POST_ITERATION

    def to_env(self) -> dict[str, str]:
        return {
            "ITERATION": str(self.iteration),
            "STATUS": self.status,
            "STORY_ID": self.story_id,
        }


@dataclass(frozen=True)
class CompletionContext:
    status: str
    total_tokens: int
    estimated_cost: Decimal

    hook = HookName.ON_COMPLETE

    def to_env(self) -> dict[str, str]:
        return {
            "STATUS": self.status,
            "TOTAL_TOKENS": str(self.total_tokens),
            "ESTIMATED_COST": str(self.estimated_cost),
        }


HookContext = PreIterationContext | PostIterationContext | CompletionContext


class HookDispatcher:
    """Runs lifecycle hook scripts.

    Missing or non-executable hook files are skipped silently. A hook that
    exits non-zero, cannot be started or times out is logged as a warning.

    Attributes:
        hooks_dir: Directory containing ``<hook-name>.sh`` executables
        enabled: When False, no hook is ever run
        timeout: Seconds a hook may run before it is abandoned (None = no limit)
    """

    def __init__(
        self,
        hooks_dir: Path,
        enabled: bool = True,
        timeout: float | None = 300,
    ) -> None:
        self.hooks_dir = hooks_dir
        self.enabled = enabled
        self.timeout = timeout

    def hook_path(self, name: HookName) -> Path:
        return self.hooks_dir / f"{name.value}.sh"

    def invoke(self, context: HookContext) -> bool:
        """Run the hook matching the context, if one is installed.

        Returns:
            True if the hook ran and exited zero, False otherwise (including
            when it was skipped)
        """
        if not self.enabled:
            return False

        path = self.hook_path(context.hook)
        if not path.is_file() or not os.access(path, os.X_OK):
            return False

        logger.debug(f"Running {context.hook.value} hook")
        env = {**os.environ, **context.to_env()}
        payload = json.dumps({"hook": context.hook.value, **asdict(context)}, default=str)

        try:
            result = subprocess.run(
                [str(path)],
                input=payload,
                env=env,
                cwd=self.hooks_dir.parent,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"{_title(context.hook)} hook timed out")
            return False
        except OSError as e:
            logger.warning(f"{_title(context.hook)} hook failed: {e}")
            return False

        if result.returncode != 0:
            logger.warning(f"{_title(context.hook)} hook failed (exit {result.returncode})")
            if result.stderr:
                logger.debug(result.stderr.strip())
            return False

        return True


def _title(name: HookName) -> str:
    return name.value.replace("-", " ").capitalize()
