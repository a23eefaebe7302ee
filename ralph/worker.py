"""Worker invocation.

The worker is the external coding agent. It reads a prompt, does its work,
and updates the backlog file as a side effect. The loop only sees its exit
code and combined output.
"""

import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkerResult:
    """Exit status and combined stdout/stderr of one worker run."""

    exit_code: int
    output: str


class Worker(Protocol):
    def run(self, prompt: str, task_id: str) -> WorkerResult: ...


def build_prompt(instructions: str, task_id: str) -> str:
    """Append the target story to the static instruction document."""
    return f"{instructions}\n\nCurrent target story: {task_id}\n"


@dataclass
class ClaudeWorker:
    """Runs the Claude CLI as a blocking subprocess.

    Output is captured while each line is also forwarded to ``echo`` (stderr
    by default) as it arrives, so the operator can watch the agent live.
    No timeout is imposed; the worker runs until it exits.

    Attributes:
        command: Executable name or path of the CLI
        cwd: Working directory for the agent
        echo: Stream that receives the live copy of the output
    """

    command: str = "claude"
    cwd: Path | None = None
    echo: TextIO | None = None

    def build_command(self, prompt: str) -> list[str]:
        return [self.command, "-p", prompt, "--dangerously-skip-permissions"]

    def run(self, prompt: str, task_id: str) -> WorkerResult:
        echo = self.echo or sys.stderr
        try:
            process = subprocess.Popen(
                self.build_command(prompt),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                cwd=self.cwd,
            )
        except FileNotFoundError:
            return WorkerResult(exit_code=127, output=f"{self.command}: command not found")
        except PermissionError:
            return WorkerResult(exit_code=126, output=f"{self.command}: permission denied")

        chunks: list[str] = []
        # stdout is always set when PIPE is used
        assert process.stdout is not None
        with process.stdout:
            for line in process.stdout:
                chunks.append(line)
                echo.write(line)
                echo.flush()

        exit_code = process.wait()
        return WorkerResult(exit_code=exit_code, output="".join(chunks))


@dataclass
class DryRunWorker:
    """Stand-in worker that never starts a process and always succeeds."""

    def run(self, prompt: str, task_id: str) -> WorkerResult:
        logger.info(f"[DRY RUN] Would execute Claude with story {task_id}")
        return WorkerResult(exit_code=0, output=f"[DRY RUN] Simulated output for {task_id}")
