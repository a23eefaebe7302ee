"""Execution engine for a single loop iteration.

One iteration moves through Selecting -> Invoking -> (Retrying <-> Invoking)
-> Resolved{success, failed, completed}:

- Selecting: pick the next eligible story from a fresh backlog read.
  Nothing eligible resolves ``completed`` straight away.
- Invoking: run the pre-iteration hook, build the prompt, run the worker.
- Retrying: transient failures are retried up to ``max_retries`` attempts.
  Rate-limit failures double the backoff delay; other failures reuse it.
- Resolved: the completion sentinel in successful output resolves
  ``completed``; exhausted retries resolve ``failed``.

Every invoked iteration then records usage, writes its log record, runs the
post-iteration hook and saves a checkpoint before returning.
"""

import logging
import time
from collections.abc import Collection
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from opentelemetry import trace

from ralph.backlog import BacklogStore
from ralph.budget import SessionTotals
from ralph.checkpoint import CheckpointStore, RunState
from ralph.classifier import (
    DEFAULT_RULES,
    AttemptClass,
    ClassifierRules,
    classify_attempt,
    has_completion_sentinel,
)
from ralph.config import RalphConfig
from ralph.errors import BacklogError
from ralph.hooks import HookDispatcher, PostIterationContext, PreIterationContext
from ralph.models import IterationOutcome, IterationStatus, Task
from ralph.selector import select_next
from ralph.session_log import SessionLog
from ralph.telemetry import LoopMetrics
from ralph.usage import extract_usage
from ralph.worker import Worker, WorkerResult, build_prompt

logger = logging.getLogger(__name__)


@dataclass
class AttemptLog:
    """What happened across the attempts of one iteration."""

    result: WorkerResult | None = None
    classes: list[AttemptClass] = field(default_factory=list)
    delays: list[float] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        return len(self.classes)

    @property
    def succeeded(self) -> bool:
        return bool(self.classes) and self.classes[-1] is AttemptClass.SUCCESS


@dataclass
class ExecutionEngine:
    """Runs iterations against the backlog.

    Attributes:
        config: Run configuration
        backlog: Backlog store, re-read at the start of every iteration
        worker: Worker invoked once per attempt
        prompt_file: Static instruction document prepended to every prompt
        hooks: Lifecycle hook dispatcher
        checkpoints: Checkpoint store written after every iteration
        session_log: Log writer for iteration records
        skip: Story ids never selected
        only: If non-empty, the only story ids eligible
        dry_run: Treat every attempt as successful regardless of output
        rules: Attempt classification rules
        sleep: Sleep function used for backoff (injectable for tests)
        tracer: OpenTelemetry tracer
        metrics: Metric instruments, or None when telemetry is off
    """

    config: RalphConfig
    backlog: BacklogStore
    worker: Worker
    prompt_file: Path
    hooks: HookDispatcher
    checkpoints: CheckpointStore
    session_log: SessionLog
    skip: Collection[str] = ()
    only: Collection[str] = ()
    dry_run: bool = False
    rules: ClassifierRules = DEFAULT_RULES
    sleep: Callable[[float], None] = time.sleep
    tracer: trace.Tracer = field(default_factory=lambda: trace.get_tracer("ralph"))
    metrics: LoopMetrics | None = None

    def run_iteration(self, iteration: int, totals: SessionTotals) -> IterationOutcome:
        """Run one iteration and record its outcome.

        Args:
            iteration: 1-based iteration number
            totals: Session usage state, updated in place

        Returns:
            IterationOutcome describing how the iteration resolved
        """
        with self.tracer.start_as_current_span("ralph.iteration") as span:
            span.set_attribute("iteration.number", iteration)
            start_time = time.monotonic()

            try:
                task = select_next(self.backlog.load(), self.skip, self.only)
            except BacklogError as e:
                logger.error(f"Cannot read backlog: {e}")
                span.set_attribute("iteration.status", IterationStatus.FAILED.value)
                return IterationOutcome(
                    iteration=iteration, task_id=None, status=IterationStatus.FAILED
                )

            if task is None:
                logger.info("No more stories to process")
                span.set_attribute("iteration.status", IterationStatus.COMPLETED.value)
                return IterationOutcome(
                    iteration=iteration, task_id=None, status=IterationStatus.COMPLETED
                )

            span.set_attribute("task.id", task.id)
            try:
                instructions = self.prompt_file.read_text()
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Cannot read prompt {self.prompt_file}: {e}")
                span.set_attribute("iteration.status", IterationStatus.FAILED.value)
                return IterationOutcome(
                    iteration=iteration, task_id=task.id, status=IterationStatus.FAILED
                )

            outcome = self._invoke(iteration, task, instructions, totals)

            span.set_attribute("iteration.status", outcome.status.value)
            span.set_attribute("iteration.attempts", outcome.attempts)
            self._record_metrics(outcome, time.monotonic() - start_time)
            return outcome

    def _invoke(
        self, iteration: int, task: Task, instructions: str, totals: SessionTotals
    ) -> IterationOutcome:
        logger.info(f"Working on story: {task.id}")
        self.hooks.invoke(PreIterationContext(iteration=iteration))

        prompt = build_prompt(instructions, task.id)
        attempts = self.run_attempts(prompt, task.id)
        output = attempts.result.output if attempts.result else ""

        if not attempts.succeeded:
            status = IterationStatus.FAILED
            logger.error(f"Iteration {iteration} failed after {attempts.attempts} attempt(s)")
        elif has_completion_sentinel(output):
            status = IterationStatus.COMPLETED
        else:
            status = IterationStatus.SUCCESS

        outcome = IterationOutcome(
            iteration=iteration,
            task_id=task.id,
            status=status,
            raw_output=output,
            usage=extract_usage(output, prompt),
            attempts=attempts.attempts,
        )

        cost = totals.record(outcome.usage)
        if self.metrics is not None:
            self.metrics.cost.add(float(cost))
        self.session_log.record_iteration(outcome, cost)

        hook_status = "failed" if status is IterationStatus.FAILED else "success"
        self.hooks.invoke(
            PostIterationContext(iteration=iteration, status=hook_status, story_id=task.id)
        )

        self.checkpoints.save(RunState.capture(iteration, task.id, totals))
        return outcome

    def run_attempts(self, prompt: str, task_id: str) -> AttemptLog:
        """Invoke the worker until it succeeds or the retry budget is spent.

        The backoff delay starts at ``retry_delay_seconds`` for every
        iteration. It doubles after each rate-limit failure; a plain failure
        sleeps the current delay unchanged. No sleep follows the last attempt.
        """
        max_attempts = max(1, self.config.max_retries)
        delay: float = self.config.retry_delay_seconds
        log = AttemptLog()

        while log.attempts < max_attempts:
            log.result = self.worker.run(prompt, task_id)
            if self.dry_run:
                kind = AttemptClass.SUCCESS
            else:
                kind = classify_attempt(log.result.exit_code, log.result.output, self.rules)
            log.classes.append(kind)

            if kind is AttemptClass.SUCCESS:
                break
            if kind is AttemptClass.FATAL:
                logger.error(f"Worker cannot run: {log.result.output.strip()}")
                break

            if kind is AttemptClass.TRANSIENT_RATE_LIMIT:
                logger.warning("Rate limited or API error detected")
            else:
                logger.warning(f"Claude execution failed (exit {log.result.exit_code})")

            if self.metrics is not None:
                self.metrics.retries.add(1, {"kind": kind.value})

            if log.attempts >= max_attempts:
                break

            if kind is AttemptClass.TRANSIENT_RATE_LIMIT:
                delay *= 2
            logger.warning(f"Retry {log.attempts} of {max_attempts} after {delay}s delay...")
            log.delays.append(delay)
            self.sleep(delay)

        return log

    def _record_metrics(self, outcome: IterationOutcome, duration: float) -> None:
        if self.metrics is None:
            return
        self.metrics.iterations.add(1, {"status": outcome.status.value})
        self.metrics.tokens.add(outcome.usage.input_tokens, {"direction": "input"})
        self.metrics.tokens.add(outcome.usage.output_tokens, {"direction": "output"})
        self.metrics.iteration_duration.record(duration)
