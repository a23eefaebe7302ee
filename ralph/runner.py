"""Orchestrator for a whole Ralph run.

Composes prerequisite checks, the workspace lock, archiving, resume, the
bounded iteration loop and the terminal reporting (banners, pull request,
notifications, on-complete hook) into one call.
"""

import logging
import time
from collections.abc import Collection
from dataclasses import dataclass
from typing import Callable

from opentelemetry import trace

from ralph.archive import ArchiveManager, init_progress_file
from ralph.backlog import BacklogStore
from ralph.budget import BudgetStatus, SessionTotals, check_totals
from ralph.checkpoint import CheckpointStore
from ralph.config import RalphConfig, WorkspacePaths
from ralph.display import Display
from ralph.engine import ExecutionEngine
from ralph.environment import validate_environment
from ralph.errors import BacklogError
from ralph.hooks import CompletionContext, HookDispatcher
from ralph.lock import RunLock
from ralph.logging_setup import SUCCESS
from ralph.models import Backlog, IterationStatus, RunStatus
from ralph.notifications import NotificationDispatcher, Severity
from ralph.pull_request import create_pull_request
from ralph.selector import is_complete
from ralph.session_log import SessionLog, new_session_id
from ralph.telemetry import LoopMetrics
from ralph.worker import ClaudeWorker, DryRunWorker, Worker

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of a run.

    Status values:
        completed: The backlog finished during this run
        already_complete: Nothing was left to do at start
        budget_exceeded: A token or cost ceiling stopped the run
        max_iterations: The iteration ceiling was reached with work left
    """

    status: RunStatus
    iterations_run: int
    totals: SessionTotals
    budget: BudgetStatus = BudgetStatus.OK


def run_loop(
    engine: ExecutionEngine,
    totals: SessionTotals,
    display: Display,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Run iterations until completion, budget exhaustion or the ceiling.

    The budget is checked before every iteration, so an exhausted budget
    never pays for another worker call. A failed iteration does not stop
    the run.

    Args:
        engine: Execution engine for single iterations
        totals: Session usage state, updated in place
        display: Terminal output
        sleep: Sleep function for inter-iteration pacing

    Returns:
        RunResult with the terminal status of the loop
    """
    config = engine.config
    iterations_run = 0

    for iteration in range(1, config.max_iterations + 1):
        display.iteration_banner(iteration, config.max_iterations)

        budget = check_totals(totals, config)
        if budget.exceeded:
            logger.error("Token or cost limit exceeded. Stopping.")
            return RunResult(RunStatus.BUDGET_EXCEEDED, iterations_run, totals, budget)

        outcome = engine.run_iteration(iteration, totals)
        iterations_run = iteration

        if outcome.status is IterationStatus.COMPLETED:
            logger.log(SUCCESS, "All stories complete!")
            return RunResult(RunStatus.COMPLETED, iterations_run, totals)

        if outcome.status is IterationStatus.FAILED:
            logger.warning("Iteration failed, continuing to next...")

        # The worker may have finished the backlog without saying so
        if _backlog_complete(engine):
            logger.log(SUCCESS, "All stories complete!")
            return RunResult(RunStatus.COMPLETED, iterations_run, totals)

        logger.info(f"Iteration {iteration} complete. Continuing...")
        if iteration < config.max_iterations:
            sleep(config.iteration_pause_seconds)

    logger.warning(f"Reached max iterations ({config.max_iterations})")
    return RunResult(RunStatus.MAX_ITERATIONS, iterations_run, totals)


def _backlog_complete(engine: ExecutionEngine) -> bool:
    try:
        backlog = engine.backlog.load()
    except BacklogError as e:
        logger.warning(f"Could not re-check backlog: {e}")
        return False
    return is_complete(backlog, engine.skip, engine.only)


def run(
    paths: WorkspacePaths,
    config: RalphConfig,
    dry_run: bool = False,
    skip: Collection[str] = (),
    only: Collection[str] = (),
    resume: bool = False,
    worker: Worker | None = None,
    display: Display | None = None,
    notifier: NotificationDispatcher | None = None,
    tracer: trace.Tracer | None = None,
    metrics: LoopMetrics | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Run the loop against a workspace.

    Args:
        paths: Workspace layout
        config: Effective configuration (file values plus CLI overrides)
        dry_run: Simulate the worker instead of running it
        skip: Story ids never selected
        only: If non-empty, the only story ids eligible
        resume: Restore usage counters from the last checkpoint
        worker: Worker to use (defaults to the Claude CLI, or the dry-run worker)
        display: Terminal output (defaults to a fresh rich Console)
        notifier: Notification dispatcher (defaults to the configured webhooks)
        tracer: OpenTelemetry tracer (uses the global tracer if None)
        metrics: Metric instruments, or None to record nothing
        sleep: Sleep function for backoff and pacing (injectable for tests)

    Returns:
        RunResult with the terminal status

    Raises:
        PrerequisiteError: If the worker CLI, backlog or prompt is missing
        LockHeldError: If another loop is running in the workspace
        BacklogError: If the backlog cannot be read at start
    """
    validate_environment(paths, config.worker_command, require_worker=not dry_run)

    with RunLock(paths.lock_file):
        return _run_locked(
            paths,
            config,
            dry_run=dry_run,
            skip=skip,
            only=only,
            resume=resume,
            worker=worker,
            display=display or Display(),
            notifier=notifier
            or NotificationDispatcher.from_urls(config.slack_webhook_url, config.webhook_url),
            tracer=tracer or trace.get_tracer("ralph"),
            metrics=metrics,
            sleep=sleep,
        )


def _run_locked(
    paths: WorkspacePaths,
    config: RalphConfig,
    *,
    dry_run: bool,
    skip: Collection[str],
    only: Collection[str],
    resume: bool,
    worker: Worker | None,
    display: Display,
    notifier: NotificationDispatcher,
    tracer: trace.Tracer,
    metrics: LoopMetrics | None,
    sleep: Callable[[float], None],
) -> RunResult:
    backlog_store = BacklogStore(paths.backlog_file)
    ArchiveManager(paths).prepare(backlog_store.branch_name())
    init_progress_file(paths.progress_file)

    session_id = new_session_id()
    totals = SessionTotals(session_id=session_id)
    session_log = SessionLog(paths.logs_dir, session_id)
    session_log.start(config.max_iterations, config.max_retries)

    checkpoints = CheckpointStore(paths.checkpoint_file)
    if resume:
        state = checkpoints.load()
        if state is None:
            logger.warning("No checkpoint found, starting fresh")
        else:
            state.restore_into(totals)
            logger.info(
                f"Resuming after iteration {state.iteration} "
                f"(session {state.session_id}, {totals.total_tokens} tokens so far)"
            )

    hooks = HookDispatcher(paths.hooks_dir, enabled=config.hooks_enabled)

    display.header(config, dry_run, skip, only)
    backlog = backlog_store.load()
    display.backlog_status(backlog, skip)

    with tracer.start_as_current_span("ralph.run") as span:
        span.set_attribute("session.id", session_id)
        span.set_attribute("run.dry_run", dry_run)

        if is_complete(backlog, skip, only):
            logger.log(SUCCESS, "All stories already complete!")
            display.usage_summary(totals)
            result = RunResult(RunStatus.ALREADY_COMPLETE, 0, totals)
            _invoke_completion_hook(hooks, result)
            span.set_attribute("run.status", result.status.value)
            return result

        if worker is None:
            worker = (
                DryRunWorker()
                if dry_run
                else ClaudeWorker(command=config.worker_command, cwd=paths.root)
            )

        engine = ExecutionEngine(
            config=config,
            backlog=backlog_store,
            worker=worker,
            prompt_file=paths.prompt_file,
            hooks=hooks,
            checkpoints=checkpoints,
            session_log=session_log,
            skip=skip,
            only=only,
            dry_run=dry_run,
            sleep=sleep,
            tracer=tracer,
            metrics=metrics,
        )

        result = run_loop(engine, totals, display, sleep)

        span.set_attribute("run.status", result.status.value)
        span.set_attribute("run.iterations", result.iterations_run)
        span.set_attribute("run.total_tokens", totals.total_tokens)

        _report(result, paths, config, backlog_store, display, notifier, skip)
        _invoke_completion_hook(hooks, result)
        return result


def _report(
    result: RunResult,
    paths: WorkspacePaths,
    config: RalphConfig,
    backlog_store: BacklogStore,
    display: Display,
    notifier: NotificationDispatcher,
    skip: Collection[str],
) -> None:
    """Print the terminal summary, then create the PR and notify."""
    if result.status is RunStatus.COMPLETED:
        display.completed()
    elif result.status is RunStatus.BUDGET_EXCEEDED:
        display.incomplete("stopped due to token/cost limit", paths)
    else:
        display.incomplete(
            f"reached max iterations ({config.max_iterations}) without completing all tasks",
            paths,
        )

    backlog = _final_backlog(backlog_store)
    if backlog is not None:
        display.backlog_status(backlog, skip)
    display.usage_summary(result.totals)

    if result.status is RunStatus.COMPLETED:
        if config.create_pr_on_complete and backlog is not None:
            create_pull_request(backlog, result.totals)
        notifier.notify("Ralph Complete", "All stories finished successfully", Severity.SUCCESS)
    elif result.status is RunStatus.BUDGET_EXCEEDED:
        notifier.notify("Ralph", "Stopped due to token/cost limit", Severity.WARNING)
    else:
        notifier.notify(
            "Ralph Incomplete",
            f"Reached max iterations ({config.max_iterations})",
            Severity.WARNING,
        )


def _final_backlog(backlog_store: BacklogStore) -> Backlog | None:
    try:
        return backlog_store.load()
    except BacklogError as e:
        logger.warning(f"Could not read final backlog status: {e}")
        return None


def _invoke_completion_hook(hooks: HookDispatcher, result: RunResult) -> None:
    hooks.invoke(
        CompletionContext(
            status=result.status.hook_status,
            total_tokens=result.totals.total_tokens,
            estimated_cost=result.totals.estimated_cost,
        )
    )
