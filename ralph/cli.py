"""CLI for Ralph.

Runs the agent loop against the current workspace until every story in
prd.json passes, a budget ceiling is hit, or the iteration limit is reached.
"""

import sys
from pathlib import Path

import click
from rich.console import Console

from ralph.config import RalphConfig, WorkspacePaths
from ralph.display import Display
from ralph.errors import RalphError
from ralph.logging_setup import configure_logging
from ralph.runner import run
from ralph.telemetry import LoopMetrics, setup_telemetry

console = Console()


class RalphCommand(click.Command):
    """Command whose usage errors exit 1 instead of click's default 2."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.command(
    cls=RalphCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog="""\b
Examples:
  ralph                       Run with defaults
  ralph 20                    Run up to 20 iterations
  ralph --dry-run             Preview without executing
  ralph --skip US-003         Skip a specific story
  ralph --only US-001         Only run specific stories
  ralph --resume --create-pr  Resume and create a PR when done""",
)
@click.argument("legacy_iterations", required=False, type=int, metavar="[MAX_ITERATIONS]")
@click.option("-n", "--max-iterations", type=int, default=None, help="Maximum iterations (default: 10)")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ralph.config.json in the workspace)",
)
@click.option("--dry-run", is_flag=True, help="Show what would be done without executing")
@click.option("--skip", multiple=True, metavar="ID", help="Skip a story (repeatable)")
@click.option("--only", multiple=True, metavar="ID", help="Only run these stories (repeatable)")
@click.option("--resume", is_flag=True, help="Resume usage counters from the last checkpoint")
@click.option("--create-pr", is_flag=True, help="Create a PR when complete")
@click.option("--no-hooks", is_flag=True, help="Disable lifecycle hooks")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors")
@click.option(
    "-w",
    "--workspace",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory containing prd.json and prompt.md",
)
@click.version_option(package_name="ralph-loop")
def cli(
    legacy_iterations: int | None,
    max_iterations: int | None,
    config_path: Path | None,
    dry_run: bool,
    skip: tuple[str, ...],
    only: tuple[str, ...],
    resume: bool,
    create_pr: bool,
    no_hooks: bool,
    verbose: bool,
    quiet: bool,
    workspace: Path,
) -> None:
    """Ralph - autonomous agent loop.

    Invokes Claude once per iteration on the highest-priority pending story
    of prd.json until all stories pass.
    """
    configure_logging(verbose=verbose, quiet=quiet)
    paths = WorkspacePaths(workspace.resolve())

    try:
        config = RalphConfig.from_file(config_path or paths.default_config_file)
        config = config.with_overrides(
            max_iterations=max_iterations if max_iterations is not None else legacy_iterations,
            create_pr_on_complete=True if create_pr else None,
            hooks_enabled=False if no_hooks else None,
        )

        tracer, meter = setup_telemetry(config)
        result = run(
            paths,
            config,
            dry_run=dry_run,
            skip=skip,
            only=only,
            resume=resume,
            display=Display(console=console, quiet=quiet),
            tracer=tracer,
            metrics=LoopMetrics(meter),
        )
    except RalphError as e:
        console.print(f"[red]Error:[/red] {e}", soft_wrap=True)
        sys.exit(1)

    sys.exit(result.status.exit_code)


def main() -> None:
    """Main entry point for the ralph CLI."""
    cli()


if __name__ == "__main__":
    main()
