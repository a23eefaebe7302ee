"""Terminal output for the loop: header, backlog table, banners and summaries.

All output goes through a rich Console and is suppressed in quiet mode,
except for the final banners and usage summary which every terminal path
prints.
"""

from collections.abc import Collection

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ralph.budget import SessionTotals
from ralph.config import RalphConfig, WorkspacePaths
from ralph.models import Backlog


class Display:
    """Renders run progress to the terminal.

    Attributes:
        console: rich Console to print to
        quiet: Suppress everything but terminal summaries
    """

    def __init__(self, console: Console | None = None, quiet: bool = False) -> None:
        self.console = console or Console()
        self.quiet = quiet

    def header(
        self,
        config: RalphConfig,
        dry_run: bool = False,
        skip: Collection[str] = (),
        only: Collection[str] = (),
    ) -> None:
        if self.quiet:
            return

        lines = [
            f"Max iterations: [yellow]{config.max_iterations}[/yellow]",
            f"Max retries:    [yellow]{config.max_retries}[/yellow]",
        ]
        if config.token_limit_enabled:
            lines.append(f"Token limit:    [yellow]{config.max_tokens}[/yellow]")
        if config.cost_limit_enabled:
            lines.append(f"Cost limit:     [yellow]${config.max_cost}[/yellow]")
        if dry_run:
            lines.append("Mode:           [magenta]DRY RUN[/magenta]")
        if skip:
            lines.append(f"Skipping:       [yellow]{' '.join(skip)}[/yellow]")
        if only:
            lines.append(f"Only running:   [yellow]{' '.join(only)}[/yellow]")

        self.console.print(
            Panel("\n".join(lines), title="Ralph - Autonomous Agent Loop", border_style="green")
        )

    def backlog_status(self, backlog: Backlog, skip: Collection[str] = ()) -> None:
        """Print one row per story: passed, skipped or pending."""
        if self.quiet:
            return

        table = Table(title="Current PRD Status", title_justify="left")
        table.add_column("", width=3)
        table.add_column("Story")
        table.add_column("Title")
        table.add_column("Priority", justify="right")

        for task in backlog.tasks:
            if task.id in skip:
                mark = "[yellow]⊘[/yellow]"
            elif task.passes:
                mark = "[green]✓[/green]"
            else:
                mark = " "
            table.add_row(mark, task.id, task.title, str(task.priority))

        self.console.print(table)

    def iteration_banner(self, iteration: int, max_iterations: int) -> None:
        if self.quiet:
            return
        self.console.print()
        self.console.rule(f"[blue]Ralph Iteration {iteration} of {max_iterations}[/blue]")

    def usage_summary(self, totals: SessionTotals) -> None:
        table = Table(title="Usage Summary", title_justify="left", show_header=False)
        table.add_column("Metric")
        table.add_column("Value", justify="right", style="yellow")
        table.add_row("Total input tokens", str(totals.input_tokens))
        table.add_row("Total output tokens", str(totals.output_tokens))
        table.add_row("Estimated cost", f"${totals.estimated_cost}")
        self.console.print(table)

    def completed(self) -> None:
        self.console.print(
            Panel("Ralph completed all tasks!", border_style="green", expand=False)
        )

    def incomplete(self, reason: str, paths: WorkspacePaths) -> None:
        self.console.print(
            Panel(f"Ralph {reason}", border_style="red", expand=False)
        )
        self.console.print(f"Check logs at: {paths.logs_dir}")
        self.console.print(f"Check progress at: {paths.progress_file}")
