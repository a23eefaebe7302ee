"""Tests for terminal display."""

import io
from decimal import Decimal
from pathlib import Path

from rich.console import Console

from ralph.budget import SessionTotals
from ralph.config import RalphConfig, WorkspacePaths
from ralph.display import Display
from ralph.models import Backlog, Task


def make_display(quiet: bool = False) -> tuple[Display, io.StringIO]:
    out = io.StringIO()
    return Display(console=Console(file=out, width=120), quiet=quiet), out


class TestDisplay:
    """Tests for Display output."""

    def test_header_shows_limits_and_filters(self):
        display, out = make_display()
        config = RalphConfig(max_tokens=5000, max_cost=Decimal("2.5"))

        display.header(config, dry_run=True, skip=("US-003",), only=("US-001",))

        text = out.getvalue()
        assert "Token limit" in text and "5000" in text
        assert "$2.5" in text
        assert "DRY RUN" in text
        assert "US-003" in text
        assert "US-001" in text

    def test_backlog_status_marks(self):
        display, out = make_display()
        backlog = Backlog(
            project="p",
            branch_name="b",
            description="d",
            tasks=[
                Task(id="US-001", title="Done", priority=1, passes=True),
                Task(id="US-002", title="Skipped", priority=2),
                Task(id="US-003", title="Pending", priority=3),
            ],
        )

        display.backlog_status(backlog, skip=("US-002",))

        lines = out.getvalue().splitlines()
        assert any("✓" in line and "US-001" in line for line in lines)
        assert any("⊘" in line and "US-002" in line for line in lines)
        assert not any(("✓" in line or "⊘" in line) and "US-003" in line for line in lines)

    def test_quiet_suppresses_progress_output(self):
        display, out = make_display(quiet=True)

        display.header(RalphConfig())
        display.iteration_banner(1, 10)

        assert out.getvalue() == ""

    def test_summaries_print_even_when_quiet(self, tmp_path: Path):
        display, out = make_display(quiet=True)
        totals = SessionTotals(
            session_id="s", input_tokens=10, output_tokens=5, estimated_cost=Decimal("0.1")
        )

        display.usage_summary(totals)
        display.incomplete("reached max iterations (3) without completing all tasks", WorkspacePaths(tmp_path))

        text = out.getvalue()
        assert "$0.1" in text
        assert "reached max iterations" in text
        assert str(tmp_path / "logs") in text
