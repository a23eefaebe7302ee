"""Tests for budget tracking."""

from decimal import Decimal

from ralph.budget import BudgetStatus, SessionTotals, check_limits, check_totals
from ralph.config import RalphConfig
from ralph.models import TokenUsage


class TestSessionTotals:
    """Tests for SessionTotals accumulation."""

    def test_record_accumulates(self) -> None:
        totals = SessionTotals(session_id="s")

        totals.record(TokenUsage(input_tokens=100, output_tokens=10))
        totals.record(TokenUsage(input_tokens=50, output_tokens=5))

        assert totals.input_tokens == 150
        assert totals.output_tokens == 15
        assert totals.total_tokens == 165

    def test_record_returns_iteration_cost(self) -> None:
        totals = SessionTotals(session_id="s", estimated_cost=Decimal("1"))

        cost = totals.record(TokenUsage(input_tokens=1_000_000, output_tokens=0))

        assert cost == Decimal("3")
        assert totals.estimated_cost == Decimal("4")


class TestCheckLimits:
    """Tests for check_limits()."""

    def test_no_limits_configured(self) -> None:
        config = RalphConfig()

        status = check_limits(10**9, 10**9, Decimal("10000"), config)

        assert status is BudgetStatus.OK
        assert not status.exceeded

    def test_token_limit_is_inclusive(self) -> None:
        config = RalphConfig(max_tokens=1000)

        assert check_limits(600, 400, Decimal("0"), config) is BudgetStatus.TOKENS_EXCEEDED
        assert check_limits(600, 399, Decimal("0"), config) is BudgetStatus.OK

    def test_cost_limit_is_inclusive(self) -> None:
        config = RalphConfig(max_cost=Decimal("10.00"))

        assert check_limits(0, 0, Decimal("10.00"), config) is BudgetStatus.COST_EXCEEDED
        assert check_limits(0, 0, Decimal("9.999999"), config) is BudgetStatus.OK

    def test_zero_limit_disables_dimension(self) -> None:
        config = RalphConfig(max_tokens=0, max_cost=Decimal("1"))

        assert check_limits(10**9, 0, Decimal("0.5"), config) is BudgetStatus.OK

    def test_check_totals(self) -> None:
        config = RalphConfig(max_tokens=100)
        totals = SessionTotals(session_id="s", input_tokens=60, output_tokens=40)

        assert check_totals(totals, config).exceeded
