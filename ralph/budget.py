"""Budget tracking for token and cost ceilings.

SessionTotals is the explicit, mutable usage state of a run. It is threaded
through the engine, restored from and saved to checkpoints, and checked
against the configured ceilings before every iteration.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ralph.config import RalphConfig
from ralph.models import TokenUsage
from ralph.usage import estimate_cost

logger = logging.getLogger(__name__)


@dataclass
class SessionTotals:
    """Cumulative usage for the current run.

    Attributes:
        session_id: Identity of the session that owns these counters
        input_tokens: Total input tokens across iterations
        output_tokens: Total output tokens across iterations
        estimated_cost: Total estimated USD cost
    """

    session_id: str
    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost: Decimal = Decimal("0")

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def record(self, usage: TokenUsage) -> Decimal:
        """Add one iteration's usage to the totals.

        Returns:
            Estimated cost of this iteration alone
        """
        cost = estimate_cost(usage)
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.estimated_cost += cost
        logger.debug(
            f"Tokens this iteration: input={usage.input_tokens}, "
            f"output={usage.output_tokens}, cost=${cost}"
        )
        return cost


class BudgetStatus(str, Enum):
    OK = "ok"
    TOKENS_EXCEEDED = "tokens_exceeded"
    COST_EXCEEDED = "cost_exceeded"

    @property
    def exceeded(self) -> bool:
        return self is not BudgetStatus.OK


def check_limits(
    input_tokens: int,
    output_tokens: int,
    estimated_cost: Decimal,
    config: RalphConfig,
) -> BudgetStatus:
    """Check cumulative usage against the configured ceilings.

    Called before an iteration starts, never after, so the loop can stop
    before spending more. Both comparisons are inclusive: reaching a ceiling
    exactly counts as exceeding it. A ceiling of zero is disabled.
    """
    if config.token_limit_enabled:
        total = input_tokens + output_tokens
        if total >= config.max_tokens:
            logger.warning(f"Token limit reached: {total} >= {config.max_tokens}")
            return BudgetStatus.TOKENS_EXCEEDED

    if config.cost_limit_enabled and estimated_cost >= config.max_cost:
        logger.warning(f"Cost limit reached: ${estimated_cost} >= ${config.max_cost}")
        return BudgetStatus.COST_EXCEEDED

    return BudgetStatus.OK


def check_totals(totals: SessionTotals, config: RalphConfig) -> BudgetStatus:
    """check_limits() for a SessionTotals value."""
    return check_limits(
        totals.input_tokens, totals.output_tokens, totals.estimated_cost, config
    )
