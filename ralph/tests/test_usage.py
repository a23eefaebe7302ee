"""Tests for usage extraction and cost estimation."""

from decimal import Decimal

from ralph.models import TokenUsage
from ralph.usage import estimate_cost, estimate_tokens, extract_usage


class TestExtractUsage:
    """Tests for extract_usage()."""

    def test_parses_reported_counts(self) -> None:
        output = "done\ninput tokens: 1200\noutput_tokens: 340\n"

        usage = extract_usage(output, prompt="ignored")

        assert usage == TokenUsage(input_tokens=1200, output_tokens=340)

    def test_last_match_wins(self) -> None:
        output = "input tokens: 10\noutput tokens: 5\ninput tokens: 99\noutput tokens 77\n"

        usage = extract_usage(output, prompt="")

        assert usage.input_tokens == 99
        assert usage.output_tokens == 77

    def test_case_insensitive(self) -> None:
        usage = extract_usage("Input Tokens: 8 Output Tokens: 4", prompt="")

        assert usage == TokenUsage(input_tokens=8, output_tokens=4)

    def test_falls_back_to_byte_estimate(self) -> None:
        prompt = "p" * 400
        output = "o" * 80

        usage = extract_usage(output, prompt)

        assert usage == TokenUsage(input_tokens=100, output_tokens=20)

    def test_zero_counts_fall_back_to_estimate(self) -> None:
        """A reported zero is treated the same as no report."""
        output = "input tokens: 0 output tokens: 0" + "x" * 100

        usage = extract_usage(output, prompt="p" * 40)

        assert usage.input_tokens == 10
        assert usage.output_tokens == len(output) // 4


class TestEstimates:
    """Tests for the byte heuristic and pricing."""

    def test_estimate_tokens_uses_utf8_bytes(self) -> None:
        # Each "é" is two bytes
        assert estimate_tokens("éééé") == 2

    def test_estimate_cost(self) -> None:
        usage = TokenUsage(input_tokens=1_000_000, output_tokens=1_000_000)

        assert estimate_cost(usage) == Decimal("18")

    def test_estimate_cost_is_exact_decimal(self) -> None:
        usage = TokenUsage(input_tokens=1, output_tokens=1)

        assert estimate_cost(usage) == Decimal("0.000018")
