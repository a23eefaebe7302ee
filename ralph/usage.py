"""Token usage extraction and cost estimation for worker output."""

import re
from decimal import Decimal

from ralph.models import TokenUsage

# Sonnet list pricing, USD per token
PRICE_PER_INPUT_TOKEN = Decimal("0.000003")
PRICE_PER_OUTPUT_TOKEN = Decimal("0.000015")

# Roughly four bytes of text per token
BYTES_PER_TOKEN = 4

_INPUT_TOKENS = re.compile(r"input[_ ]tokens[: ]+(\d+)", re.IGNORECASE)
_OUTPUT_TOKENS = re.compile(r"output[_ ]tokens[: ]+(\d+)", re.IGNORECASE)


def extract_usage(output: str, prompt: str) -> TokenUsage:
    """Extract token counts from worker output, estimating what is missing.

    The last reported value wins when the output mentions usage more than
    once. A missing or zero count is replaced by a byte-length estimate:
    prompt bytes for input, output bytes for output.

    Args:
        output: Raw worker output
        prompt: Prompt sent to the worker

    Returns:
        TokenUsage for the iteration
    """
    input_tokens = _last_int(_INPUT_TOKENS, output)
    output_tokens = _last_int(_OUTPUT_TOKENS, output)

    if not input_tokens:
        input_tokens = estimate_tokens(prompt)
    if not output_tokens:
        output_tokens = estimate_tokens(output)

    return TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)


def estimate_tokens(text: str) -> int:
    """Estimate tokens from UTF-8 byte length."""
    return len(text.encode("utf-8")) // BYTES_PER_TOKEN


def estimate_cost(usage: TokenUsage) -> Decimal:
    """Estimate USD cost of one iteration."""
    return (
        usage.input_tokens * PRICE_PER_INPUT_TOKEN
        + usage.output_tokens * PRICE_PER_OUTPUT_TOKEN
    )


def _last_int(pattern: re.Pattern[str], text: str) -> int:
    matches = pattern.findall(text)
    if not matches:
        return 0
    return int(matches[-1])
