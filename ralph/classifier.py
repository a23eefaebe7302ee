"""Deterministic classification of worker attempts for the retry policy.

Maps an exit code and captured output to a closed set of attempt classes.
Matching rules live in ClassifierRules so they can be swapped in tests or
tuned per worker without touching the engine.
"""

from dataclasses import dataclass
from enum import Enum

COMPLETION_SENTINEL = "RALPH_COMPLETE"

_RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "too many requests",
    "503",
    "502",
    "429",
)

# 126: found but not executable, 127: command not found (shell convention)
_FATAL_EXIT_CODES: tuple[int, ...] = (126, 127)


class AttemptClass(str, Enum):
    """Classification of a single worker attempt."""

    SUCCESS = "success"
    TRANSIENT_RATE_LIMIT = "transient_rate_limit"
    TRANSIENT_OTHER = "transient_other"
    FATAL = "fatal"

    @property
    def is_transient(self) -> bool:
        return self in (AttemptClass.TRANSIENT_RATE_LIMIT, AttemptClass.TRANSIENT_OTHER)


@dataclass(frozen=True)
class ClassifierRules:
    """Predicates used by classify_attempt().

    Attributes:
        rate_limit_patterns: Lower-case substrings that mark a rate-limit or
            upstream server error anywhere in the output
        fatal_exit_codes: Exit codes that will not improve on retry
    """

    rate_limit_patterns: tuple[str, ...] = _RATE_LIMIT_PATTERNS
    fatal_exit_codes: tuple[int, ...] = _FATAL_EXIT_CODES

    def matches_rate_limit(self, output: str) -> str | None:
        """Return the first rate-limit pattern found in output, if any."""
        haystack = output.lower()
        for pattern in self.rate_limit_patterns:
            if pattern in haystack:
                return pattern
        return None


DEFAULT_RULES = ClassifierRules()


def classify_attempt(
    exit_code: int,
    output: str,
    rules: ClassifierRules = DEFAULT_RULES,
) -> AttemptClass:
    """Classify one worker attempt.

    A rate-limit signature wins over the exit code, so a worker that exits
    non-zero because of a 429 still gets exponential backoff.

    Args:
        exit_code: Worker process exit status
        output: Combined stdout/stderr of the attempt
        rules: Matching rules

    Returns:
        AttemptClass for the retry policy
    """
    if rules.matches_rate_limit(output) is not None:
        return AttemptClass.TRANSIENT_RATE_LIMIT
    if exit_code in rules.fatal_exit_codes:
        return AttemptClass.FATAL
    if exit_code != 0:
        return AttemptClass.TRANSIENT_OTHER
    return AttemptClass.SUCCESS


def has_completion_sentinel(output: str) -> bool:
    """Check whether the worker declared the whole backlog done."""
    return COMPLETION_SENTINEL in output
