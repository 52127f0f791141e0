"""Token estimation for context text.

All token accounting in the RAG pipeline goes through this module so that
context budgets, diagnostics and usage estimates agree with each other.

Core invariant: estimate_tokens(text) == ceil(len(text) / 4).
"""

import math

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate the token count of a text.

    Rough approximation of one token per four characters of English text,
    used whenever a backend does not report its own usage.

    Args:
        text: Text to estimate

    Returns:
        Estimated token count (0 for empty text)
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_total_tokens(texts: list[str]) -> int:
    """Sum of per-text estimates (not the estimate of the concatenation)."""
    return sum(estimate_tokens(text) for text in texts)
