"""
Token counting and usage tracking.

Holds reported token counts and the character-based fallback estimate
used when the API response carries no usage data.
"""

import math
from dataclasses import dataclass

# Rough average for English text
CHARS_PER_TOKEN = 4

# Assumed size of the system prompt, in characters, for fallback estimates
SYSTEM_PROMPT_OVERHEAD_CHARS = 1000


@dataclass(frozen=True)
class TokenUsage:
    """Token usage data for cost calculation."""
    prompt_tokens: int
    completion_tokens: int

    def __post_init__(self):
        if self.prompt_tokens < 0 or self.completion_tokens < 0:
            raise ValueError("token counts must be >= 0")

    @property
    def total_tokens(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens

    @property
    def is_empty(self) -> bool:
        return self.prompt_tokens == 0 and self.completion_tokens == 0


def estimate_usage(question: str, answer: str) -> TokenUsage:
    """Estimate token usage from text lengths.

    Args:
        question: The user's question
        answer: The generated answer

    Returns:
        TokenUsage approximated at four characters per token, with the
        system prompt counted as a fixed overhead on the prompt side
    """
    prompt_tokens = math.ceil((len(question) + SYSTEM_PROMPT_OVERHEAD_CHARS) / CHARS_PER_TOKEN)
    completion_tokens = math.ceil(len(answer or "") / CHARS_PER_TOKEN)
    return TokenUsage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
