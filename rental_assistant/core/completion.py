"""
Completion call contract.

Types exchanged between the session orchestrator and any completion
client implementation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .token_counter import TokenUsage


class FailureKind(Enum):
    """Reasons a completion attempt can fail."""
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    EMPTY_RESPONSE = "empty_response"
    UNEXPECTED = "unexpected"


class CompletionError(RuntimeError):
    """Raised by a completion client when the remote call cannot be completed."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.TRANSPORT):
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class CompletionResponse:
    """Raw result of a completion call.

    Any of the text or token fields may be missing from the API response.
    """
    answer_text: Optional[str]
    input_tokens: Optional[int]
    output_tokens: Optional[int]
    model: str

    @property
    def usage(self) -> Optional[TokenUsage]:
        if not self.input_tokens and not self.output_tokens:
            return None
        return TokenUsage(
            prompt_tokens=self.input_tokens or 0,
            completion_tokens=self.output_tokens or 0
        )


@dataclass(frozen=True)
class CompletionSuccess:
    answer: str
    usage: Optional[TokenUsage]
    model: str


@dataclass(frozen=True)
class CompletionFailure:
    kind: FailureKind
    message: str
