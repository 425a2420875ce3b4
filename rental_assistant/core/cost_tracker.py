"""
Session cost tracking.

Keeps an append-only log of priced queries and running totals for the
current chat session. Nothing here is persisted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from .pricing import DEFAULT_MODEL, QueryCost, price
from .token_counter import TokenUsage, estimate_usage

logger = logging.getLogger(__name__)

QUESTION_PREVIEW_LENGTH = 50


def preview_question(question: str) -> str:
    """Shorten a question for the cost log."""
    if len(question) > QUESTION_PREVIEW_LENGTH:
        return question[:QUESTION_PREVIEW_LENGTH] + "..."
    return question


@dataclass(frozen=True)
class CostEntry:
    """Immutable record of one priced, timed query.

    Entries are only ever appended to the session log.
    """
    question: str
    response_time_ms: int
    input_tokens: int
    output_tokens: int
    input_cost: Decimal
    output_cost: Decimal
    timestamp: str
    estimated: bool = False

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def total_cost(self) -> Decimal:
        return self.input_cost + self.output_cost


@dataclass
class SessionTotals:
    """Running aggregate over the session's cost log."""
    total_cost: Decimal = Decimal("0")
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, entry: CostEntry) -> None:
        self.total_cost += entry.total_cost
        self.input_tokens += entry.input_tokens
        self.output_tokens += entry.output_tokens
        self.total_tokens += entry.total_tokens


@dataclass(frozen=True)
class SessionSummary:
    """Final view of a session's spending."""
    total_queries: int
    total_cost: Decimal
    input_tokens: int
    output_tokens: int
    total_tokens: int
    average_cost_per_query: Decimal
    average_tokens_per_query: float


@dataclass
class CostTracker:
    """Prices queries and accumulates per-session totals.

    One tracker belongs to exactly one session; it is not safe to share
    between concurrently running sessions.
    """
    model: str = DEFAULT_MODEL
    entries: List[CostEntry] = field(default_factory=list)
    totals: SessionTotals = field(default_factory=SessionTotals)

    def track_query(
        self,
        question: str,
        answer: str,
        usage: Optional[TokenUsage],
        response_time_ms: int,
    ) -> CostEntry:
        """Price a completed query and append it to the session log.

        When the API reported no usage (absent, or both counts zero) the
        token counts are estimated from the text lengths and the entry is
        flagged as estimated.

        Args:
            question: The user's question, verbatim
            answer: The answer text returned by the model
            usage: Token usage reported by the API, if any
            response_time_ms: Wall-clock latency of the call

        Returns:
            The CostEntry that was recorded
        """
        estimated = usage is None or usage.is_empty
        if estimated:
            usage = estimate_usage(question, answer)
            logger.debug(
                "Usage data missing from response; estimated %d input / %d output tokens",
                usage.prompt_tokens, usage.completion_tokens
            )

        cost = price(usage.prompt_tokens, usage.completion_tokens, self.model)
        entry = self._record(question, cost, response_time_ms, estimated)

        logger.debug(
            "Tracked query %d: input=%d output=%d cost=%s estimated=%s",
            len(self.entries), entry.input_tokens, entry.output_tokens,
            entry.total_cost, estimated
        )
        return entry

    def _record(
        self,
        question: str,
        cost: QueryCost,
        response_time_ms: int,
        estimated: bool,
    ) -> CostEntry:
        entry = CostEntry(
            question=preview_question(question),
            response_time_ms=response_time_ms,
            input_tokens=cost.input_tokens,
            output_tokens=cost.output_tokens,
            input_cost=cost.input_cost,
            output_cost=cost.output_cost,
            timestamp=datetime.now(timezone.utc).isoformat(),
            estimated=estimated,
        )
        self.entries.append(entry)
        self.totals.add(entry)
        return entry

    def estimate_cost(self, input_tokens: int, output_tokens: int = 0) -> QueryCost:
        """Price a hypothetical query without recording it."""
        return price(input_tokens, output_tokens, self.model)

    @property
    def query_count(self) -> int:
        return len(self.entries)

    def summary(self) -> SessionSummary:
        """Summarize the session from the running totals."""
        count = self.query_count
        if count:
            average_cost = self.totals.total_cost / count
            average_tokens = self.totals.total_tokens / count
        else:
            average_cost = Decimal("0")
            average_tokens = 0.0

        return SessionSummary(
            total_queries=count,
            total_cost=self.totals.total_cost,
            input_tokens=self.totals.input_tokens,
            output_tokens=self.totals.output_tokens,
            total_tokens=self.totals.total_tokens,
            average_cost_per_query=average_cost,
            average_tokens_per_query=average_tokens,
        )
