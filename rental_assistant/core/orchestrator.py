"""
Session orchestration.

Turns a user's question into a priced, timed answer. Completion failures
are recovered per question and never end the session.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, Union

from ..catalog.loader import Catalog, CatalogError
from ..config.loader import AssistantConfig
from .completion import (
    CompletionError,
    CompletionFailure,
    CompletionResponse,
    CompletionSuccess,
    FailureKind,
)
from .cost_tracker import CostEntry, CostTracker, SessionSummary
from .prompts import PromptBuilder, format_user_message

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "I apologize, but I encountered an error while processing your question. "
    "Please try rephrasing your question or ask about specific properties, "
    "locations, or facilities."
)

CompletionOutcome = Union[CompletionSuccess, CompletionFailure]


class CompletionBackend(Protocol):
    async def complete(self, system_prompt: str, user_message: str) -> CompletionResponse:
        ...


class ThinkingIndicator(Protocol):
    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


@dataclass(frozen=True)
class QueryRecord:
    question: str
    number: int
    started_at: float  # time.perf_counter() value


@dataclass(frozen=True)
class AnswerResult:
    """What the display layer receives for every question."""
    question: str
    answer: str
    response_time_ms: int
    question_number: int
    cost: Optional[CostEntry] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SessionOrchestrator:
    """Owns the question/answer loop for one interactive session.

    Questions are answered strictly one at a time. The question counter,
    cost log and totals belong to this instance alone; concurrent
    sessions need one orchestrator each.
    """

    def __init__(
        self,
        config: AssistantConfig,
        catalog: Catalog,
        client: CompletionBackend,
        indicator: Optional[ThinkingIndicator] = None,
    ):
        self.config = config
        self.catalog = catalog
        self.client = client
        self.indicator = indicator
        self.prompts = PromptBuilder(catalog, cache=config.cache_system_prompt)
        self.cost_tracker = (
            CostTracker(model=config.openai_model) if config.enable_cost_tracking else None
        )
        self.question_count = 0

    async def answer(self, question: str) -> AnswerResult:
        """Answer one question.

        Failures of the completion call (timeout, transport, empty answer)
        come back as a result carrying an apology and the error message,
        with no cost attached.

        Args:
            question: Non-empty, trimmed question text

        Returns:
            AnswerResult for the question

        Raises:
            CatalogError: If the session was started without any properties
        """
        if not len(self.catalog):
            raise CatalogError("No property data loaded; cannot answer questions")

        self.question_count += 1
        query = QueryRecord(
            question=question,
            number=self.question_count,
            started_at=time.perf_counter(),
        )

        outcome = await self._request(query.question)
        elapsed_ms = int(round((time.perf_counter() - query.started_at) * 1000))

        if isinstance(outcome, CompletionFailure):
            logger.warning(
                "Question %d failed (%s): %s", query.number, outcome.kind.value, outcome.message
            )
            return AnswerResult(
                question=query.question,
                answer=APOLOGY_MESSAGE,
                response_time_ms=elapsed_ms,
                question_number=query.number,
                cost=None,
                error=outcome.message,
            )

        cost = None
        if self.cost_tracker is not None:
            cost = self.cost_tracker.track_query(
                query.question, outcome.answer, outcome.usage, elapsed_ms
            )

        return AnswerResult(
            question=query.question,
            answer=outcome.answer,
            response_time_ms=elapsed_ms,
            question_number=query.number,
            cost=cost,
        )

    async def _request(self, question: str) -> CompletionOutcome:
        """Make the single completion attempt for a question."""
        system_prompt = self.prompts.system_prompt()
        timeout = self.config.timeout_seconds

        self._start_indicator()
        try:
            response = await asyncio.wait_for(
                self.client.complete(system_prompt, format_user_message(question)),
                timeout=timeout,
            )
            answer = (response.answer_text or "").strip()
            usage = response.usage
        except asyncio.TimeoutError:
            return CompletionFailure(
                FailureKind.TIMEOUT, f"No response within {timeout:g} seconds"
            )
        except CompletionError as e:
            return CompletionFailure(e.kind, str(e))
        except Exception as e:
            logger.exception("Unexpected error from completion client")
            return CompletionFailure(FailureKind.UNEXPECTED, str(e) or type(e).__name__)
        finally:
            self._stop_indicator()

        if not answer:
            return CompletionFailure(FailureKind.EMPTY_RESPONSE, "No response received from AI")

        return CompletionSuccess(answer=answer, usage=usage, model=response.model)

    def _start_indicator(self) -> None:
        if self.indicator is None:
            return
        try:
            self.indicator.start()
        except Exception as e:
            logger.debug("Thinking indicator failed to start: %s", e)

    def _stop_indicator(self) -> None:
        if self.indicator is None:
            return
        try:
            self.indicator.stop()
        except Exception as e:
            logger.debug("Thinking indicator failed to stop: %s", e)

    def close(self) -> Optional[SessionSummary]:
        """End the session.

        Returns:
            The session cost summary, or None when cost tracking is off
            or no question was asked
        """
        if self.cost_tracker is None or self.question_count == 0:
            return None
        return self.cost_tracker.summary()

    def status(self) -> Dict[str, Any]:
        return {
            "questions_answered": self.question_count,
            "properties_loaded": len(self.catalog),
            "model": self.config.openai_model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "cost_tracking": self.cost_tracker is not None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
