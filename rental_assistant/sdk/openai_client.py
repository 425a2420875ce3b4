"""
OpenAI completion client.

Sends one system prompt and one user message per call and reports the
answer together with the token usage from the response.
"""

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from ..core.completion import CompletionError, CompletionResponse, FailureKind

logger = logging.getLogger(__name__)


class CompletionClient:
    """Thin async wrapper over OpenAI chat completions.

    Built with retries disabled: every question gets exactly one attempt.
    All OpenAI failures surface as CompletionError.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.2,
        max_tokens: int = 400,
        timeout: Optional[float] = None,
    ):
        """Initialize the completion client.

        Args:
            api_key: OpenAI API key (required)
            model: Chat model name (required)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate per answer
            timeout: Per-request HTTP timeout in seconds

        Raises:
            ValueError: If api_key or model is missing/empty
        """
        if not api_key or not api_key.strip():
            raise ValueError("api_key is required and cannot be empty")
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def complete(self, system_prompt: str, user_message: str) -> CompletionResponse:
        """Request a completion for a single question.

        Args:
            system_prompt: Instructions and property data
            user_message: The user's question

        Returns:
            CompletionResponse; answer and usage fields may be None

        Raises:
            CompletionError: If the API call fails for any reason
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=False,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
            )
        except openai.APITimeoutError as e:
            raise CompletionError(f"OpenAI request timed out: {e}", FailureKind.TIMEOUT) from e
        except openai.OpenAIError as e:
            raise CompletionError(f"OpenAI request failed: {e}", FailureKind.TRANSPORT) from e

        answer = None
        if response.choices:
            content = response.choices[0].message.content
            answer = content.strip() if content else None

        usage = response.usage
        if usage:
            logger.debug(
                "Tokens - prompt: %s, completion: %s, total: %s",
                usage.prompt_tokens, usage.completion_tokens, usage.total_tokens
            )
        else:
            logger.debug("No usage data received from OpenAI")

        return CompletionResponse(
            answer_text=answer,
            input_tokens=usage.prompt_tokens if usage else None,
            output_tokens=usage.completion_tokens if usage else None,
            model=response.model or self.model,
        )

    async def validate_connection(self) -> bool:
        """Check the API key with a minimal one-token request."""
        try:
            await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": "Test"}],
                max_tokens=1,
            )
        except openai.OpenAIError as e:
            logger.warning("OpenAI connection check failed: %s", e)
            return False
        return True

    async def close(self) -> None:
        await self.client.close()
