"""
Shared fixtures for Rental Assistant tests.
"""

import asyncio
from typing import List, Optional, Tuple

import pytest

from rental_assistant.catalog.loader import load_catalog
from rental_assistant.config.loader import CONFIG_FILE_ENV, AssistantConfig
from rental_assistant.core.completion import CompletionResponse


class FakeCompletionClient:
    """In-memory stand-in for CompletionClient.

    Returns the queued responses in order (the last one repeats) and
    records every (system_prompt, user_message) pair it receives.
    An exception in the queue is raised instead of returned.
    """

    def __init__(self, *responses, delay: float = 0.0):
        self.responses = list(responses) or [
            CompletionResponse("Here are some properties.", 500, 20, "gpt-3.5-turbo")
        ]
        self.delay = delay
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    async def complete(self, system_prompt: str, user_message: str) -> CompletionResponse:
        self.calls.append((system_prompt, user_message))
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, BaseException):
            raise response
        return response

    async def validate_connection(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep settings from the developer's shell out of the tests."""
    names = [name.upper() for name in AssistantConfig.model_fields]
    for name in names + ["JSON_DATA_PATH", CONFIG_FILE_ENV]:
        monkeypatch.delenv(name, raising=False)


def make_config(**overrides) -> AssistantConfig:
    values = {
        "openai_api_key": "sk-test-1234567890",
        "enable_animations": False,
    }
    values.update(overrides)
    return AssistantConfig(**values)


@pytest.fixture
def config() -> AssistantConfig:
    return make_config()


@pytest.fixture(scope="session")
def catalog():
    return load_catalog()


def response(
    answer: Optional[str] = "Rio Beach House at $18/night",
    input_tokens: Optional[int] = 650,
    output_tokens: Optional[int] = 18,
) -> CompletionResponse:
    return CompletionResponse(
        answer_text=answer,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        model="gpt-3.5-turbo",
    )
