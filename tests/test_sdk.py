"""
Unit tests for SDK layer.

Tests the OpenAI completion client wrapper.
"""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import httpx
import openai
import pytest

from rental_assistant.core.completion import CompletionError, FailureKind
from rental_assistant.sdk.openai_client import CompletionClient


def _mock_response(content="Try the Rio Beach House.", prompt_tokens=650, completion_tokens=18):
    response = Mock()
    response.model = "gpt-3.5-turbo-0125"
    response.choices = [Mock()]
    response.choices[0].message.content = content
    response.usage.prompt_tokens = prompt_tokens
    response.usage.completion_tokens = completion_tokens
    response.usage.total_tokens = prompt_tokens + completion_tokens
    return response


class TestCompletionClient:
    """Test CompletionClient wrapper."""

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_init_success(self, mock_openai_class):
        """Test successful initialization with retries disabled."""
        mock_openai_class.return_value = Mock()

        client = CompletionClient(api_key="sk-test", model="gpt-3.5-turbo", timeout=12.5)

        assert client.model == "gpt-3.5-turbo"
        assert client.temperature == 0.2
        assert client.max_tokens == 400
        mock_openai_class.assert_called_once_with(api_key="sk-test", timeout=12.5, max_retries=0)

    def test_init_missing_api_key(self):
        with pytest.raises(ValueError, match="api_key is required"):
            CompletionClient(api_key="", model="gpt-3.5-turbo")

        with pytest.raises(ValueError, match="api_key is required"):
            CompletionClient(api_key=None, model="gpt-3.5-turbo")

    def test_init_missing_model(self):
        with pytest.raises(ValueError, match="model is required"):
            CompletionClient(api_key="sk-test", model="  ")

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_complete_success(self, mock_openai_class):
        """Test answer and usage are extracted from the response."""
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(return_value=_mock_response())
        mock_openai_class.return_value = mock_client

        client = CompletionClient(
            api_key="sk-test", model="gpt-3.5-turbo", temperature=0.3, max_tokens=300
        )
        result = asyncio.run(client.complete("SYSTEM", "Question: cheapest?"))

        mock_client.chat.completions.create.assert_awaited_once_with(
            model="gpt-3.5-turbo",
            temperature=0.3,
            max_tokens=300,
            stream=False,
            messages=[
                {"role": "system", "content": "SYSTEM"},
                {"role": "user", "content": "Question: cheapest?"},
            ],
        )
        assert result.answer_text == "Try the Rio Beach House."
        assert result.input_tokens == 650
        assert result.output_tokens == 18
        assert result.model == "gpt-3.5-turbo-0125"
        assert result.usage.total_tokens == 668

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_complete_without_usage(self, mock_openai_class):
        response = _mock_response()
        response.usage = None
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(return_value=response)
        mock_openai_class.return_value = mock_client

        client = CompletionClient(api_key="sk-test", model="gpt-3.5-turbo")
        result = asyncio.run(client.complete("SYSTEM", "Question: hi"))

        assert result.input_tokens is None
        assert result.output_tokens is None
        assert result.usage is None

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_complete_empty_content(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(return_value=_mock_response(content=None))
        mock_openai_class.return_value = mock_client

        client = CompletionClient(api_key="sk-test", model="gpt-3.5-turbo")
        result = asyncio.run(client.complete("SYSTEM", "Question: hi"))

        assert result.answer_text is None

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_api_error_wrapped(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(side_effect=openai.OpenAIError("bad key"))
        mock_openai_class.return_value = mock_client

        client = CompletionClient(api_key="sk-test", model="gpt-3.5-turbo")
        with pytest.raises(CompletionError, match="bad key") as exc_info:
            asyncio.run(client.complete("SYSTEM", "Question: hi"))

        assert exc_info.value.kind == FailureKind.TRANSPORT

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_timeout_error_wrapped(self, mock_openai_class):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APITimeoutError(request=request)
        )
        mock_openai_class.return_value = mock_client

        client = CompletionClient(api_key="sk-test", model="gpt-3.5-turbo")
        with pytest.raises(CompletionError, match="timed out") as exc_info:
            asyncio.run(client.complete("SYSTEM", "Question: hi"))

        assert exc_info.value.kind == FailureKind.TIMEOUT

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_validate_connection(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(return_value=_mock_response())
        mock_openai_class.return_value = mock_client

        client = CompletionClient(api_key="sk-test", model="gpt-3.5-turbo")

        assert asyncio.run(client.validate_connection()) is True
        _, kwargs = mock_client.chat.completions.create.call_args
        assert kwargs["max_tokens"] == 1

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_validate_connection_failure(self, mock_openai_class):
        mock_client = Mock()
        mock_client.chat.completions.create = AsyncMock(side_effect=openai.OpenAIError("401"))
        mock_openai_class.return_value = mock_client

        client = CompletionClient(api_key="sk-test", model="gpt-3.5-turbo")

        assert asyncio.run(client.validate_connection()) is False

    @patch('rental_assistant.sdk.openai_client.AsyncOpenAI')
    def test_close(self, mock_openai_class):
        mock_client = Mock()
        mock_client.close = AsyncMock()
        mock_openai_class.return_value = mock_client

        client = CompletionClient(api_key="sk-test", model="gpt-3.5-turbo")
        asyncio.run(client.close())

        mock_client.close.assert_awaited_once()
