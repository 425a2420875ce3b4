"""
SDK for Rental Assistant.

Provides the OpenAI-backed completion client.
"""

from .openai_client import CompletionClient

__all__ = ["CompletionClient"]
