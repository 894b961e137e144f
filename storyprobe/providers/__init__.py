"""Completion backend implementations."""

from storyprobe.providers.openai_client import (
    OpenAICompletionClient,
    to_openai_messages,
    to_openai_tools,
)

__all__ = [
    "OpenAICompletionClient",
    "to_openai_messages",
    "to_openai_tools",
]
