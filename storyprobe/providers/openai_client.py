"""OpenAI-compatible completion client with tool calling.

Works against any chat-completions endpoint that speaks the OpenAI tool
calling protocol (OpenAI, OpenRouter, z.ai, Ollama, vLLM, ...).
"""

import logging
from typing import Any

import openai
from openai import AsyncOpenAI
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storyprobe.core import (
    APIKeyError,
    CompletionClient,
    LLMConfig,
    LLMError,
    Message,
    MessageRole,
    RateLimitError,
    Response,
    TimeoutError,
    ToolCall,
    ToolDefinition,
)

logger = logging.getLogger(__name__)

PROVIDER_BASE_URLS = {
    "openrouter": "https://openrouter.ai/api/v1",
    "zai": "https://api.z.ai/api/paas/v4",
    "ollama": "http://localhost:11434/v1",
}


def to_openai_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Translate the conversation into chat-completions messages."""
    result: list[dict[str, Any]] = []
    for msg in messages:
        if msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            result.append(
                {
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": call.input},
                        }
                        for call in msg.tool_calls
                    ],
                }
            )
        elif msg.role == MessageRole.TOOL:
            result.append({"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content})
        else:
            result.append({"role": msg.role.value, "content": msg.content})
    return result


def to_openai_tools(tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }
        for tool in tools
    ]


class OpenAICompletionClient(CompletionClient):
    """Completion client for OpenAI-compatible chat APIs."""

    def __init__(self, config: LLMConfig) -> None:
        """Initialize client.

        Args:
            config: LLM configuration

        Raises:
            APIKeyError: If API key is missing
        """
        super().__init__(config)

        if not config.api_key:
            raise APIKeyError("API key is required", provider=config.provider)

        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url or PROVIDER_BASE_URLS.get(config.provider),
            timeout=config.timeout,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((RateLimitError, TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def complete(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Response:
        """Send the conversation to the chat-completions endpoint.

        Args:
            messages: Conversation so far
            tools: Tools the model may call

        Returns:
            Response with text and/or tool calls. A reply with neither is
            returned with ``done=False``.

        Raises:
            LLMError: If request fails
        """
        provider = self.config.provider
        kwargs: dict[str, Any] = {}
        if tools:
            kwargs["tools"] = to_openai_tools(tools)
            kwargs["tool_choice"] = "auto"

        logger.debug(f"Completion request: {len(messages)} messages, {len(tools or [])} tools")

        try:
            response = await self.client.chat.completions.create(
                model=self.config.default_model,
                messages=to_openai_messages(messages),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                **kwargs,
            )
        except openai.APITimeoutError as e:
            raise TimeoutError(f"Request timed out after {self.config.timeout}s: {e}", provider=provider)
        except openai.RateLimitError as e:
            raise RateLimitError(str(e), provider=provider)
        except openai.AuthenticationError as e:
            raise APIKeyError(str(e), provider=provider)
        except openai.OpenAIError as e:
            raise LLMError(f"Chat completion failed: {e}", provider=provider)

        if not response.choices:
            raise LLMError("Chat completion returned no choices", provider=provider)

        self._track_request(response.usage.total_tokens if response.usage else 0)

        message = response.choices[0].message
        tool_calls = [
            ToolCall(id=call.id, name=call.function.name, input=call.function.arguments or "{}")
            for call in message.tool_calls or []
        ]
        content = message.content or ""

        return Response(
            content=content,
            tool_calls=tool_calls,
            done=not tool_calls and bool(content.strip()),
        )

    async def close(self) -> None:
        await self.client.close()
