"""OpenAI provider using openai SDK with native async and function tools.

Also serves OpenAI-compatible backends (xAI, DeepSeek, local gateways) via
`base_url`.
"""

import asyncio
import json
import logging
import os
import time
from typing import Any

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from magi.models import (
    AssistantTurn,
    Completion,
    TextCompletion,
    ToolCallCompletion,
    ToolCallTurn,
    ToolResultTurn,
    ToolSpec,
    Turn,
    UserTurn,
)
from magi.providers.base import CompletionProvider, ProviderError

logger = logging.getLogger(__name__)


def to_openai_messages(system_prompt: str, history: list[Turn]) -> list[dict[str, Any]]:
    """Convert conversation turns to chat-completions messages."""
    messages: list[dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for turn in history:
        if isinstance(turn, UserTurn):
            messages.append({"role": "user", "content": turn.text})
        elif isinstance(turn, AssistantTurn):
            messages.append({"role": "assistant", "content": turn.text})
        elif isinstance(turn, ToolCallTurn):
            messages.append({
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": turn.call_id,
                    "type": "function",
                    "function": {"name": turn.name, "arguments": json.dumps(turn.arguments)},
                }],
            })
        elif isinstance(turn, ToolResultTurn):
            messages.append({"role": "tool", "tool_call_id": turn.call_id, "content": turn.content})
    return messages


def to_openai_tools(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
        }
        for t in tools
    ]


class OpenAIProvider(CompletionProvider):
    """OpenAI (or OpenAI-compatible) provider via openai SDK."""

    def __init__(self, config: ModelConfig, system_prompt: str = "") -> None:
        self._config = config
        self._system_prompt = system_prompt
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def complete(self, history: list[Turn], tools: list[ToolSpec]) -> Completion:
        start = time.monotonic()
        kwargs: dict[str, Any] = {}
        if tools:
            kwargs["tools"] = to_openai_tools(tools)
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=to_openai_messages(self._system_prompt, history),
                    max_tokens=self._config.max_tokens,
                    **kwargs,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        token_count = response.usage.total_tokens if response.usage else None
        logger.info("OpenAI completion: %.2fs, %s tokens", latency, token_count)

        choice = response.choices[0] if response.choices else None
        if not choice:
            raise ProviderError(self._config.name, "Empty response")

        if choice.message.tool_calls:
            call = choice.message.tool_calls[0]
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError as exc:
                raise ProviderError(self._config.name, f"Tool arguments are not valid JSON: {exc}") from exc
            return ToolCallCompletion(call_id=call.id, name=call.function.name, arguments=arguments)

        if not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")
        return TextCompletion(choice.message.content)
