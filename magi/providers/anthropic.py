"""Anthropic Claude provider using anthropic SDK with native async and tool use."""

import asyncio
import logging
import os
import time
from typing import Any

import anthropic as anthropic_sdk

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


def to_anthropic_messages(history: list[Turn]) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    for turn in history:
        if isinstance(turn, UserTurn):
            messages.append({"role": "user", "content": turn.text})
        elif isinstance(turn, AssistantTurn):
            messages.append({"role": "assistant", "content": turn.text})
        elif isinstance(turn, ToolCallTurn):
            messages.append({
                "role": "assistant",
                "content": [{"type": "tool_use", "id": turn.call_id, "name": turn.name, "input": turn.arguments}],
            })
        elif isinstance(turn, ToolResultTurn):
            messages.append({
                "role": "user",
                "content": [{"type": "tool_result", "tool_use_id": turn.call_id, "content": turn.content}],
            })
    return messages


class AnthropicProvider(CompletionProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig, system_prompt: str = "") -> None:
        self._config = config
        self._system_prompt = system_prompt
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def complete(self, history: list[Turn], tools: list[ToolSpec]) -> Completion:
        start = time.monotonic()
        kwargs: dict[str, Any] = {}
        if self._system_prompt:
            kwargs["system"] = self._system_prompt
        if tools:
            kwargs["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters}
                for t in tools
            ]
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(
                    model=self._config.model,
                    max_tokens=self._config.max_tokens,
                    messages=to_anthropic_messages(history),
                    **kwargs,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens
        logger.info("Anthropic completion: %.2fs, %s tokens", latency, token_count)

        if not response.content:
            raise ProviderError(self._config.name, "Empty response content")

        for block in response.content:
            if block.type == "tool_use":
                return ToolCallCompletion(call_id=block.id, name=block.name, arguments=dict(block.input))

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, "No text blocks in response")
        return TextCompletion("\n".join(text_blocks))
