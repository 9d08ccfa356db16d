"""Gemini provider using google-genai SDK with native async and function calling."""

import asyncio
import logging
import os
import time
import uuid

from google import genai
from google.genai import types as genai_types

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


def to_gemini_contents(history: list[Turn]) -> list[genai_types.Content]:
    contents: list[genai_types.Content] = []
    for turn in history:
        if isinstance(turn, UserTurn):
            contents.append(genai_types.Content(role="user", parts=[genai_types.Part(text=turn.text)]))
        elif isinstance(turn, AssistantTurn):
            contents.append(genai_types.Content(role="model", parts=[genai_types.Part(text=turn.text)]))
        elif isinstance(turn, ToolCallTurn):
            call = genai_types.FunctionCall(id=turn.call_id, name=turn.name, args=turn.arguments)
            contents.append(genai_types.Content(role="model", parts=[genai_types.Part(function_call=call)]))
        elif isinstance(turn, ToolResultTurn):
            result = genai_types.FunctionResponse(id=turn.call_id, name=turn.name, response={"result": turn.content})
            contents.append(genai_types.Content(role="user", parts=[genai_types.Part(function_response=result)]))
    return contents


class GeminiProvider(CompletionProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig, system_prompt: str = "") -> None:
        self._config = config
        self._system_prompt = system_prompt
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _generate_config(self, tools: list[ToolSpec]) -> genai_types.GenerateContentConfig:
        declarations = [
            genai_types.FunctionDeclaration(
                name=t.name,
                description=t.description,
                parameters_json_schema=t.parameters,
            )
            for t in tools
        ]
        return genai_types.GenerateContentConfig(
            max_output_tokens=self._config.max_tokens,
            system_instruction=self._system_prompt or None,
            tools=[genai_types.Tool(function_declarations=declarations)] if declarations else None,
            automatic_function_calling=genai_types.AutomaticFunctionCallingConfig(disable=True),
        )

    async def complete(self, history: list[Turn], tools: list[ToolSpec]) -> Completion:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=to_gemini_contents(history),
                    config=self._generate_config(tools),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count
        logger.info("Gemini completion: %.2fs, %s tokens", latency, token_count)

        if response.function_calls:
            call = response.function_calls[0]
            return ToolCallCompletion(
                call_id=call.id or f"call_{uuid.uuid4().hex[:12]}",
                name=call.name or "",
                arguments=dict(call.args or {}),
            )

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")
        return TextCompletion(response.text)
