"""Generate -> review -> retry loop around a completion provider."""

import logging
from collections.abc import Callable
from typing import Protocol

from config.config_loader import PromptsConfig
from magi.client import ReviewOutcome
from magi.errors import RetryExhausted
from magi.models import (
    AssistantTurn,
    TextCompletion,
    ToolCallCompletion,
    ToolCallTurn,
    ToolResultTurn,
    Turn,
    UserTurn,
)
from magi.providers.base import CompletionProvider
from magi.tool import CODE_REVIEW_TOOL, outcome_json, parse_arguments

logger = logging.getLogger(__name__)


class Reviewer(Protocol):
    async def review(self, user_input: str, code: str) -> ReviewOutcome: ...


class CodeAgent:
    """Drives one top-level request until the panel approves the code.

    The conversation history holds every intermediate turn (tool calls,
    review payloads, retry prompts) so the provider sees prior feedback.
    """

    def __init__(
        self,
        provider: CompletionProvider,
        reviewer: Reviewer,
        prompts: PromptsConfig,
        max_attempts: int,
        on_review: Callable[[int, ReviewOutcome], None] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._provider = provider
        self._reviewer = reviewer
        self._prompts = prompts
        self._max_attempts = max_attempts
        self._on_review = on_review
        self.history: list[Turn] = []

    def reset(self) -> None:
        self.history.clear()

    async def run(self, initial_prompt: str) -> str:
        """Generate code for `initial_prompt` and return the accepted version.

        Raises:
            ProviderError: Completion backend failure.
            ReviewConnectionError, ReviewTransportError: Review gateway failure.
            ToolCallError: The provider asked for an unusable tool call.
            RetryExhausted: Every allowed attempt was rejected.

        On any error the conversation is discarded.
        """
        self.reset()
        self.history.append(UserTurn(initial_prompt))
        try:
            return await self._loop()
        except Exception:
            self.reset()
            raise

    async def _loop(self) -> str:
        attempts = 0
        while True:
            logger.info("Generating code")
            completion = await self._provider.complete(list(self.history), [CODE_REVIEW_TOOL])

            if isinstance(completion, TextCompletion):
                self.history.append(AssistantTurn(completion.text))
                return completion.text

            outcome = await self._review(completion)
            attempts += 1
            if self._on_review:
                self._on_review(attempts, outcome)

            if outcome.passed:
                logger.info("Code review passed on attempt %d", attempts)
                self.history.append(AssistantTurn(outcome.code))
                return outcome.code

            logger.info("Code review failed on attempt %d/%d", attempts, self._max_attempts)
            if attempts >= self._max_attempts:
                raise RetryExhausted(attempts, outcome)
            self.history.append(UserTurn(self._prompts.retry))

    async def _review(self, call: ToolCallCompletion) -> ReviewOutcome:
        logger.info("AI called tool: %s", call.name)
        self.history.append(ToolCallTurn(call.call_id, call.name, call.arguments))
        user_input, code = parse_arguments(call.name, call.arguments)

        outcome = await self._reviewer.review(user_input, code)
        payload = outcome_json(outcome)
        logger.debug("Review result: %s", payload)
        self.history.append(ToolResultTurn(call.call_id, call.name, payload))
        return outcome
