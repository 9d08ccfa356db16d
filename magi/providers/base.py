"""Abstract base for completion providers."""

from abc import ABC, abstractmethod

from magi.models import Completion, ToolSpec, Turn


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class CompletionProvider(ABC):
    """Abstract base for all completion providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'openai', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def complete(self, history: list[Turn], tools: list[ToolSpec]) -> Completion:
        """Produce the next assistant step for a conversation.

        Args:
            history: Conversation turns, oldest first.
            tools: Tools the model may call instead of answering directly.

        Returns:
            TextCompletion, or ToolCallCompletion when the model called a tool.
            A tool call takes precedence over any text in the same response.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...
