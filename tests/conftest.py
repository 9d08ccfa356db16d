"""Shared pytest fixtures and test doubles."""

import asyncio
import json
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from config.config_loader import GatewayConfig, ModelConfig, PromptsConfig
from magi.models import Completion, ReviewerSlot, TextCompletion, ToolSpec, Turn
from magi.providers.base import CompletionProvider
from magi.transport import Connection, Connector

MELCHIOR = ReviewerSlot("melchior", "agent-m")
BALTHASAR = ReviewerSlot("balthasar", "agent-b")
CASPER = ReviewerSlot("casper", "agent-c")
PANEL = (MELCHIOR, BALTHASAR, CASPER)

HANG = object()  # script item: recv() never returns


def stream_frame(request_id: str, agent_id: str, content: str = "", status: str = "streaming") -> str:
    return json.dumps({
        "type": "agent_response",
        "session_id": "sess-1",
        "status": status,
        "request_id": request_id,
        "agent_id": agent_id,
        "content": content,
        "timestamp": "2026-01-01T00:00:00Z",
    })


def terminal_frame(request_id: str, agent_id: str, content: str, status: str = "completed") -> str:
    return json.dumps({
        "type": "agent_response",
        "agent_id": agent_id,
        "request_id": request_id,
        "content": content,
        "status": status,
        "timestamp": 1767225600.0,
    })


def error_frame(request_id: str, agent_id: str, error: str = "model overloaded") -> str:
    return json.dumps({
        "type": "agent_response",
        "session_id": "sess-1",
        "status": "error",
        "request_id": request_id,
        "agent_id": agent_id,
        "error": error,
        "timestamp": "2026-01-01T00:00:00Z",
    })


class FakeConnection(Connection):
    """Replays a script built from the request id of the first sent frame.

    Script items are frames (str/bytes), exceptions to raise, or HANG.
    Once the script is exhausted recv() reports end of stream.
    """

    def __init__(self, script: Callable[[str], list]) -> None:
        self._script = script
        self._queue: list = []
        self.sent: list[dict] = []
        self.closed = False

    async def send(self, text: str) -> None:
        payload = json.loads(text)
        self.sent.append(payload)
        self._queue = list(self._script(payload["request_id"]))

    async def recv(self) -> str | bytes | None:
        if not self._queue:
            return None
        item = self._queue.pop(0)
        if item is HANG:
            await asyncio.sleep(3600)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class FakeConnector(Connector):
    def __init__(self, script: Callable[[str], list]) -> None:
        self._script = script
        self.connections: list[FakeConnection] = []

    async def connect(self) -> Connection:
        connection = FakeConnection(self._script)
        self.connections.append(connection)
        return connection


class MockProvider(CompletionProvider):
    """Test double CompletionProvider."""

    def __init__(self, provider_name: str = "mock", text: str = "print('mock')") -> None:
        self._name = provider_name
        self._text = text
        # Shadow the class method with an AsyncMock at the instance level.
        self.complete = AsyncMock(return_value=TextCompletion(text))  # type: ignore[assignment]

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def complete(self, history: list[Turn], tools: list[ToolSpec]) -> Completion:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return TextCompletion(self._text)


@pytest.fixture
def sample_gateway_config() -> GatewayConfig:
    return GatewayConfig(
        url="ws://localhost:8080/review",
        app_id="test-app",
        app_secret="test-secret",
        reviewers=PANEL,
        read_timeout_sec=5.0,
        max_session_sec=10.0,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        system="You generate code and always call code_review.",
        retry="Please improve the code based on the last review feedback",
    )


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
    )


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()
