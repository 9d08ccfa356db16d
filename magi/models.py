"""Pure dataclasses for the MAGI review loop. No logic, no deps."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Decision(str, Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"


@dataclass(frozen=True)
class ReviewerSlot:
    name: str              # "melchior", "balthasar", "casper"
    agent_id: str          # routing id on the gateway


@dataclass(frozen=True)
class ReviewMessage:
    request_id: str
    content: str
    timestamp: datetime


@dataclass
class ReviewerState:
    messages: list[ReviewMessage] = field(default_factory=list)
    content: str = ""
    decision: Decision | None = None


@dataclass
class ToolSpec:
    name: str
    description: str
    parameters: dict[str, Any]   # JSON schema


# --- Conversation turns ---

@dataclass
class UserTurn:
    text: str


@dataclass
class AssistantTurn:
    text: str


@dataclass
class ToolCallTurn:
    call_id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class ToolResultTurn:
    call_id: str
    name: str
    content: str           # JSON payload


Turn = UserTurn | AssistantTurn | ToolCallTurn | ToolResultTurn


# --- Provider output ---

@dataclass
class TextCompletion:
    text: str


@dataclass
class ToolCallCompletion:
    call_id: str
    name: str
    arguments: dict[str, Any]


Completion = TextCompletion | ToolCallCompletion
