"""Gateway wire format: outbound judgement requests, inbound tagged messages.

Inbound payloads from the gateway share most of their fields, so the kind of
each message is resolved once from the payload before any shape-specific
parsing:

    has "error"                                  -> ErrorEnvelope
    type == "agent_response" and has session_id  -> StreamEnvelope
    has "status" and "content", no session_id    -> AgentResponse (terminal)
    type in _CONTROL_TYPES                       -> control, ignored
    anything else                                -> MalformedMessage
"""

import json
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from magi.errors import MalformedMessage
from magi.models import ReviewerSlot
from magi.session import COMPLETED, STREAMING

JUDGEMENT_TYPE = "agent_judgement"
AGENT_RESPONSE_TYPE = "agent_response"

_CONTROL_TYPES = {"connection_established", "message_received", "pong"}

_REQUEST_TEMPLATE = "<user_input>\n{user_input}\n</user_input>\n<response>\n{code}\n</response>"


@dataclass(frozen=True)
class AgentResponse:
    """Single-shot reply carrying status and content directly."""

    agent_id: str
    request_id: str
    status: str
    content: str
    timestamp: Any = None


@dataclass(frozen=True)
class StreamEnvelope:
    """Streaming fragment or completion marker for one agent."""

    session_id: str
    agent_id: str
    request_id: str
    status: str            # "streaming" | "completed"
    content: str = ""
    timestamp: Any = None


@dataclass(frozen=True)
class ErrorEnvelope:
    session_id: str
    agent_id: str
    request_id: str
    status: str
    error: str
    timestamp: Any = None


InboundMessage = AgentResponse | StreamEnvelope | ErrorEnvelope


def build_request_text(user_input: str, code: str) -> str:
    return _REQUEST_TEMPLATE.format(user_input=user_input, code=code)


def encode_judgement_request(
    request_id: str,
    user_input: str,
    code: str,
    panel: Sequence[ReviewerSlot],
    timestamp: float | None = None,
) -> str:
    """Serialize the judgement request that opens a review session."""
    payload = {
        "type": JUDGEMENT_TYPE,
        "request_id": request_id,
        "request": build_request_text(user_input, code),
        "timestamp": float(timestamp if timestamp is not None else int(time.time())),
        "agents": [{"agent_id": slot.agent_id} for slot in panel],
    }
    return json.dumps(payload, ensure_ascii=False)


def _required_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise MalformedMessage(f"Missing or non-string field '{key}'")
    return value


def _message_kind(payload: dict[str, Any]) -> str | None:
    """Resolve the variant of an inbound payload. None means a control message."""
    msg_type = payload.get("type")
    if isinstance(payload.get("error"), str):
        return "error"
    if msg_type == AGENT_RESPONSE_TYPE and "session_id" in payload:
        return "stream"
    if "status" in payload and "content" in payload:
        return "terminal"
    if msg_type in _CONTROL_TYPES:
        return None
    raise MalformedMessage(f"Unrecognised message type: {msg_type!r}")


def decode_message(raw: str) -> InboundMessage | None:
    """Decode one inbound text frame.

    Returns:
        The decoded variant, or None for control messages the client ignores.

    Raises:
        MalformedMessage: Invalid JSON, not an object, unknown shape, or a
            required field is missing.
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedMessage(f"Invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedMessage("Message is not a JSON object")

    kind = _message_kind(payload)
    if kind is None:
        return None

    agent_id = _required_str(payload, "agent_id")
    request_id = _required_str(payload, "request_id")
    timestamp = payload.get("timestamp")

    if kind == "error":
        return ErrorEnvelope(
            session_id=str(payload.get("session_id", "")),
            agent_id=agent_id,
            request_id=request_id,
            status=str(payload.get("status", "error")),
            error=str(payload["error"]),
            timestamp=timestamp,
        )

    status = _required_str(payload, "status")
    content = payload.get("content") or ""
    if not isinstance(content, str):
        raise MalformedMessage("Field 'content' is not a string")

    if kind == "stream":
        if status not in (STREAMING, COMPLETED):
            raise MalformedMessage(f"Unknown stream status: {status!r}")
        return StreamEnvelope(
            session_id=_required_str(payload, "session_id"),
            agent_id=agent_id,
            request_id=request_id,
            status=status,
            content=content,
            timestamp=timestamp,
        )

    return AgentResponse(
        agent_id=agent_id,
        request_id=request_id,
        status=status,
        content=content,
        timestamp=timestamp,
    )
