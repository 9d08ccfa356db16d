"""Review protocol client: one judgement request, three streaming reviewers."""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field

from config.config_loader import GatewayConfig
from magi.errors import MalformedMessage, ReviewTimeoutError
from magi.models import Decision
from magi.session import ReviewSession
from magi.transport import Connection, Connector
from magi.wire import (
    ErrorEnvelope,
    InboundMessage,
    StreamEnvelope,
    decode_message,
    encode_judgement_request,
)

logger = logging.getLogger(__name__)


@dataclass
class ReviewOutcome:
    passed: bool
    result: Decision | None
    session: ReviewSession
    code: str
    reviews: list[str] = field(default_factory=list)


@dataclass
class _Transcript:
    reviews: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class ReviewClient:
    """Submits code to the reviewer panel and aggregates the verdict."""

    def __init__(self, connector: Connector, gateway: GatewayConfig) -> None:
        self._connector = connector
        self._gateway = gateway

    async def review(self, user_input: str, code: str) -> ReviewOutcome:
        """Run one review session.

        Returns:
            ReviewOutcome; passed is True only for a POSITIVE verdict.

        Raises:
            ReviewConnectionError: If the gateway cannot be reached.
            ReviewTransportError: On send/receive failure or timeout.
        """
        session = ReviewSession(str(uuid.uuid4()), self._gateway.reviewers)
        transcript = _Transcript()

        connection = await self._connector.connect()
        try:
            await connection.send(
                encode_judgement_request(session.request_id, user_input, code, session.panel)
            )
            logger.info("Review %s sent to %d reviewers", session.request_id, len(session.panel))
            verdict = await self._receive(connection, session, transcript)
        finally:
            await connection.close()

        if verdict is None:
            verdict = session.decision()
            logger.info(
                "Review stream ended with %d/%d reviewers complete",
                session.completed_count,
                len(session.panel),
            )

        reviews = transcript.reviews + transcript.errors
        reviews += [f"{slot.name.title()}: {session.states[slot.name].content}" for slot in session.panel]

        return ReviewOutcome(
            passed=verdict is Decision.POSITIVE,
            result=verdict,
            session=session,
            code=code,
            reviews=reviews,
        )

    async def _next_frame(self, connection: Connection, deadline: float) -> str | bytes | None:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ReviewTimeoutError(f"Review exceeded {self._gateway.max_session_sec}s")
        timeout = min(self._gateway.read_timeout_sec, remaining)
        try:
            return await asyncio.wait_for(connection.recv(), timeout=timeout)
        except TimeoutError as exc:
            raise ReviewTimeoutError(f"No reviewer message within {timeout:.0f}s") from exc

    async def _receive(
        self,
        connection: Connection,
        session: ReviewSession,
        transcript: _Transcript,
    ) -> Decision | None:
        """Read until quorum or end of stream. Returns the verdict if reached."""
        deadline = time.monotonic() + self._gateway.max_session_sec

        while True:
            raw = await self._next_frame(connection, deadline)
            if raw is None:
                return None
            if not isinstance(raw, str):
                continue

            try:
                message = decode_message(raw)
            except MalformedMessage as exc:
                logger.debug("Skipping message: %s (%s)", exc, raw[:200])
                continue
            if message is None or message.request_id != session.request_id:
                continue

            if not self._apply(message, session, transcript):
                continue
            if session.completed_count < len(session.panel):
                continue

            # An error that closes the quorum fails the session outright
            if isinstance(message, ErrorEnvelope):
                return Decision.NEGATIVE
            verdict = session.decision()
            if verdict is not None:
                return verdict

    def _apply(self, message: InboundMessage, session: ReviewSession, transcript: _Transcript) -> bool:
        """Route a message into the session. Returns True if a reviewer just completed."""
        slot = session.slot_for(message.agent_id)
        if slot is None:
            logger.debug("Ignoring message from unknown agent %s", message.agent_id)
            return False

        if isinstance(message, ErrorEnvelope):
            completed = session.record_error(message.agent_id, message.error)
            if completed:
                transcript.errors.append(f"Reviewer {slot.name} error: {message.error}")
                logger.warning("Reviewer %s failed: %s", slot.name, message.error)
            return completed

        if isinstance(message, StreamEnvelope):
            return session.record(message.agent_id, message.content, message.status)

        # Terminal responses decide on their own content, not the accumulated stream
        if session.states[slot.name].decision is None:
            transcript.reviews.append(f"Reviewer {slot.name}: {message.content}")
        return session.record(message.agent_id, message.content, message.status, cumulative=False)
