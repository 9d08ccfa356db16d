"""Error taxonomy for the review protocol and the generation loop."""

from typing import Any


class ReviewError(Exception):
    """Base for review and loop failures."""


class ReviewConnectionError(ReviewError):
    """Raised when the review gateway cannot be reached or rejects the handshake."""


class ReviewTransportError(ReviewError):
    """Raised on a send/receive failure after the connection was established."""


class ReviewTimeoutError(ReviewTransportError):
    """Raised when the read timeout or the session deadline is exceeded."""


class MalformedMessage(ReviewError):
    """Raised by the decoder for unparseable or unrecognised inbound messages."""


class ToolCallError(ReviewError):
    """Raised when the provider asks for an unknown tool or sends unusable arguments."""


class RetryExhausted(ReviewError):
    """Raised when every allowed generate/review attempt was rejected."""

    def __init__(self, attempts: int, last_outcome: Any = None) -> None:
        self.attempts = attempts
        self.last_outcome = last_outcome
        super().__init__(f"Code was rejected {attempts} time(s); giving up")
