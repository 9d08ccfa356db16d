"""Per-request reviewer state and the majority verdict."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from magi.models import Decision, ReviewerSlot, ReviewerState, ReviewMessage

logger = logging.getLogger(__name__)

COMPLETED = "completed"
STREAMING = "streaming"

_POSITIVE_TOKEN = "POSITIVE"
_MAJORITY = 2


def is_positive(content: str) -> bool:
    """Return True if reviewer content approves the code."""
    return _POSITIVE_TOKEN in content


class ReviewSession:
    """Accumulated state of one review request across the three reviewers.

    State is only mutated through record() / record_error(). A reviewer whose
    decision is set is frozen: later messages for it are ignored, so
    re-delivered completions do not change the outcome.
    """

    def __init__(self, request_id: str, panel: Sequence[ReviewerSlot]) -> None:
        self.request_id = request_id
        self.panel: tuple[ReviewerSlot, ...] = tuple(panel)
        self._by_agent_id = {slot.agent_id: slot for slot in self.panel}
        self.states: dict[str, ReviewerState] = {slot.name: ReviewerState() for slot in self.panel}

    def slot_for(self, agent_id: str) -> ReviewerSlot | None:
        return self._by_agent_id.get(agent_id)

    def _open_state(self, agent_id: str) -> tuple[ReviewerSlot, ReviewerState] | None:
        slot = self.slot_for(agent_id)
        if slot is None:
            logger.debug("Dropping message from unknown agent %s", agent_id)
            return None
        state = self.states[slot.name]
        if state.decision is not None:
            logger.debug("Reviewer %s already decided, ignoring message", slot.name)
            return None
        return slot, state

    def _append(self, state: ReviewerState, content: str) -> None:
        now = datetime.now(timezone.utc)
        if state.messages and now < state.messages[-1].timestamp:
            now = state.messages[-1].timestamp
        state.messages.append(ReviewMessage(request_id=self.request_id, content=content, timestamp=now))

    def record(self, agent_id: str, fragment: str, status: str, *, cumulative: bool = True) -> bool:
        """Fold one fragment into a reviewer's state.

        Args:
            agent_id: Routing id of the sender.
            fragment: Text carried by the message (may be empty).
            status: "streaming" or "completed".
            cumulative: Decide from all content seen so far (stream envelopes)
                or from this fragment only (terminal responses).

        Returns:
            True if this call completed the reviewer.
        """
        opened = self._open_state(agent_id)
        if opened is None:
            return False
        slot, state = opened

        if fragment:
            self._append(state, fragment)
            state.content += fragment

        if status != COMPLETED:
            return False

        basis = state.content if cumulative else fragment
        state.decision = Decision.POSITIVE if is_positive(basis) else Decision.NEGATIVE
        logger.debug("Reviewer %s completed: %s", slot.name, state.decision.value)
        return True

    def record_error(self, agent_id: str, error: str) -> bool:
        """Complete a reviewer with a forced NEGATIVE decision."""
        opened = self._open_state(agent_id)
        if opened is None:
            return False
        slot, state = opened
        self._append(state, f"ERROR: {error}")
        state.decision = Decision.NEGATIVE
        logger.debug("Reviewer %s errored: %s", slot.name, error)
        return True

    @property
    def completed_count(self) -> int:
        return sum(1 for state in self.states.values() if state.decision is not None)

    def decision(self) -> Decision | None:
        """Majority verdict, or None while the session is still pending."""
        decisions = [state.decision for state in self.states.values()]
        if decisions.count(Decision.POSITIVE) >= _MAJORITY:
            return Decision.POSITIVE
        if all(d is not None for d in decisions):
            return Decision.NEGATIVE
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            name: {
                "messages": [
                    {
                        "request_id": m.request_id,
                        "content": m.content,
                        "timestamp": m.timestamp.isoformat(),
                    }
                    for m in state.messages
                ],
                "decision": state.decision.value if state.decision else None,
                "content": state.content,
            }
            for name, state in self.states.items()
        }
