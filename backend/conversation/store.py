"""
Conversation store.

Responsibilities:
- Hold the ordered, append-only message log
- Hold the derived pending / speaking flags
- Provide pure transitions over that value
- Provide the read-only snapshot handed to the presentation layer
  (ConversationSnapshot: no bookkeeping such as next_sequence)

Non-responsibilities:
- No decisions about *when* to mutate (reducer owns that)
- No I/O, no speech, no generator calls
- No concurrency: mutated only through the session reducer

Clearing stops active speech. The stop itself is a side effect, so the
reducer emits it alongside clear_messages() in the same transition.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from constants import FIRST_SEQUENCE
from conversation.message import Message


@dataclass(frozen=True)
class ConversationSnapshot:
    """Read-only view handed to the presentation layer."""

    messages: tuple[Message, ...]
    is_request_pending: bool
    is_speaking: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "is_request_pending": self.is_request_pending,
            "is_speaking": self.is_speaking,
        }


@dataclass(frozen=True)
class ConversationState:
    """
    Immutable snapshot of one conversation.

    Invariants:
    - messages are ordered by strictly increasing sequence
    - next_sequence is greater than every sequence in messages
    """

    messages: tuple[Message, ...] = ()
    is_request_pending: bool = False
    is_speaking: bool = False
    next_sequence: int = FIRST_SEQUENCE

    def snapshot(self) -> ConversationSnapshot:
        """Presentation snapshot: the only state visible outside the session."""
        return ConversationSnapshot(
            messages=self.messages,
            is_request_pending=self.is_request_pending,
            is_speaking=self.is_speaking,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.snapshot().to_dict()


# ------------------------------------------------------------------
# Transitions
# ------------------------------------------------------------------

def append_message(
    state: ConversationState,
    text: str,
    *,
    is_user: bool,
) -> ConversationState:
    """
    Add a message to the tail and assign the next sequence number.

    Empty text is allowed (bot replies may be empty); None is not.
    """
    if text is None:
        raise ValueError("message text must not be None")

    message = Message(text=text, is_user=is_user, sequence=state.next_sequence)
    return replace(
        state,
        messages=state.messages + (message,),
        next_sequence=state.next_sequence + 1,
    )


def clear_messages(state: ConversationState) -> ConversationState:
    """Empty the log and drop the speaking flag. Pending survives."""
    return ConversationState(is_request_pending=state.is_request_pending)


def set_pending(state: ConversationState, pending: bool) -> ConversationState:
    return replace(state, is_request_pending=pending)


def set_speaking(state: ConversationState, speaking: bool) -> ConversationState:
    return replace(state, is_speaking=speaking)


# ------------------------------------------------------------------
# Read access
# ------------------------------------------------------------------

def last_message(state: ConversationState) -> Message | None:
    """Most recent message, or None for an empty log."""
    if not state.messages:
        return None
    return state.messages[-1]
