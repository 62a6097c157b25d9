"""
Authoritative session state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from conversation.store import ConversationState
from orchestrator.enums.state import State
from orchestrator.run_ids import RunIds


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of all session-owned state."""

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    state: State = State.IDLE

    # ------------------------------------------------------------------
    # Transcript + flags (presentation-visible)
    # ------------------------------------------------------------------
    conversation: ConversationState = field(default_factory=ConversationState)

    # ------------------------------------------------------------------
    # Run/version tracking
    # ------------------------------------------------------------------
    active_runs: RunIds = field(default_factory=RunIds)

    # True while the in-flight generation is the greeting turn.
    # Greeting replies are appended but never spoken.
    greeting_in_flight: bool = False

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------
    # Speak every reply as soon as it lands.
    auto_speak: bool = True
