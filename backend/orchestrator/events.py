"""
Unified event definitions for the session reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Service completions carry run_id for stale gating.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.enums.service import Service


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_END = "SESSION_END"

    # ------------------------------------------------------------------
    # Presentation control
    # ------------------------------------------------------------------
    USER_TEXT = "USER_TEXT"
    TOGGLE_SPEECH = "TOGGLE_SPEECH"
    CLEAR_CONVERSATION = "CLEAR_CONVERSATION"

    # ------------------------------------------------------------------
    # Generator
    # ------------------------------------------------------------------
    GENERATION_COMPLETED = "GENERATION_COMPLETED"
    GENERATION_FAILED = "GENERATION_FAILED"

    # ------------------------------------------------------------------
    # Speaker
    # ------------------------------------------------------------------
    SPEECH_DONE = "SPEECH_DONE"
    SPEECH_FAILED = "SPEECH_FAILED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Service-Scoped Events
# =============================================================================

@dataclass(frozen=True)
class ServiceEvent(Event):
    """
    Base class for events scoped to a versioned external service.

    The reducer MUST ignore events whose run_id does not match the
    currently active run for that service.
    """

    service: Service
    run_id: int


# =============================================================================
# Session Events
# =============================================================================

@dataclass(frozen=True)
class SessionStarted(Event):
    """Session created; triggers the greeting turn."""
    session_id: str


@dataclass(frozen=True)
class SessionEnd(Event):
    """Explicit session teardown."""
    reason: str | None = None


# =============================================================================
# Presentation Control Events
# =============================================================================

@dataclass(frozen=True)
class UserText(Event):
    """User submitted text. Raw, untrimmed."""
    text: str


@dataclass(frozen=True)
class ToggleSpeech(Event):
    """User pressed the speak/stop control."""


@dataclass(frozen=True)
class ClearConversation(Event):
    """User cleared the transcript."""


# =============================================================================
# Generator Events
# =============================================================================

@dataclass(frozen=True)
class GenerationCompleted(ServiceEvent):
    """Generator returned text for run_id."""
    text: str


@dataclass(frozen=True)
class GenerationFailed(ServiceEvent):
    """Generator call for run_id failed (network, auth, malformed, empty)."""
    reason: str


# =============================================================================
# Speaker Events
# =============================================================================

@dataclass(frozen=True)
class SpeechDone(ServiceEvent):
    """Utterance for run_id finished without being stopped."""


@dataclass(frozen=True)
class SpeechFailed(ServiceEvent):
    """Synthesis engine error for run_id."""
    reason: str
