"""
Side-effect command definitions for the session reducer.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Generator
    START_GENERATION = "START_GENERATION"

    # Speaker
    START_SPEECH = "START_SPEECH"
    STOP_SPEECH = "STOP_SPEECH"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Generator Commands
# =============================================================================

@dataclass(frozen=True)
class StartGeneration(Command):
    """
    Request a single generator call.

    The adapter must emit exactly one GenerationCompleted or
    GenerationFailed carrying run_id.
    """
    run_id: int
    prompt: str
    command_type: CommandType = CommandType.START_GENERATION


# =============================================================================
# Speaker Commands
# =============================================================================

@dataclass(frozen=True)
class StartSpeech(Command):
    """
    Request playback of text.

    Any prior utterance has already been stopped by a preceding StopSpeech
    in the same command tuple.
    """
    run_id: int
    text: str
    command_type: CommandType = CommandType.START_SPEECH


@dataclass(frozen=True)
class StopSpeech(Command):
    """Request to stop the utterance for run_id. Best-effort, idempotent."""
    run_id: int
    command_type: CommandType = CommandType.STOP_SPEECH


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
