"""
Runtime execution context.

Provides Runtime with live access to session-owned imperative resources
needed for command execution and side effects (adapters, control queue).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from session.chat_session import ChatSession


# ---------------------------------------------------------------------
# Adapter Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class GeneratorAdapterProtocol(Protocol):
    async def start_generation(self, *, run_id: int, prompt: str) -> None: ...

    def force_reset(self) -> None:
        """Drop all in-flight calls without emitting events."""


@runtime_checkable
class SpeakerAdapterProtocol(Protocol):
    """
    Utterance-oriented speaker protocol.

    Contract:
    - speak() schedules playback and returns immediately
    - Adapter emits at most one terminal event per run:
        - SpeechDone(run_id)
        - OR SpeechFailed(run_id, reason)
    - stop() is synchronous, idempotent and best-effort
    """

    async def speak(self, *, run_id: int, text: str) -> None: ...

    def stop(self, run_id: int) -> None: ...

    def force_reset(self) -> None:
        """Stop everything (session teardown)."""


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    This object provides *live views* into session-owned resources
    so Runtime does not need to synchronize or cache anything.

    Runtime is allowed to:
    - Call adapters
    - Enqueue control messages for the client

    Runtime is NOT allowed to:
    - Mutate session state directly
    - Perform orchestration decisions
    """

    def __init__(self, session: ChatSession) -> None:
        self.session = session

    # ----------------------------
    # Session metadata
    # ----------------------------

    @property
    def session_id(self) -> str:
        return self.session.session_id

    # ----------------------------
    # Adapters
    # ----------------------------

    @property
    def generator(self) -> GeneratorAdapterProtocol | None:
        return self.session.generator

    @property
    def speaker(self) -> SpeakerAdapterProtocol | None:
        return self.session.speaker

    # ----------------------------
    # Client control
    # ----------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        self.session.enqueue_control(msg)
