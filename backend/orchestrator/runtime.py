"""
Runtime execution shell for a single chat session.

Responsibilities:
- Own session state
- Call pure reducer
- Execute commands with side effects (generator, speaker, logging)
- Publish state changes to subscribers (presentation layer)

Non-responsibilities:
- Any orchestration decision (reducer owns those)
- Transport concerns (WebSocket, JSON framing)
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from conversation.store import ConversationSnapshot
from observability.logger import log_event
from orchestrator.commands import (
    Command,
    LogEvent,
    StartGeneration,
    StartSpeech,
    StopSpeech,
)
from orchestrator.events import Event
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import SessionState


if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


StateListener = Callable[[SessionState], Awaitable[None]]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for a single chat session.

    Responsibilities:
    - Own the authoritative session state
    - Act as the universal event sink for the session
      (gateway events, generator events, speaker events)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects
    - Notify subscribers after every state change

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - State transitions are serialized by the event loop
    - All side effects occur *after* state has been updated
    - Runtime never performs orchestration logic itself
    """

    def __init__(
        self,
        *,
        initial_state: SessionState,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> SessionState:
        """
        Return the current immutable session state.

        Consumers must never modify this state directly.
        """
        return self._state

    @property
    def snapshot(self) -> ConversationSnapshot:
        """Read-only conversation view for rendering."""
        return self._state.conversation.snapshot()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a coroutine called with the new state after every change.

        Returns an unsubscribe callable.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the orchestration pipeline.

        Processing steps:
        1. Pass the current state and event to the pure reducer
        2. Swap in the new session state
        3. Execute all emitted commands sequentially
        4. Notify subscribers if the state changed

        This method is the *only* entry point for events affecting
        session state. All event sources converge here:
        - Gateway (user input, session lifecycle)
        - Generator adapter (completion, failure)
        - Speaker adapter (done, failure)
        """
        prev_state = self._state
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

        if new_state != prev_state:
            await self._publish(new_state)

    async def shutdown(self) -> None:
        """
        Clean shutdown of runtime.

        Drops in-flight generator calls, stops speech and detaches
        subscribers. Called by gateway on disconnect.
        """
        self._listeners.clear()

        if self._ctx.generator is not None:
            self._ctx.generator.force_reset()

        if self._ctx.speaker is not None:
            self._ctx.speaker.force_reset()

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            })

        elif isinstance(cmd, StartGeneration):
            assert self._ctx.generator is not None, "Generator adapter missing"
            await self._ctx.generator.start_generation(
                run_id=cmd.run_id,
                prompt=cmd.prompt,
            )
            log_event({
                "ts_ms": _now_ms(),
                "level": "DEBUG",
                "event_type": "generation_start_executed",
                "session_id": self._ctx.session_id,
                "generator_run_id": cmd.run_id,
            })

        elif isinstance(cmd, StartSpeech):
            assert self._ctx.speaker is not None, "Speaker adapter missing"
            self._ctx.enqueue_control({
                "type": "SPEECH_START",
                "run_id": cmd.run_id,
                "ts_ms": _now_ms(),
            })
            await self._ctx.speaker.speak(run_id=cmd.run_id, text=cmd.text)
            log_event({
                "ts_ms": _now_ms(),
                "level": "DEBUG",
                "event_type": "speech_start_executed",
                "session_id": self._ctx.session_id,
                "speaker_run_id": cmd.run_id,
                "chars": len(cmd.text),
            })

        elif isinstance(cmd, StopSpeech):
            assert self._ctx.speaker is not None, "Speaker adapter missing"
            self._ctx.speaker.stop(cmd.run_id)

            # Client may hold buffered audio for this run; tell it to drop it
            self._ctx.enqueue_control({
                "type": "AUDIO_STOP",
                "run_id": cmd.run_id,
                "ts_ms": _now_ms(),
            })
            log_event({
                "ts_ms": _now_ms(),
                "level": "DEBUG",
                "event_type": "speech_stop_executed",
                "session_id": self._ctx.session_id,
                "speaker_run_id": cmd.run_id,
            })

        else:
            log_event({
                "ts_ms": _now_ms(),
                "level": "ERROR",
                "event_type": "UNKNOWN_COMMAND",
                "session_id": self._ctx.session_id,
                "command_type": type(cmd).__name__,
            })

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    async def _publish(self, state: SessionState) -> None:
        for listener in list(self._listeners):
            await listener(state)
