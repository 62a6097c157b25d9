"""
On-device speakers.

SystemSpeaker drives the OS speech engine through pyttsx3 (SAPI5, NSSpeech,
eSpeak). pyttsx3 blocks in runAndWait(), so each utterance runs in a worker
thread; one engine is shared and guarded by a lock so utterances never
overlap on the device.

SilentSpeaker is the text-only backend: every utterance completes at once.
"""
from __future__ import annotations

import asyncio
import threading
import time
from typing import Any, Awaitable, Callable

import pyttsx3

from adapters.speaker.base import SpeakerAdapter
from observability.logger import log_event
from orchestrator.enums.service import Service
from orchestrator.events import (
    Event,
    EventType,
    SpeechDone,
    SpeechFailed,
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _speech_done(run_id: int) -> SpeechDone:
    return SpeechDone(
        event_type=EventType.SPEECH_DONE,
        ts_ms=_now_ms(),
        service=Service.SPEAKER,
        run_id=run_id,
    )


class SystemSpeaker(SpeakerAdapter):
    """
    pyttsx3-backed speaker.

    Design:
    - One asyncio task per run_id awaiting a worker thread
    - stop() cancels the task and interrupts the engine; the worker
      returns as soon as the engine notices
    """

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Awaitable[None]],
        session_id: str,
        engine_factory: Callable[[], Any] = pyttsx3.init,
    ) -> None:
        self._emit_event = emit_event
        self._session_id = session_id
        self._engine_factory = engine_factory
        self._engine: Any = None

        # Serializes access to the engine across worker threads
        self._engine_lock = threading.Lock()
        self._tasks: dict[int, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Public API (SpeakerAdapter contract)
    # ------------------------------------------------------------------

    async def speak(self, *, run_id: int, text: str) -> None:
        if run_id in self._tasks:
            return

        for stale_run_id in list(self._tasks):
            self.stop(stale_run_id)

        task = asyncio.create_task(self._run(run_id=run_id, text=text))
        self._tasks[run_id] = task

        def _cleanup(_: asyncio.Task[None]) -> None:
            if self._tasks.get(run_id) is task:
                self._tasks.pop(run_id, None)

        task.add_done_callback(_cleanup)

    def stop(self, run_id: int) -> None:
        task = self._tasks.pop(run_id, None)
        if task is None:
            return
        task.cancel()
        self._interrupt_engine()

    def force_reset(self) -> None:
        for task in self._tasks.values():
            task.cancel()

        self._tasks.clear()
        self._interrupt_engine()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(self, *, run_id: int, text: str) -> None:
        try:
            await asyncio.to_thread(self._say_blocking, text)
        except asyncio.CancelledError:
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            await self._emit_event(
                SpeechFailed(
                    event_type=EventType.SPEECH_FAILED,
                    ts_ms=_now_ms(),
                    service=Service.SPEAKER,
                    run_id=run_id,
                    reason=f"{type(exc).__name__}: {exc}",
                )
            )
            return

        await self._emit_event(_speech_done(run_id))

    def _say_blocking(self, text: str) -> None:
        """Runs in a worker thread. Returns when the engine finishes or is stopped."""
        with self._engine_lock:
            if self._engine is None:
                self._engine = self._engine_factory()
            self._engine.say(text)
            self._engine.runAndWait()

    def _interrupt_engine(self) -> None:
        engine = self._engine
        if engine is None:
            return
        try:
            engine.stop()
        except RuntimeError as exc:
            # Engine not running (already finished); nothing to interrupt
            log_event({
                "ts_ms": _now_ms(),
                "level": "DEBUG",
                "event_type": "speech_engine_stop_noop",
                "session_id": self._session_id,
                "error": str(exc),
            })


class SilentSpeaker(SpeakerAdapter):
    """Text-only speaker: completes every utterance immediately."""

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Awaitable[None]],
    ) -> None:
        self._emit_event = emit_event
        self._tasks: dict[int, asyncio.Task[None]] = {}

    async def speak(self, *, run_id: int, text: str) -> None:
        # Completion must not re-enter the runtime while it executes commands
        task = asyncio.create_task(self._emit_event(_speech_done(run_id)))
        self._tasks[run_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(run_id, None))

    def stop(self, run_id: int) -> None:
        task = self._tasks.pop(run_id, None)
        if task is not None:
            task.cancel()

    def force_reset(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
