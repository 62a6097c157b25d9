"""Generator adapter for OpenAI-compatible chat completion endpoints."""
from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from adapters.generator.base import GenerationFailure, GenerationResult, GeneratorAdapter
from observability.logger import log_event
from orchestrator.enums.service import Service
from orchestrator.events import (
    Event,
    EventType,
    GenerationCompleted,
    GenerationFailed,
)


class OpenAICompatibleGenerator(GeneratorAdapter):
    """
    Concrete single-shot generator adapter.

    Design notes:
    - One adapter instance serves all sequential runs of a session.
    - Each run is tracked independently via run_id → asyncio.Task.
    - The vendor client is injected; it carries the credential, base URL,
      timeout and retry policy (max_retries=0).
    - Works with any provider exposing the chat.completions API
      (OpenAI, Groq, Gemini's OpenAI-compatible endpoint).
    """

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Awaitable[None]],
        client: Any,
        model: str,
        session_id: str,
    ) -> None:
        """
        Args:
            emit_event:
                Callback used to emit events into the runtime.
            client:
                Vendor client (openai.AsyncOpenAI or compatible).
            model:
                Model identifier string.
            session_id:
                Session identifier for logging/correlation.
        """
        self._emit_event = emit_event
        self._client = client
        self._model = model
        self._session_id = session_id

        # One task per active run_id
        self._active_tasks: dict[int, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, prompt: str) -> GenerationResult:
        """Call the chat completions API once with prompt as the only message."""
        t0 = time.monotonic_ns()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            return GenerationFailure(reason=f"{type(exc).__name__}: {exc}")

        text = self._extract_text(response)

        log_event({
            "ts_ms": self._now_ms(),
            "level": "DEBUG",
            "event_type": "generator_call_finished",
            "session_id": self._session_id,
            "model": self._model,
            "latency_ms": (time.monotonic_ns() - t0) // 1_000_000,
            "chars": len(text) if text is not None else None,
        })

        if text is None:
            return GenerationFailure(reason="malformed_response")
        if not text.strip():
            return GenerationFailure(reason="empty_response")
        return text

    async def start_generation(self, *, run_id: int, prompt: str) -> None:
        if run_id in self._active_tasks:
            return

        task = asyncio.create_task(self._run(run_id, prompt))
        self._active_tasks[run_id] = task

        def _cleanup(_: asyncio.Task[None]) -> None:
            self._active_tasks.pop(run_id, None)

        task.add_done_callback(_cleanup)

        # Return immediately; the result arrives as an event
        return

    def force_reset(self) -> None:
        for task in self._active_tasks.values():
            task.cancel()

        self._active_tasks.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(self, run_id: int, prompt: str) -> None:
        """
        Internal generation task.

        Guarantees:
        - Emits events only for its own run_id
        - Emits exactly one terminal event unless hard-reset
        """
        try:
            result = await self.generate(prompt)
        except asyncio.CancelledError:
            # Hard reset on teardown; the session no longer listens
            return

        if isinstance(result, GenerationFailure):
            await self._emit_event(
                GenerationFailed(
                    event_type=EventType.GENERATION_FAILED,
                    ts_ms=self._now_ms(),
                    service=Service.GENERATOR,
                    run_id=run_id,
                    reason=result.reason,
                )
            )
            return

        await self._emit_event(
            GenerationCompleted(
                event_type=EventType.GENERATION_COMPLETED,
                ts_ms=self._now_ms(),
                service=Service.GENERATOR,
                run_id=run_id,
                text=result,
            )
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_text(response: Any) -> str | None:
        """
        Extract message text from a vendor response (OpenAI format).

        Returns None when the response does not have the expected shape.
        """
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            return None
        if content is None:
            return ""
        if not isinstance(content, str):
            return None
        return content

    @staticmethod
    def _now_ms() -> int:
        """Wall-clock timestamp in milliseconds."""
        return int(time.time() * 1000)
