"""
Speechmatics speaker.

Synthesizes a whole utterance with the Speechmatics TTS API and streams it
to the session's audio sink as 20ms PCM16 16kHz mono frames. The client
plays the frames; this adapter never touches an audio device.

Frames are paced at playback speed (a few frames ahead of the client), so
the utterance is "speaking" for as long as the client is playing it.

Role in the system:
- One synthesis call per utterance (run_id).
- Splits provider output into fixed-size frames, carrying odd bytes.
- Emits exactly one terminal event per utterance unless stopped:
    - SpeechDone(run_id) once the last frame has had time to play, or
    - SpeechFailed(run_id, reason).

Concurrency & cancellation:
- One asyncio task per run_id.
- stop() cancels the task; the adapter then terminates silently.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from speechmatics.tts import AsyncClient, OutputFormat, Voice # pyright: ignore[reportMissingTypeStubs] # pylint: disable=no-name-in-module, import-error

from adapters.speaker.base import SpeakerAdapter
from constants import (
    AUDIO_BYTES_PER_FRAME_PCM,
    AUDIO_FRAME_MS,
    PROVIDER_CHUNK_SIZE,
    SPEECH_PREBUFFER_FRAMES,
)
from observability.logger import log_event
from orchestrator.enums.service import Service
from orchestrator.events import (
    Event,
    EventType,
    SpeechDone,
    SpeechFailed,
)


# (run_id, sequence_num, pcm_bytes)
AudioSink = Callable[[int, int, bytes], Awaitable[None]]

_FRAME_S = AUDIO_FRAME_MS / 1000.0


class SpeechmaticsSpeaker(SpeakerAdapter):
    """
    Speechmatics whole-utterance speaker.

    Design:
    - One asyncio task per run_id
    - Fire-and-forget: speak() schedules work and returns
    - Audio delivered via audio_sink, lifecycle via events
    """

    _VOICE_MAP: dict[str, Voice] = {
        "sarah": Voice.SARAH,
        "theo": Voice.THEO,
        "megan": Voice.MEGAN,
    }

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Awaitable[None]],
        audio_sink: AudioSink,
        api_key: str,
        session_id: str,
        voice: str = "sarah",
    ) -> None:
        self._emit_event = emit_event
        self._audio_sink = audio_sink
        self._api_key = api_key
        self._session_id = session_id
        self._voice = self._resolve_voice(voice)

        self._tasks: dict[int, asyncio.Task[None]] = {}

    # ------------------------------------------------------------------
    # Public API (SpeakerAdapter contract)
    # ------------------------------------------------------------------

    async def speak(self, *, run_id: int, text: str) -> None:
        if run_id in self._tasks:
            # Duplicate request → ignore
            return

        # Never two utterances at once, even if a stop was missed upstream
        for stale_run_id in list(self._tasks):
            self.stop(stale_run_id)

        task = asyncio.create_task(self._run_synthesis(run_id=run_id, text=text))
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

    def force_reset(self) -> None:
        for task in self._tasks.values():
            task.cancel()

        self._tasks.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run_synthesis(self, *, run_id: int, text: str) -> None:
        """
        Internal synthesis task.

        Emits exactly one terminal event unless cancelled:
        - SpeechDone OR
        - SpeechFailed
        """
        try:
            t0 = time.monotonic_ns()
            sequence = 0

            async with AsyncClient(api_key=self._api_key) as client:
                async with await client.generate(
                    text=text,
                    voice=self._voice,
                    output_format=OutputFormat.RAW_PCM_16000,
                ) as response:
                    playback_start = asyncio.get_running_loop().time()
                    carry = b""
                    frame_buffer = b""

                    async for chunk in response.content.iter_chunked(PROVIDER_CHUNK_SIZE):
                        data = carry + chunk

                        # PCM16: keep samples whole across chunk boundaries
                        if len(data) % 2 == 1:
                            carry = data[-1:]
                            data = data[:-1]
                        else:
                            carry = b""

                        frame_buffer += data

                        while len(frame_buffer) >= AUDIO_BYTES_PER_FRAME_PCM:
                            frame = frame_buffer[:AUDIO_BYTES_PER_FRAME_PCM]
                            frame_buffer = frame_buffer[AUDIO_BYTES_PER_FRAME_PCM:]
                            sequence += 1
                            await self._deliver(run_id, sequence, frame, playback_start)

                    if frame_buffer:
                        # Pad the tail with silence to a full frame
                        frame = frame_buffer.ljust(AUDIO_BYTES_PER_FRAME_PCM, b"\x00")
                        sequence += 1
                        await self._deliver(run_id, sequence, frame, playback_start)

                    # Done means played, not merely sent
                    await self._sleep_until(playback_start + sequence * _FRAME_S)

            log_event({
                "ts_ms": self._now_ms(),
                "level": "DEBUG",
                "event_type": "speech_synth_metrics",
                "session_id": self._session_id,
                "speaker_run_id": run_id,
                "chars": len(text),
                "frames": sequence,
                "elapsed_ms": (time.monotonic_ns() - t0) // 1_000_000,
            })

            await self._emit_event(
                SpeechDone(
                    event_type=EventType.SPEECH_DONE,
                    ts_ms=self._now_ms(),
                    service=Service.SPEAKER,
                    run_id=run_id,
                )
            )

        except asyncio.CancelledError:
            # Stopped by the session; silent termination is allowed
            pass

        except Exception as exc:  # pylint: disable=broad-exception-caught
            await self._emit_event(
                SpeechFailed(
                    event_type=EventType.SPEECH_FAILED,
                    ts_ms=self._now_ms(),
                    service=Service.SPEAKER,
                    run_id=run_id,
                    reason=f"{type(exc).__name__}: {exc}",
                )
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _deliver(
        self,
        run_id: int,
        sequence: int,
        frame: bytes,
        playback_start: float,
    ) -> None:
        """Send one frame, staying SPEECH_PREBUFFER_FRAMES ahead of playback."""
        due = playback_start + (sequence - 1 - SPEECH_PREBUFFER_FRAMES) * _FRAME_S
        await self._sleep_until(due)
        await self._audio_sink(run_id, sequence, frame)

    @staticmethod
    async def _sleep_until(deadline: float) -> None:
        delay = deadline - asyncio.get_running_loop().time()
        if delay > 0:
            await asyncio.sleep(delay)

    @classmethod
    def _resolve_voice(cls, voice: str) -> Voice:
        """
        Convert user-facing voice string to Speechmatics Voice enum.

        Defaults to SARAH if unknown.
        """
        return cls._VOICE_MAP.get(voice.lower(), Voice.SARAH)

    @staticmethod
    def _now_ms() -> int:
        """Wall-clock timestamp in milliseconds (coarse)."""
        return int(time.time() * 1000)
