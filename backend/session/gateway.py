"""
Session gateway.

Responsibilities:
- Owns ChatSession lifecycle (one gateway == one connection == one session)
- Builds runtime and adapters from AppConfig
- Exposes the presentation operations:
    send_user_text(), toggle_speech(), clear(), end_session(), snapshot()
- Routes inbound JSON control messages -> those operations
- Pushes state snapshots, control messages and speech audio to the client

NOT responsible for:
- Any state machine logic (reducer)
- Executing commands (runtime)
- Talking to vendors (adapters)
"""

from __future__ import annotations

import json
import time
from typing import Any, Protocol, TYPE_CHECKING

from uuid import uuid4

from adapters.generator.openai_compatible import OpenAICompatibleGenerator
from adapters.speaker.base import SpeakerAdapter
from adapters.speaker.speechmatics import SpeechmaticsSpeaker
from adapters.speaker.system import SilentSpeaker, SystemSpeaker
from constants import LOG_PAYLOAD_PREVIEW_CHARS
from conversation.store import ConversationSnapshot
from observability.logger import log_event
from orchestrator.events import (
    ClearConversation,
    Event,
    EventType,
    SessionEnd,
    SessionStarted,
    ToggleSpeech,
    UserText,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import SessionState
from protocol.binary import encode_s2c_frame
from session.chat_session import ChatSession

if TYPE_CHECKING:
    from config import AppConfig


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"chat_{uuid4().hex[:12]}"


class ClientSink(Protocol):
    """Outbound half of the client connection."""

    async def send_json(self, msg: dict[str, Any]) -> None: ...

    async def send_bytes(self, payload: bytes) -> None: ...

    async def close(self) -> None: ...


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """One gateway == one chat session."""

    def __init__(
        self,
        *,
        config: AppConfig,
        client: ClientSink,
        generator_client: Any,  # Type: openai.AsyncOpenAI
    ) -> None:
        self._config = config
        self._client = client
        self._client_open = False

        # Generator vendor client (injected, carries the credential)
        self._generator_client = generator_client

        self.session: ChatSession | None = None
        self._last_snapshot: ConversationSnapshot | None = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_ws_connect(self) -> None:
        """Build the session and start the greeting turn."""
        session_id = _new_session_id()
        self.session = ChatSession(session_id=session_id)
        self._client_open = True

        runtime = Runtime(
            initial_state=SessionState(auto_speak=self._config.auto_speak),
            context=RuntimeExecutionContext(session=self.session),
        )

        self.session.attach_generator(
            OpenAICompatibleGenerator(
                emit_event=runtime.handle_event,
                client=self._generator_client,
                model=self._config.llm_model,
                session_id=session_id,
            )
        )
        self.session.attach_speaker(self._build_speaker(runtime, session_id))

        # Attach runtime (must be AFTER adapters)
        self.session.attach_runtime(runtime)
        runtime.subscribe(self._on_state_changed)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_CREATED",
            "session_id": session_id,
            "llm_provider": self._config.llm_provider,
            "llm_model": self._config.llm_model,
            "tts_provider": self._config.tts_provider,
        })

        await self._send_json({
            "type": "SESSION_INIT",
            "session_id": session_id,
            "config": {
                "auto_speak": self._config.auto_speak,
                "tts_provider": self._config.tts_provider,
            },
        })

        await self._dispatch(
            SessionStarted(
                event_type=EventType.SESSION_STARTED,
                ts_ms=_now_ms(),
                session_id=session_id,
            )
        )

    async def on_ws_disconnect(self, reason: str | None = None) -> None:
        """Called when the WebSocket disconnects. Ends the session."""
        self._client_open = False

        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return

        await self.end_session(reason=reason)

        runtime = self.session.runtime
        if runtime is not None:
            await runtime.shutdown()

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_CLOSED",
            "reason": reason,
            **self.session.log_context(),
        })

    # ------------------------------------------------------------------
    # Presentation operations
    # ------------------------------------------------------------------

    async def send_user_text(self, text: str) -> None:
        await self._dispatch(
            UserText(event_type=EventType.USER_TEXT, ts_ms=_now_ms(), text=text)
        )

    async def toggle_speech(self) -> None:
        await self._dispatch(
            ToggleSpeech(event_type=EventType.TOGGLE_SPEECH, ts_ms=_now_ms())
        )

    async def clear(self) -> None:
        await self._dispatch(
            ClearConversation(event_type=EventType.CLEAR_CONVERSATION, ts_ms=_now_ms())
        )

    async def end_session(self, reason: str | None = None) -> None:
        """End the session; an open client is told and then disconnected."""
        await self._dispatch(
            SessionEnd(event_type=EventType.SESSION_END, ts_ms=_now_ms(), reason=reason)
        )

        if not self._client_open:
            return

        await self._send_json({
            "type": "SESSION_ENDED",
            "session_id": self.session.session_id if self.session else None,
            "reason": reason,
        })
        await self._close_client()

    @property
    def client_closed(self) -> bool:
        """True once the session stopped talking to its client."""
        return self.session is not None and not self._client_open

    def snapshot(self) -> ConversationSnapshot | None:
        """Read-only view of the conversation, or None before connect."""
        if self.session is None or self.session.runtime is None:
            return None
        return self.session.runtime.snapshot

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> None:
        """Route inbound JSON to presentation operations."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:LOG_PAYLOAD_PREVIEW_CHARS],
            })
            return

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "JSON_DECODE_ERROR",
                "session_id": self.session.session_id,
                "error": str(e),
                "payload_preview": payload[:LOG_PAYLOAD_PREVIEW_CHARS],
            })
            return

        msg_type = data.get("type") if isinstance(data, dict) else None

        if msg_type == "USER_TEXT":
            text = data.get("text")
            if not isinstance(text, str):
                log_event({
                    "ts_ms": _now_ms(),
                    "level": "WARNING",
                    "event_type": "INVALID_MESSAGE",
                    "session_id": self.session.session_id,
                    "msg_type": msg_type,
                    "error": "text must be a string",
                })
                return
            await self.send_user_text(text)
        elif msg_type == "TOGGLE_SPEECH":
            await self.toggle_speech()
        elif msg_type == "CLEAR":
            await self.clear()
        elif msg_type == "SESSION_END":
            await self.end_session(reason="client_request")
        else:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": msg_type,
                "session_id": self.session.session_id,
            })

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _on_state_changed(self, _: SessionState) -> None:
        """
        Runtime subscriber: flush control messages, then the snapshot.

        Always sends the runtime's *current* snapshot, so a notification
        that arrives late never rolls the client back.
        """
        if self.session is None or self.session.runtime is None:
            return

        for msg in self.session.drain_control():
            await self._send_json(msg)

        snapshot = self.session.runtime.snapshot
        if snapshot == self._last_snapshot:
            return
        self._last_snapshot = snapshot

        await self._send_json({
            "type": "SNAPSHOT",
            "session_id": self.session.session_id,
            "state": snapshot.to_dict(),
        })

    async def _on_speech_audio(self, run_id: int, sequence_num: int, pcm_bytes: bytes) -> None:
        """Audio sink for the speechmatics speaker. Drops frames of stopped runs."""
        if self.session is None or self.session.runtime is None:
            return

        state = self.session.runtime.state
        if run_id != state.active_runs.speaker or not state.conversation.is_speaking:
            return

        await self._send_bytes(
            encode_s2c_frame(
                run_id=run_id,
                sequence_num=sequence_num,
                pcm_bytes=pcm_bytes,
            )
        )

    async def _send_json(self, msg: dict[str, Any]) -> None:
        if not self._client_open:
            return
        try:
            await self._client.send_json(msg)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._on_send_failed(exc)

    async def _send_bytes(self, payload: bytes) -> None:
        if not self._client_open:
            return
        try:
            await self._client.send_bytes(payload)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._on_send_failed(exc)

    async def _close_client(self) -> None:
        self._client_open = False
        try:
            await self._client.close()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._on_send_failed(exc)

    def _on_send_failed(self, exc: Exception) -> None:
        # Stop pushing; the route's receive loop will observe the disconnect
        self._client_open = False
        log_event({
            "ts_ms": _now_ms(),
            "level": "WARNING",
            "event_type": "CLIENT_SEND_FAILED",
            "session_id": self.session.session_id if self.session else None,
            "exception": type(exc).__name__,
            "message": str(exc),
        })

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _build_speaker(self, runtime: Runtime, session_id: str) -> SpeakerAdapter:
        provider = self._config.tts_provider

        if provider == "speechmatics":
            if not self._config.speechmatics_api_key:
                raise RuntimeError("SPEECHMATICS_API_KEY environment variable not set")
            return SpeechmaticsSpeaker(
                emit_event=runtime.handle_event,
                audio_sink=self._on_speech_audio,
                api_key=self._config.speechmatics_api_key,
                session_id=session_id,
                voice=self._config.speechmatics_voice,
            )

        if provider == "system":
            return SystemSpeaker(
                emit_event=runtime.handle_event,
                session_id=session_id,
            )

        if provider == "none":
            return SilentSpeaker(emit_event=runtime.handle_event)

        raise RuntimeError(f"Unknown TTS_PROVIDER: {provider}")

    # ------------------------------------------------------------------
    # Runtime dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, event: Event) -> None:
        """Forward event into runtime."""
        if self.session is None or self.session.runtime is None:
            # Bootstrap failed before the runtime was attached
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "DISPATCH_WITHOUT_SESSION",
                "dropped_event": event.event_type.value,
            })
            return

        await self.session.runtime.handle_event(event)
