# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import Any

import pytest

import orchestrator.runtime as runtime_mod
from constants import FALLBACK_TEXT, GREETING_PROMPT
from conversation.store import ConversationSnapshot
from orchestrator.enums.service import Service
from orchestrator.events import (
    ClearConversation,
    EventType,
    GenerationCompleted,
    GenerationFailed,
    SessionStarted,
    SpeechDone,
    ToggleSpeech,
    UserText,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import SessionState
from session.chat_session import ChatSession


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------

class FakeGenerator:
    """Records calls; the test decides when and how each run resolves."""

    def __init__(self) -> None:
        self.calls: list[tuple[int, str]] = []
        self.resets = 0

    async def start_generation(self, *, run_id: int, prompt: str) -> None:
        self.calls.append((run_id, prompt))

    def force_reset(self) -> None:
        self.resets += 1


class FakeSpeaker:
    def __init__(self) -> None:
        self.spoken: list[tuple[int, str]] = []
        self.stopped: list[int] = []
        self.resets = 0

    async def speak(self, *, run_id: int, text: str) -> None:
        self.spoken.append((run_id, text))

    def stop(self, run_id: int) -> None:
        self.stopped.append(run_id)

    def force_reset(self) -> None:
        self.resets += 1


class Harness:
    def __init__(self, state: SessionState | None = None) -> None:
        self.session = ChatSession(session_id="s1")
        self.generator = FakeGenerator()
        self.speaker = FakeSpeaker()
        self.session.attach_generator(self.generator)
        self.session.attach_speaker(self.speaker)
        self.runtime = Runtime(
            initial_state=state or SessionState(),
            context=RuntimeExecutionContext(session=self.session),
        )
        self.session.attach_runtime(self.runtime)

    async def start(self) -> None:
        await self.runtime.handle_event(
            SessionStarted(event_type=EventType.SESSION_STARTED, ts_ms=0, session_id="s1")
        )

    async def send(self, text: str) -> None:
        await self.runtime.handle_event(
            UserText(event_type=EventType.USER_TEXT, ts_ms=0, text=text)
        )

    async def reply(self, text: str) -> None:
        run_id = self.generator.calls[-1][0]
        await self.runtime.handle_event(
            GenerationCompleted(
                event_type=EventType.GENERATION_COMPLETED,
                ts_ms=0,
                service=Service.GENERATOR,
                run_id=run_id,
                text=text,
            )
        )

    async def fail(self) -> None:
        run_id = self.generator.calls[-1][0]
        await self.runtime.handle_event(
            GenerationFailed(
                event_type=EventType.GENERATION_FAILED,
                ts_ms=0,
                service=Service.GENERATOR,
                run_id=run_id,
                reason="boom",
            )
        )

    async def toggle(self) -> None:
        await self.runtime.handle_event(
            ToggleSpeech(event_type=EventType.TOGGLE_SPEECH, ts_ms=0)
        )

    async def clear(self) -> None:
        await self.runtime.handle_event(
            ClearConversation(event_type=EventType.CLEAR_CONVERSATION, ts_ms=0)
        )


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(runtime_mod, "log_event", emitted.append)
    return emitted


# ---------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------

def test_start_session_greeting_scenario():
    h = Harness()

    async def scenario() -> None:
        await h.start()
        await h.reply("Hi there")

    asyncio.run(scenario())

    assert h.generator.calls == [(1, GREETING_PROMPT)]
    assert [m.to_dict() for m in h.runtime.snapshot.messages] == [
        {"text": "Hi there", "is_user": False, "sequence": 0},
    ]
    assert h.speaker.spoken == []


def test_send_scenario_speaks_reply_exactly_once():
    h = Harness()

    async def scenario() -> None:
        await h.start()
        await h.reply("Hi there")
        await h.send("What's 2+2?")
        await h.reply("4")

    asyncio.run(scenario())

    texts = [(m.text, m.is_user) for m in h.runtime.snapshot.messages]
    assert texts[-2:] == [("What's 2+2?", True), ("4", False)]
    assert h.speaker.spoken == [(1, "4")]
    assert h.runtime.snapshot.is_speaking is True


def test_failure_scenario_appends_fallback_and_clears_pending():
    h = Harness()

    async def scenario() -> None:
        await h.start()
        await h.reply("Hi there")
        await h.send("ping")
        await h.fail()

    asyncio.run(scenario())

    assert h.runtime.snapshot.messages[-1].text == FALLBACK_TEXT
    assert h.runtime.snapshot.is_request_pending is False


def test_toggle_while_speaking_stops_without_new_speech():
    h = Harness()

    async def scenario() -> None:
        await h.start()
        await h.reply("Hi there")
        await h.toggle()
        await h.toggle()

    asyncio.run(scenario())

    assert h.speaker.spoken == [(1, "Hi there")]
    assert h.speaker.stopped == [1]
    assert h.runtime.snapshot.is_speaking is False


def test_stop_and_start_enqueue_client_controls():
    h = Harness()

    async def scenario() -> None:
        await h.start()
        await h.reply("Hi there")
        await h.toggle()
        await h.clear()

    asyncio.run(scenario())

    controls = [(m["type"], m["run_id"]) for m in h.session.drain_control()]
    assert controls == [("SPEECH_START", 1), ("AUDIO_STOP", 1)]
    assert h.session.drain_control() == ()


def test_late_speech_done_after_stop_is_ignored():
    h = Harness()

    async def scenario() -> None:
        await h.start()
        await h.reply("Hi there")
        await h.toggle()
        await h.toggle()
        await h.toggle()  # speaker run 2
        await h.runtime.handle_event(
            SpeechDone(
                event_type=EventType.SPEECH_DONE,
                ts_ms=0,
                service=Service.SPEAKER,
                run_id=1,
            )
        )

    asyncio.run(scenario())

    assert h.runtime.snapshot.is_speaking is True
    assert h.runtime.state.active_runs.speaker == 2


# ---------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------

def test_subscribers_are_notified_only_on_change():
    h = Harness()
    seen: list[SessionState] = []

    async def listener(state: SessionState) -> None:
        seen.append(state)

    async def scenario() -> None:
        unsubscribe = h.runtime.subscribe(listener)
        await h.start()
        await h.send("ignored while awaiting")
        await h.reply("Hi there")
        unsubscribe()
        await h.toggle()

    asyncio.run(scenario())

    assert len(seen) == 2
    assert seen[0].conversation.is_request_pending is True
    assert seen[1].conversation.messages[-1].text == "Hi there"


def test_log_commands_carry_session_id(_quiet_logs: list[dict[str, Any]]):
    h = Harness()

    asyncio.run(h.start())

    decisions = [e for e in _quiet_logs if "decision" in e]
    assert decisions
    assert all(e["session_id"] == "s1" for e in decisions)


def test_shutdown_resets_adapters_and_detaches_listeners():
    h = Harness()
    seen: list[SessionState] = []

    async def listener(state: SessionState) -> None:
        seen.append(state)

    async def scenario() -> None:
        h.runtime.subscribe(listener)
        await h.runtime.shutdown()
        await h.start()

    asyncio.run(scenario())

    assert h.generator.resets == 1
    assert h.speaker.resets == 1
    assert not seen


def test_snapshot_exposes_only_presentation_fields():
    h = Harness()

    async def scenario() -> None:
        await h.start()
        await h.reply("Hi there")

    asyncio.run(scenario())

    snapshot = h.runtime.snapshot
    assert isinstance(snapshot, ConversationSnapshot)
    assert not hasattr(snapshot, "next_sequence")
    assert snapshot.to_dict() == {
        "messages": [{"text": "Hi there", "is_user": False, "sequence": 0}],
        "is_request_pending": False,
        "is_speaking": False,
    }
