"""
Pure session reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from constants import FALLBACK_TEXT, GREETING_PROMPT
from conversation.store import (
    append_message,
    clear_messages,
    last_message,
    set_pending,
    set_speaking,
)
from orchestrator.commands import (
    Command,
    LogEvent,
    StartGeneration,
    StartSpeech,
    StopSpeech,
)
from orchestrator.enums.state import State
from orchestrator.events import (
    ClearConversation,
    Event,
    GenerationCompleted,
    GenerationFailed,
    SessionEnd,
    SessionStarted,
    SpeechDone,
    SpeechFailed,
    ToggleSpeech,
    UserText,
)
from orchestrator.state_dataclass import SessionState


# =============================================================================
# Invariants
# =============================================================================
# - At most one generator run in flight: AWAITING_RESPONSE gates UserText
# - At most one utterance: StopSpeech always precedes a new StartSpeech
# - Run IDs are bumped ONLY on start; stop never bumps
# - Completion events for non-active runs are ignored
# - is_speaking is cleared at the stop call site, never by a late SpeechDone


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: SessionState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
    *,
    level: str = "INFO",
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "level": level,
            "state": state.state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "run_ids": {
                "generator": state.active_runs.generator,
                "speaker": state.active_runs.speaker,
            },
            "conversation": {
                "messages": len(state.conversation.messages),
                "pending": state.conversation.is_request_pending,
                "speaking": state.conversation.is_speaking,
            },
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _state_changed(
    old: SessionState,
    new: SessionState,
    event: Event,
    source: str,
) -> tuple[Command, ...]:
    if old.state is new.state:
        return ()
    return (
        _log(
            new,
            event,
            "state_changed",
            {
                "from_state": old.state.value,
                "to_state": new.state.value,
                "source": source,
            },
        ),
    )


def _ignore(
    state: SessionState, event: Event, reason: str
) -> tuple[SessionState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}, level="DEBUG"),)


def _start_generation(state: SessionState, prompt: str) -> tuple[SessionState, Command]:
    run_id = state.active_runs.generator + 1
    new_state = replace(
        state,
        state=State.AWAITING_RESPONSE,
        active_runs=replace(state.active_runs, generator=run_id),
        conversation=set_pending(state.conversation, True),
    )
    return new_state, StartGeneration(run_id=run_id, prompt=prompt)


def _stop_speech(state: SessionState) -> tuple[SessionState, tuple[Command, ...]]:
    """
    Stop the active utterance, if any.

    The speaking flag is cleared here rather than on the speaker's
    completion, which may never arrive after a stop.
    """
    if not state.conversation.is_speaking:
        return state, ()
    new_state = replace(
        state,
        conversation=set_speaking(state.conversation, False),
    )
    return new_state, (StopSpeech(run_id=state.active_runs.speaker),)


def _start_speech(
    state: SessionState, text: str
) -> tuple[SessionState, tuple[Command, ...]]:
    """Stop any prior utterance, then start a new one under a fresh run_id."""
    state, stop_cmds = _stop_speech(state)
    run_id = state.active_runs.speaker + 1
    new_state = replace(
        state,
        active_runs=replace(state.active_runs, speaker=run_id),
        conversation=set_speaking(state.conversation, True),
    )
    return new_state, stop_cmds + (StartSpeech(run_id=run_id, text=text),)


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(
    state: SessionState,
    event: Event,
) -> tuple[SessionState, tuple[Command, ...]]:
    """
    Apply one event to the session state.

    Returns the new state and the commands the runtime must execute,
    in order. The input state is never mutated.
    """

    # ------------------------------------------------------------------
    # Terminal state: everything is dropped, including late completions
    # ------------------------------------------------------------------
    if state.state is State.ENDED:
        return _ignore(state, event, "session_ended")

    if isinstance(event, SessionEnd):
        return _reduce_session_end(state, event)

    if isinstance(event, SessionStarted):
        return _reduce_session_started(state, event)

    if isinstance(event, UserText):
        return _reduce_user_text(state, event)

    if isinstance(event, (GenerationCompleted, GenerationFailed)):
        return _reduce_generation_result(state, event)

    if isinstance(event, ToggleSpeech):
        return _reduce_toggle_speech(state, event)

    if isinstance(event, ClearConversation):
        return _reduce_clear(state, event)

    if isinstance(event, (SpeechDone, SpeechFailed)):
        return _reduce_speech_result(state, event)

    return _ignore(state, event, "unhandled_event")


# =============================================================================
# Session lifecycle
# =============================================================================

def _reduce_session_started(
    state: SessionState, event: SessionStarted
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.state is not State.IDLE or state.active_runs.generator != 0:
        return _ignore(state, event, "session_already_started")

    new_state, start = _start_generation(state, GREETING_PROMPT)
    new_state = replace(new_state, greeting_in_flight=True)

    return new_state, _logs_last((
        start,
        _log(
            new_state,
            event,
            "greeting_requested",
            {"session_id": event.session_id},
        ),
    ) + _state_changed(state, new_state, event, "session_started"))


def _reduce_session_end(
    state: SessionState, event: SessionEnd
) -> tuple[SessionState, tuple[Command, ...]]:
    new_state, stop_cmds = _stop_speech(state)
    new_state = replace(new_state, state=State.ENDED, greeting_in_flight=False)

    return new_state, _logs_last(stop_cmds + (
        _log(new_state, event, "session_ended", {"reason": event.reason}),
    ) + _state_changed(state, new_state, event, "session_end"))


# =============================================================================
# Turns
# =============================================================================

def _reduce_user_text(
    state: SessionState, event: UserText
) -> tuple[SessionState, tuple[Command, ...]]:
    if not event.text.strip():
        return _ignore(state, event, "empty_text")

    if state.state is State.AWAITING_RESPONSE:
        # Backpressure: one turn in flight, no queueing
        return _ignore(state, event, "request_pending")

    # User turn is visible before the generator resolves
    new_state = replace(
        state,
        conversation=append_message(state.conversation, event.text, is_user=True),
    )
    new_state, start = _start_generation(new_state, event.text)

    return new_state, _logs_last((
        start,
        _log(
            new_state,
            event,
            "user_turn_started",
            {"chars": len(event.text)},
        ),
    ) + _state_changed(state, new_state, event, "user_text"))


def _reduce_generation_result(
    state: SessionState,
    event: GenerationCompleted | GenerationFailed,
) -> tuple[SessionState, tuple[Command, ...]]:
    if (
        state.state is not State.AWAITING_RESPONSE
        or event.run_id != state.active_runs.generator
    ):
        return _ignore(state, event, "stale_generation_run")

    failed = isinstance(event, GenerationFailed)
    text = FALLBACK_TEXT if failed else event.text
    greeting = state.greeting_in_flight

    conversation = append_message(state.conversation, text, is_user=False)
    conversation = set_pending(conversation, False)
    new_state = replace(
        state,
        state=State.IDLE,
        conversation=conversation,
        greeting_in_flight=False,
    )

    details: dict[str, Any] = {"greeting": greeting, "fallback": failed}
    if failed:
        details["reason"] = event.reason

    cmds: tuple[Command, ...] = (
        _log(
            new_state,
            event,
            "bot_reply_appended",
            details,
            level="WARNING" if failed else "INFO",
        ),
    )

    if not greeting and new_state.auto_speak:
        new_state, speech_cmds = _start_speech(new_state, text)
        cmds = speech_cmds + cmds + (
            _log(new_state, event, "speech_started", {"source": "auto_speak"}),
        )

    return new_state, _logs_last(
        cmds + _state_changed(state, new_state, event, "generation_result")
    )


# =============================================================================
# Speech control
# =============================================================================

def _reduce_toggle_speech(
    state: SessionState, event: ToggleSpeech
) -> tuple[SessionState, tuple[Command, ...]]:
    if state.conversation.is_speaking:
        new_state, stop_cmds = _stop_speech(state)
        return new_state, _logs_last(stop_cmds + (
            _log(new_state, event, "speech_stopped", {"source": "toggle"}),
        ))

    message = last_message(state.conversation)
    if message is None:
        return state, (_log(state, event, "toggle_noop_empty_log"),)

    new_state, speech_cmds = _start_speech(state, message.text)
    return new_state, _logs_last(speech_cmds + (
        _log(
            new_state,
            event,
            "speech_started",
            {"source": "toggle", "sequence": message.sequence},
        ),
    ))


def _reduce_clear(
    state: SessionState, event: ClearConversation
) -> tuple[SessionState, tuple[Command, ...]]:
    # An in-flight generation is not cancelled; its reply lands in the empty log
    new_state, stop_cmds = _stop_speech(state)
    new_state = replace(new_state, conversation=clear_messages(new_state.conversation))

    return new_state, _logs_last(stop_cmds + (
        _log(
            new_state,
            event,
            "conversation_cleared",
            {"dropped_messages": len(state.conversation.messages)},
        ),
    ))


def _reduce_speech_result(
    state: SessionState,
    event: SpeechDone | SpeechFailed,
) -> tuple[SessionState, tuple[Command, ...]]:
    if (
        not state.conversation.is_speaking
        or event.run_id != state.active_runs.speaker
    ):
        return _ignore(state, event, "stale_speech_run")

    new_state = replace(
        state,
        conversation=set_speaking(state.conversation, False),
    )

    if isinstance(event, SpeechFailed):
        # Best-effort: no transcript entry
        return new_state, (
            _log(new_state, event, "speech_failed", {"reason": event.reason}, level="WARNING"),
        )

    return new_state, (_log(new_state, event, "speech_done"),)
