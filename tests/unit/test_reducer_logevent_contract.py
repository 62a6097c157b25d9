# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.reducer import reduce
from orchestrator.state_dataclass import SessionState
from orchestrator.events import UserText, EventType
from orchestrator.commands import LogEvent, StartGeneration


def test_reducer_emits_logevent_with_required_fields():
    state = SessionState()

    event = UserText(
        event_type=EventType.USER_TEXT,
        ts_ms=123,
        text="hello",
    )

    _, commands = reduce(state, event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event

    assert payload["ts_ms"] == 123
    assert payload["event_type"] == "USER_TEXT"
    assert payload["decision"] == "user_turn_started"
    assert payload["state"] == "AWAITING_RESPONSE"
    assert payload["run_ids"] == {"generator": 1, "speaker": 0}
    assert payload["conversation"] == {"messages": 1, "pending": True, "speaking": False}
    assert payload["details"] == {"chars": 5}


def test_logevents_follow_side_effect_commands():
    _, commands = reduce(
        SessionState(),
        UserText(event_type=EventType.USER_TEXT, ts_ms=0, text="hi"),
    )

    assert isinstance(commands[0], StartGeneration)
    assert all(isinstance(c, LogEvent) for c in commands[1:])
    # state_changed always comes last
    assert commands[-1].event["decision"] == "state_changed"
    assert commands[-1].event["details"] == {
        "from_state": "IDLE",
        "to_state": "AWAITING_RESPONSE",
        "source": "user_text",
    }


def test_ignored_events_log_at_debug():
    _, commands = reduce(
        SessionState(),
        UserText(event_type=EventType.USER_TEXT, ts_ms=0, text="  "),
    )

    (log,) = commands
    assert log.event["decision"] == "ignore"
    assert log.event["level"] == "DEBUG"
    assert log.event["details"] == {"reason": "empty_text"}
