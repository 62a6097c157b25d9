# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from conversation.message import Message
from conversation.store import (
    ConversationSnapshot,
    ConversationState,
    append_message,
    clear_messages,
    last_message,
    set_pending,
    set_speaking,
)


def test_append_assigns_increasing_sequence_numbers():
    state = ConversationState()
    state = append_message(state, "hi", is_user=False)
    state = append_message(state, "hello", is_user=True)

    assert state.messages == (
        Message(text="hi", is_user=False, sequence=0),
        Message(text="hello", is_user=True, sequence=1),
    )


def test_append_allows_empty_text_but_not_none():
    state = append_message(ConversationState(), "", is_user=False)
    assert state.messages[0].text == ""

    with pytest.raises(ValueError):
        append_message(state, None, is_user=False)  # type: ignore[arg-type]


def test_append_returns_new_value():
    state = ConversationState()
    new_state = append_message(state, "hi", is_user=True)

    assert state.messages == ()
    assert new_state is not state


def test_clear_resets_log_and_speaking_but_keeps_pending():
    state = append_message(ConversationState(), "hi", is_user=True)
    state = set_pending(set_speaking(state, True), True)

    cleared = clear_messages(state)

    assert cleared.messages == ()
    assert cleared.is_speaking is False
    assert cleared.is_request_pending is True
    assert cleared.next_sequence == 0


def test_last_message():
    assert last_message(ConversationState()) is None

    state = append_message(ConversationState(), "a", is_user=True)
    state = append_message(state, "b", is_user=False)

    assert last_message(state) == Message(text="b", is_user=False, sequence=1)


def test_to_dict_is_presentation_snapshot():
    state = append_message(ConversationState(), "hi", is_user=True)
    state = set_pending(state, True)

    assert state.to_dict() == {
        "messages": [{"text": "hi", "is_user": True, "sequence": 0}],
        "is_request_pending": True,
        "is_speaking": False,
    }


def test_snapshot_hides_sequence_bookkeeping():
    state = append_message(ConversationState(), "hi", is_user=True)
    state = set_speaking(state, True)

    snapshot = state.snapshot()

    assert snapshot == ConversationSnapshot(
        messages=state.messages,
        is_request_pending=False,
        is_speaking=True,
    )
    assert not hasattr(snapshot, "next_sequence")
    assert snapshot.to_dict() == state.to_dict()
