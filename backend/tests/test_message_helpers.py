"""Tests for message helper utilities."""

from chatstream.models.message import Message, Role
from chatstream.utils.message_helpers import format_for_gemini, format_for_openai, outbound_history


def test_outbound_history_drops_error_entries(conversation):
    history = outbound_history(conversation)
    assert [m.role for m in history] == [Role.USER, Role.ASSISTANT, Role.USER]
    assert all("API Error" not in m.content for m in history)


def test_outbound_history_drops_empty_streaming_placeholder():
    messages = [
        Message(role=Role.USER, content="Hi"),
        Message(role=Role.ASSISTANT, content="", is_streaming=True),
    ]
    assert outbound_history(messages) == messages[:1]


def test_outbound_history_keeps_partial_streaming_reply():
    messages = [
        Message(role=Role.USER, content="Hi"),
        Message(role=Role.ASSISTANT, content="Hel", is_streaming=True),
    ]
    assert len(outbound_history(messages)) == 2


def test_outbound_history_returns_new_list():
    messages = [Message(role=Role.USER, content="Hi")]
    history = outbound_history(messages)
    history.append(Message(role=Role.USER, content="again"))
    assert len(messages) == 1


def test_format_for_openai_user():
    msg = Message(role=Role.USER, content="Hello")
    assert format_for_openai(msg) == {"role": "user", "content": "Hello"}


def test_format_for_openai_assistant():
    msg = Message(role=Role.ASSISTANT, content="Hi!")
    assert format_for_openai(msg) == {"role": "assistant", "content": "Hi!"}


def test_format_for_gemini_user():
    msg = Message(role=Role.USER, content="Hello")
    assert format_for_gemini(msg) == {"role": "user", "parts": [{"text": "Hello"}]}


def test_format_for_gemini_assistant_is_model():
    msg = Message(role=Role.ASSISTANT, content="Paris.")
    assert format_for_gemini(msg) == {"role": "model", "parts": [{"text": "Paris."}]}
