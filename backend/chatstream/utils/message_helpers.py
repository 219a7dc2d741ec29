"""Message format conversion utilities for the provider request bodies."""

from typing import Any, Iterable

from chatstream.models.message import Message, Role


def outbound_history(messages: Iterable[Message]) -> list[Message]:
    """
    Filter a transcript down to the turns that are sent upstream.

    Error entries are display-only, and an assistant placeholder that is
    still streaming with no content yet is not part of the history.

    Args:
        messages: Transcript in display order

    Returns:
        New list of user/assistant messages in the same order
    """
    history = []
    for msg in messages:
        if msg.role == Role.ERROR:
            continue
        if msg.is_streaming and not msg.content:
            continue
        history.append(msg)
    return history


def format_for_openai(message: Message) -> dict[str, Any]:
    """
    Convert message to OpenAI format (Responses input and Chat Completions).

    {"role": "user", "content": "What is the capital of France?"}
    """
    role = "user" if message.role == Role.USER else "assistant"
    return {"role": role, "content": message.content}


def format_for_gemini(message: Message) -> dict[str, Any]:
    """
    Convert message to Gemini format.

    Gemini calls the assistant "model" and wraps text in a parts array:
    {"role": "model", "parts": [{"text": "Paris."}]}
    """
    role = "user" if message.role == Role.USER else "model"
    return {"role": role, "parts": [{"text": message.content}]}
