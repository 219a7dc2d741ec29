from enum import Enum

from pydantic import BaseModel


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    ERROR = "error"  # Displayed in the transcript, never sent upstream


class Message(BaseModel):
    """One conversation turn"""
    role: Role
    content: str = ""
    is_streaming: bool = False  # True for the assistant reply currently being streamed
