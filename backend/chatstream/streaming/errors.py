"""
Error taxonomy for streaming chat exchanges.

Every failure of an exchange is reported to the caller as one of these,
wrapped in a StreamOutcome. None of them are raised out of
StreamingCoordinator.start().
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    API_KEY_MISSING = "api_key_missing"
    INVALID_REQUEST_TARGET = "invalid_request_target"
    REQUEST_SERIALIZATION = "request_serialization"
    DECODE = "decode"
    STREAMING = "streaming"
    API = "api"
    NETWORK = "network"


class ChatStreamError(Exception):
    """Base class for all exchange failures."""

    kind: ErrorKind

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        """Single human-readable line for display."""
        return self.message


class ApiKeyMissingError(ChatStreamError):
    kind = ErrorKind.API_KEY_MISSING

    def __init__(self, message: str = "API key is missing."):
        super().__init__(message)


class InvalidRequestTargetError(ChatStreamError):
    kind = ErrorKind.INVALID_REQUEST_TARGET

    @property
    def user_message(self) -> str:
        return f"Invalid API URL configured: {self.message}"


class RequestSerializationError(ChatStreamError):
    kind = ErrorKind.REQUEST_SERIALIZATION

    @property
    def user_message(self) -> str:
        return f"Failed to serialize request body: {self.message}"


class DecodeError(ChatStreamError):
    """Inbound bytes could not be decoded as UTF-8 text."""

    kind = ErrorKind.DECODE

    @property
    def user_message(self) -> str:
        return f"Failed to decode response stream: {self.message}"


class StreamingError(ChatStreamError):
    """A provider payload was malformed or reported an error in-band."""

    kind = ErrorKind.STREAMING

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code

    @property
    def user_message(self) -> str:
        if self.code:
            return f"Streaming Error: {self.message} (Code: {self.code})"
        return f"Streaming Error: {self.message}"


class ApiError(ChatStreamError):
    kind = ErrorKind.API

    def __init__(self, message: str, status_code: int):
        super().__init__(message, status_code=status_code)

    @property
    def user_message(self) -> str:
        return f"API Error ({self.status_code}): {self.message}"


class NetworkError(ChatStreamError):
    kind = ErrorKind.NETWORK

    @property
    def user_message(self) -> str:
        return f"Network error: {self.message}"
