from dataclasses import dataclass
from enum import Enum
from typing import Optional

from chatstream.streaming.errors import ChatStreamError, ErrorKind


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class StreamOutcome:
    """Terminal result of one streaming exchange, delivered exactly once."""

    status: OutcomeStatus
    error: Optional[ChatStreamError] = None

    @classmethod
    def success(cls) -> "StreamOutcome":
        return cls(OutcomeStatus.SUCCESS)

    @classmethod
    def cancelled(cls) -> "StreamOutcome":
        return cls(OutcomeStatus.CANCELLED)

    @classmethod
    def failed(cls, error: ChatStreamError) -> "StreamOutcome":
        return cls(OutcomeStatus.FAILED, error)

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def is_cancelled(self) -> bool:
        return self.status is OutcomeStatus.CANCELLED

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def status_code(self) -> Optional[int]:
        return self.error.status_code if self.error else None

    @property
    def requires_credentials(self) -> bool:
        """Missing keys should route the user to key configuration, not a bare error."""
        return self.kind is ErrorKind.API_KEY_MISSING

    def describe(self) -> str:
        if self.error:
            return self.error.user_message
        if self.is_cancelled:
            return "Request was cancelled."
        return "Completed."
