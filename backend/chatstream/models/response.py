from pydantic import BaseModel
from typing import Optional


class SSEEvent(BaseModel):
    """SSE event relayed to the client for one exchange"""

    event: str  # "token", "done", "error"
    provider: str
    data: str
    error: Optional[str] = None
    kind: Optional[str] = None  # ErrorKind value on "error"
    status_code: Optional[int] = None
