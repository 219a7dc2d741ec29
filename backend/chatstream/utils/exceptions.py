"""
HTTP error helpers for the relay routes.

Exchange failures never go through these: they are relayed in-stream as
"error" events. These cover request problems found before a stream opens
(unknown model, nothing to send) and catalog/key management conflicts.

Usage:
    from chatstream.utils.exceptions import raise_not_found

    raise_not_found("Model", request.model_id)
"""

from typing import NoReturn

from fastapi import HTTPException, status


def _http_error(status_code: int, detail: str) -> NoReturn:
    raise HTTPException(status_code=status_code, detail=detail)


def raise_bad_request(detail: str) -> NoReturn:
    """Raise HTTP 400 Bad Request."""
    _http_error(status.HTTP_400_BAD_REQUEST, detail)


def raise_not_found(resource: str, key: str | None = None) -> NoReturn:
    """Raise HTTP 404 for a missing model or stored key."""
    detail = f"{resource} '{key}' not found" if key is not None else f"{resource} not found"
    _http_error(status.HTTP_404_NOT_FOUND, detail)


def raise_conflict(detail: str) -> NoReturn:
    """Raise HTTP 409 Conflict, e.g. a custom model id that already exists."""
    _http_error(status.HTTP_409_CONFLICT, detail)
