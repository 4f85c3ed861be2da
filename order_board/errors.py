"""Error taxonomy and the shared error envelope.

The same exceptions are raised for both surfaces. The HTTP surface turns them
into `{"error": ...}` responses; the push channel logs them and moves on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorResponse:
    status_code: int
    message: str

    def to_message(self) -> dict[str, Any]:
        return {"error": self.message}


class BoardError(Exception):
    status_code = 500
    message = "internal error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.message)
        self.detail = detail or self.message

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(self.status_code, self.message)


class MalformedInput(BoardError):
    """Frame or body that is not JSON, not an object, or has wrong fields."""

    status_code = 400
    message = "invalid body"


class NotFound(BoardError):
    """Toggle referencing an id that is not on the board."""

    status_code = 404
    message = "not found"


class TransportFailure(BoardError):
    """A subscriber channel could not accept a frame."""

    status_code = 503
    message = "transport failure"


NOT_FOUND = ErrorResponse(404, NotFound.message)
