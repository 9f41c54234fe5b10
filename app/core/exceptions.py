"""
Application Exceptions

Every failure the service layer reports to the HTTP layer is one of these.
The handlers registered in ``app.main`` map them onto status codes:

    ValidationError     -> 400 (with itemized field errors)
    NotFoundError       -> 404
    SessionClosedError  -> 409

Anything else falls through to the catch-all handler and becomes a 500
with a generic message.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class FieldError:
    """A single violated field in a request payload."""
    field: str
    message: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"field": self.field, "message": self.message}


class AppError(Exception):
    """Base class for errors that carry their own HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(AppError):
    """Malformed or missing fields; the caller may fix and resubmit."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[list[FieldError]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "errors": [e.to_dict() for e in self.errors],
        }


class NotFoundError(AppError):
    """The referenced id or link does not exist."""

    status_code = 404

    def __init__(self, entity: str, key: object):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.key = key


class SessionClosedError(AppError):
    """Ordering against a session that has already been finalized."""

    status_code = 409

    def __init__(self, session_id: int):
        super().__init__(f"Order session #{session_id} is finalized and no longer accepts orders")
        self.session_id = session_id
