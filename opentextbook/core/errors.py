from typing import Any, List, Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    """One human readable problem with a submitted field."""

    param: str
    msg: str
    value: Any = None


class OpenTextBookError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OpenTextBookError):
    """Bad or missing input. Carries per-field messages for the submitting form."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, errors: Optional[List[FieldError]] = None):
        super().__init__(message)
        if errors is None:
            errors = [FieldError(param=field or "", msg=message, value=value)]
        self.errors = errors


class DuplicateError(ValidationError):
    """A uniqueness rule was violated (genre label, page number, username, email)."""


class AuthError(OpenTextBookError):
    """Bad credentials or no session."""


class NotFoundError(OpenTextBookError):
    pass


class StorageError(OpenTextBookError):
    """The database call failed for a reason other than bad input."""
