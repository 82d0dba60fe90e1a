"""Declarative per-field form validation.

A ``FormValidator`` maps field names to a list of rules. Every rule of every
field is evaluated, in declaration order, and each failing rule contributes
one ``FieldError``. Custom ``Check`` rules receive the database session so
they can consult the repository with the same session the write will use.
"""
from typing import Any, Callable, Dict, List, Optional, Sequence

from email_validator import EmailNotValidError, validate_email
from fastapi import Request
from sqlalchemy.orm import Session

from .errors import FieldError, ValidationError


def is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


class Rule:
    message = "Invalid value"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message

    def __call__(self, value: Any, data: Dict[str, Any], db: Optional[Session]) -> bool:
        raise NotImplementedError


class Required(Rule):
    message = "This field is required"

    def __call__(self, value, data, db):
        return not is_blank(value)


class MinLength(Rule):
    def __init__(self, length: int, message: Optional[str] = None):
        super().__init__(message or f"Must be at least {length} characters long")
        self.length = length

    def __call__(self, value, data, db):
        return len("" if value is None else str(value)) >= self.length


class MaxLength(Rule):
    def __init__(self, length: int, message: Optional[str] = None):
        super().__init__(message or f"Must be at most {length} characters long")
        self.length = length

    def __call__(self, value, data, db):
        return value is None or len(str(value)) <= self.length


class IsEmail(Rule):
    message = "Email is not valid"

    def __call__(self, value, data, db):
        if is_blank(value):
            return False
        try:
            validate_email(str(value), check_deliverability=False)
        except EmailNotValidError:
            return False
        return True


class IsInteger(Rule):
    message = "Must be a whole number"

    def __call__(self, value, data, db):
        return to_int(value) is not None


class Matches(Rule):
    """The value must equal another submitted field (password confirmation)."""

    def __init__(self, other: str, message: Optional[str] = None):
        super().__init__(message or f"Must match {other}")
        self.other = other

    def __call__(self, value, data, db):
        return value == data.get(self.other)


class Check(Rule):
    """Custom rule. ``fn(value, data, db)`` returns True when the value is acceptable."""

    def __init__(self, fn: Callable[[Any, Dict[str, Any], Optional[Session]], bool], message: str):
        super().__init__(message)
        self.fn = fn

    def __call__(self, value, data, db):
        return bool(self.fn(value, data, db))


class FormValidator:
    def __init__(self, rules: Dict[str, Sequence[Rule]]):
        self.rules = rules

    def validate(self, data: Dict[str, Any], db: Optional[Session] = None) -> List[FieldError]:
        errors: List[FieldError] = []
        for field, rules in self.rules.items():
            value = data.get(field)
            for rule in rules:
                if not rule(value, data, db):
                    errors.append(FieldError(param=field, msg=rule.message, value=value))
        return errors

    def check(self, data: Dict[str, Any], db: Optional[Session] = None) -> None:
        errors = self.validate(data, db)
        if errors:
            raise ValidationError(errors[0].msg, errors=errors)


def _form_value(key: str, value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValidationError(f"Field {key} must be a plain value", field=key)


async def read_form(request: Request) -> Dict[str, str]:
    """Submitted fields as a dict of strings, from a JSON or url-encoded/multipart body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            # malformed JSON or a body that is not valid UTF-8
            raise ValidationError("Request body is not valid JSON")
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        # JSON null reads as an absent field
        return {key: _form_value(key, value) for key, value in payload.items() if value is not None}
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}
