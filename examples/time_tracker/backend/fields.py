"""Validators for user-facing text fields.

Each validator runs every applicable check and returns a `ValidationResult`
listing the problems in check order; nothing here raises.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

Strength = Literal["weak", "medium", "strong"]

_EMAIL_RE = re.compile(
    r"[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+"
)
_NAME_RE = re.compile(r"[a-zA-Z\s'-]+")
_CHARACTER_CLASSES = (
    re.compile(r"[A-Z]"),
    re.compile(r"[a-z]"),
    re.compile(r"[0-9]"),
    re.compile(r'[!@#$%^&*(),.?":{}|<>]'),
)
_HTML_ESCAPES = str.maketrans(
    {"<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;", "/": "&#x2F;"}
)

MAX_EMAIL_LENGTH = 254


@dataclass
class ValidationResult:
    """Outcome of a validation call; valid exactly when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    sanitized: str | None = None
    strength: Strength | None = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"is_valid": self.is_valid, "errors": list(self.errors)}
        if self.sanitized is not None:
            out["sanitized"] = self.sanitized
        if self.strength is not None:
            out["strength"] = self.strength
        return out


def is_valid_email(email: str) -> bool:
    if ".." in email or email.startswith(".") or email.endswith("."):
        return False
    return _EMAIL_RE.fullmatch(email) is not None


def validate_email(email: str | None) -> ValidationResult:
    """Trim and lowercase an email address and check its format."""
    if not email:
        return ValidationResult(errors=["Email is required"], sanitized="")
    sanitized = email.strip().lower()
    errors: list[str] = []
    if not is_valid_email(sanitized):
        errors.append("Invalid email format")
    if len(sanitized) > MAX_EMAIL_LENGTH:
        errors.append("Email is too long")
    return ValidationResult(errors=errors, sanitized=sanitized)


def validate_password(password: str | None) -> ValidationResult:
    """Check password length and classify its strength.

    Passwords of 6 or 7 characters get a "should be at least 8" message
    which, like any other message, makes the result invalid.
    """
    if not password:
        return ValidationResult(errors=["Password is required"], strength="weak")
    errors: list[str] = []
    length = len(password)
    if length < 6:
        errors.append("Password must be at least 6 characters long")
    if 6 <= length < 8:
        errors.append("Password should be at least 8 characters for better security")

    classes = sum(1 for pattern in _CHARACTER_CLASSES if pattern.search(password))
    strength: Strength = "weak"
    if classes >= 4 and length >= 8:
        strength = "strong"
    elif classes >= 3 and length >= 6:
        strength = "medium"
    return ValidationResult(errors=errors, strength=strength)


def validate_name(name: str | None) -> ValidationResult:
    if not name:
        return ValidationResult(errors=["Name is required"], sanitized="")
    sanitized = name.strip()
    errors: list[str] = []
    if len(sanitized) < 2:
        errors.append("Name must be at least 2 characters long")
    if len(sanitized) > 50:
        errors.append("Name must be less than 50 characters")
    if not _NAME_RE.fullmatch(sanitized):
        errors.append("Name can only contain letters, spaces, hyphens, and apostrophes")
    return ValidationResult(errors=errors, sanitized=sanitized)


def sanitize_input(value: Any) -> Any:
    """HTML-escape a string; other values pass through untouched."""
    if not isinstance(value, str):
        return value
    return value.translate(_HTML_ESCAPES)


def validate_user_data(data: Mapping[str, Any]) -> ValidationResult:
    """Coarse checks used when registering a user."""
    errors: list[str] = []
    name = data.get("name")
    email = data.get("email")
    password = data.get("password")
    if not name or len(str(name).strip()) < 2:
        errors.append("Name must be at least 2 characters long")
    if not email or not is_valid_email(str(email)):
        errors.append("Valid email is required")
    if not password or len(str(password)) < 6:
        errors.append("Password must be at least 6 characters long")
    return ValidationResult(errors=errors)
