"""
Subscriber value types.

Validated wrappers around the raw strings a visitor submits through the
signup form. Construction through ``parse`` is the only validation point;
once built, a value is immutable and trusted by every layer below.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

# Maximum name length, counted in user-perceived characters
MAX_NAME_LENGTH = 256

# Maximum address length (RFC 5321 path limit)
MAX_EMAIL_LENGTH = 254

FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


class SubscriberValidationError(ValueError):
    """Raw subscriber input was rejected."""

    def __init__(self, code: str, message: str, field: str) -> None:
        self.code = code
        self.message = message
        self.field = field
        super().__init__(message)


def _grapheme_length(text: str) -> int:
    # Combining marks attach to the preceding character.
    return sum(1 for ch in text if not unicodedata.combining(ch))


def _has_forbidden_character(text: str) -> bool:
    return any(
        ch in FORBIDDEN_NAME_CHARACTERS or unicodedata.category(ch) == "Cc" for ch in text
    )


@dataclass(frozen=True)
class SubscriberName:
    """A subscriber's display name."""

    value: str

    @classmethod
    def parse(cls, raw: str | None) -> SubscriberName:
        """
        Validate a raw name.

        Raises:
            SubscriberValidationError: empty or whitespace-only, longer than
                MAX_NAME_LENGTH, or containing a control/denylisted character.
        """
        if raw is None or not raw.strip():
            raise SubscriberValidationError("EMPTY_NAME", "Name is required", "name")

        if _grapheme_length(raw) > MAX_NAME_LENGTH:
            raise SubscriberValidationError("NAME_TOO_LONG", "Name is too long", "name")

        if _has_forbidden_character(raw):
            raise SubscriberValidationError(
                "FORBIDDEN_CHARACTERS", "Name contains forbidden characters", "name"
            )

        return cls(raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberEmail:
    """A syntactically valid email address."""

    value: str

    @classmethod
    def parse(cls, raw: str | None) -> SubscriberEmail:
        """
        Validate a raw address (surrounding whitespace is ignored).

        Raises:
            SubscriberValidationError: empty, too long, or not local@domain.tld.
        """
        candidate = raw.strip() if raw else ""

        if not candidate:
            raise SubscriberValidationError("EMPTY_EMAIL", "Email address is required", "email")

        if len(candidate) > MAX_EMAIL_LENGTH:
            raise SubscriberValidationError("EMAIL_TOO_LONG", "Email address is too long", "email")

        if not EMAIL_REGEX.match(candidate):
            raise SubscriberValidationError("INVALID_FORMAT", "Invalid email format", "email")

        return cls(candidate)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NewSubscriber:
    """Validated signup payload."""

    name: SubscriberName
    email: SubscriberEmail

    @classmethod
    def parse(cls, raw_name: str | None, raw_email: str | None) -> NewSubscriber:
        """Validate both form fields; the name is checked first."""
        return cls(
            name=SubscriberName.parse(raw_name),
            email=SubscriberEmail.parse(raw_email),
        )
