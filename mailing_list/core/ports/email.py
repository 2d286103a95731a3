"""
Email Port.

Outbound transactional email as seen by the subscriptions component.
Confirmation links are the only mail this service sends.

Implementations:
1. PostmarkEmailClient: one HTTP call to the Postmark API per message
2. DevEmailAdapter: captures messages in an in-memory outbox

Contract:
- Returning an EmailResult means the message left this process
- Every failure is an EmailSendError subclass; callers decide what to do,
  adapters never retry
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    """What happened to an outbound message."""

    ACCEPTED = "accepted"  # Provider took responsibility for delivery
    CAPTURED = "captured"  # Kept in the dev outbox, never delivered


@dataclass(frozen=True)
class EmailMessage:
    """
    One outbound email.

    Both bodies are required: Postmark sends a multipart message and
    plain-text clients still need the confirmation link.
    """

    recipient: str
    subject: str
    body_html: str
    body_text: str
    sender: str | None = None  # None = adapter's configured sender

    def __post_init__(self) -> None:
        missing = [
            name
            for name in ("recipient", "subject", "body_html", "body_text")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"EmailMessage is missing: {', '.join(missing)}")


@dataclass(frozen=True)
class EmailResult:
    """Outcome of a send that did not raise."""

    status: EmailStatus
    recipient: str
    message_id: str | None = None
    handed_off_at: datetime | None = None

    @classmethod
    def accepted(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        return cls(EmailStatus.ACCEPTED, recipient, message_id, datetime.now(UTC))

    @classmethod
    def captured(cls, recipient: str, message_id: str) -> EmailResult:
        return cls(EmailStatus.CAPTURED, recipient, message_id, datetime.now(UTC))


class EmailPort(Protocol):
    """Email sending interface."""

    def send(self, message: EmailMessage) -> EmailResult:
        """
        Hand one message to the provider.

        Raises:
            EmailSendError: timeout, provider rejection or transport failure
        """
        ...


# --- Error Types ---


class EmailError(Exception):
    """Base class for outbound email failures."""


class EmailSendError(EmailError):
    """A message could not be handed to the provider."""

    def __init__(self, recipient: str, reason: str) -> None:
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Could not send email to {recipient}: {reason}")


class EmailTimeoutError(EmailSendError):
    """No response from the provider within the configured timeout."""

    def __init__(self, recipient: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(recipient, f"no response within {timeout_seconds:.3f}s")


class EmailProviderRejectedError(EmailSendError):
    """Provider answered with a non-2xx status."""

    def __init__(self, recipient: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(recipient, f"provider responded with HTTP {status_code}")


class EmailTransportError(EmailSendError):
    """DNS, connection or protocol failure before a response arrived."""
