"""
Subscriptions component models.

Data models for the signup and confirmation pipeline.

State machine (Subscriber: pending_confirmation → confirmed)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

# --- State Machine ---


class SubscriptionStatus(Enum):
    """
    Subscriber status.

    State transitions:
    - pending_confirmation → confirmed (via confirmation link)
    """

    PENDING_CONFIRMATION = "pending_confirmation"  # Awaiting email confirmation
    CONFIRMED = "confirmed"  # Email confirmed, active subscriber


VALID_TRANSITIONS: dict[SubscriptionStatus, set[SubscriptionStatus]] = {
    SubscriptionStatus.PENDING_CONFIRMATION: {SubscriptionStatus.CONFIRMED},
    SubscriptionStatus.CONFIRMED: set(),  # Terminal state
}


def can_transition(from_status: SubscriptionStatus, to_status: SubscriptionStatus) -> bool:
    """Check if a status transition is allowed."""
    return to_status in VALID_TRANSITIONS.get(from_status, set())


# --- Entities ---


@dataclass(frozen=True)
class Subscriber:
    """Persisted subscriber record."""

    id: UUID
    email: str
    name: str
    subscribed_at: datetime
    status: SubscriptionStatus = SubscriptionStatus.PENDING_CONFIRMATION


@dataclass(frozen=True)
class SubscriptionToken:
    """Confirmation token issued to one subscriber."""

    token: str
    subscriber_id: UUID


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Raw signup form fields (untrusted)."""

    name: str | None
    email: str | None


@dataclass(frozen=True)
class ConfirmInput:
    """Raw confirmation query parameter (untrusted)."""

    token: str | None


# --- Output Models ---


@dataclass(frozen=True)
class ErrorDetail:
    """Error detail carried by an output."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class SubscribeOutput:
    """Output from a signup attempt."""

    success: bool
    subscriber_id: UUID | None = None
    errors: list[ErrorDetail] = field(default_factory=list)
    token_reissued: bool = False  # Pending subscriber signed up again


@dataclass(frozen=True)
class ConfirmOutput:
    """Output from a confirmation attempt."""

    success: bool
    subscriber_id: UUID | None = None
    errors: list[ErrorDetail] = field(default_factory=list)
    already_confirmed: bool = False  # Idempotent success


# --- Configuration ---


@dataclass(frozen=True)
class SubscriptionConfig:
    """Subscriptions component configuration."""

    base_url: str = "http://127.0.0.1:8000"
    confirmation_path: str = "/subscriptions/confirm"
    list_name: str = "our newsletter"
    token_length: int = 25


# --- Error Types ---


class StoreError(Exception):
    """Base subscriber store error."""

    pass


class StoreConflictError(StoreError):
    """A record with the same unique key already exists."""

    pass


class StoreUnavailableError(StoreError):
    """Connection, pool or query failure."""

    pass
