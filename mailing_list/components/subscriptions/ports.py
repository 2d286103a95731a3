"""
Subscriptions component ports.

Protocol interfaces for subscription service dependencies.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol
from uuid import UUID

from mailing_list.components.subscriptions.models import Subscriber, SubscriptionStatus
from mailing_list.domain.subscriber import NewSubscriber


class SubscriberRepoPort(Protocol):
    """
    Subscriber store interface.

    All methods raise StoreUnavailableError on connection or query
    failure. Implementations borrow connections from a host-owned pool.
    """

    def insert_pending(self, new_subscriber: NewSubscriber) -> UUID:
        """
        Insert a pending_confirmation record and return its new id.

        Raises:
            StoreConflictError: the email already has a record
        """
        ...

    def store_token(self, subscriber_id: UUID, token: str) -> None:
        """Persist a token → subscriber mapping."""
        ...

    def find_subscriber_id_by_token(self, token: str) -> UUID | None:
        """Exact-match token lookup; None when unknown."""
        ...

    def mark_confirmed(self, subscriber_id: UUID) -> bool:
        """
        Transition pending_confirmation → confirmed.

        Returns:
            True if this call changed the status, False if it was already confirmed
        """
        ...

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        """Get subscriber by ID."""
        ...

    def get_by_email(self, email: str) -> Subscriber | None:
        """Get subscriber by email address."""
        ...

    def count_by_status(self, status: SubscriptionStatus) -> int:
        """Count subscribers by status."""
        ...

    def transaction(self) -> AbstractContextManager[SubscriberRepoPort]:
        """Repo bound to one transaction; commits on clean exit."""
        ...
