"""
Subscriptions component.

Double opt-in signup and confirmation.
"""

from mailing_list.components.subscriptions.component import (
    TOKEN_ALPHABET,
    build_confirmation_email,
    build_confirmation_url,
    generate_subscription_token,
    is_well_formed_token,
    run,
    run_confirm,
    run_subscribe,
)
from mailing_list.components.subscriptions.models import (
    VALID_TRANSITIONS,
    ConfirmInput,
    ConfirmOutput,
    ErrorDetail,
    StoreConflictError,
    StoreError,
    StoreUnavailableError,
    SubscribeInput,
    SubscribeOutput,
    Subscriber,
    SubscriptionConfig,
    SubscriptionStatus,
    SubscriptionToken,
    can_transition,
)
from mailing_list.components.subscriptions.ports import SubscriberRepoPort

__all__ = [
    # Component
    "run",
    "run_subscribe",
    "run_confirm",
    # Pure functions
    "generate_subscription_token",
    "is_well_formed_token",
    "build_confirmation_url",
    "build_confirmation_email",
    # Constants
    "TOKEN_ALPHABET",
    # Models
    "Subscriber",
    "SubscriptionToken",
    "SubscriptionStatus",
    "VALID_TRANSITIONS",
    "can_transition",
    "SubscriptionConfig",
    # Input/Output
    "SubscribeInput",
    "SubscribeOutput",
    "ConfirmInput",
    "ConfirmOutput",
    "ErrorDetail",
    # Errors
    "StoreError",
    "StoreConflictError",
    "StoreUnavailableError",
    # Ports
    "SubscriberRepoPort",
]
