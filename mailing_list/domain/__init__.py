from mailing_list.domain.subscriber import (
    EMAIL_REGEX,
    FORBIDDEN_NAME_CHARACTERS,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    NewSubscriber,
    SubscriberEmail,
    SubscriberName,
    SubscriberValidationError,
)

__all__ = [
    "EMAIL_REGEX",
    "FORBIDDEN_NAME_CHARACTERS",
    "MAX_EMAIL_LENGTH",
    "MAX_NAME_LENGTH",
    "NewSubscriber",
    "SubscriberEmail",
    "SubscriberName",
    "SubscriberValidationError",
]
