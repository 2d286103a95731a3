"""
Subscriptions component.

Functional core for the double opt-in signup pipeline.

Key behaviors:
- Signup: validate → persist pending subscriber + token (one transaction)
  → email confirmation link
- Confirmation: resolve token → mark subscriber confirmed (idempotent)
- Tokens: 25 alphanumeric characters from ``secrets`` (never UUID-shaped)
- A pending subscriber signing up again gets a fresh token and email;
  that is the recovery path when the confirmation email failed
- Confirmed subscribers cannot sign up again (conflict)

Store and email failures are logged here and reported as error codes;
mapping codes to HTTP status is the caller's job.
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from urllib.parse import urlencode

from mailing_list.components.subscriptions.models import (
    ConfirmInput,
    ConfirmOutput,
    ErrorDetail,
    StoreConflictError,
    StoreError,
    SubscribeInput,
    SubscribeOutput,
    SubscriptionConfig,
    SubscriptionStatus,
)
from mailing_list.components.subscriptions.ports import SubscriberRepoPort
from mailing_list.core.ports.email import EmailMessage, EmailPort, EmailSendError
from mailing_list.domain.subscriber import NewSubscriber, SubscriberValidationError

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits

MAX_TOKEN_LENGTH = 256

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


# --- Pure Functions ---


def generate_subscription_token(length: int = 25) -> str:
    """
    Generate a cryptographically secure confirmation token.

    Args:
        length: Number of alphanumeric characters

    Returns:
        Token string
    """
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def is_well_formed_token(token: str) -> bool:
    """Check a token's shape before touching the store."""
    return len(token) <= MAX_TOKEN_LENGTH and TOKEN_PATTERN.match(token) is not None


def build_confirmation_url(
    base_url: str,
    token: str,
    path: str = "/subscriptions/confirm",
) -> str:
    """
    Build the confirmation link embedded in the email.

    Args:
        base_url: Public base URL of the service
        token: Confirmation token
        path: URL path of the confirmation endpoint

    Returns:
        Full confirmation URL
    """
    base = base_url.rstrip("/")
    query = urlencode({"subscription_token": token})
    return f"{base}{path}?{query}"


def build_confirmation_email(
    recipient: str,
    confirmation_url: str,
    list_name: str,
) -> EmailMessage:
    """Compose the confirmation email for one recipient."""
    return EmailMessage(
        recipient=recipient,
        subject=f"Confirm your subscription to {list_name}",
        body_html=(
            f"Welcome to {list_name}!<br />"
            f'Click <a href="{confirmation_url}">here</a> to confirm your subscription.'
        ),
        body_text=(
            f"Welcome to {list_name}!\n"
            f"Visit {confirmation_url} to confirm your subscription."
        ),
    )


# --- Run Handlers ---


def run_subscribe(
    inp: SubscribeInput,
    repo: SubscriberRepoPort,
    email_sender: EmailPort,
    *,
    config: SubscriptionConfig | None = None,
) -> SubscribeOutput:
    """
    Handle a signup request.

    Steps: validate, persist subscriber + token atomically, send the email.
    """
    cfg = config or SubscriptionConfig()

    try:
        new_subscriber = NewSubscriber.parse(inp.name, inp.email)
    except SubscriberValidationError as e:
        logger.info("Rejected signup: %s (%s)", e.code, e.field)
        return SubscribeOutput(
            success=False,
            errors=[ErrorDetail(e.code, e.message, e.field)],
        )

    email = new_subscriber.email.value
    token = generate_subscription_token(cfg.token_length)
    reissued = False

    try:
        with repo.transaction() as tx:
            existing = tx.get_by_email(email)
            if existing is not None and existing.status == SubscriptionStatus.CONFIRMED:
                logger.info("Signup for already confirmed subscriber %s", existing.id)
                return SubscribeOutput(
                    success=False,
                    subscriber_id=existing.id,
                    errors=[
                        ErrorDetail("ALREADY_CONFIRMED", "This address is already subscribed", "email")
                    ],
                )

            if existing is not None:
                subscriber_id = existing.id
                reissued = True
            else:
                subscriber_id = tx.insert_pending(new_subscriber)

            tx.store_token(subscriber_id, token)
    except StoreConflictError:
        logger.warning("Concurrent signup lost the race for the same address")
        return SubscribeOutput(
            success=False,
            errors=[ErrorDetail("SUBSCRIBER_CONFLICT", "This address is already registered", "email")],
        )
    except StoreError as e:
        logger.error("Failed to persist new subscriber: %s", e)
        return SubscribeOutput(
            success=False,
            errors=[ErrorDetail("STORE_UNAVAILABLE", "Subscriber store unavailable")],
        )

    logger.info(
        "Stored pending subscriber %s (token %s)",
        subscriber_id,
        "reissued" if reissued else "issued",
    )

    url = build_confirmation_url(cfg.base_url, token, cfg.confirmation_path)
    message = build_confirmation_email(email, url, cfg.list_name)

    try:
        email_sender.send(message)
    except EmailSendError as e:
        logger.error("Failed to send confirmation email for %s: %s", subscriber_id, e)
        return SubscribeOutput(
            success=False,
            subscriber_id=subscriber_id,
            errors=[ErrorDetail("EMAIL_SEND_FAILED", "Could not send confirmation email")],
            token_reissued=reissued,
        )

    return SubscribeOutput(
        success=True,
        subscriber_id=subscriber_id,
        token_reissued=reissued,
    )


def run_confirm(
    inp: ConfirmInput,
    repo: SubscriberRepoPort,
) -> ConfirmOutput:
    """
    Handle a confirmation request.

    Idempotent: confirming twice succeeds with already_confirmed set.
    """
    token = inp.token or ""
    if not token.strip():
        return ConfirmOutput(
            success=False,
            errors=[ErrorDetail("MISSING_TOKEN", "Confirmation token is required", "subscription_token")],
        )

    if not is_well_formed_token(token):
        return ConfirmOutput(
            success=False,
            errors=[ErrorDetail("MALFORMED_TOKEN", "Malformed confirmation token", "subscription_token")],
        )

    try:
        subscriber_id = repo.find_subscriber_id_by_token(token)
    except StoreError as e:
        logger.error("Failed to look up confirmation token: %s", e)
        return ConfirmOutput(
            success=False,
            errors=[ErrorDetail("STORE_UNAVAILABLE", "Subscriber store unavailable")],
        )

    if subscriber_id is None:
        logger.info("Confirmation attempted with unknown token")
        return ConfirmOutput(
            success=False,
            errors=[ErrorDetail("INVALID_TOKEN", "Invalid confirmation link")],
        )

    try:
        changed = repo.mark_confirmed(subscriber_id)
    except StoreError as e:
        logger.error("Failed to confirm subscriber %s: %s", subscriber_id, e)
        return ConfirmOutput(
            success=False,
            subscriber_id=subscriber_id,
            errors=[ErrorDetail("STORE_UNAVAILABLE", "Subscriber store unavailable")],
        )

    if changed:
        logger.info("Confirmed subscriber %s", subscriber_id)

    return ConfirmOutput(
        success=True,
        subscriber_id=subscriber_id,
        already_confirmed=not changed,
    )


def run(
    inp: SubscribeInput | ConfirmInput,
    *,
    repo: SubscriberRepoPort,
    email_sender: EmailPort | None = None,
    config: SubscriptionConfig | None = None,
) -> SubscribeOutput | ConfirmOutput:
    """
    Main component entry point.

    Args:
        inp: Input command
        repo: Subscriber store (Required)
        email_sender: Email port (Required for signups)
        config: Configuration (Optional)

    Returns:
        Operation result
    """
    if isinstance(inp, SubscribeInput):
        if email_sender is None:
            raise ValueError("email_sender is required for signups")
        return run_subscribe(inp, repo, email_sender, config=config)
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, repo)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
