"""
Subscription endpoints.

Endpoints:
- POST /subscriptions - Sign up (form fields: name, email)
- GET /subscriptions/confirm - Confirm via emailed token

Error codes from the subscriptions component are mapped to HTTP status
here and nowhere else. Response bodies never carry internal detail.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Query, status
from pydantic import BaseModel, Field

from mailing_list.adapters.sql.repos import SqlSubscriberRepo
from mailing_list.api.deps import get_email_sender, get_subscriber_repo, get_subscription_config
from mailing_list.components.subscriptions.component import run_confirm, run_subscribe
from mailing_list.components.subscriptions.models import (
    ConfirmInput,
    ErrorDetail,
    SubscribeInput,
    SubscriptionConfig,
)
from mailing_list.core.ports.email import EmailPort

router = APIRouter()


# --- Response Models ---


class SubscribeResponse(BaseModel):
    """Response for a signup request."""

    success: bool = Field(..., description="Whether the signup was processed")
    message: str = Field(..., description="Human-readable message")


class ConfirmResponse(BaseModel):
    """Response for a confirmation request."""

    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str


# --- Error Mapping ---

ERROR_STATUS: dict[str, tuple[int, str]] = {
    "EMPTY_NAME": (status.HTTP_400_BAD_REQUEST, "Name is required"),
    "NAME_TOO_LONG": (status.HTTP_400_BAD_REQUEST, "Name is too long"),
    "FORBIDDEN_CHARACTERS": (status.HTTP_400_BAD_REQUEST, "Name contains forbidden characters"),
    "EMPTY_EMAIL": (status.HTTP_400_BAD_REQUEST, "Email address is required"),
    "EMAIL_TOO_LONG": (status.HTTP_400_BAD_REQUEST, "Email address is too long"),
    "INVALID_FORMAT": (status.HTTP_400_BAD_REQUEST, "Invalid email format"),
    "ALREADY_CONFIRMED": (status.HTTP_409_CONFLICT, "This address is already subscribed"),
    "SUBSCRIBER_CONFLICT": (status.HTTP_409_CONFLICT, "This address is already registered"),
    "MISSING_TOKEN": (status.HTTP_400_BAD_REQUEST, "Confirmation token is required"),
    "MALFORMED_TOKEN": (status.HTTP_400_BAD_REQUEST, "Malformed confirmation token"),
    "INVALID_TOKEN": (status.HTTP_401_UNAUTHORIZED, "Invalid confirmation link"),
}

INTERNAL_ERROR = (status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def raise_for_errors(errors: list[ErrorDetail]) -> None:
    """Raise the HTTPException for the first error; unknown codes are 500."""
    first = errors[0] if errors else None
    status_code, detail = ERROR_STATUS.get(first.code, INTERNAL_ERROR) if first else INTERNAL_ERROR
    raise HTTPException(status_code=status_code, detail=detail)


# --- Subscribe Endpoint ---


@router.post(
    "/subscriptions",
    response_model=SubscribeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid name or email"},
        409: {"model": ErrorResponse, "description": "Address already subscribed"},
        500: {"model": ErrorResponse, "description": "Store or email provider failure"},
    },
    summary="Subscribe to the newsletter",
    description="Store a pending subscriber and email a confirmation link.",
)
def subscribe(
    name: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    repo: SqlSubscriberRepo = Depends(get_subscriber_repo),
    email_sender: EmailPort = Depends(get_email_sender),
    config: SubscriptionConfig = Depends(get_subscription_config),
) -> SubscribeResponse:
    """
    Subscribe to the newsletter.

    Double opt-in flow:
    1. Validate name and email (400 on failure, nothing stored)
    2. Store pending subscriber and confirmation token
    3. Send confirmation email
    """
    result = run_subscribe(
        SubscribeInput(name=name, email=email),
        repo,
        email_sender,
        config=config,
    )

    if not result.success:
        raise_for_errors(result.errors)

    return SubscribeResponse(
        success=True,
        message="Please check your email to confirm your subscription",
    )


# --- Confirm Endpoint ---


@router.get(
    "/subscriptions/confirm",
    response_model=ConfirmResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or malformed token"},
        401: {"model": ErrorResponse, "description": "Unknown token"},
        500: {"model": ErrorResponse, "description": "Store failure"},
    },
    summary="Confirm a subscription",
    description="Confirm a pending subscriber via the token from the confirmation email.",
)
def confirm_subscription(
    subscription_token: Annotated[str | None, Query()] = None,
    repo: SqlSubscriberRepo = Depends(get_subscriber_repo),
) -> ConfirmResponse:
    """
    Confirm a subscription.

    Idempotent: an already confirmed subscriber gets 200 again.
    """
    result = run_confirm(ConfirmInput(token=subscription_token), repo)

    if not result.success:
        raise_for_errors(result.errors)

    if result.already_confirmed:
        return ConfirmResponse(success=True, message="Your subscription was already confirmed")

    return ConfirmResponse(success=True, message="Your subscription is now confirmed. Welcome!")
