from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy import Engine

from mailing_list.adapters.dev_email import DevEmailAdapter
from mailing_list.adapters.postmark import PostmarkEmailClient
from mailing_list.adapters.sql.engine import create_pool
from mailing_list.adapters.sql.repos import SqlSubscriberRepo
from mailing_list.components.subscriptions.models import SubscriptionConfig
from mailing_list.core.ports.email import EmailPort
from mailing_list.settings.models import EmailClientSettings, Settings


# --- Application Context ---
@dataclass
class AppContext:
    """
    Process-wide collaborators handed to every request.

    The engine's pool and the email client are internally synchronized,
    so one instance is shared by all request threads.
    """

    settings: Settings
    engine: Engine
    email_client: EmailPort

    @classmethod
    def create(cls, settings: Settings) -> AppContext:
        return cls(
            settings=settings,
            engine=create_pool(settings.database),
            email_client=build_email_client(settings.email_client),
        )

    def close(self) -> None:
        close = getattr(self.email_client, "close", None)
        if close is not None:
            close()
        self.engine.dispose()


def build_email_client(settings: EmailClientSettings) -> EmailPort:
    """Pick the email adapter named by ``backend``."""
    sender = settings.sender()
    if settings.backend == "dev":
        return DevEmailAdapter(sender=sender.value)

    return PostmarkEmailClient(
        base_url=settings.base_url,
        sender=sender,
        authorization_token=settings.authorization_token,
        timeout=settings.timeout_seconds(),
    )


def get_context(request: Request) -> AppContext:
    context: AppContext = request.app.state.context
    return context


# --- Repos ---
def get_subscriber_repo(ctx: AppContext = Depends(get_context)) -> SqlSubscriberRepo:
    return SqlSubscriberRepo(ctx.engine)


# --- Adapters ---
def get_email_sender(ctx: AppContext = Depends(get_context)) -> EmailPort:
    return ctx.email_client


# --- Component Config ---
def get_subscription_config(ctx: AppContext = Depends(get_context)) -> SubscriptionConfig:
    return SubscriptionConfig(base_url=ctx.settings.application.base_url)
