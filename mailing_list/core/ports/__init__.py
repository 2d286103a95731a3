# mailing-list: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from mailing_list.core.ports.email import (
    EmailError,
    EmailMessage,
    EmailPort,
    EmailProviderRejectedError,
    EmailResult,
    EmailSendError,
    EmailStatus,
    EmailTimeoutError,
    EmailTransportError,
)

__all__ = [
    "EmailError",
    "EmailMessage",
    "EmailPort",
    "EmailProviderRejectedError",
    "EmailResult",
    "EmailSendError",
    "EmailStatus",
    "EmailTimeoutError",
    "EmailTransportError",
]
