"""
Dev Email Adapter (EmailPort implementation).

Selected with ``email_client.backend: dev``. Nothing leaves the process:
each message is logged and appended to an in-memory outbox, from which
tests (and a developer at a REPL) can pull the confirmation link.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from mailing_list.core.ports.email import EmailMessage, EmailResult

logger = logging.getLogger(__name__)

LINK_PATTERN = re.compile(r"https?://[^\s\"'<>]+")


@dataclass(frozen=True)
class OutboxEntry:
    """A captured message and the sender it would have gone out with."""

    message_id: str
    message: EmailMessage
    sender: str | None
    captured_at: datetime

    @property
    def recipient(self) -> str:
        return self.message.recipient

    @property
    def links(self) -> list[str]:
        """URLs in the plain-text body, in order."""
        return LINK_PATTERN.findall(self.message.body_text)


@dataclass
class DevEmailAdapter:
    sender: str | None = None
    outbox: list[OutboxEntry] = field(default_factory=list)
    log_level: int = logging.INFO
    log_body: bool = True
    preview_chars: int = 100

    def send(self, message: EmailMessage) -> EmailResult:
        entry = OutboxEntry(
            message_id=f"dev-{uuid4().hex[:12]}",
            message=message,
            sender=message.sender or self.sender,
            captured_at=datetime.now(UTC),
        )
        self.outbox.append(entry)
        logger.log(self.log_level, self._describe(entry))
        return EmailResult.captured(message.recipient, entry.message_id)

    def close(self) -> None:
        """Nothing to release."""

    def _describe(self, entry: OutboxEntry) -> str:
        text = f"Captured email {entry.message_id} to={entry.recipient} subject={entry.message.subject!r}"
        if entry.sender:
            text += f" from={entry.sender}"
        if self.log_body:
            body = entry.message.body_text
            if len(body) > self.preview_chars:
                body = body[: self.preview_chars] + "..."
            text += f" body={body!r}"
        return text

    # --- Outbox inspection ---

    def latest(self) -> OutboxEntry | None:
        return self.outbox[-1] if self.outbox else None

    def addressed_to(self, recipient: str) -> list[OutboxEntry]:
        return [entry for entry in self.outbox if entry.recipient == recipient]

    def latest_link(self) -> str | None:
        """First link of the most recent message, e.g. a confirmation URL."""
        entry = self.latest()
        if entry is None or not entry.links:
            return None
        return entry.links[0]

    def clear(self) -> None:
        self.outbox.clear()
