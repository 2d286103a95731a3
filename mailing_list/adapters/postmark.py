"""
Postmark Email Adapter (EmailPort implementation).

Sends transactional email through the Postmark HTTP API:
one POST to ``{base_url}/email`` per message, authenticated with the
``X-Postmark-Server-Token`` header.

Key behaviors:
- One shared httpx.Client per adapter (connection pooling, thread-safe)
- httpx applies the timeout per phase (connect, write, read); on top of that
  the whole exchange, body included, must finish within ``timeout`` seconds.
  Either limit raises EmailTimeoutError
- Non-2xx raises EmailProviderRejectedError(status_code)
- Network failures raise EmailTransportError
- No retries
- The server token is a SecretStr and is only revealed when building the header
"""

from __future__ import annotations

import json
import logging
import time

import httpx
from pydantic import SecretStr

from mailing_list.core.ports.email import (
    EmailMessage,
    EmailProviderRejectedError,
    EmailResult,
    EmailTimeoutError,
    EmailTransportError,
)
from mailing_list.domain.subscriber import SubscriberEmail

logger = logging.getLogger(__name__)

AUTH_HEADER = "X-Postmark-Server-Token"


class PostmarkEmailClient:
    """HTTP client for the Postmark single-email endpoint."""

    def __init__(
        self,
        base_url: str,
        sender: SubscriberEmail,
        authorization_token: SecretStr,
        timeout: float,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Provider API root, e.g. "https://api.postmarkapp.com"
            sender: Verified sender address
            authorization_token: Postmark server token
            timeout: Seconds to wait for the provider before giving up
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.sender = sender
        self.timeout = timeout
        self._authorization_token = authorization_token
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def __repr__(self) -> str:
        return f"PostmarkEmailClient(base_url={self.base_url!r}, sender={self.sender.value!r})"

    def send(self, message: EmailMessage) -> EmailResult:
        """Deliver one message; raises an EmailSendError subclass on failure."""
        url = f"{self.base_url}/email"
        payload = {
            "From": message.sender or self.sender.value,
            "To": message.recipient,
            "Subject": message.subject,
            "HtmlBody": message.body_html,
            "TextBody": message.body_text,
        }

        deadline = time.monotonic() + self.timeout

        try:
            with self._http.stream(
                "POST",
                url,
                json=payload,
                headers={AUTH_HEADER: self._authorization_token.get_secret_value()},
            ) as response:
                body = self._read_body(response, deadline, message.recipient)
        except httpx.TimeoutException as e:
            logger.warning("Email provider timed out after %.3fs (%s)", self.timeout, url)
            raise EmailTimeoutError(message.recipient, self.timeout) from e
        except httpx.TransportError as e:
            logger.warning("Email provider unreachable at %s: %s", url, type(e).__name__)
            raise EmailTransportError(message.recipient, type(e).__name__) from e

        if not response.is_success:
            logger.error(
                "Email provider rejected message: status=%s body=%s",
                response.status_code,
                body[:500].decode("utf-8", errors="replace"),
            )
            raise EmailProviderRejectedError(message.recipient, response.status_code)

        content_type = response.headers.get("content-type", "")
        return EmailResult.accepted(message.recipient, self._message_id(content_type, body))

    def close(self) -> None:
        """Release pooled connections."""
        self._http.close()

    def _read_body(self, response: httpx.Response, deadline: float, recipient: str) -> bytes:
        """Read the response body, giving up once the overall deadline has passed."""
        chunks = []
        if time.monotonic() > deadline:
            raise self._deadline_exceeded(recipient)
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise self._deadline_exceeded(recipient)
        return b"".join(chunks)

    def _deadline_exceeded(self, recipient: str) -> EmailTimeoutError:
        logger.warning("Email provider did not finish responding within %.3fs", self.timeout)
        return EmailTimeoutError(recipient, self.timeout)

    @staticmethod
    def _message_id(content_type: str, body: bytes) -> str | None:
        if not content_type.startswith("application/json"):
            return None
        try:
            data = json.loads(body)
        except ValueError:
            return None
        if isinstance(data, dict):
            message_id = data.get("MessageID")
            return str(message_id) if message_id is not None else None
        return None
