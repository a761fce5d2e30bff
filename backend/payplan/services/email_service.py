"""Outbound email delivery for installment notifications.

Two transports are available: SMTP (aiosmtplib) and the Resend HTTP API
(httpx). Both implement ``EmailDelivery.send`` and return a provider message
id, raising ``DeliveryError`` when the transport rejects the message.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import make_msgid

import httpx

from payplan.core.config import settings
from payplan.core.errors import DeliveryError

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"


def _from_header() -> str:
    return f"{settings.SMTP_FROM_NAME} <{settings.SMTP_FROM_EMAIL}>"


class EmailDelivery(ABC):
    """Delivery collaborator used by the notification dispatcher."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        idempotency_key: str | None = None,
    ) -> str | None:
        """Send one email and return the provider message id."""


class SmtpEmailDelivery(EmailDelivery):
    """Service for sending transactional emails via SMTP."""

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        idempotency_key: str | None = None,
    ) -> str | None:
        """Send an email via SMTP.

        Returns:
            The generated Message-ID, or ``None`` when SMTP is not configured
            (the send is logged and treated as delivered).

        Raises:
            DeliveryError: If the SMTP server rejects the message.
        """
        if not settings.SMTP_HOST:
            logger.info("SMTP not configured, skipping email to %s: %s", to, subject)
            return None

        import aiosmtplib

        message_id = make_msgid(domain=settings.SMTP_FROM_EMAIL.rpartition("@")[2] or None)
        msg = EmailMessage()
        msg["From"] = _from_header()
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = message_id
        msg.set_content("Please view this email in an HTML-capable client.")
        msg.add_alternative(html_body, subtype="html")

        try:
            await aiosmtplib.send(
                msg,
                hostname=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_USERNAME or None,
                password=settings.SMTP_PASSWORD or None,
                start_tls=settings.SMTP_USE_TLS,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"SMTP send to {to} failed: {exc}") from exc
        logger.info("Email sent to %s: %s", to, subject)
        return message_id


class ResendEmailDelivery(EmailDelivery):
    """Sends through the Resend API."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client

    async def _post(self, payload: dict[str, object], headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(RESEND_SEND_URL, headers=headers, json=payload)
        async with httpx.AsyncClient(timeout=settings.RESEND_TIMEOUT_SECONDS) as client:
            return await client.post(RESEND_SEND_URL, headers=headers, json=payload)

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        idempotency_key: str | None = None,
    ) -> str | None:
        if not settings.RESEND_API_KEY:
            raise DeliveryError("RESEND_API_KEY is not configured")

        headers = {
            "Authorization": f"Bearer {settings.RESEND_API_KEY}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        payload: dict[str, object] = {
            "from": _from_header(),
            "to": [to],
            "subject": subject,
            "html": html_body,
        }

        try:
            response = await self._post(payload, headers)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Resend request for {to} failed: {exc.__class__.__name__}") from exc

        if 200 <= response.status_code < 300:
            message_id = response.json().get("id")
            logger.info("Email sent to %s via Resend, message_id=%s", to, message_id)
            return message_id

        # Idempotency conflict: the provider already accepted this message
        if response.status_code == 409:
            logger.info("Resend reported duplicate send to %s", to)
            return None

        raise DeliveryError(f"Resend returned {response.status_code} for {to}: {response.text[:200]}")


def get_email_delivery(provider: str | None = None) -> EmailDelivery:
    """Transport selected by ``EMAIL_PROVIDER``."""
    provider = (provider or settings.EMAIL_PROVIDER).lower()
    if provider == "resend":
        return ResendEmailDelivery()
    if provider == "smtp":
        return SmtpEmailDelivery()
    raise ValueError(f"Unknown email provider: {provider}")
