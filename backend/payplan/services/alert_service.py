"""Operational alerts for failed or missed job runs."""

import json
import logging
from typing import Any

import httpx

from payplan.core.config import settings

logger = logging.getLogger(__name__)


class AlertService:
    """Posts alerts to a Slack-compatible incoming webhook.

    Delivery is best-effort: failures are logged and reported through the
    return value, never raised.
    """

    def __init__(self, webhook_url: str | None = None, timeout: float = 10.0):
        self.webhook_url = settings.ALERT_WEBHOOK_URL if webhook_url is None else webhook_url
        self.timeout = timeout

    def send(self, subject: str, details: dict[str, Any] | None = None) -> bool:
        """Send an alert.

        Returns:
            True if the webhook accepted the alert, False if it failed or no
            webhook is configured.
        """
        details = details or {}
        if not self.webhook_url:
            logger.warning("ALERT (no webhook configured): %s %s", subject, details)
            return False

        lines = [f":rotating_light: {subject}"]
        lines.extend(f"*{key}:* {value}" for key, value in details.items())
        payload_bytes = json.dumps({"text": "\n".join(lines)}, default=str).encode("utf-8")

        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(
                    self.webhook_url,
                    content=payload_bytes,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.error("Failed to deliver alert %r: %s", subject, exc)
            return False

        if 200 <= resp.status_code < 300:
            logger.info("Alert sent: %s", subject)
            return True
        logger.error("Alert webhook returned %d for %r", resp.status_code, subject)
        return False

    def job_failed(self, job_name: str, run_id: Any, error: str | None) -> bool:
        return self.send(
            f"{job_name} failed",
            {"run_id": run_id, "error": error or "unknown error"},
        )

    def job_unhealthy(self, job_name: str, status: str, message: str) -> bool:
        return self.send(
            f"{job_name} health {status}",
            {"message": message},
        )
