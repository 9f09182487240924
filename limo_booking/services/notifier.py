from dataclasses import dataclass
from typing import Protocol

import resend

from limo_booking.core.config import RESEND_API_KEY, FROM_EMAIL
from limo_booking.core.logging_config import get_logger
from limo_booking.utils.email_templates import render

logger = get_logger()


@dataclass
class NotificationResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


class Notifier(Protocol):
    def send(self, to: str, template: str, data: dict) -> NotificationResult:
        ...


class ResendNotifier:
    """Sends templated emails through Resend. Never raises."""

    def __init__(self, api_key: str | None = RESEND_API_KEY, from_email: str = FROM_EMAIL):
        self.api_key = api_key
        self.from_email = from_email

    def send(self, to: str, template: str, data: dict) -> NotificationResult:
        log = logger.bind(log_type="notification")

        if not self.api_key:
            log.warning(f"Resend API key not configured, skipping {template} to {to}")
            return NotificationResult(success=False, error="Resend API key not configured")

        try:
            subject, html = render(template, data)
            resend.api_key = self.api_key
            email = resend.Emails.send({
                "from": self.from_email,
                "to": [to],
                "subject": subject,
                "html": html,
            })
        except Exception as e:
            log.error(f"Failed to send {template} to {to}: {e}")
            return NotificationResult(success=False, error=str(e))

        message_id = email.get("id") if isinstance(email, dict) else getattr(email, "id", None)
        log.info(f"Email sent | template={template} | to={to} | id={message_id}")
        return NotificationResult(success=True, message_id=message_id)
