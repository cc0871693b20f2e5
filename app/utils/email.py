"""
Outbound mail for OTP delivery.

Delivery is fire-and-forget: a notifier returns False on failure and the
caller logs it. Nothing is retried.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class Notifier(ABC):

    @abstractmethod
    def send(self, to_email: str, subject: str, body: str) -> bool:
        pass


class ConsoleNotifier(Notifier):
    """
    SMTP disabled — mail printed to the log for development.
    Never use in production: the OTP ends up in the logs.
    """

    def send(self, to_email: str, subject: str, body: str) -> bool:
        logger.info("=" * 60)
        logger.info(f"[EMAIL]  To      : {to_email}")
        logger.info(f"[EMAIL]  Subject : {subject}")
        logger.info(f"[EMAIL]  Body    : {body}")
        logger.info("=" * 60)
        return True


class ResendNotifier(Notifier):
    """Sends through the Resend HTTP API."""

    def __init__(self, api_key: str, from_email: str, timeout: float = 10.0):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set for resend mail backend")

    def send(self, to_email: str, subject: str, body: str) -> bool:
        if not self.api_key:
            logger.error("Cannot send mail: RESEND_API_KEY not configured")
            return False

        try:
            response = httpx.post(
                RESEND_API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.from_email,
                    "to": [to_email],
                    "subject": subject,
                    "text": body,
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to send mail via Resend: {e}")
            return False

        if response.status_code >= 400:
            logger.error(f"Resend API error: {response.status_code} {response.text[:100]}")
            return False

        logger.info(f"Mail sent via Resend to {to_email[:3]}***")
        return True


def build_notifier() -> Notifier:
    if settings.MAIL_BACKEND == "resend":
        return ResendNotifier(settings.RESEND_API_KEY, settings.MAIL_FROM)
    return ConsoleNotifier()


def send_otp_email(notifier: Notifier, to_email: str, name: str, otp_code: int) -> bool:
    body = (
        f"Hello {name},\n\n"
        f"Your password reset code is {otp_code}.\n"
        f"It expires in {settings.OTP_EXPIRE_MINUTES} minutes and can be used once.\n\n"
        "If you did not request a password reset, ignore this email."
    )
    return notifier.send(to_email, "Your password reset code", body)
