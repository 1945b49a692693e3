# SPDX-License-Identifier: GPL-3.0-only
"""Email delivery through the Resend HTTP API."""

import datetime
from abc import ABC, abstractmethod
from typing import Tuple

import requests

from base_logger import get_logger
from src.exceptions import DeliveryError
from src.utils import get_configs

logger = get_logger(__name__)

RESEND_API_URL = get_configs(
    "RESEND_API_URL", default_value="https://api.resend.com/emails"
)
RESEND_FROM_EMAIL = get_configs(
    "RESEND_FROM_EMAIL", default_value="noreply@atomconnect.in"
)
RESEND_FROM_NAME = get_configs("RESEND_FROM_NAME", default_value="Atom Connect")
EMAIL_SUPPORT_EMAIL = get_configs(
    "EMAIL_SUPPORT_EMAIL", default_value="support@atomconnect.in"
)

CONFIGURATION_ERROR_MESSAGE = (
    "Email service configuration error. Please contact support."
)
TRANSIENT_ERROR_MESSAGE = "Failed to send verification email. Please try again."

OTP_EMAIL_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{subject}</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; background-color: #f8fafc;">
  <div style="max-width: 600px; margin: 0 auto; background-color: white;">
    <div style="background: #1e40af; color: white; padding: 40px 30px; text-align: center;">
      <div style="font-size: 28px; font-weight: 700;">{organization_name}</div>
      <div style="font-size: 16px;">Professional Training Platform</div>
    </div>
    <div style="padding: 40px 30px;">
      <h1 style="color: #1e293b; font-size: 24px;">Verify your email address</h1>
      <p style="color: #64748b; font-size: 16px;">Your verification code is:</p>
      <div style="background: #f1f5f9; border-radius: 12px; padding: 24px; text-align: center;">
        <div style="font-size: 36px; font-weight: 700; color: #1e40af; letter-spacing: 8px; font-family: 'Courier New', monospace;">{otp_code}</div>
      </div>
      <p style="color: #92400e; font-size: 14px;">
        This code will expire in <strong>{expiration_time}</strong> ({expiration_date_time}).
      </p>
      <p style="color: #64748b; font-size: 14px;">
        If you did not request this code, you can ignore this email.
        Need help? Contact us at <a href="mailto:{support_email}">{support_email}</a>.
      </p>
    </div>
    <div style="background: #f8fafc; padding: 24px 30px; text-align: center;">
      <p style="color: #94a3b8; font-size: 12px;">
        This is an automated email. Please do not reply to this message.
      </p>
    </div>
  </div>
</body>
</html>
"""


def render_otp_email(
    otp_code: str, expiry_minutes: int, expires_at: datetime.datetime = None
) -> Tuple[str, str]:
    """Build the subject and HTML body of a verification email."""
    subject = f"Email Verification Code - {RESEND_FROM_NAME}"
    expires_at = expires_at or datetime.datetime.now() + datetime.timedelta(
        minutes=expiry_minutes
    )
    expiration_time = f"{expiry_minutes} minute{'s' if expiry_minutes != 1 else ''}"

    html = OTP_EMAIL_TEMPLATE.format(
        subject=subject,
        organization_name=RESEND_FROM_NAME,
        otp_code=otp_code,
        expiration_time=expiration_time,
        expiration_date_time=expires_at.strftime("%B %d, %Y at %I:%M %p"),
        support_email=EMAIL_SUPPORT_EMAIL,
    )
    return subject, html


class EmailSender(ABC):
    """Capability to deliver one HTML email."""

    @abstractmethod
    def send(self, to: str, subject: str, html: str) -> str:
        """Send an email and return the provider message id.

        Raises:
            DeliveryError: If the provider did not accept the message.
        """


class ResendEmailSender(EmailSender):
    """Email delivery via the Resend API."""

    def __init__(self, api_key: str = None, api_url: str = None, timeout: int = 30):
        self.api_key = api_key if api_key is not None else get_configs("RESEND_KEY")
        self.api_url = api_url or RESEND_API_URL
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> str:
        if not self.api_key:
            logger.error("Email service not configured")
            raise DeliveryError(CONFIGURATION_ERROR_MESSAGE, is_configuration_error=True)

        payload = {
            "from": f"{RESEND_FROM_NAME} <{RESEND_FROM_EMAIL}>",
            "to": [to],
            "subject": subject,
            "html": html,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = requests.post(
                self.api_url, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error("Email service request error: %s", e)
            raise DeliveryError(TRANSIENT_ERROR_MESSAGE) from e

        if not response.ok:
            error_message = self._error_message(response)
            logger.error(
                "Email service error %d: %s", response.status_code, error_message
            )
            if "domain" in error_message.lower():
                raise DeliveryError(
                    CONFIGURATION_ERROR_MESSAGE, is_configuration_error=True
                )
            raise DeliveryError(TRANSIENT_ERROR_MESSAGE)

        try:
            message_id = response.json().get("id", "")
        except ValueError:
            message_id = ""
        logger.info("Verification email accepted by provider: %s", message_id)
        return message_id

    @staticmethod
    def _error_message(response) -> str:
        try:
            return str(response.json().get("message", ""))
        except ValueError:
            return response.text or ""
