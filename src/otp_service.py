# SPDX-License-Identifier: GPL-3.0-only
"""OTP Service Module - issues and verifies email verification codes."""

import dataclasses
import datetime
import secrets
from typing import Optional

from base_logger import get_logger
from src.crypto import codes_match
from src.email_delivery import EmailSender, render_otp_email
from src.exceptions import (
    OTPAttemptsExhaustedError,
    OTPExpiredError,
    OTPMismatchError,
    OTPNotFoundError,
    ValidationError,
)
from src.otp_store import OTPStore, normalize_email
from src.utils import is_valid_email

logger = get_logger(__name__)

OTP_LENGTH = 6


@dataclasses.dataclass
class IssueResult:
    """Outcome of a successful issuance."""

    email: str
    code: str
    expires_at: datetime.datetime
    message_id: Optional[str] = None


def generate_otp(length: int = OTP_LENGTH) -> str:
    """Generate a random numeric OTP without a leading zero."""
    lower = 10 ** (length - 1)
    return str(lower + secrets.randbelow(9 * lower))


def issue_otp(
    store: OTPStore, email: str, sender: EmailSender, send: bool = True
) -> IssueResult:
    """Create a code for the email and deliver it.

    The stored record is kept when delivery fails, so a resend simply issues
    again.

    Raises:
        ValidationError: If the email is missing or malformed.
        DeliveryError: If the email provider rejected the message.
    """
    if not email or not email.strip():
        raise ValidationError("Email is required")

    normalized_email = normalize_email(email)
    if not is_valid_email(normalized_email):
        raise ValidationError("Please enter a valid email address")

    otp_code = generate_otp()
    record = store.issue(normalized_email, otp_code)
    logger.info("OTP issued for %s", normalized_email)

    result = IssueResult(
        email=normalized_email, code=otp_code, expires_at=record.expires_at
    )
    if not send:
        logger.info("OTP delivery skipped for %s", normalized_email)
        return result

    expiry_minutes = int(store.expiry.total_seconds() // 60)
    subject, html = render_otp_email(otp_code, expiry_minutes, record.expires_at)
    result.message_id = sender.send(normalized_email, subject, html)
    return result


def verify_otp(store: OTPStore, email: str, otp_code: str) -> None:
    """Check a submitted code and consume it on success.

    This is the only verification path; the verify endpoint and the
    registration flow both call it.

    Raises:
        ValidationError: If the email or code is missing.
        OTPNotFoundError: If no code is pending for the email.
        OTPExpiredError: If the code is past its expiry. The record is deleted.
        OTPAttemptsExhaustedError: If the attempt ceiling was reached. The
            record is deleted.
        OTPMismatchError: If the code is wrong and attempts remain.
    """
    if not email or not otp_code:
        raise ValidationError("Email and OTP are required")

    normalized_email = normalize_email(email)
    otp_code = str(otp_code).strip()

    record = store.lookup(normalized_email)
    if record is None:
        logger.info("No OTP record found for %s", normalized_email)
        raise OTPNotFoundError()

    if record.is_expired(store.now()):
        store.consume(normalized_email, record.code)
        logger.info("Expired OTP submitted for %s", normalized_email)
        raise OTPExpiredError()

    if record.attempts >= store.max_attempts:
        store.consume(normalized_email, record.code)
        logger.info("OTP attempt ceiling already reached for %s", normalized_email)
        raise OTPAttemptsExhaustedError()

    if not codes_match(record.code, otp_code):
        remaining = store.record_failed_attempt(normalized_email, record.code)
        if remaining is None:
            # Reissued since lookup; the new code is not charged.
            current = store.lookup(normalized_email)
            if current is None:
                raise OTPNotFoundError()
            logger.info("OTP for %s was reissued during verification", normalized_email)
            raise OTPMismatchError(store.max_attempts - current.attempts)

        logger.warning(
            "Incorrect OTP for %s, %d attempts remaining", normalized_email, remaining
        )
        if remaining <= 0:
            raise OTPAttemptsExhaustedError()
        raise OTPMismatchError(remaining)

    if not store.consume(normalized_email, record.code):
        # A concurrent request consumed or replaced the code first.
        logger.warning("OTP for %s was consumed concurrently", normalized_email)
        raise OTPNotFoundError()

    logger.info("OTP verified for %s", normalized_email)
