# SPDX-License-Identifier: GPL-3.0-only
"""Application error types.

Every error carries the message shown to the caller and the HTTP status the
API answers with. Handlers in ``src.api_v1`` render them as
``{"success": false, "error": message}``.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal Server Error"):
        self.message = message
        super().__init__(message)


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppError):
    """Resource already exists."""

    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(AppError):
    """Caller is not allowed to use the operation."""

    status_code = status.HTTP_403_FORBIDDEN


class OTPError(AppError):
    """Base class for verification failures."""

    status_code = status.HTTP_400_BAD_REQUEST


class OTPNotFoundError(OTPError):
    """No pending code for the email."""

    def __init__(
        self,
        message: str = "No verification code found for this email. Please request a new code.",
    ):
        super().__init__(message)


class OTPExpiredError(OTPError):
    """The pending code is past its expiry."""

    def __init__(
        self,
        message: str = "Verification code has expired. Please request a new code.",
    ):
        super().__init__(message)


class OTPAttemptsExhaustedError(OTPError):
    """The attempt ceiling was reached."""

    def __init__(
        self,
        message: str = "Too many failed attempts. Please request a new code.",
    ):
        super().__init__(message)


class OTPMismatchError(OTPError):
    """The submitted code is wrong and attempts remain."""

    def __init__(self, remaining_attempts: int):
        self.remaining_attempts = remaining_attempts
        super().__init__(
            f"Invalid verification code. {remaining_attempts} attempts remaining."
        )


class DeliveryError(AppError):
    """The email provider did not accept the message.

    Configuration problems (missing API key, unverified sending domain) are
    reported with status 500; anything else is treated as a transient
    upstream failure (502).
    """


    def __init__(self, message: str, is_configuration_error: bool = False):
        self.is_configuration_error = is_configuration_error
        super().__init__(message)

    @property
    def status_code(self):
        if self.is_configuration_error:
            return status.HTTP_500_INTERNAL_SERVER_ERROR
        return status.HTTP_502_BAD_GATEWAY
