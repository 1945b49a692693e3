# SPDX-License-Identifier: GPL-3.0-only
"""Common type definitions for the application."""

from enum import Enum


class UserRole(Enum):
    """Account roles."""

    ADMIN = "ADMIN"
    ORGANIZATION = "ORGANIZATION"
    FREELANCER = "FREELANCER"
    MAINTAINER = "MAINTAINER"


class VerificationStatus(Enum):
    """Organization review states."""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class ActiveStatus(Enum):
    """Account activity states."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class OTPStoreBackend(Enum):
    """Where pending OTP records are kept."""

    MEMORY = "memory"
    DATABASE = "database"
