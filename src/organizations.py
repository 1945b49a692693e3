# SPDX-License-Identifier: GPL-3.0-only
"""Organization self-registration."""

from typing import Any, Dict, Optional

from peewee import IntegrityError

from base_logger import get_logger
from src.db_models import OrganizationProfile, User
from src.exceptions import ConflictError, OTPNotFoundError, ValidationError
from src.otp_service import verify_otp
from src.otp_store import OTPStore, normalize_email
from src.types import ActiveStatus, UserRole, VerificationStatus
from src.utils import get_list_config, hash_password, is_valid_email

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6

# Personal email providers. Organizations must register with a work address.
RESTRICTED_DOMAINS = frozenset(
    [
        "gmail.com",
        "yahoo.com", "ymail.com", "rocketmail.com",
        "outlook.com", "hotmail.com", "live.com", "msn.com",
        "icloud.com", "me.com", "mac.com",
        "aol.com",
        "zoho.com",
        "gmx.com", "gmx.us",
        "protonmail.com", "pm.me",
        "tutanota.com", "tutanota.de", "tutamail.com",
        "mail.com", "email.com", "usa.com", "myself.com", "consultant.com",
        "post.com", "europe.com", "asia.com", "dr.com", "engineer.com",
        "cheerful.com", "accountant.com", "activist.com", "allergist.com",
        "alumni.com", "arcticmail.com", "artlover.com", "birdlover.com",
        "brew-meister.com", "cash4u.com", "chemist.com", "columnist.com",
        "comic.com", "computer4u.com", "counsellor.com", "deliveryman.com",
        "diplomats.com", "execs.com", "fastservice.com", "gardener.com",
        "groupmail.com", "homemail.com", "job4u.com", "journalist.com",
        "legislator.com", "lobbyist.com", "minister.com", "net-shopping.com",
        "optician.com", "pediatrician.com", "planetmail.com", "politician.com",
        "priest.com", "publicist.com", "qualityservice.com", "realtyagent.com",
        "registerednurses.com", "repairman.com", "sociologist.com",
        "solution4u.com",
    ]
)


def restricted_domains() -> frozenset:
    """Built-in denylist plus any EXTRA_RESTRICTED_DOMAINS entries."""
    extra = get_list_config("EXTRA_RESTRICTED_DOMAINS")
    return RESTRICTED_DOMAINS | frozenset(extra)


def validate_email_domain(email: str) -> None:
    """Reject missing, malformed and personal email addresses.

    Raises:
        ValidationError: With the message shown to the registrant.
    """
    if not email:
        raise ValidationError("Email is required")

    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email address")

    domain = email.split("@")[1].lower() if "@" in email else ""
    if not domain:
        raise ValidationError("Invalid email format")

    if domain in restricted_domains():
        raise ValidationError(
            "Personal email addresses are not allowed. "
            "Please use your organization email address."
        )


def register_organization(
    store: OTPStore,
    email: str,
    password: str,
    organization_name: str,
    contact_mail: str,
    company_location: str,
    name: Optional[str] = None,
    website: Optional[str] = None,
    phone: Optional[str] = None,
    otp: Optional[str] = None,
    is_otp_verified: bool = False,
) -> OrganizationProfile:
    """Create an ORGANIZATION account and its pending profile.

    Unless the caller already verified the email through the verify
    endpoint, the submitted code is checked with the shared verifier first.
    The account and profile are written in one transaction.
    """
    normalized_email = normalize_email(email)
    if not normalized_email:
        raise ValidationError("Email is required")

    if not is_otp_verified:
        if not otp:
            raise ValidationError(
                "Email verification required. Please request OTP first."
            )
        try:
            verify_otp(store, normalized_email, otp)
        except OTPNotFoundError as e:
            raise ValidationError(
                "Email verification required. Please request OTP first."
            ) from e
    elif not store.is_verified(normalized_email):
        logger.info("Pre-verified registration without verification: %s", normalized_email)
        raise ValidationError(
            "Email verification required. Please request OTP first."
        )

    validate_email_domain(normalized_email)

    if not all([password, organization_name, contact_mail, company_location]):
        raise ValidationError(
            "Missing required fields: email, password, organizationName, "
            "contactMail, companyLocation"
        )

    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )

    if not is_valid_email(contact_mail):
        raise ValidationError("Please enter a valid contact email address")

    if User.get_or_none(User.email == normalized_email):
        logger.info("Registration rejected, email already exists: %s", normalized_email)
        raise ConflictError("Email already exists")

    password_hash = hash_password(password)

    try:
        with User._meta.database.atomic():
            user = User.create(
                email=normalized_email,
                password_hash=password_hash,
                name=name or "",
                role=UserRole.ORGANIZATION.value,
            )
            profile = OrganizationProfile.create(
                user=user,
                organization_name=organization_name,
                website=website or "",
                contact_mail=contact_mail,
                phone=phone or "",
                company_location=company_location,
                logo="",
                verified_status=VerificationStatus.PENDING.value,
                approved=False,
                active_status=ActiveStatus.ACTIVE.value,
                ratings=0,
            )
    except IntegrityError as e:
        logger.warning("Concurrent registration for %s: %s", normalized_email, e)
        raise ConflictError("Email already exists") from e

    store.consume_verified(normalized_email)
    logger.info(
        "Organization %s registered for %s", profile.id, normalized_email
    )
    return profile


def serialize_organization(profile: OrganizationProfile) -> Dict[str, Any]:
    """Response body for a registered organization."""
    user = profile.user
    return {
        "id": profile.id,
        "organizationName": profile.organization_name,
        "website": profile.website,
        "contactMail": profile.contact_mail,
        "phone": profile.phone,
        "companyLocation": profile.company_location,
        "logo": profile.logo,
        "verifiedStatus": profile.verified_status,
        "approved": profile.approved,
        "activeStatus": profile.active_status,
        "ratings": profile.ratings,
        "user": {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "role": user.role,
        },
    }
