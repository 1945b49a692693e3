"""Test module for organization registration."""

import pytest

from src.crypto import argon2_ph
from src.db_models import OrganizationProfile, User
from src.exceptions import ConflictError, OTPMismatchError, ValidationError
from src.organizations import (
    register_organization,
    serialize_organization,
    validate_email_domain,
)
from src.otp_service import issue_otp


def registration(**overrides):
    fields = {
        "email": "admin@acme.io",
        "password": "secret123",
        "organization_name": "Acme",
        "contact_mail": "contact@acme.io",
        "company_location": "Pune",
        "name": "Acme Admin",
    }
    fields.update(overrides)
    return fields


@pytest.fixture()
def issued(memory_store, sender):
    """A fresh code for the default registration email."""
    return issue_otp(memory_store, "admin@acme.io", sender, send=False)


def test_register_organization_success(memory_store, issued):
    """Test account and pending profile are created."""
    profile = register_organization(
        memory_store, otp=issued.code, **registration(email="Admin@Acme.io")
    )

    user = User.get(User.email == "admin@acme.io")
    assert user.role == "ORGANIZATION"
    assert argon2_ph.verify(user.password_hash, b"test-peppersecret123")
    assert profile.user.id == user.id
    assert profile.verified_status == "PENDING"
    assert profile.approved is False
    assert profile.active_status == "ACTIVE"
    assert profile.ratings == 0
    assert memory_store.lookup("admin@acme.io") is None


def test_register_organization_requires_otp(memory_store):
    """Test registration without a code or prior verification."""
    with pytest.raises(ValidationError) as exc_info:
        register_organization(memory_store, **registration())

    assert exc_info.value.message == (
        "Email verification required. Please request OTP first."
    )
    assert User.select().count() == 0


def test_register_organization_without_issued_code(memory_store):
    """Test a code submitted before any issuance."""
    with pytest.raises(ValidationError) as exc_info:
        register_organization(memory_store, otp="123456", **registration())

    assert "Email verification required" in exc_info.value.message


def test_register_organization_wrong_code(memory_store, issued):
    """Test a wrong code surfaces the verifier error."""
    bad_code = "000000" if issued.code != "000000" else "111111"

    with pytest.raises(OTPMismatchError):
        register_organization(memory_store, otp=bad_code, **registration())

    assert OrganizationProfile.select().count() == 0


def test_register_organization_pre_verified(memory_store):
    """Test the verified flag is honored only with a server-side marker."""
    with pytest.raises(ValidationError):
        register_organization(memory_store, is_otp_verified=True, **registration())

    memory_store.mark_verified("admin@acme.io")
    register_organization(memory_store, is_otp_verified=True, **registration())

    assert User.select().where(User.email == "admin@acme.io").count() == 1
    assert memory_store.is_verified("admin@acme.io") is False


def test_register_organization_personal_domain(memory_store, sender):
    """Test personal email providers are rejected."""
    result = issue_otp(memory_store, "someone@gmail.com", sender, send=False)

    with pytest.raises(ValidationError) as exc_info:
        register_organization(
            memory_store, otp=result.code, **registration(email="someone@gmail.com")
        )

    assert "Personal email addresses are not allowed" in exc_info.value.message


def test_register_organization_duplicate(memory_store, sender):
    """Test a second registration for the same email."""
    first = issue_otp(memory_store, "admin@acme.io", sender, send=False)
    register_organization(memory_store, otp=first.code, **registration())

    second = issue_otp(memory_store, "admin@acme.io", sender, send=False)
    with pytest.raises(ConflictError) as exc_info:
        register_organization(memory_store, otp=second.code, **registration())

    assert exc_info.value.message == "Email already exists"
    assert User.select().count() == 1


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"organization_name": ""}, "Missing required fields"),
        ({"company_location": None}, "Missing required fields"),
        ({"password": "12345"}, "Password must be at least 6 characters long"),
        ({"contact_mail": "contact@acme"}, "Please enter a valid contact email address"),
    ],
)
def test_register_organization_invalid_fields(memory_store, issued, overrides, message):
    """Test field validation after verification."""
    with pytest.raises(ValidationError) as exc_info:
        register_organization(memory_store, otp=issued.code, **registration(**overrides))

    assert exc_info.value.message.startswith(message)
    assert User.select().count() == 0


def test_register_organization_missing_email(memory_store):
    """Test a blank email is rejected before anything else."""
    with pytest.raises(ValidationError) as exc_info:
        register_organization(memory_store, otp="123456", **registration(email="  "))

    assert exc_info.value.message == "Email is required"


@pytest.mark.parametrize(
    "email, message",
    [
        ("", "Email is required"),
        ("admin@acme", "Please enter a valid email address"),
        ("me@YAHOO.com", "Personal email addresses are not allowed"),
    ],
)
def test_validate_email_domain_rejects(email, message):
    """Test domain validation messages."""
    with pytest.raises(ValidationError) as exc_info:
        validate_email_domain(email)

    assert exc_info.value.message.startswith(message)


def test_validate_email_domain_extra_restricted(monkeypatch):
    """Test additional restricted domains from configuration."""
    validate_email_domain("admin@acme.io")

    monkeypatch.setenv("EXTRA_RESTRICTED_DOMAINS", "Acme.io, example.org")
    with pytest.raises(ValidationError):
        validate_email_domain("admin@acme.io")


def test_serialize_organization(memory_store, issued):
    """Test the response shape of a registered organization."""
    profile = register_organization(memory_store, otp=issued.code, **registration())

    data = serialize_organization(profile)
    assert data["organizationName"] == "Acme"
    assert data["contactMail"] == "contact@acme.io"
    assert data["verifiedStatus"] == "PENDING"
    assert data["approved"] is False
    assert data["user"]["email"] == "admin@acme.io"
    assert data["user"]["role"] == "ORGANIZATION"
    assert "password_hash" not in data["user"]
    assert set(OrganizationProfile._meta.fields) - {"id", "user", "date_created"} == {
        "organization_name", "website", "contact_mail", "phone",
        "company_location", "logo", "verified_status", "approved",
        "active_status", "ratings",
    }
