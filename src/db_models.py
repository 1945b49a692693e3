# SPDX-License-Identifier: GPL-3.0-only
"""Peewee database models."""

import datetime

from peewee import (
    BooleanField,
    CharField,
    DateTimeField,
    FloatField,
    ForeignKeyField,
    IntegerField,
    Model,
)

from src.db import connect
from src.types import ActiveStatus, UserRole, VerificationStatus

database = connect()


class BaseModel(Model):
    """Base model bound to the service database."""

    class Meta:
        database = database


class User(BaseModel):
    """Account of any role."""

    email = CharField(max_length=255, unique=True)
    password_hash = CharField(max_length=255)
    name = CharField(max_length=255, default="")
    role = CharField(
        max_length=32,
        choices=[(role.value, role.value) for role in UserRole],
    )
    date_created = DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "users"


class OrganizationProfile(BaseModel):
    """Profile attached to ORGANIZATION accounts."""

    user = ForeignKeyField(
        User, backref="organization_profile", unique=True, on_delete="CASCADE"
    )
    organization_name = CharField(max_length=255)
    website = CharField(max_length=255, default="")
    contact_mail = CharField(max_length=255)
    phone = CharField(max_length=64, default="")
    company_location = CharField(max_length=255)
    logo = CharField(max_length=512, default="")
    verified_status = CharField(
        max_length=16, default=VerificationStatus.PENDING.value
    )
    approved = BooleanField(default=False)
    active_status = CharField(max_length=16, default=ActiveStatus.ACTIVE.value)
    ratings = FloatField(default=0)
    date_created = DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "organization_profiles"


class OTP(BaseModel):
    """Pending email verification code."""

    email = CharField(max_length=255, unique=True)
    otp_code = CharField(max_length=6)
    attempt_count = IntegerField(default=0)
    date_created = DateTimeField(default=datetime.datetime.now)
    date_expires = DateTimeField()

    class Meta:
        table_name = "otp"


class VerifiedEmail(BaseModel):
    """Email whose OTP was verified and not yet used for registration."""

    email = CharField(max_length=255, unique=True)
    date_expires = DateTimeField()

    class Meta:
        table_name = "verified_emails"


ALL_MODELS = [User, OrganizationProfile, OTP, VerifiedEmail]
