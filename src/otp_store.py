# SPDX-License-Identifier: GPL-3.0-only
"""OTP Store Module - keeps pending email verification codes.

Two backends share the ``OTPStore`` interface:

* ``InMemoryOTPStore`` for single-instance deployments. Records live in a
  bounded TTL cache guarded by a lock.
* ``DatabaseOTPStore`` for deployments running several API processes.
  Records live in the ``otp`` table and every mutation is a conditional
  statement inside a transaction.

Both make ``record_failed_attempt`` and ``consume`` atomic, so concurrent
verifications of the same email cannot double-consume a code or exceed the
attempt ceiling.
"""

import dataclasses
import datetime
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from cachetools import TTLCache

from base_logger import get_logger
from src.db_models import OTP, VerifiedEmail
from src.types import OTPStoreBackend
from src.utils import get_configs, get_int_config

logger = get_logger(__name__)

DEFAULT_EXPIRY_MINUTES = 10
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MAX_SIZE = 10000


def normalize_email(email: str) -> str:
    """Return the store key for an email address."""
    return (email or "").strip().lower()


@dataclasses.dataclass
class OTPRecord:
    """A pending verification code."""

    email: str
    code: str
    created_at: datetime.datetime
    expires_at: datetime.datetime
    attempts: int = 0

    def is_expired(self, now: datetime.datetime) -> bool:
        return now > self.expires_at


class OTPStore(ABC):
    """Keyed storage for pending OTP records."""

    def __init__(
        self,
        expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ):
        self.expiry = datetime.timedelta(minutes=expiry_minutes)
        self.max_attempts = max_attempts
        self._clock = clock or datetime.datetime.now

    def now(self) -> datetime.datetime:
        return self._clock()

    @abstractmethod
    def issue(self, email: str, code: str) -> OTPRecord:
        """Replace any record for the email with a fresh one."""

    @abstractmethod
    def lookup(self, email: str) -> Optional[OTPRecord]:
        """Return the email's record, sweeping other expired records first.

        The returned record may itself be expired so the caller can tell an
        expired code from a missing one.
        """

    @abstractmethod
    def record_failed_attempt(
        self, email: str, code: Optional[str] = None
    ) -> Optional[int]:
        """Count a failed attempt and return the attempts left.

        The record is deleted when the ceiling is reached, in which case 0
        is returned. A missing record also returns 0. When ``code`` is given
        the attempt is only counted against a record holding that code; a
        record reissued with a different code is left untouched and None is
        returned.
        """

    @abstractmethod
    def consume(self, email: str, code: Optional[str] = None) -> bool:
        """Delete the email's record, only if its code matches when given."""

    @abstractmethod
    def sweep_expired(self) -> int:
        """Delete every expired record and return how many were removed."""

    @abstractmethod
    def clear(self, email: Optional[str] = None) -> int:
        """Delete one email's record, or every record when none is given."""

    @abstractmethod
    def mark_verified(self, email: str) -> None:
        """Remember, for one expiry window, that the email passed verification."""

    @abstractmethod
    def is_verified(self, email: str) -> bool:
        """Whether the email passed verification within the window."""

    @abstractmethod
    def consume_verified(self, email: str) -> bool:
        """Forget a verified email. Returns whether it was remembered."""


class InMemoryOTPStore(OTPStore):
    """Process-local OTP store."""

    def __init__(
        self,
        expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        maxsize: int = DEFAULT_MAX_SIZE,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ):
        super().__init__(expiry_minutes, max_attempts, clock)
        # Hard eviction well after expiry; expiry itself is checked lazily.
        self._records: TTLCache = TTLCache(
            maxsize=maxsize,
            ttl=self.expiry.total_seconds() * 2,
            timer=lambda: self.now().timestamp(),
        )
        self._verified: TTLCache = TTLCache(
            maxsize=maxsize,
            ttl=self.expiry.total_seconds(),
            timer=lambda: self.now().timestamp(),
        )
        self._lock = threading.Lock()

    def issue(self, email: str, code: str) -> OTPRecord:
        key = normalize_email(email)
        now = self.now()
        record = OTPRecord(
            email=key,
            code=code,
            created_at=now,
            expires_at=now + self.expiry,
        )
        with self._lock:
            self._sweep(now)
            self._records.pop(key, None)
            self._records[key] = record
        logger.debug("OTP record stored")
        return dataclasses.replace(record)

    def lookup(self, email: str) -> Optional[OTPRecord]:
        key = normalize_email(email)
        with self._lock:
            self._sweep(self.now(), keep=key)
            record = self._records.get(key)
            return dataclasses.replace(record) if record else None

    def record_failed_attempt(
        self, email: str, code: Optional[str] = None
    ) -> Optional[int]:
        key = normalize_email(email)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return 0
            if code is not None and record.code != code:
                return None

            record.attempts = min(record.attempts + 1, self.max_attempts)
            if record.attempts >= self.max_attempts:
                self._records.pop(key, None)
                logger.info("OTP invalidated after %d failed attempts", record.attempts)
                return 0
            return self.max_attempts - record.attempts

    def consume(self, email: str, code: Optional[str] = None) -> bool:
        key = normalize_email(email)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return False
            if code is not None and record.code != code:
                return False
            self._records.pop(key, None)
            return True

    def sweep_expired(self) -> int:
        with self._lock:
            return self._sweep(self.now())

    def clear(self, email: Optional[str] = None) -> int:
        with self._lock:
            if email is None:
                self._records.expire()
                count = len(self._records)
                self._records.clear()
                return count
            return 1 if self._records.pop(normalize_email(email), None) else 0

    def mark_verified(self, email: str) -> None:
        with self._lock:
            self._verified[normalize_email(email)] = True

    def is_verified(self, email: str) -> bool:
        with self._lock:
            return self._verified.get(normalize_email(email), False)

    def consume_verified(self, email: str) -> bool:
        with self._lock:
            return self._verified.pop(normalize_email(email), False)

    def __len__(self):
        with self._lock:
            return len(self._records)

    def _sweep(self, now: datetime.datetime, keep: Optional[str] = None) -> int:
        self._records.expire()
        expired = [
            key
            for key, record in list(self._records.items())
            if key != keep and record.is_expired(now)
        ]
        for key in expired:
            self._records.pop(key, None)
        if expired:
            logger.debug("Swept %d expired OTP records", len(expired))
        return len(expired)


class DatabaseOTPStore(OTPStore):
    """OTP store backed by the ``otp`` table."""

    @property
    def database(self):
        return OTP._meta.database

    def issue(self, email: str, code: str) -> OTPRecord:
        key = normalize_email(email)
        now = self.now()
        self.sweep_expired()

        otp_data = {
            "email": key,
            "otp_code": code,
            "attempt_count": 0,
            "date_created": now,
            "date_expires": now + self.expiry,
        }
        with self.database.atomic():
            OTP.replace(**otp_data).execute()
        logger.debug("OTP record stored")

        return OTPRecord(
            email=key,
            code=code,
            created_at=now,
            expires_at=otp_data["date_expires"],
        )

    def lookup(self, email: str) -> Optional[OTPRecord]:
        key = normalize_email(email)
        OTP.delete().where((OTP.date_expires < self.now()) & (OTP.email != key)).execute()

        otp_entry = OTP.get_or_none(OTP.email == key)
        if not otp_entry:
            return None
        return OTPRecord(
            email=otp_entry.email,
            code=otp_entry.otp_code,
            created_at=otp_entry.date_created,
            expires_at=otp_entry.date_expires,
            attempts=otp_entry.attempt_count,
        )

    def record_failed_attempt(
        self, email: str, code: Optional[str] = None
    ) -> Optional[int]:
        key = normalize_email(email)
        with self.database.atomic():
            query = OTP.update(attempt_count=OTP.attempt_count + 1).where(
                (OTP.email == key) & (OTP.attempt_count < self.max_attempts)
            )
            if code is not None:
                query = query.where(OTP.otp_code == code)
            rows_updated = query.execute()
            otp_entry = OTP.get_or_none(OTP.email == key)

            if code is not None and otp_entry and otp_entry.otp_code != code:
                return None

            if (
                rows_updated == 0
                or otp_entry is None
                or otp_entry.attempt_count >= self.max_attempts
            ):
                OTP.delete().where(OTP.email == key).execute()
                logger.info("OTP invalidated after reaching attempt ceiling")
                return 0

            return self.max_attempts - otp_entry.attempt_count

    def consume(self, email: str, code: Optional[str] = None) -> bool:
        query = OTP.delete().where(OTP.email == normalize_email(email))
        if code is not None:
            query = query.where(OTP.otp_code == code)
        with self.database.atomic():
            return query.execute() > 0

    def sweep_expired(self) -> int:
        removed = OTP.delete().where(OTP.date_expires < self.now()).execute()
        if removed:
            logger.debug("Swept %d expired OTP records", removed)
        return removed

    def clear(self, email: Optional[str] = None) -> int:
        query = OTP.delete()
        if email is not None:
            query = query.where(OTP.email == normalize_email(email))
        return query.execute()

    def mark_verified(self, email: str) -> None:
        with self.database.atomic():
            VerifiedEmail.replace(
                email=normalize_email(email),
                date_expires=self.now() + self.expiry,
            ).execute()

    def is_verified(self, email: str) -> bool:
        return (
            VerifiedEmail.select()
            .where(
                (VerifiedEmail.email == normalize_email(email))
                & (VerifiedEmail.date_expires >= self.now())
            )
            .exists()
        )

    def consume_verified(self, email: str) -> bool:
        with self.database.atomic():
            verified = self.is_verified(email)
            VerifiedEmail.delete().where(
                VerifiedEmail.email == normalize_email(email)
            ).execute()
        return verified


def get_otp_store() -> OTPStore:
    """Build the store selected by OTP_STORE_BACKEND."""
    backend = get_configs(
        "OTP_STORE_BACKEND", default_value=OTPStoreBackend.MEMORY.value
    ).lower()
    expiry_minutes = get_int_config("OTP_EXPIRY_MINUTES", DEFAULT_EXPIRY_MINUTES)
    max_attempts = get_int_config("OTP_MAX_VERIFY_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)

    if backend == OTPStoreBackend.DATABASE.value:
        logger.info("Using database OTP store")
        return DatabaseOTPStore(expiry_minutes, max_attempts)

    if backend != OTPStoreBackend.MEMORY.value:
        logger.warning("Unknown OTP store backend '%s', using memory", backend)

    logger.info("Using in-memory OTP store")
    return InMemoryOTPStore(
        expiry_minutes,
        max_attempts,
        maxsize=get_int_config("OTP_STORE_MAX_SIZE", DEFAULT_MAX_SIZE),
    )
