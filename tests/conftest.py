"""Shared test fixtures."""

from datetime import datetime, timedelta

import pytest
from peewee import SqliteDatabase

from src.utils import create_tables, set_configs


class FakeClock:
    """Settable clock for stores."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class RecordingSender:
    """Email sender that keeps messages instead of sending them."""

    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def send(self, to, subject, html):
        if self.error:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"msg-{len(self.sent)}"


@pytest.fixture()
def set_testing_mode():
    """Set test mode."""
    set_configs("MODE", "testing")
    set_configs("PASSWORD_PEPPER", "test-pepper")
    set_configs("OTP_DEBUG_ENABLED", "false")
    set_configs("OTP_STORE_BACKEND", "memory")


@pytest.fixture(autouse=True)
def setup_teardown_database(tmp_path, set_testing_mode):
    """Setup and teardown test database."""
    from src.db_models import ALL_MODELS

    db_path = tmp_path / "test.db"
    test_db = SqliteDatabase(db_path, pragmas={"foreign_keys": 1})
    test_db.bind(ALL_MODELS)
    test_db.connect()
    create_tables(ALL_MODELS)

    yield

    test_db.drop_tables(ALL_MODELS)
    test_db.close()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def memory_store(clock):
    from src.otp_store import InMemoryOTPStore

    return InMemoryOTPStore(clock=clock)


@pytest.fixture()
def database_store(clock):
    from src.otp_store import DatabaseOTPStore

    return DatabaseOTPStore(clock=clock)


@pytest.fixture(params=["memory", "database"])
def store(request, clock):
    """Each store backend in turn."""
    from src.otp_store import DatabaseOTPStore, InMemoryOTPStore

    if request.param == "memory":
        return InMemoryOTPStore(clock=clock)
    return DatabaseOTPStore(clock=clock)


@pytest.fixture()
def sender():
    return RecordingSender()


@pytest.fixture()
def failing_sender():
    from src.exceptions import DeliveryError

    return RecordingSender(
        error=DeliveryError("Failed to send verification email. Please try again.")
    )
