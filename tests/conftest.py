"""Shared fixtures: a temporary SQLite store, a frozen clock and cheap bcrypt."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from expense_tracker.application.services.credential_service import CredentialService
from expense_tracker.application.services.ledger_service import TransactionLedger
from expense_tracker.application.services.report_service import ReportService
from expense_tracker.application.services.token_service import TokenService
from expense_tracker.core.app_factory import create_application
from expense_tracker.infrastructure.persistence.sqlite import SQLitePersistence

STRONG_PASSWORD = "Passw0rdOK"
TEST_SECRET = "test-signing-secret-that-is-long-enough-for-hs256"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def persistence(tmp_path, clock):
    store = SQLitePersistence(tmp_path / "ledger.db", clock=clock)
    yield store
    store.close()


@pytest.fixture
def credential_service(persistence, clock):
    return CredentialService(persistence, bcrypt_rounds=4, clock=clock)


@pytest.fixture
def token_service(clock):
    return TokenService(TEST_SECRET, clock=clock)


@pytest.fixture
def ledger(persistence, clock):
    return TransactionLedger(persistence, default_page_size=10, max_page_size=50, clock=clock)


@pytest.fixture
def report_service(ledger, clock):
    return ReportService(ledger, clock=clock)


@pytest.fixture
def alice(credential_service):
    return credential_service.register("alice@example.com", STRONG_PASSWORD, "Alice")


@pytest.fixture
def bob(credential_service):
    return credential_service.register("bob@example.com", STRONG_PASSWORD, "Bob")


@pytest.fixture
def client(tmp_path, monkeypatch, clock):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("SESSION_TOKEN_SECRET", TEST_SECRET)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("EXPOSE_SECRET_TOKENS", "true")
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "10")
    monkeypatch.setenv("MAX_PAGE_SIZE", "50")
    app = create_application(clock=clock)
    with TestClient(app) as test_client:
        yield test_client
