"""Pytest configuration for global fixtures and logging setup."""
from __future__ import annotations

import os
import threading
from typing import Callable, Iterable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["CRON_SECRET"] = os.environ.get("CRON_SECRET") or "test-cron-secret"
os.environ["RESEND_API_KEY"] = os.environ.get("RESEND_API_KEY") or "re_test_key"
os.environ["DATABASE_URL"] = os.environ.get("DATABASE_URL") or "sqlite://"

from ticket_notifier.logging_config import configure_logging

configure_logging()

from ticket_notifier.database import Base
from ticket_notifier.main import app
from ticket_notifier.models.database_models import Payment, Ticket, User
from ticket_notifier.services.notification_service import NotificationSendError, TicketEmail
from ticket_notifier.services.ticket_store import EligibleTicket, TicketStoreError, UserContact


class FakeTicketStore:
    """In-memory ticket store recording every call."""

    def __init__(
        self,
        tickets: list[EligibleTicket] | None = None,
        fetch_error: Exception | None = None,
        failing_updates: Iterable[int] = (),
    ) -> None:
        self.tickets = list(tickets or [])
        self.fetch_error = fetch_error
        self.failing_updates = set(failing_updates)
        self.fetch_calls = 0
        self.marked: list[list[int]] = []
        self._lock = threading.Lock()

    def fetch_eligible_tickets(self) -> list[EligibleTicket]:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.tickets)

    def mark_notified(self, ticket_ids: Iterable[int]) -> int:
        ids = list(ticket_ids)
        if self.failing_updates.intersection(ids):
            raise TicketStoreError("connection reset by peer")
        with self._lock:
            self.marked.append(ids)
        return len(ids)


class FakeEmailProvider:
    """Email provider double; ``failures`` maps recipient to an error message or exception."""

    def __init__(self, failures: dict[str, str | Exception] | None = None) -> None:
        self.failures = failures or {}
        self.sent: list[TicketEmail] = []
        self._lock = threading.Lock()

    def send(self, email: TicketEmail) -> str:
        failure = self.failures.get(email.to)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            raise NotificationSendError(failure)
        with self._lock:
            self.sent.append(email)
            return f"email-{len(self.sent)}"


def make_ticket(ticket_id: int, code: str, user_id: int, email: str | None = "buyer@example.com", name: str = "ana") -> EligibleTicket:
    return EligibleTicket(
        id=ticket_id,
        code=code,
        payment_id=100 + user_id,
        user=UserContact(id=user_id, name=name, email=email, id_card=f"V-{user_id:08d}"),
    )


@pytest.fixture(scope="session")
def test_client() -> TestClient:
    """Provide a FastAPI test client."""

    return TestClient(app)


@pytest.fixture()
def session_factory() -> Callable[[], Session]:
    """Fresh in-memory SQLite database shared across threads."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield factory
    engine.dispose()


@pytest.fixture()
def seeded_db(session_factory) -> Callable[[], Session]:
    """
    Seed the purchase tables.

    - user 1 (email set): validated payment with tickets 7 and 42, plus an
      unvalidated payment with ticket 99 and an already-sent ticket 5
    - user 2 (no email): validated payment with ticket 3
    """
    db = session_factory()
    ana = User(id=1, name="ana", email="ana@example.com", id_card="V-12345678")
    luis = User(id=2, name="luis", email=None, id_card="V-87654321")
    db.add_all([ana, luis])

    paid = Payment(id=10, validated=True, user=ana)
    pending = Payment(id=11, validated=False, user=ana)
    luis_paid = Payment(id=20, validated=True, user=luis)
    db.add_all([paid, pending, luis_paid])

    db.add_all(
        [
            Ticket(id=1, code="7", notified=False, payment=paid),
            Ticket(id=2, code="42", notified=False, payment=paid),
            Ticket(id=3, code="5", notified=True, payment=paid),
            Ticket(id=4, code="99", notified=False, payment=pending),
            Ticket(id=5, code="3", notified=False, payment=luis_paid),
        ]
    )
    db.commit()
    db.close()
    return session_factory
