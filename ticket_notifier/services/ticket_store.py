"""Access to tickets awaiting their confirmation email."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol

import httpx
from postgrest.exceptions import APIError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager
from supabase import Client

from ticket_notifier.models.database_models import Payment, Ticket


logger = logging.getLogger(__name__)


class TicketStoreError(RuntimeError):
    """Raised when the backing data store cannot be read or updated."""


@dataclass(frozen=True)
class UserContact:
    id: int
    name: str
    email: str | None
    id_card: str | None


@dataclass(frozen=True)
class EligibleTicket:
    """A ticket with a validated payment that has not been emailed yet."""

    id: int
    code: str
    payment_id: int
    user: UserContact


class TicketStore(Protocol):
    def fetch_eligible_tickets(self) -> list[EligibleTicket]:
        ...

    def mark_notified(self, ticket_ids: Iterable[int]) -> int:
        ...


class SqlTicketStore:
    """Ticket store backed by the SQLAlchemy ORM models."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def fetch_eligible_tickets(self) -> list[EligibleTicket]:
        db = self._session_factory()
        try:
            rows = (
                db.query(Ticket)
                .join(Ticket.payment)
                .join(Payment.user)
                .filter(
                    Ticket.notified.is_(False),
                    Payment.validated.is_(True),
                )
                .options(contains_eager(Ticket.payment).contains_eager(Payment.user))
                .order_by(Ticket.id)
                .all()
            )
            return [
                EligibleTicket(
                    id=ticket.id,
                    code=ticket.code,
                    payment_id=ticket.payment_id,
                    user=UserContact(
                        id=ticket.payment.user.id,
                        name=ticket.payment.user.name,
                        email=ticket.payment.user.email,
                        id_card=ticket.payment.user.id_card,
                    ),
                )
                for ticket in rows
            ]
        except SQLAlchemyError as err:
            logger.exception("Failed to query eligible tickets")
            raise TicketStoreError(str(err)) from err
        finally:
            db.close()

    def mark_notified(self, ticket_ids: Iterable[int]) -> int:
        ids = list(ticket_ids)
        if not ids:
            return 0

        db = self._session_factory()
        try:
            updated = (
                db.query(Ticket)
                .filter(Ticket.id.in_(ids))
                .update({Ticket.notified: True}, synchronize_session=False)
            )
            db.commit()
            return updated
        except SQLAlchemyError as err:
            db.rollback()
            logger.exception("Failed to mark tickets %s as notified", ids)
            raise TicketStoreError(str(err)) from err
        finally:
            db.close()


_SUPABASE_TICKET_SELECT = """
    id_tickets,
    tickets,
    email_send,
    pay_data!inner (
        id_pay,
        validated,
        user_data ( id_user, name, email, id_card )
    )
"""


def _supabase_error(err: Exception) -> TicketStoreError:
    """PostgREST rejections carry a message; transport errors only their text."""
    message = getattr(err, "message", None) or str(err) or type(err).__name__
    return TicketStoreError(message)


def _first(value: Any) -> Any:
    """Supabase returns to-one relations either as an object or a one-element list."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


class SupabaseTicketStore:
    """Ticket store backed by a hosted Supabase (PostgREST) project."""

    def __init__(self, client: Client) -> None:
        self._client = client

    def fetch_eligible_tickets(self) -> list[EligibleTicket]:
        try:
            response = (
                self._client.table("tickets")
                .select(_SUPABASE_TICKET_SELECT)
                .eq("email_send", False)
                .eq("pay_data.validated", True)
                .order("id_tickets")
                .execute()
            )
        except (APIError, httpx.HTTPError) as err:
            logger.exception("Supabase ticket query failed")
            raise _supabase_error(err) from err

        tickets: list[EligibleTicket] = []
        for row in response.data or []:
            payment = _first(row.get("pay_data"))
            user = _first(payment.get("user_data")) if payment else None
            if not user:
                logger.warning("Skipping ticket %s without a resolvable user", row.get("id_tickets"))
                continue

            tickets.append(
                EligibleTicket(
                    id=row["id_tickets"],
                    code=str(row["tickets"]),
                    payment_id=payment["id_pay"],
                    user=UserContact(
                        id=user["id_user"],
                        name=user.get("name") or "",
                        email=user.get("email"),
                        id_card=user.get("id_card"),
                    ),
                )
            )
        return tickets

    def mark_notified(self, ticket_ids: Iterable[int]) -> int:
        ids = list(ticket_ids)
        if not ids:
            return 0

        try:
            response = (
                self._client.table("tickets")
                .update({"email_send": True})
                .in_("id_tickets", ids)
                .execute()
            )
        except (APIError, httpx.HTTPError) as err:
            logger.exception("Supabase update failed for tickets %s", ids)
            raise _supabase_error(err) from err
        return len(response.data or [])
