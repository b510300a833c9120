"""Batch dispatch of ticket confirmation emails, one email per purchasing user."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from supabase import create_client

from ticket_notifier.config import Settings
from ticket_notifier.database import get_session_factory
from ticket_notifier.models.schemas import (
    DispatchFailure,
    DispatchResults,
    DispatchSuccess,
    FailureStage,
)
from ticket_notifier.services.notification_service import (
    EmailProvider,
    NotificationSendError,
    ResendEmailProvider,
    render_ticket_email,
)
from ticket_notifier.services.ticket_store import (
    EligibleTicket,
    SqlTicketStore,
    SupabaseTicketStore,
    TicketStore,
    TicketStoreError,
    UserContact,
)


logger = logging.getLogger(__name__)

MISSING_EMAIL_ERROR = "missing email: the user has no registered email address"


class TicketFetchError(RuntimeError):
    """Raised when eligible tickets cannot be loaded; aborts the whole run."""


class _GroupFailed(Exception):
    def __init__(self, stage: FailureStage, error: str) -> None:
        super().__init__(error)
        self.stage = stage
        self.error = error


@dataclass
class NotificationGroup:
    """All eligible tickets of one user, delivered in a single email."""

    user: UserContact
    tickets: list[EligibleTicket] = field(default_factory=list)

    @property
    def ticket_ids(self) -> list[int]:
        return [ticket.id for ticket in self.tickets]


@dataclass
class DispatchReport:
    ticket_count: int
    results: DispatchResults = field(default_factory=DispatchResults)

    @property
    def nothing_pending(self) -> bool:
        return self.ticket_count == 0


def group_tickets_by_user(tickets: Iterable[EligibleTicket]) -> list[NotificationGroup]:
    """Group tickets by user id, keeping the order in which users first appear."""

    groups: dict[int, NotificationGroup] = {}
    for ticket in tickets:
        group = groups.get(ticket.user.id)
        if group is None:
            group = groups[ticket.user.id] = NotificationGroup(user=ticket.user)
        group.tickets.append(ticket)
    return list(groups.values())


class NotificationDispatcher:
    """Email every user with pending tickets and flag the delivered tickets."""

    def __init__(self, store: TicketStore, provider: EmailProvider, code_width: int = 4) -> None:
        self.store = store
        self.provider = provider
        self.code_width = code_width

    async def dispatch(self) -> DispatchReport:
        """
        Run one dispatch cycle.

        Every user group is processed concurrently and independently; a
        failing group is reported in ``failed`` without affecting the others.

        Raises:
            TicketFetchError: if the eligible tickets cannot be loaded.
        """
        try:
            tickets = await asyncio.to_thread(self.store.fetch_eligible_tickets)
        except TicketStoreError as err:
            raise TicketFetchError(str(err)) from err

        if not tickets:
            logger.info("No tickets pending email delivery")
            return DispatchReport(ticket_count=0)

        groups = group_tickets_by_user(tickets)
        logger.info("Dispatching %d tickets to %d users", len(tickets), len(groups))

        outcomes = await asyncio.gather(
            *(self._process_group(group) for group in groups),
            return_exceptions=True,
        )

        report = DispatchReport(ticket_count=len(tickets))
        for group, outcome in zip(groups, outcomes):
            if isinstance(outcome, DispatchSuccess):
                report.results.success.append(outcome)
                continue

            if isinstance(outcome, _GroupFailed):
                failure = DispatchFailure(id_user=group.user.id, error=outcome.error, stage=outcome.stage)
            else:
                logger.error(
                    "Unexpected error while notifying user %s",
                    group.user.id,
                    exc_info=(type(outcome), outcome, outcome.__traceback__),
                )
                failure = DispatchFailure(
                    id_user=group.user.id,
                    error=str(outcome) or type(outcome).__name__,
                    stage=FailureStage.UNEXPECTED,
                )
            logger.warning(
                "Ticket email failed | user=%s | stage=%s | error=%s",
                failure.id_user,
                failure.stage.value,
                failure.error,
            )
            report.results.failed.append(failure)

        logger.info(
            "Ticket email dispatch finished | success=%d | failed=%d",
            len(report.results.success),
            len(report.results.failed),
        )
        return report

    async def _process_group(self, group: NotificationGroup) -> DispatchSuccess:
        if not group.user.email or not group.user.email.strip():
            raise _GroupFailed(FailureStage.MISSING_EMAIL, MISSING_EMAIL_ERROR)

        email = render_ticket_email(group, code_width=self.code_width)
        try:
            email_id = await asyncio.to_thread(self.provider.send, email)
        except NotificationSendError as err:
            raise _GroupFailed(FailureStage.SEND_FAILED, err.message) from err

        ticket_ids = group.ticket_ids
        try:
            await asyncio.to_thread(self.store.mark_notified, ticket_ids)
        except TicketStoreError as err:
            # The email is already out; these tickets stay eligible and will be re-sent next run.
            logger.error(
                "Email %s sent to user %s but tickets %s were not marked as notified: %s",
                email_id,
                group.user.id,
                ticket_ids,
                err,
            )
            raise _GroupFailed(
                FailureStage.UPDATE_FAILED,
                f"Email sent, but ticket status update failed: {err}",
            ) from err

        return DispatchSuccess(id_user=group.user.id, email_id=email_id, ticket_ids=ticket_ids)


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    """Wire the dispatcher with the configured ticket store and Resend."""

    if settings.ticket_store_backend == "supabase":
        store: TicketStore = SupabaseTicketStore(
            create_client(settings.database_url, settings.database_access_key)
        )
    else:
        store = SqlTicketStore(get_session_factory())

    provider = ResendEmailProvider(settings.resend_api_key, settings.email_from)
    return NotificationDispatcher(store, provider, code_width=settings.ticket_code_width)
