"""Endpoint that emails pending tickets; called by the cron job or on demand."""
from __future__ import annotations

import hmac
import logging
from functools import partial
from typing import Callable

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse

from ticket_notifier.config import Settings, get_settings
from ticket_notifier.models.schemas import DispatchResponse, ErrorResponse
from ticket_notifier.services.dispatcher import (
    NotificationDispatcher,
    TicketFetchError,
    build_dispatcher,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def verify_cron_secret(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject callers that do not present ``Bearer <CRON_SECRET>``."""

    expected = f"Bearer {settings.cron_secret}"
    if authorization is None or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")


DispatcherFactory = Callable[[], NotificationDispatcher]


def get_dispatcher_factory(settings: Settings = Depends(get_settings)) -> DispatcherFactory:
    """Defer construction so store and provider setup errors reach the handler."""
    return partial(build_dispatcher, settings)


@router.api_route("/tickets", methods=["GET", "POST"], dependencies=[Depends(verify_cron_secret)])
async def send_ticket_emails(
    make_dispatcher: DispatcherFactory = Depends(get_dispatcher_factory),
) -> JSONResponse:
    """
    Email every user whose validated tickets have not been sent yet.

    GET is accepted so schedulers that only issue GET requests can trigger
    the same run.

    Returns:
        JSONResponse: ``{message, results: {success, failed}}``, or just
        ``{message}`` when nothing is pending. Fetch failures and unexpected
        errors return 500 with ``{message, error}``.
    """

    try:
        dispatcher = make_dispatcher()
        report = await dispatcher.dispatch()
    except TicketFetchError as err:
        logger.error("Could not load tickets pending email delivery: %s", err)
        return JSONResponse(
            ErrorResponse(message="Failed to fetch tickets pending email delivery.", error=str(err)).model_dump(),
            status_code=500,
        )
    except Exception as e:
        logger.exception("Unexpected error while sending ticket emails")
        return JSONResponse(
            ErrorResponse(message="An unexpected server error occurred.", error=str(e)).model_dump(),
            status_code=500,
        )

    if report.nothing_pending:
        return JSONResponse(
            DispatchResponse(message="No pending ticket emails to send.").model_dump(exclude_none=True)
        )

    return JSONResponse(
        DispatchResponse(message="Ticket email dispatch completed.", results=report.results).model_dump()
    )
