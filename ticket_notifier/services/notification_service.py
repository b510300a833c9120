"""Ticket confirmation email rendering and delivery."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape
from resend.exceptions import ResendError

if TYPE_CHECKING:
    from ticket_notifier.services.dispatcher import NotificationGroup


logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
DEFAULT_DISPLAY_NAME = "Participant"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


class NotificationSendError(RuntimeError):
    """Raised when the email provider rejects or fails a send."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class TicketEmail:
    to: str
    subject: str
    html: str


class EmailProvider(Protocol):
    def send(self, email: TicketEmail) -> str:
        """Deliver ``email`` and return the provider message id."""
        ...


def display_name(name: str | None) -> str:
    """Upper-case the first letter and leave the rest untouched."""
    if not name:
        return ""
    return name[:1].upper() + name[1:]


def format_ticket_code(code: str | int, width: int = 4) -> str:
    return str(code).rjust(width, "0")


def render_ticket_email(group: NotificationGroup, code_width: int = 4) -> TicketEmail:
    """Build the confirmation email listing every ticket of the group."""

    name = display_name(group.user.name)
    codes = [format_ticket_code(ticket.code, code_width) for ticket in group.tickets]
    html = _env.get_template("ticket_email.html").render(
        name=name or DEFAULT_DISPLAY_NAME,
        tickets=", ".join(codes),
        ticket_count=len(codes),
        card_id=group.user.id_card,
    )
    return TicketEmail(
        to=group.user.email or "",
        subject=f"Your purchase has been approved {name}".rstrip(),
        html=html,
    )


class ResendEmailProvider:
    """Send emails through the Resend API."""

    def __init__(self, api_key: str, sender: str) -> None:
        resend.api_key = api_key
        self.sender = sender

    def send(self, email: TicketEmail) -> str:
        params: resend.Emails.SendParams = {
            "from": self.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
        }
        try:
            sent = resend.Emails.send(params)
        except ResendError as err:
            message = getattr(err, "message", None) or str(err)
            logger.warning("Resend rejected email to %s: %s", email.to, message)
            raise NotificationSendError(message) from err

        email_id = sent.get("id") if sent else None
        if not email_id:
            raise NotificationSendError("Resend response did not include a message id")
        logger.debug("Resend accepted email to %s (id=%s)", email.to, email_id)
        return email_id
