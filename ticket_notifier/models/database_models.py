"""SQLAlchemy ORM models for the purchase tables written by the checkout flow."""
from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticket_notifier.database import Base


class User(Base):
    """Purchasing user."""

    __tablename__ = "user_data"

    id: Mapped[int] = mapped_column("id_user", Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    id_card: Mapped[str | None] = mapped_column(String(50), nullable=True)  # National identity card number

    payments: Mapped[list["Payment"]] = relationship(back_populates="user")


class Payment(Base):
    """A purchase payment; tickets are only emailed once it is validated."""

    __tablename__ = "pay_data"

    id: Mapped[int] = mapped_column("id_pay", Integer, primary_key=True, autoincrement=True)
    validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[int] = mapped_column(
        "id_user", Integer, ForeignKey("user_data.id_user"), nullable=False, index=True
    )

    user: Mapped[User] = relationship(back_populates="payments")
    tickets: Mapped[list["Ticket"]] = relationship(back_populates="payment")


class Ticket(Base):
    """A purchased ticket and its email delivery flag."""

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column("id_tickets", Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column("tickets", String(50), nullable=False)
    notified: Mapped[bool] = mapped_column("email_send", Boolean, nullable=False, default=False, index=True)
    payment_id: Mapped[int] = mapped_column(
        "pay_id", Integer, ForeignKey("pay_data.id_pay"), nullable=False, index=True
    )

    payment: Mapped[Payment] = relationship(back_populates="tickets")
