"""Pydantic models describing dispatch outcomes and API payloads."""
from enum import Enum

from pydantic import BaseModel, Field


class FailureStage(str, Enum):
    """Where a user's notification cycle stopped."""

    MISSING_EMAIL = "missing_email"
    SEND_FAILED = "send_failed"
    UPDATE_FAILED = "update_failed"
    UNEXPECTED = "unexpected"


class DispatchSuccess(BaseModel):
    """A user whose email was sent and whose tickets were marked as notified."""

    id_user: int
    email_id: str
    ticket_ids: list[int] = Field(default_factory=list, exclude=True)


class DispatchFailure(BaseModel):
    """A user whose notification cycle did not complete."""

    id_user: int
    error: str
    stage: FailureStage = Field(exclude=True)


class DispatchResults(BaseModel):
    success: list[DispatchSuccess] = []
    failed: list[DispatchFailure] = []


class DispatchResponse(BaseModel):
    """Schema for the ticket email endpoint response."""

    message: str
    results: DispatchResults | None = None


class ErrorResponse(BaseModel):
    message: str
    error: str
