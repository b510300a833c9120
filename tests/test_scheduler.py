"""Tests for the asynchronous scheduler job."""
from __future__ import annotations

import logging

import pytest

from conftest import FakeEmailProvider, FakeTicketStore, make_ticket
from scripts import run_scheduler
from ticket_notifier.services.dispatcher import NotificationDispatcher
from ticket_notifier.services.ticket_store import TicketStoreError


@pytest.mark.asyncio
async def test_run_dispatch_job_sends_pending_tickets(monkeypatch, caplog):
    store = FakeTicketStore([make_ticket(1, "7", user_id=1)])
    provider = FakeEmailProvider()
    monkeypatch.setattr(
        run_scheduler,
        "build_dispatcher",
        lambda settings: NotificationDispatcher(store, provider),
    )

    with caplog.at_level(logging.INFO, logger="scheduler"):
        await run_scheduler.run_dispatch_job()

    assert len(provider.sent) == 1
    assert store.marked == [[1]]
    assert "success=1 | failed=0" in caplog.text


@pytest.mark.asyncio
async def test_run_dispatch_job_logs_fetch_failure_without_raising(monkeypatch, caplog):
    store = FakeTicketStore(fetch_error=TicketStoreError("timeout"))
    monkeypatch.setattr(
        run_scheduler,
        "build_dispatcher",
        lambda settings: NotificationDispatcher(store, FakeEmailProvider()),
    )

    with caplog.at_level(logging.ERROR, logger="scheduler"):
        await run_scheduler.run_dispatch_job()

    assert "Ticket email job failed" in caplog.text


def test_acquire_lock_refuses_second_holder(tmp_path):
    lock_path = tmp_path / "locks" / "scheduler.lock"
    first = run_scheduler.acquire_lock(lock_path)
    try:
        with pytest.raises(TimeoutError):
            run_scheduler.acquire_lock(lock_path)
    finally:
        first.release()
