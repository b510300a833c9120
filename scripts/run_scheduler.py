"""Standalone scheduler process that emails pending tickets on a daily cron."""
from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from filelock import FileLock

from ticket_notifier.config import get_settings
from ticket_notifier.database import run_migrations
from ticket_notifier.logging_config import configure_logging
from ticket_notifier.services.dispatcher import build_dispatcher


logger = logging.getLogger("scheduler")


def acquire_lock(lock_path: Path) -> FileLock:
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(str(lock_path))
    lock.acquire(timeout=0)
    return lock


async def run_dispatch_job() -> None:
    start = datetime.now(timezone.utc)
    logger.info("Ticket email job started")

    try:
        dispatcher = build_dispatcher(get_settings())
        report = await dispatcher.dispatch()
    except Exception:
        logger.exception("Ticket email job failed")
        return

    elapsed = (datetime.now(timezone.utc) - start).total_seconds()
    if report.nothing_pending:
        logger.info("Ticket email job finished in %.2fs; nothing pending", elapsed)
        return

    logger.info(
        "Ticket email job finished in %.2fs | success=%d | failed=%d",
        elapsed,
        len(report.results.success),
        len(report.results.failed),
    )
    for failure in report.results.failed:
        logger.debug("Failed user %s -> %s", failure.id_user, failure.error)


async def main(run_now: bool) -> None:
    configure_logging()
    settings = get_settings()
    if settings.ticket_store_backend == "sql":
        run_migrations()

    scheduler_log = settings.log_dir / "scheduler.log"
    if not any(isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", "") == str(scheduler_log) for h in logger.handlers):
        handler = logging.FileHandler(scheduler_log, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
        logger.addHandler(handler)

    lock_path = settings.scheduler_lock_file
    lock = acquire_lock(lock_path)
    logger.info("Acquired scheduler lock at %s", lock_path)
    try:
        if run_now:
            await run_dispatch_job()
            return

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            run_dispatch_job,
            "cron",
            hour=settings.scheduler_hour,
            minute=settings.scheduler_minute,
        )
        scheduler.start()

        logger.info(
            "Scheduler running (cron %02d:%02d). Press Ctrl+C to exit.",
            settings.scheduler_hour,
            settings.scheduler_minute,
        )
        await asyncio.Event().wait()
    finally:
        lock.release()
        logger.info("Released scheduler lock at %s", lock_path)
        if lock_path.exists():
            lock_path.unlink()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the ticket email scheduler")
    parser.add_argument("--run-now", action="store_true", help="Send pending ticket emails immediately and exit")
    args = parser.parse_args()

    try:
        asyncio.run(main(run_now=args.run_now))
    except TimeoutError:
        logger.warning("Scheduler already running; exiting.")
