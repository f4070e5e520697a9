"""Background scheduler for ledger reconciliation."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from ..core.config import get_settings
from ..core.database import SessionLocal
from ..services.reconciliation_service import run_reconciliation

logger = logging.getLogger(__name__)

_scheduler = AsyncIOScheduler(timezone="UTC")


async def _execute_reconciliation() -> None:
    session = SessionLocal()
    try:
        summary = run_reconciliation(session)
        logger.info("reconciliation completed: %s", summary)
    except Exception:  # pragma: no cover - safeguard for background job
        logger.exception("reconciliation job failed")
        raise
    finally:
        session.rollback()
        session.close()


@_scheduler.scheduled_job("cron", minute=15, id="balance_reconciliation", misfire_grace_time=600)
async def _scheduled_job() -> None:
    await _execute_reconciliation()


def register_scheduler(app: FastAPI) -> None:
    """Attach APScheduler lifecycle hooks to the FastAPI app."""

    if not get_settings().reconciliation_enabled:
        logger.info("reconciliation scheduler disabled")
        return

    @app.on_event("startup")
    async def start_scheduler() -> None:
        if not _scheduler.running:
            _scheduler.start()
            logger.info("reconciliation scheduler started")

    @app.on_event("shutdown")
    async def shutdown_scheduler() -> None:
        if _scheduler.running:
            _scheduler.shutdown(wait=False)
            logger.info("reconciliation scheduler stopped")


def run_reconciliation_once() -> dict[str, int]:
    """Run the audit synchronously, e.g. from a shell or a test."""

    session = SessionLocal()
    try:
        return run_reconciliation(session)
    finally:
        session.close()
