"""
Shift Maintenance Utility

Runner-style helper for archiving completed shifts outside the
request/response flow (cron, CI, scheduled task runner).
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.services.shift_ledger_service import ShiftLedgerService
from app.utils.clock import Clock


def run_shift_archival(
    now: Optional[datetime] = None,
    clock: Optional[Clock] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> dict:
    """Archive every open shift whose window has ended and return a structured summary."""
    db = session_factory()
    try:
        result = ShiftLedgerService(db, clock=clock).archive_completed_shifts(now=now)
        return result.model_dump(mode="json")
    finally:
        db.close()
