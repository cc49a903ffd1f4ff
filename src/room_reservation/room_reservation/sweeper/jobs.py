from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..common.datetime_utils import now_in
from ..core.constants import FINALIZE_JOB_ID, NO_SHOW_JOB_ID, SWEEPER_INTERVAL_MINUTES
from .service import SweepReport

if TYPE_CHECKING:
    from ..container import Container

logger = logging.getLogger(__name__)


def run_no_show_sweep(container: "Container", now: Optional[datetime] = None) -> SweepReport:
    now = now or now_in(container.policy.tz)
    try:
        return container.sweeper_service.sweep_no_shows(now)
    except Exception:
        logger.exception("No-show sweep failed at %s", now.isoformat())
        raise


def run_finalize_sweep(container: "Container", now: Optional[datetime] = None) -> SweepReport:
    now = now or now_in(container.policy.tz)
    try:
        return container.sweeper_service.finalize_sessions(now)
    except Exception:
        logger.exception("Finalize sweep failed at %s", now.isoformat())
        raise


def build_scheduler(container: "Container", *, interval_minutes: int = SWEEPER_INTERVAL_MINUTES) -> BackgroundScheduler:
    """Both sweeps on a fixed interval; a run still in progress is never doubled up."""
    scheduler = BackgroundScheduler(timezone=container.policy.tz)
    for job_id, func in ((NO_SHOW_JOB_ID, run_no_show_sweep), (FINALIZE_JOB_ID, run_finalize_sweep)):
        scheduler.add_job(
            func,
            "interval",
            minutes=int(interval_minutes),
            id=job_id,
            args=[container],
            max_instances=1,
            coalesce=True,
        )
    return scheduler
