"""Periodic reconcilers for reservations nobody resolved by hand.

``sweep_no_shows`` flags reservations whose check-in window passed without a
check-in. ``finalize_sessions`` closes sessions nobody checked out of and
no-shows whose end-time grace elapsed. Both only act on rows matching their
guard predicates, so re-running them is safe.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable, Iterator, Sequence

from ..attendance.model import NewAttendanceEvent
from ..common.batching import BatchProgress, ChunkedWriter
from ..core.constants import SWEEPER_MAX_WRITES_PER_BATCH
from ..core.enums import AttendanceKind, AttendanceMethod, LifecycleEvent, ReservationState
from ..reservations.model import StateChange
from ..reservations.repository import ReservationRepository
from ..reservations.state_machine import plan_change
from ..reservations.windows import LifecyclePolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepReport:
    job: str
    ran_at: datetime
    scanned: int
    eligible: int
    applied: int
    skipped: int
    batches: int

    def as_dict(self) -> dict:
        data = asdict(self)
        data["ran_at"] = self.ran_at.isoformat()
        return data


class _Counter:
    def __init__(self, items: Iterable):
        self._items = items
        self.count = 0

    def __iter__(self) -> Iterator:
        for item in self._items:
            self.count += 1
            yield item


class SweeperService:
    def __init__(
        self,
        reservations: ReservationRepository,
        *,
        policy: LifecyclePolicy,
        max_writes_per_batch: int = SWEEPER_MAX_WRITES_PER_BATCH,
    ):
        self._reservations = reservations
        self._policy = policy
        self._writer = ChunkedWriter(
            self._commit,
            max_writes=max_writes_per_batch,
            cost=lambda change: change.write_count,
        )

    def _commit(self, batch: Sequence[StateChange]) -> int:
        return len(self._reservations.apply_changes(batch, strict=False))

    def _run(self, job: str, now: datetime, scanned: _Counter, changes: Iterable[StateChange]) -> SweepReport:
        eligible = _Counter(changes)
        progress: BatchProgress = self._writer.write_all(eligible)
        report = SweepReport(
            job=job,
            ran_at=now,
            scanned=scanned.count,
            eligible=eligible.count,
            applied=progress.items_applied,
            skipped=progress.items_skipped,
            batches=progress.batches,
        )
        logger.info(
            "Sweep %s at %s: scanned=%s eligible=%s applied=%s skipped=%s batches=%s",
            job,
            now.isoformat(),
            report.scanned,
            report.eligible,
            report.applied,
            report.skipped,
            report.batches,
        )
        return report

    def sweep_no_shows(self, now: datetime) -> SweepReport:
        """SCHEDULED reservations past start + grace become NO_SHOW (still open)."""
        scanned = _Counter(self._reservations.list_in_state(ReservationState.SCHEDULED))
        changes = (
            plan_change(r, LifecycleEvent.MARK_NO_SHOW, at=now)
            for r in scanned
            if self._policy.no_show_due(r.start_at, now)
        )
        return self._run("no_show", now, scanned, changes)

    def finalize_sessions(self, now: datetime) -> SweepReport:
        """Auto check-out forgotten sessions, then close expired no-shows."""
        scanned = _Counter(self._iter_finalize_candidates())
        changes = (self._finalize_change(r, now) for r in scanned if self._policy.finalize_due(r.end_at, now))
        return self._run("finalize", now, scanned, changes)

    def _iter_finalize_candidates(self):
        yield from self._reservations.list_in_state(ReservationState.IN_SESSION)
        yield from self._reservations.list_in_state(ReservationState.NO_SHOW_OPEN)

    @staticmethod
    def _finalize_change(reservation, now: datetime) -> StateChange:
        if reservation.state is ReservationState.IN_SESSION:
            return plan_change(
                reservation,
                LifecycleEvent.AUTO_CHECK_OUT,
                at=now,
                attendance=NewAttendanceEvent(
                    reservation_id=reservation.reservation_id,
                    room_id=reservation.room_id,
                    user_id=reservation.owner_id,
                    kind=AttendanceKind.CHECK_OUT,
                    method=AttendanceMethod.AUTO,
                    occurred_at=now,
                ),
            )
        return plan_change(reservation, LifecycleEvent.CLOSE_NO_SHOW, at=now)
