from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo

from ..common.datetime_utils import resolve_timezone
from ..core import constants


@dataclass(frozen=True)
class LifecyclePolicy:
    """Business-time rules for one deployment.

    The check-in window is anchored on start, the no-show threshold on start
    and the finalize threshold on end; the three are configured separately.
    """

    tz: tzinfo = field(default_factory=lambda: timezone(timedelta(hours=8)))
    check_in_opens_minutes: int = constants.CHECK_IN_OPENS_MINUTES
    check_in_closes_minutes: int = constants.CHECK_IN_CLOSES_MINUTES
    no_show_after_minutes: int = constants.NO_SHOW_AFTER_MINUTES
    finalize_after_minutes: int = constants.FINALIZE_AFTER_MINUTES

    @classmethod
    def from_settings(cls, settings) -> "LifecyclePolicy":
        return cls(
            tz=resolve_timezone(getattr(settings, "BUSINESS_TIMEZONE", constants.DEFAULT_BUSINESS_TIMEZONE)),
            check_in_opens_minutes=int(getattr(settings, "CHECK_IN_OPENS_MINUTES", constants.CHECK_IN_OPENS_MINUTES)),
            check_in_closes_minutes=int(getattr(settings, "CHECK_IN_CLOSES_MINUTES", constants.CHECK_IN_CLOSES_MINUTES)),
            no_show_after_minutes=int(getattr(settings, "NO_SHOW_AFTER_MINUTES", constants.NO_SHOW_AFTER_MINUTES)),
            finalize_after_minutes=int(getattr(settings, "FINALIZE_AFTER_MINUTES", constants.FINALIZE_AFTER_MINUTES)),
        )

    def localize(self, value: datetime) -> datetime:
        return value.astimezone(self.tz)

    def check_in_window(self, start_at: datetime) -> tuple[datetime, datetime]:
        start_at = self.localize(start_at)
        return (
            start_at - timedelta(minutes=self.check_in_opens_minutes),
            start_at + timedelta(minutes=self.check_in_closes_minutes),
        )

    def is_within_check_in_window(self, start_at: datetime, now: datetime) -> bool:
        opens, closes = self.check_in_window(start_at)
        return opens <= now <= closes

    def no_show_due(self, start_at: datetime, now: datetime) -> bool:
        return now >= start_at + timedelta(minutes=self.no_show_after_minutes)

    def finalize_due(self, end_at: datetime, now: datetime) -> bool:
        return now >= end_at + timedelta(minutes=self.finalize_after_minutes)
