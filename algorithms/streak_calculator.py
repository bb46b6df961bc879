from __future__ import annotations

import datetime
from typing import Iterable, Optional, Sequence, Union

from .models import StreakState


DateLike = Union[datetime.date, datetime.datetime, str]


class StreakCalculator:
    """Count consecutive active days walking back from today.

    If today has no activity yet the walk starts at yesterday, so an
    unbroken streak is not reset before the user logs today's session.
    """

    CAP = 999
    DEFAULT_LIMIT = 30

    @staticmethod
    def to_utc_date(value: DateLike) -> datetime.date:
        """Return the UTC calendar date of ``value``.

        Naive datetimes and ISO strings without an offset are taken as UTC.
        """
        if isinstance(value, str):
            text = value.strip().replace("Z", "+00:00")
            if len(text) == 10:
                return datetime.date.fromisoformat(text)
            value = datetime.datetime.fromisoformat(text)
        if isinstance(value, datetime.datetime):
            if value.tzinfo is None:
                return value.date()
            return value.astimezone(datetime.timezone.utc).date()
        return value

    @staticmethod
    def utc_today() -> datetime.date:
        return datetime.datetime.now(datetime.timezone.utc).date()

    @classmethod
    def streak(
        cls,
        activity: Iterable[DateLike],
        today: Optional[datetime.date] = None,
        cap: int = CAP,
    ) -> int:
        days = {cls.to_utc_date(a) for a in activity}
        if not days:
            return 0
        today = today or cls.utc_today()
        current = today if today in days else today - datetime.timedelta(days=1)
        count = 0
        while current in days and count < cap:
            count += 1
            current -= datetime.timedelta(days=1)
        return count

    @classmethod
    def win_streak(cls, results: Sequence[Optional[str]], cap: int = CAP) -> int:
        """Consecutive wins from the most recent game backward."""
        count = 0
        for result in results:
            if (result or "").lower() != "win":
                break
            count += 1
        return min(count, cap)

    @classmethod
    def compute(
        cls,
        activity: Iterable[DateLike],
        total: int = 0,
        today: Optional[datetime.date] = None,
        cap: int = CAP,
        results: Optional[Sequence[Optional[str]]] = None,
    ) -> StreakState:
        """Build the ``{total, streak}`` state for one activity kind."""
        state = {
            "total": min(max(int(total), 0), cap),
            "streak": cls.streak(activity, today=today, cap=cap),
        }
        if results is not None:
            state["win_streak"] = cls.win_streak(results, cap=cap)
        return StreakState(**state)
