from __future__ import annotations

import datetime
import logging
from typing import Optional

from .errors import InvalidRangeError
from .math_tools import MathTools
from .models import Bucket, BucketPlan


logger = logging.getLogger(__name__)


class BucketPlanner:
    """Split a trailing day range into contiguous, equally sized buckets.

    The grid always ends yesterday; today is still being logged and is
    left out. Buckets are ordered oldest first with index 0 being the
    oldest window.
    """

    # range -> (bucket_count, bucket_size_days)
    PLANS: dict[int, tuple[int, int]] = {
        7: (7, 1),
        30: (4, 7),
        90: (6, 15),
        180: (6, 30),
        360: (6, 60),
    }
    DEFAULT_DAYS = 7
    POLICIES = ("fallback", "strict")

    @classmethod
    def supported_ranges(cls) -> tuple[int, ...]:
        return tuple(sorted(cls.PLANS))

    @classmethod
    def config(cls, days: int, policy: str = "fallback") -> tuple[int, int, bool]:
        """Return ``(bucket_count, bucket_size_days, fallback_applied)``."""
        if policy not in cls.POLICIES:
            raise ValueError(f"unknown range policy: {policy}")
        if days in cls.PLANS:
            count, size = cls.PLANS[days]
            return count, size, False
        if policy == "strict":
            raise InvalidRangeError(days, cls.supported_ranges())
        logger.warning(
            "unsupported day range %s, falling back to %s days", days, cls.DEFAULT_DAYS
        )
        count, size = cls.PLANS[cls.DEFAULT_DAYS]
        return count, size, True

    @classmethod
    def plan(
        cls,
        days: int,
        *,
        today: Optional[datetime.date] = None,
        policy: str = "fallback",
    ) -> BucketPlan:
        """Build the bucket grid for ``days`` ending the day before ``today``."""
        today = today or datetime.date.today()
        count, size, fallback = cls.config(days, policy)
        grid_start = today - datetime.timedelta(days=count * size)
        buckets = []
        for index in range(count):
            start = grid_start + datetime.timedelta(days=index * size)
            end = start + datetime.timedelta(days=size - 1)
            buckets.append(Bucket(index=index, start_date=start, end_date=end))
        return BucketPlan(
            requested_days=days,
            days=cls.DEFAULT_DAYS if fallback else days,
            bucket_count=count,
            bucket_size_days=size,
            buckets=buckets,
            fallback_applied=fallback,
        )

    @staticmethod
    def bucket_index(plan: BucketPlan, day: datetime.date) -> Optional[int]:
        """Index of the bucket holding ``day`` or ``None`` outside the grid."""
        if day < plan.start_date or day > plan.end_date:
            return None
        offset = (day - plan.start_date).days
        index = offset // plan.bucket_size_days
        return int(MathTools.clamp(index, 0, plan.bucket_count - 1))
