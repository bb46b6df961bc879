from __future__ import annotations

import datetime
import logging
from typing import Collection, Dict, Iterable, List, Optional, Union

from .bucket_planner import BucketPlanner
from .math_tools import MathTools
from .metric_calculator import MetricCalculator
from .models import Bucket, BucketPlan, MetricKind, PerformanceRecord
from .progress_views import ViewCalculator


logger = logging.getLogger(__name__)


class SeriesAggregator:
    """Reduce performance records into one value per bucket."""

    FILL_MODES = ("sparse", "null", "zero")

    def __init__(self, round_digits: int = 2, fill: str = "sparse") -> None:
        if round_digits < 0:
            raise ValueError("round_digits must be non-negative")
        if fill not in self.FILL_MODES:
            raise ValueError(f"unknown fill mode: {fill}")
        self.round_digits = round_digits
        self.fill = fill

    def group(
        self,
        records: Iterable[PerformanceRecord],
        names: Collection[str],
        plan: BucketPlan,
    ) -> Dict[int, List[PerformanceRecord]]:
        """Group matching records by bucket index."""
        grouped: Dict[int, List[PerformanceRecord]] = {b.index: [] for b in plan.buckets}
        for record in records:
            if record.exercise_name not in names:
                continue
            performed = record.performed_at
            if isinstance(performed, datetime.datetime):
                performed = performed.date()
            index = BucketPlanner.bucket_index(plan, performed)
            if index is not None:
                grouped[index].append(record)
        return grouped

    def collect(
        self,
        records: Iterable[PerformanceRecord],
        names: Collection[str],
        plan: BucketPlan,
        metric: Union[str, MetricKind],
    ) -> dict[int, list[float]]:
        """Group metric values of matching records by bucket index."""
        grouped: dict[int, list[float]] = {}
        for index, members in self.group(records, names, plan).items():
            values = [MetricCalculator.compute(r, metric) for r in members]
            grouped[index] = [v for v in values if v is not None]
        return grouped

    def _series(
        self,
        plan: BucketPlan,
        reduced: Dict[int, Optional[float]],
        names: Collection[str],
        fill: Optional[str],
    ) -> List[Bucket]:
        fill = fill or self.fill
        if fill not in self.FILL_MODES:
            raise ValueError(f"unknown fill mode: {fill}")
        series: list[Bucket] = []
        for bucket in plan.buckets:
            value = reduced.get(bucket.index)
            if value is None:
                if fill == "sparse":
                    continue
                value = None if fill == "null" else 0.0
            else:
                value = MathTools.round_value(value, self.round_digits)
            series.append(bucket.model_copy(update={"value": value}))
        if not any(b.value is not None for b in series):
            logger.info("no data for %s in %s-day range", ", ".join(sorted(names)), plan.days)
        return sorted(series, key=lambda b: b.index)

    def aggregate(
        self,
        records: Iterable[PerformanceRecord],
        names: Collection[str],
        plan: BucketPlan,
        metric: Union[str, MetricKind],
        fill: Optional[str] = None,
    ) -> List[Bucket]:
        """Return the progress series for ``names`` over ``plan``.

        Each bucket holds the mean of its values. Empty buckets are dropped
        in ``sparse`` mode, kept with ``None`` in ``null`` mode and with
        ``0.0`` in ``zero`` mode.
        """
        names = set(names)
        grouped = self.collect(records, names, plan, metric)
        reduced = {index: MathTools.mean(values) for index, values in grouped.items()}
        return self._series(plan, reduced, names, fill)

    def aggregate_view(
        self,
        records: Iterable[PerformanceRecord],
        names: Collection[str],
        plan: BucketPlan,
        calculation: str,
        fill: Optional[str] = None,
    ) -> List[Bucket]:
        """Like :meth:`aggregate`, reducing each bucket with a view calculation."""
        reducer = ViewCalculator.reducer(calculation)
        names = set(names)
        grouped = self.group(records, names, plan)
        reduced = {index: reducer(members) for index, members in grouped.items()}
        return self._series(plan, reduced, names, fill)
