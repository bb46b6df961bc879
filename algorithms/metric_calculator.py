from typing import Optional, Union

from .math_tools import MathTools
from .models import ExerciseKind, MetricKind, PerformanceRecord, SportMode


_DIRECT_FIELDS = {
    MetricKind.REPS: "reps",
    MetricKind.WEIGHT: "weight",
    MetricKind.ATTEMPTED: "attempted",
    MetricKind.MADE: "made",
    MetricKind.DISTANCE: "distance",
    MetricKind.TIME_MIN: "time_min",
    MetricKind.AVG_TIME_SEC: "avg_time_sec",
    MetricKind.POINTS: "points",
}

_KIND_METRICS = {
    ExerciseKind.EXERCISE.value: [MetricKind.REPS, MetricKind.WEIGHT, MetricKind.REPS_X_WEIGHT],
    ExerciseKind.DRILL.value: [MetricKind.REPS, MetricKind.TIME_MIN],
    ExerciseKind.SPRINTS.value: [MetricKind.REPS, MetricKind.DISTANCE, MetricKind.AVG_TIME_SEC],
    ExerciseKind.HITTING.value: [MetricKind.REPS, MetricKind.DISTANCE],
    ExerciseKind.FIELDING.value: [MetricKind.REPS, MetricKind.DISTANCE],
    ExerciseKind.RALLY.value: [MetricKind.POINTS, MetricKind.TIME_MIN],
}

_MODE_KEYS = {
    "lifting": SportMode.WORKOUT,
    "workout": SportMode.WORKOUT,
    "basketball": SportMode.BASKETBALL,
    "football": SportMode.FOOTBALL,
    "baseball": SportMode.BASEBALL,
    "soccer": SportMode.SOCCER,
    "hockey": SportMode.HOCKEY,
    "tennis": SportMode.TENNIS,
    "running": SportMode.RUNNING,
}


def parse_metric(metric: Union[str, MetricKind, None]) -> Optional[MetricKind]:
    """Return the metric kind for ``metric`` or ``None`` when unknown."""
    if isinstance(metric, MetricKind):
        return metric
    if not isinstance(metric, str):
        return None
    try:
        return MetricKind(metric.strip().lower())
    except ValueError:
        return None


def normalize_mode(mode: Union[str, SportMode, None]) -> SportMode:
    """Map a client mode key to a sport mode; unknown keys mean ``workout``."""
    if isinstance(mode, SportMode):
        return mode
    if not mode:
        return SportMode.WORKOUT
    return _MODE_KEYS.get(str(mode).strip().lower(), SportMode.WORKOUT)


def metric_options(
    exercise_kind: Optional[str], sport_mode: Union[str, SportMode, None] = None
) -> list[MetricKind]:
    """Return the metrics that make sense for ``exercise_kind`` in a mode."""
    kind = (exercise_kind or "").strip().lower()
    if kind == ExerciseKind.SHOOTING.value:
        if normalize_mode(sport_mode) is SportMode.BASKETBALL:
            return [MetricKind.ATTEMPTED, MetricKind.MADE, MetricKind.PERCENTAGE]
        return [MetricKind.REPS, MetricKind.DISTANCE]
    return list(_KIND_METRICS.get(kind, _KIND_METRICS[ExerciseKind.EXERCISE.value]))


class MetricCalculator:
    """Turn a single performance record into one numeric data point."""

    @staticmethod
    def _field(record: PerformanceRecord, name: str) -> Optional[float]:
        return MathTools.as_number(getattr(record, name, None))

    @classmethod
    def compute(
        cls, record: PerformanceRecord, metric: Union[str, MetricKind]
    ) -> Optional[float]:
        """Return the value of ``metric`` for ``record``.

        Absent fields, unknown metrics and kinds the record does not carry
        all yield ``None``; nothing here raises.
        """
        kind = parse_metric(metric)
        if kind is None:
            return None
        if kind in _DIRECT_FIELDS:
            return cls._field(record, _DIRECT_FIELDS[kind])
        if kind is MetricKind.REPS_X_WEIGHT:
            reps = cls._field(record, "reps")
            weight = cls._field(record, "weight")
            if reps is None or weight is None:
                return None
            return MathTools.as_number(reps * weight)
        if kind is MetricKind.PERCENTAGE:
            return cls.percentage(
                cls._field(record, "made"), cls._field(record, "attempted")
            )
        if kind is MetricKind.COMPLETED:
            return 1.0 if getattr(record, "completed", False) is True else 0.0
        return None

    @staticmethod
    def percentage(made: Optional[float], attempted: Optional[float]) -> Optional[float]:
        """Shooting percentage, capped at 100 when more were made than attempted."""
        if attempted is None or attempted <= 0 or made is None:
            return None
        if made > attempted:
            return 100.0
        return made / attempted * 100.0
