from __future__ import annotations

import datetime
import re
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .math_tools import MathTools
from .metric_calculator import MetricCalculator, normalize_mode
from .models import (
    ExerciseKind,
    LoggedExercise,
    PerformanceRecord,
    PersonalRecords,
    RecordValue,
    SportMode,
)


ValueFn = Callable[[PerformanceRecord], Optional[float]]

_SEPARATORS = re.compile(r"[-_\s]+")
_DIGITS = re.compile(r"\D")


def _positive(field: str) -> ValueFn:
    def value(record: PerformanceRecord) -> Optional[float]:
        number = getattr(record, field)
        return number if number is not None and number > 0 else None

    return value


def _non_negative(field: str) -> ValueFn:
    def value(record: PerformanceRecord) -> Optional[float]:
        number = getattr(record, field)
        return number if number is not None and number >= 0 else None

    return value


def _lift(record: PerformanceRecord) -> Optional[float]:
    # bodyweight sets count their reps
    if record.reps is None or record.reps <= 0:
        return None
    if record.weight is None or record.weight == 0:
        return record.reps
    if record.weight > 0:
        return record.reps * record.weight
    return None


def _completion(record: PerformanceRecord) -> Optional[float]:
    if record.reps is None or record.reps <= 0:
        return None
    return min((1.0 if record.completed else 0.0) / record.reps * 100.0, 100.0)


def _reps_per_minute(record: PerformanceRecord) -> Optional[float]:
    if record.reps is None or record.reps <= 0:
        return None
    if record.time_min is None or record.time_min <= 0:
        return None
    return record.reps / record.time_min


def _speed(record: PerformanceRecord) -> Optional[float]:
    if record.distance is None or record.distance < 0:
        return None
    if record.avg_time_sec is None or record.avg_time_sec <= 0:
        return None
    return record.distance / record.avg_time_sec


def _reps_x_distance(record: PerformanceRecord) -> Optional[float]:
    if record.reps is None or record.reps <= 0:
        return None
    if record.distance is None or record.distance < 0:
        return None
    return record.reps * record.distance


def _record_fields(kind: str, mode: SportMode) -> List[Tuple[str, ValueFn]]:
    if kind == ExerciseKind.SHOOTING.value:
        if mode is SportMode.BASKETBALL:
            return [
                ("percentage", lambda r: MetricCalculator.percentage(r.made, r.attempted)),
                ("attempted", _positive("attempted")),
                ("made", _non_negative("made")),
            ]
        return [("distance", _non_negative("distance")), ("reps", _positive("reps"))]
    if kind == ExerciseKind.DRILL.value:
        if mode is SportMode.FOOTBALL:
            return [
                ("reps", _positive("reps")),
                ("completion", _completion),
                ("reps_per_minute", _reps_per_minute),
            ]
        return [
            ("reps", _positive("reps")),
            ("time_min", _positive("time_min")),
            ("reps_per_minute", _reps_per_minute),
        ]
    if kind == ExerciseKind.SPRINTS.value:
        return [
            ("distance", _non_negative("distance")),
            ("speed", _speed),
            ("reps", _positive("reps")),
        ]
    if kind == ExerciseKind.HITTING.value:
        return [("reps", _positive("reps")), ("distance", _non_negative("distance"))]
    if kind == ExerciseKind.FIELDING.value:
        return [
            ("reps_x_distance", _reps_x_distance),
            ("reps", _positive("reps")),
            ("distance", _non_negative("distance")),
        ]
    if kind == ExerciseKind.RALLY.value:
        return [("points", _non_negative("points")), ("time_min", _positive("time_min"))]
    return [
        ("reps_x_weight", _lift),
        ("reps", _positive("reps")),
        ("weight", _non_negative("weight")),
    ]


def _normalize_name(name: str) -> str:
    return _SEPARATORS.sub(" ", (name or "").strip().lower())


def _edit_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (ca != cb))
            )
        previous = current
    return previous[-1]


class RecordsCalculator:
    """Personal bests and most logged exercises over a user's history."""

    @staticmethod
    def best(
        records: Iterable[PerformanceRecord], value_fn: ValueFn
    ) -> Optional[RecordValue]:
        """Highest value of ``value_fn``; a tie keeps the later date."""
        best: Optional[RecordValue] = None
        for record in records:
            value = MathTools.as_number(value_fn(record))
            if value is None or value < 0:
                continue
            if (
                best is None
                or value > best.value
                or (value == best.value and record.performed_at > best.achieved_on)
            ):
                best = RecordValue(value=value, achieved_on=record.performed_at)
        return best

    @classmethod
    def personal_records(
        cls,
        query: str,
        mode: str,
        exercise_kind: Optional[str],
        names: Sequence[str],
        records: Iterable[PerformanceRecord],
    ) -> PersonalRecords:
        """Best value per record field for the matched exercises of one kind."""
        sport = normalize_mode(mode)
        if exercise_kind is None:
            return PersonalRecords(query=query, mode=sport.value)
        wanted = set(names)
        matched = [
            r for r in records if r.exercise_name in wanted and r.exercise_kind == exercise_kind
        ]
        bests: Dict[str, Optional[RecordValue]] = {
            field: cls.best(matched, fn) for field, fn in _record_fields(exercise_kind, sport)
        }
        dates = [b.achieved_on for b in bests.values() if b is not None]
        return PersonalRecords(
            query=query,
            mode=sport.value,
            exercise_kind=exercise_kind,
            exercise_names=list(names),
            records=bests,
            achieved_on=max(dates) if dates else None,
        )

    @staticmethod
    def same_exercise(a: str, b: str) -> bool:
        """Names equal up to one edit, with identical digits."""
        left, right = _normalize_name(a), _normalize_name(b)
        if not left or not right:
            return False
        if left == right:
            return True
        if _DIGITS.sub("", left) != _DIGITS.sub("", right):
            return False
        return _edit_distance(left, right) <= 1

    @classmethod
    def most_logged(
        cls, logged: Iterable[Tuple[str, datetime.date]], limit: int = 10
    ) -> List[LoggedExercise]:
        """Group near-identical names and rank them by how often they were logged.

        ``logged`` holds one ``(name, performed_at)`` pair per logged exercise.
        The longest spelling in a group names it.
        """
        entries = [(n.strip(), d) for n, d in logged if n and n.strip()]
        groups: List[List[str]] = []
        for name, _ in entries:
            if any(name in group for group in groups):
                continue
            group = [name]
            for other, _ in entries:
                if other not in group and not any(other in g for g in groups):
                    if cls.same_exercise(name, other):
                        group.append(other)
            groups.append(group)

        ranked = []
        for group in groups:
            dates = [d for n, d in entries if n in group]
            canonical = max(group, key=len)
            ranked.append(
                LoggedExercise(name=canonical, count=len(dates), last_logged=max(dates))
            )
        ranked.sort(
            key=lambda e: (-e.count, -e.last_logged.toordinal(), e.name.lower())
        )
        return ranked[:limit]
