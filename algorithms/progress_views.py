from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Union

from .math_tools import MathTools
from .metric_calculator import MetricCalculator, normalize_mode
from .models import ExerciseKind, PerformanceRecord, ProgressView, SportMode


def _view(name: str, kind: ExerciseKind, calculation: str, description: str) -> dict:
    return {
        "name": name,
        "exercise_kind": kind.value,
        "calculation": calculation,
        "description": description,
    }


_PERFORMANCE = _view(
    "Performance", ExerciseKind.EXERCISE, "performance", "Highest single set (reps x weight)"
)
_TONNAGE = _view(
    "Tonnage",
    ExerciseKind.EXERCISE,
    "tonnage",
    "Average (reps x weight x sets) per logged exercise",
)
_DRILL = _view("Drill", ExerciseKind.DRILL, "drill", "Total reps logged for all drills")
_SHOTS = _view("Shots", ExerciseKind.SHOOTING, "shots", "Total reps logged for all shooting")
_SHOT_DISTANCE = _view(
    "Shot Distance", ExerciseKind.SHOOTING, "shot_distance", "Average distance per set"
)

_CATALOG: Dict[SportMode, List[dict]] = {
    SportMode.WORKOUT: [_PERFORMANCE, _TONNAGE],
    SportMode.BASKETBALL: [
        _PERFORMANCE,
        _TONNAGE,
        _view("Shooting %", ExerciseKind.SHOOTING, "shooting_percentage", "Average percentage per set"),
        _view("Jumpshot", ExerciseKind.SHOOTING, "jumpshot", "Average attempted per logged shooting exercise"),
        _DRILL,
    ],
    SportMode.FOOTBALL: [
        _PERFORMANCE,
        _TONNAGE,
        _view("Completion", ExerciseKind.DRILL, "completion", "Average completion percentage per set"),
        _view("Speed", ExerciseKind.SPRINTS, "speed", "Highest single set (distance / avg time)"),
        _view("Sprints", ExerciseKind.SPRINTS, "sprints", "Total reps logged for all sprints"),
    ],
    SportMode.BASEBALL: [
        _PERFORMANCE,
        _TONNAGE,
        _view("Hits", ExerciseKind.HITTING, "hits", "Total reps logged for all hitting"),
        _view("Distance", ExerciseKind.HITTING, "distance", "Average distance per set"),
        _view("Fielding", ExerciseKind.FIELDING, "fielding", "Average (reps x distance) / sets"),
    ],
    SportMode.SOCCER: [_PERFORMANCE, _TONNAGE, _DRILL, _SHOTS, _SHOT_DISTANCE],
    SportMode.HOCKEY: [_PERFORMANCE, _TONNAGE, _DRILL, _SHOTS, _SHOT_DISTANCE],
    SportMode.TENNIS: [
        _PERFORMANCE,
        _TONNAGE,
        _DRILL,
        _view("Rally", ExerciseKind.RALLY, "rally", "Average points per set"),
    ],
    SportMode.RUNNING: [],
}


def views_for_mode(mode: Union[str, SportMode, None]) -> List[ProgressView]:
    """Views offered for a sport mode, in display order."""
    sport = normalize_mode(mode)
    return [ProgressView(mode=sport.value, **v) for v in _CATALOG[sport]]


def view_config(mode: Union[str, SportMode, None], view: str) -> Optional[ProgressView]:
    """Look a view up by display name or calculation key, case-insensitive."""
    key = (view or "").strip().lower()
    for candidate in views_for_mode(mode):
        if key in (candidate.name.lower(), candidate.calculation):
            return candidate
    return None


def _square(record: PerformanceRecord) -> Hashable:
    # one logged exercise within one session
    if record.exercise_id is not None:
        return record.exercise_id
    return (record.session_id, record.exercise_name)


def _values(records: Iterable[PerformanceRecord], fn: Callable) -> List[float]:
    values = []
    for record in records:
        value = MathTools.as_number(fn(record))
        if value is not None:
            values.append(value)
    return values


def _product(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None or b is None:
        return None
    return a * b


class ViewCalculator:
    """Per-bucket reductions behind the progress views."""

    @staticmethod
    def _max(values: List[float]) -> Optional[float]:
        return max(values) if values else None

    @staticmethod
    def _total(values: List[float]) -> Optional[float]:
        return MathTools.as_number(sum(values)) if values else None

    @classmethod
    def _squares(cls, records: List[PerformanceRecord]) -> Dict[Hashable, List[PerformanceRecord]]:
        grouped: Dict[Hashable, List[PerformanceRecord]] = defaultdict(list)
        for record in records:
            grouped[_square(record)].append(record)
        return grouped

    @classmethod
    def performance(cls, records: List[PerformanceRecord]) -> Optional[float]:
        return cls._max(_values(records, lambda r: _product(r.reps, r.weight)))

    @classmethod
    def tonnage(cls, records: List[PerformanceRecord]) -> Optional[float]:
        per_square = []
        for sets in cls._squares(records).values():
            products = _values(sets, lambda r: _product(r.reps, r.weight))
            if products:
                per_square.append(sum(products) * len(sets))
        return MathTools.mean(per_square)

    @classmethod
    def shooting_percentage(cls, records: List[PerformanceRecord]) -> Optional[float]:
        values = _values(records, lambda r: MetricCalculator.percentage(r.made, r.attempted))
        return MathTools.mean(values)

    @classmethod
    def jumpshot(cls, records: List[PerformanceRecord]) -> Optional[float]:
        per_square = []
        for sets in cls._squares(records).values():
            attempted = _values(sets, lambda r: r.attempted)
            if attempted:
                per_square.append(sum(attempted))
        return MathTools.mean(per_square)

    @classmethod
    def drill(cls, records: List[PerformanceRecord]) -> Optional[float]:
        return cls._total(_values(records, lambda r: r.reps))

    @classmethod
    def completion(cls, records: List[PerformanceRecord]) -> Optional[float]:
        def percent(r: PerformanceRecord) -> Optional[float]:
            if r.reps is None or r.reps <= 0:
                return None
            return (1.0 if r.completed else 0.0) / r.reps * 100.0

        return MathTools.mean(_values(records, percent))

    @classmethod
    def speed(cls, records: List[PerformanceRecord]) -> Optional[float]:
        def per_set(r: PerformanceRecord) -> Optional[float]:
            if r.distance is None or r.avg_time_sec is None or r.avg_time_sec <= 0:
                return None
            return r.distance / r.avg_time_sec

        return cls._max(_values(records, per_set))

    @classmethod
    def distance(cls, records: List[PerformanceRecord]) -> Optional[float]:
        return MathTools.mean(_values(records, lambda r: r.distance))

    @classmethod
    def fielding(cls, records: List[PerformanceRecord]) -> Optional[float]:
        per_square = []
        for sets in cls._squares(records).values():
            products = _values(sets, lambda r: _product(r.reps, r.distance))
            if products:
                per_square.append(sum(products) / len(sets))
        return MathTools.mean(per_square)

    @classmethod
    def rally(cls, records: List[PerformanceRecord]) -> Optional[float]:
        return MathTools.mean(_values(records, lambda r: r.points))

    @classmethod
    def reducer(cls, calculation: str) -> Callable[[List[PerformanceRecord]], Optional[float]]:
        reducers = {
            "performance": cls.performance,
            "tonnage": cls.tonnage,
            "shooting_percentage": cls.shooting_percentage,
            "jumpshot": cls.jumpshot,
            "drill": cls.drill,
            "completion": cls.completion,
            "speed": cls.speed,
            "sprints": cls.drill,
            "hits": cls.drill,
            "distance": cls.distance,
            "fielding": cls.fielding,
            "shots": cls.drill,
            "shot_distance": cls.distance,
            "rally": cls.rally,
        }
        if calculation not in reducers:
            raise ValueError(f"unknown view calculation: {calculation}")
        return reducers[calculation]

    @classmethod
    def reduce(cls, calculation: str, records: Iterable[PerformanceRecord]) -> Optional[float]:
        """Reduce the records of one bucket to a single view value."""
        return cls.reducer(calculation)(list(records))
