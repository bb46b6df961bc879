from __future__ import annotations

import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class MetricKind(str, Enum):
    REPS = "reps"
    WEIGHT = "weight"
    REPS_X_WEIGHT = "reps_x_weight"
    ATTEMPTED = "attempted"
    MADE = "made"
    PERCENTAGE = "percentage"
    DISTANCE = "distance"
    TIME_MIN = "time_min"
    AVG_TIME_SEC = "avg_time_sec"
    COMPLETED = "completed"
    POINTS = "points"


class SportMode(str, Enum):
    WORKOUT = "workout"
    BASKETBALL = "basketball"
    FOOTBALL = "football"
    BASEBALL = "baseball"
    SOCCER = "soccer"
    HOCKEY = "hockey"
    TENNIS = "tennis"
    RUNNING = "running"


class ExerciseKind(str, Enum):
    EXERCISE = "exercise"
    SHOOTING = "shooting"
    DRILL = "drill"
    SPRINTS = "sprints"
    HITTING = "hitting"
    FIELDING = "fielding"
    RALLY = "rally"


class ActivityKind(str, Enum):
    WORKOUTS = "workouts"
    PRACTICES = "practices"
    GAMES = "games"


class PerformanceRecord(BaseModel):
    """One logged set of an exercise within a session.

    Fields that do not apply to the record's ``exercise_kind`` stay ``None``.
    """

    model_config = ConfigDict(frozen=True)

    session_id: int
    exercise_name: str
    exercise_kind: str = ExerciseKind.EXERCISE.value
    performed_at: datetime.date
    exercise_id: Optional[int] = None
    reps: Optional[float] = None
    weight: Optional[float] = None
    attempted: Optional[float] = None
    made: Optional[float] = None
    distance: Optional[float] = None
    time_min: Optional[float] = None
    avg_time_sec: Optional[float] = None
    points: Optional[float] = None
    completed: bool = False


class CorpusEntry(BaseModel):
    """An exercise name the user has logged, with its kind."""

    model_config = ConfigDict(frozen=True)

    name: str
    exercise_kind: str = ExerciseKind.EXERCISE.value


class Resolution(BaseModel):
    query: str
    matches: List[CorpusEntry] = []
    canonical_kind: Optional[str] = None

    @property
    def matched(self) -> bool:
        return bool(self.matches)

    @property
    def names(self) -> List[str]:
        """Distinct matched names in first-seen order."""
        seen: list[str] = []
        for entry in self.matches:
            if entry.name not in seen:
                seen.append(entry.name)
        return seen


class Bucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    start_date: datetime.date
    end_date: datetime.date
    value: Optional[float] = None


class BucketPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    requested_days: int
    days: int
    bucket_count: int
    bucket_size_days: int
    buckets: List[Bucket]
    fallback_applied: bool = False

    @property
    def start_date(self) -> datetime.date:
        return self.buckets[0].start_date

    @property
    def end_date(self) -> datetime.date:
        return self.buckets[-1].end_date


class GraphScale(BaseModel):
    model_config = ConfigDict(frozen=True)

    actual_min: float
    actual_max: float
    display_min: float
    display_max: float
    ticks: List[float]
    padded: bool = False


class StreakState(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    streak: int = 0
    win_streak: Optional[int] = None


class ProgressView(BaseModel):
    """A named per-bucket reduction offered in one sport mode."""

    model_config = ConfigDict(frozen=True)

    name: str
    mode: str
    exercise_kind: str
    calculation: str
    description: str = ""


class RecordValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    achieved_on: datetime.date


class PersonalRecords(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    mode: str
    exercise_kind: Optional[str] = None
    exercise_names: List[str] = []
    records: Dict[str, Optional[RecordValue]] = {}
    achieved_on: Optional[datetime.date] = None


class LoggedExercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    count: int
    last_logged: Optional[datetime.date] = None
