from .errors import FetchError, InvalidRangeError, ProgressError, StaleRequestError
from .models import (
    ActivityKind,
    Bucket,
    BucketPlan,
    CorpusEntry,
    ExerciseKind,
    GraphScale,
    LoggedExercise,
    MetricKind,
    PerformanceRecord,
    PersonalRecords,
    ProgressView,
    RecordValue,
    Resolution,
    SportMode,
    StreakState,
)
from .math_tools import MathTools
from .metric_calculator import MetricCalculator, metric_options, normalize_mode, parse_metric
from .exercise_resolver import ExerciseResolver
from .bucket_planner import BucketPlanner
from .progress_views import ViewCalculator, view_config, views_for_mode
from .series_aggregator import SeriesAggregator
from .exercise_records import RecordsCalculator
from .graph_scaler import GraphScaler
from .streak_calculator import StreakCalculator

__all__ = [
    "ActivityKind",
    "Bucket",
    "BucketPlan",
    "BucketPlanner",
    "CorpusEntry",
    "ExerciseKind",
    "ExerciseResolver",
    "FetchError",
    "GraphScale",
    "GraphScaler",
    "InvalidRangeError",
    "LoggedExercise",
    "MathTools",
    "MetricCalculator",
    "MetricKind",
    "PerformanceRecord",
    "PersonalRecords",
    "ProgressError",
    "ProgressView",
    "RecordValue",
    "RecordsCalculator",
    "Resolution",
    "SeriesAggregator",
    "SportMode",
    "StaleRequestError",
    "StreakCalculator",
    "StreakState",
    "ViewCalculator",
    "metric_options",
    "normalize_mode",
    "parse_metric",
    "view_config",
    "views_for_mode",
]
