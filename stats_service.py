from __future__ import annotations
import datetime
import logging
from typing import Dict, List, Optional, Tuple

from algorithms import (
    ActivityKind,
    BucketPlanner,
    ExerciseResolver,
    GraphScaler,
    InvalidRangeError,
    PerformanceRecord,
    ProgressView,
    RecordsCalculator,
    Resolution,
    SeriesAggregator,
    StaleRequestError,
    StreakCalculator,
    metric_options,
    normalize_mode,
    parse_metric,
    view_config,
    views_for_mode,
)
from db import (
    AsyncPerformanceRepository,
    AsyncSessionRepository,
    PerformanceRepository,
    SessionRepository,
)
from settings_schema import SettingsSchema


logger = logging.getLogger(__name__)

MOST_LOGGED_RANGES = (30, 90, 180, 360)


class ProgressEngine:
    """Pure composition of the progress algorithms for one query."""

    def __init__(self, settings: SettingsSchema | None = None) -> None:
        self.settings = settings or SettingsSchema()
        self.resolver = ExerciseResolver(
            self.settings.matcher, self.settings.match_threshold
        )
        self.aggregator = SeriesAggregator(
            self.settings.round_digits, self.settings.fill
        )

    def plan(self, days: int, today: Optional[datetime.date] = None):
        return BucketPlanner.plan(
            days, today=today, policy=self.settings.range_policy
        )

    def build(
        self,
        resolution: Resolution,
        records: List[PerformanceRecord],
        plan,
        mode: str,
        metric: str,
        fill: Optional[str] = None,
    ) -> Dict:
        """Aggregate ``records`` for an already resolved query."""
        if parse_metric(metric) is None:
            raise ValueError(f"unknown metric: {metric}")
        buckets = []
        if resolution.matched:
            buckets = self.aggregator.aggregate(
                records, resolution.names, plan, metric, fill=fill
            )
        scale = GraphScaler.scale(buckets)
        return {
            "query": resolution.query,
            "mode": normalize_mode(mode).value,
            "metric": parse_metric(metric).value,
            "days": plan.days,
            "requested_days": plan.requested_days,
            "fallback_applied": plan.fallback_applied,
            "exercise_kind": resolution.canonical_kind,
            "exercise_names": resolution.names,
            "buckets": [b.model_dump(mode="json") for b in buckets],
            "scale": scale.model_dump() if scale is not None else None,
        }

    def view(self, mode: str, name: str) -> ProgressView:
        config = view_config(mode, name)
        if config is None:
            raise ValueError(f"unknown view for {normalize_mode(mode).value}: {name}")
        return config

    def build_view(
        self,
        resolution: Resolution,
        records: List[PerformanceRecord],
        plan,
        view: ProgressView,
        fill: Optional[str] = None,
    ) -> Dict:
        """Reduce each bucket with ``view`` over records of the view's kind."""
        buckets = []
        if resolution.matched:
            records = [r for r in records if r.exercise_kind == view.exercise_kind]
            buckets = self.aggregator.aggregate_view(
                records, resolution.names, plan, view.calculation, fill=fill
            )
        scale = GraphScaler.scale(buckets)
        return {
            "query": resolution.query,
            "mode": view.mode,
            "view": view.name,
            "calculation": view.calculation,
            "days": plan.days,
            "requested_days": plan.requested_days,
            "fallback_applied": plan.fallback_applied,
            "exercise_kind": view.exercise_kind,
            "exercise_names": resolution.names,
            "buckets": [b.model_dump(mode="json") for b in buckets],
            "scale": scale.model_dump() if scale is not None else None,
        }

    @staticmethod
    def logged_window(
        days: int, today: Optional[datetime.date] = None
    ) -> Tuple[datetime.date, datetime.date]:
        if days not in MOST_LOGGED_RANGES:
            raise InvalidRangeError(days, MOST_LOGGED_RANGES)
        today = today or datetime.date.today()
        return today - datetime.timedelta(days=days), today

    def streak_state(
        self,
        dates: List[str],
        total: int,
        results: Optional[List[Optional[str]]] = None,
        today: Optional[datetime.date] = None,
    ) -> Dict[str, int]:
        state = StreakCalculator.compute(
            dates,
            total=total,
            today=today,
            cap=self.settings.streak_cap,
            results=results,
        )
        return state.model_dump(exclude_none=True)


class StatisticsService:
    """Compute progress series and streaks for logged sessions."""

    def __init__(
        self,
        performance_repo: PerformanceRepository,
        session_repo: SessionRepository,
        settings: SettingsSchema | None = None,
    ) -> None:
        self.performance = performance_repo
        self.sessions = session_repo
        self.engine = ProgressEngine(settings)

    @property
    def settings(self) -> SettingsSchema:
        return self.engine.settings

    def resolve(self, user_id: str, mode: str, query: str) -> Resolution:
        corpus = self.performance.fetch_exercise_corpus(user_id, mode)
        return self.engine.resolver.resolve(query, corpus, normalize_mode(mode).value)

    def search_exercises(
        self, user_id: str, mode: str, query: str, limit: int = 5
    ) -> List[Dict[str, float]]:
        """Return ranked exercise names matching ``query``."""
        if not (query or "").strip():
            return []
        corpus = self.performance.fetch_exercise_corpus(user_id, mode)
        ranked = self.engine.resolver.rank(query, corpus)
        return [{"name": n, "score": s} for n, s in ranked[:limit]]

    def primary_exercise_kind(self, user_id: str, mode: str, query: str) -> str:
        corpus = self.performance.fetch_exercise_corpus(user_id, mode)
        return self.engine.resolver.primary_kind(query, corpus, normalize_mode(mode).value)

    def metric_options(self, user_id: str, mode: str, query: str) -> List[str]:
        kind = self.primary_exercise_kind(user_id, mode, query)
        return [m.value for m in metric_options(kind, mode)]

    def exercise_progress(
        self,
        user_id: str,
        mode: str,
        query: str,
        metric: str,
        days: int,
        fill: Optional[str] = None,
        today: Optional[datetime.date] = None,
    ) -> Dict:
        """Return the bucketed progress series and its display scale."""
        plan = self.engine.plan(days, today)
        resolution = self.resolve(user_id, mode, query)
        records: List[PerformanceRecord] = []
        if resolution.matched:
            records = self.performance.fetch_candidate_records(
                user_id, mode, plan.start_date, plan.end_date
            )
        return self.engine.build(resolution, records, plan, mode, metric, fill)

    def history_stats(
        self, user_id: str, kind: str, today: Optional[datetime.date] = None
    ) -> Dict[str, int]:
        """Return total sessions and the current day streak for ``kind``."""
        kind = ActivityKind(kind).value
        total = self.sessions.count(user_id, kind)
        dates = self.sessions.fetch_recent_activity_dates(
            user_id, kind, self.settings.streak_limit
        )
        results = None
        if kind == ActivityKind.GAMES.value:
            results = self.sessions.fetch_recent_results(user_id, self.settings.streak_cap)
        return self.engine.streak_state(dates, total, results, today)

    def views(self, mode: str) -> List[Dict]:
        return [v.model_dump() for v in views_for_mode(mode)]

    def view_progress(
        self,
        user_id: str,
        mode: str,
        query: str,
        view: str,
        days: int,
        fill: Optional[str] = None,
        today: Optional[datetime.date] = None,
    ) -> Dict:
        """Return a bucketed series reduced by one of the mode's views."""
        config = self.engine.view(mode, view)
        plan = self.engine.plan(days, today)
        resolution = self.resolve(user_id, mode, query)
        records: List[PerformanceRecord] = []
        if resolution.matched:
            records = self.performance.fetch_candidate_records(
                user_id, mode, plan.start_date, plan.end_date
            )
        return self.engine.build_view(resolution, records, plan, config, fill)

    def personal_records(self, user_id: str, mode: str, query: str) -> Dict:
        """Best value ever logged per record field for the matched exercises."""
        resolution = self.resolve(user_id, mode, query)
        records: List[PerformanceRecord] = []
        if resolution.matched:
            records = self.performance.fetch_exercise_history(user_id, mode)
        result = RecordsCalculator.personal_records(
            query, mode, resolution.canonical_kind, resolution.names, records
        )
        return result.model_dump(mode="json")

    def most_logged(
        self,
        user_id: str,
        mode: str,
        days: int = 30,
        limit: int = 10,
        today: Optional[datetime.date] = None,
    ) -> List[Dict]:
        start, end = self.engine.logged_window(days, today)
        logged = self.performance.fetch_logged_exercises(user_id, mode, start, end)
        return [
            e.model_dump(mode="json") for e in RecordsCalculator.most_logged(logged, limit)
        ]


class RequestSequencer:
    """Track the newest request per subscriber so older passes can be dropped."""

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}

    def begin(self, subscriber: str) -> int:
        token = self._latest.get(subscriber, 0) + 1
        self._latest[subscriber] = token
        return token

    def is_current(self, subscriber: str, token: int) -> bool:
        return self._latest.get(subscriber) == token

    def ensure_current(self, subscriber: str, token: int) -> None:
        if not self.is_current(subscriber, token):
            logger.debug("dropping superseded request %s for %s", token, subscriber)
            raise StaleRequestError(subscriber, token)

    def release(self, subscriber: str) -> None:
        """Forget a subscriber once its stream is closed."""
        self._latest.pop(subscriber, None)


class AsyncStatisticsService:
    """Async variant of :class:`StatisticsService` with last-request-wins."""

    def __init__(
        self,
        performance_repo: AsyncPerformanceRepository,
        session_repo: AsyncSessionRepository,
        settings: SettingsSchema | None = None,
        sequencer: RequestSequencer | None = None,
    ) -> None:
        self.performance = performance_repo
        self.sessions = session_repo
        self.engine = ProgressEngine(settings)
        self.sequencer = sequencer or RequestSequencer()

    @property
    def settings(self) -> SettingsSchema:
        return self.engine.settings

    async def exercise_progress(
        self,
        user_id: str,
        mode: str,
        query: str,
        metric: str,
        days: int,
        fill: Optional[str] = None,
        today: Optional[datetime.date] = None,
        subscriber: Optional[str] = None,
    ) -> Dict:
        """Fetch and aggregate; raises ``StaleRequestError`` if superseded.

        ``subscriber`` identifies the stream of requests a newer call
        replaces, the user id by default.
        """
        subscriber = subscriber or user_id
        token = self.sequencer.begin(subscriber)
        plan = self.engine.plan(days, today)
        corpus = await self.performance.fetch_exercise_corpus(user_id, mode)
        self.sequencer.ensure_current(subscriber, token)
        resolution = self.engine.resolver.resolve(
            query, corpus, normalize_mode(mode).value
        )
        records: List[PerformanceRecord] = []
        if resolution.matched:
            records = await self.performance.fetch_candidate_records(
                user_id, mode, plan.start_date, plan.end_date
            )
            self.sequencer.ensure_current(subscriber, token)
        return self.engine.build(resolution, records, plan, mode, metric, fill)

    async def history_stats(
        self, user_id: str, kind: str, today: Optional[datetime.date] = None
    ) -> Dict[str, int]:
        kind = ActivityKind(kind).value
        total = await self.sessions.count(user_id, kind)
        dates = await self.sessions.fetch_recent_activity_dates(
            user_id, kind, self.settings.streak_limit
        )
        results = None
        if kind == ActivityKind.GAMES.value:
            results = await self.sessions.fetch_recent_results(
                user_id, self.settings.streak_cap
            )
        return self.engine.streak_state(dates, total, results, today)

    def views(self, mode: str) -> List[Dict]:
        return [v.model_dump() for v in views_for_mode(mode)]

    async def view_progress(
        self,
        user_id: str,
        mode: str,
        query: str,
        view: str,
        days: int,
        fill: Optional[str] = None,
        today: Optional[datetime.date] = None,
    ) -> Dict:
        config = self.engine.view(mode, view)
        plan = self.engine.plan(days, today)
        corpus = await self.performance.fetch_exercise_corpus(user_id, mode)
        resolution = self.engine.resolver.resolve(
            query, corpus, normalize_mode(mode).value
        )
        records: List[PerformanceRecord] = []
        if resolution.matched:
            records = await self.performance.fetch_candidate_records(
                user_id, mode, plan.start_date, plan.end_date
            )
        return self.engine.build_view(resolution, records, plan, config, fill)

    async def personal_records(self, user_id: str, mode: str, query: str) -> Dict:
        corpus = await self.performance.fetch_exercise_corpus(user_id, mode)
        resolution = self.engine.resolver.resolve(
            query, corpus, normalize_mode(mode).value
        )
        records: List[PerformanceRecord] = []
        if resolution.matched:
            records = await self.performance.fetch_exercise_history(user_id, mode)
        result = RecordsCalculator.personal_records(
            query, mode, resolution.canonical_kind, resolution.names, records
        )
        return result.model_dump(mode="json")

    async def most_logged(
        self,
        user_id: str,
        mode: str,
        days: int = 30,
        limit: int = 10,
        today: Optional[datetime.date] = None,
    ) -> List[Dict]:
        start, end = self.engine.logged_window(days, today)
        logged = await self.performance.fetch_logged_exercises(user_id, mode, start, end)
        return [
            e.model_dump(mode="json") for e in RecordsCalculator.most_logged(logged, limit)
        ]
