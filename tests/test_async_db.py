import os
import sys
import asyncio
import datetime
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import CorpusEntry, FetchError, PerformanceRecord, StaleRequestError
from db import (
    AsyncBaseRepository,
    AsyncPerformanceRepository,
    AsyncSessionRepository,
    ExerciseRepository,
    SessionRepository,
    SetRepository,
)
from stats_service import AsyncStatisticsService


TODAY = datetime.date(2024, 6, 15)


class NumberRepository(AsyncBaseRepository):
    async def init_db(self) -> None:
        async with self._async_connection() as conn:
            await conn.execute("CREATE TABLE IF NOT EXISTS numbers (val INTEGER)")
            await conn.commit()

    async def add(self, val: int) -> int:
        return await self.execute("INSERT INTO numbers (val) VALUES (?)", (val,))

    async def all(self):
        rows = await self.fetch_all("SELECT val FROM numbers")
        return [r[0] for r in rows]


def seed(db_file: str) -> None:
    sessions = SessionRepository(db_file)
    exercises = ExerciseRepository(db_file)
    sets = SetRepository(db_file)
    for days, reps in [(1, 8), (2, 6)]:
        day = (TODAY - datetime.timedelta(days=days)).isoformat()
        sid = sessions.create("u1", day)
        eid = exercises.add(sid, "Pull Up")
        sets.add(eid, reps=reps)
    sessions.create("u1", TODAY.isoformat(), "soccer", "games", result="win")


@pytest.mark.asyncio
async def test_async_repository(tmp_path):
    repo = NumberRepository(str(tmp_path / "test.db"))
    await repo.init_db()
    await repo.add(5)
    assert await repo.all() == [5]


@pytest.mark.asyncio
async def test_async_performance_repo(tmp_path):
    db_file = str(tmp_path / "progress.db")
    seed(db_file)
    repo = AsyncPerformanceRepository(db_file)
    corpus = await repo.fetch_exercise_corpus("u1", "workout")
    assert [c.name for c in corpus] == ["Pull Up", "Pull Up"]
    records = await repo.fetch_candidate_records(
        "u1", "workout", TODAY - datetime.timedelta(days=7), TODAY
    )
    assert [r.reps for r in records] == [6.0, 8.0]


@pytest.mark.asyncio
async def test_async_session_repo(tmp_path):
    db_file = str(tmp_path / "progress.db")
    seed(db_file)
    repo = AsyncSessionRepository(db_file)
    assert await repo.count("u1", "workouts") == 2
    dates = await repo.fetch_recent_activity_dates("u1", "workouts")
    assert dates[0] == (TODAY - datetime.timedelta(days=1)).isoformat()
    assert await repo.fetch_recent_results("u1") == ["win"]


@pytest.mark.asyncio
async def test_async_service(tmp_path):
    db_file = str(tmp_path / "progress.db")
    seed(db_file)
    service = AsyncStatisticsService(
        AsyncPerformanceRepository(db_file), AsyncSessionRepository(db_file)
    )
    result = await service.exercise_progress(
        "u1", "workout", "pull", "reps", 7, today=TODAY
    )
    assert [(b["index"], b["value"]) for b in result["buckets"]] == [(5, 6.0), (6, 8.0)]
    stats = await service.history_stats("u1", "games", today=TODAY)
    assert stats == {"total": 1, "streak": 1, "win_streak": 1}


class SlowPerformanceRepository:
    """Blocks the first corpus fetch until ``gate`` is set."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.calls = 0

    async def fetch_exercise_corpus(self, user_id, mode):
        self.calls += 1
        if self.calls == 1:
            await self.gate.wait()
        return [CorpusEntry(name="Squat", exercise_kind="exercise")]

    async def fetch_candidate_records(self, user_id, mode, start_date, end_date):
        return [
            PerformanceRecord(
                session_id=1,
                exercise_name="Squat",
                performed_at=end_date,
                reps=5,
            )
        ]


@pytest.mark.asyncio
async def test_superseded_request_is_dropped():
    repo = SlowPerformanceRepository()
    service = AsyncStatisticsService(repo, None)
    first = asyncio.create_task(
        service.exercise_progress("u1", "workout", "squat", "reps", 7, today=TODAY)
    )
    await asyncio.sleep(0)
    second = await service.exercise_progress(
        "u1", "workout", "squat", "reps", 30, today=TODAY
    )
    assert second["days"] == 30
    repo.gate.set()
    with pytest.raises(StaleRequestError):
        await first


@pytest.mark.asyncio
async def test_distinct_subscribers_do_not_interfere():
    repo = SlowPerformanceRepository()
    service = AsyncStatisticsService(repo, None)
    first = asyncio.create_task(
        service.exercise_progress(
            "u1", "workout", "squat", "reps", 7, today=TODAY, subscriber="a"
        )
    )
    await asyncio.sleep(0)
    await service.exercise_progress(
        "u1", "workout", "squat", "reps", 7, today=TODAY, subscriber="b"
    )
    repo.gate.set()
    result = await first
    assert result["buckets"][0]["value"] == 5.0


@pytest.mark.asyncio
async def test_async_views_records_and_most_logged(tmp_path):
    db_file = str(tmp_path / "progress.db")
    seed(db_file)
    service = AsyncStatisticsService(
        AsyncPerformanceRepository(db_file), AsyncSessionRepository(db_file)
    )
    result = await service.view_progress("u1", "workout", "pull", "performance", 7, today=TODAY)
    # bodyweight sets carry no weight
    assert result["buckets"] == []
    records = await service.personal_records("u1", "workout", "pull")
    assert records["records"]["reps"]["value"] == 8.0
    assert records["records"]["reps_x_weight"]["value"] == 8.0
    logged = await service.most_logged("u1", "workout", 30, today=TODAY)
    assert logged == [
        {"name": "Pull Up", "count": 2, "last_logged": (TODAY - datetime.timedelta(days=1)).isoformat()}
    ]


class FailingRepository:
    async def fetch_exercise_corpus(self, user_id, mode):
        raise FetchError("disk I/O error")

    async def count(self, user_id, kind):
        raise FetchError("disk I/O error")


@pytest.mark.asyncio
async def test_async_fetch_error_propagates():
    repo = FailingRepository()
    service = AsyncStatisticsService(repo, repo)
    with pytest.raises(FetchError):
        await service.exercise_progress("u1", "workout", "squat", "reps", 7, today=TODAY)
    with pytest.raises(FetchError):
        await service.history_stats("u1", "workouts", today=TODAY)
