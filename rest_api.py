import asyncio
import datetime
import logging
from typing import Optional
from fastapi import (
    FastAPI,
    HTTPException,
    WebSocket,
    WebSocketDisconnect,
)
from algorithms import FetchError, InvalidRangeError, StaleRequestError
from config import APP_VERSION, YamlConfig
from db import (
    AsyncPerformanceRepository,
    AsyncSessionRepository,
    ExerciseRepository,
    PerformanceRepository,
    SessionRepository,
    SetRepository,
    default_db_path,
)
from stats_service import AsyncStatisticsService, StatisticsService


logger = logging.getLogger(__name__)


class ProgressAPI:
    """Provides REST endpoints for session logging and progress analytics."""

    def __init__(
        self,
        db_path: str | None = None,
        yaml_path: str | None = None,
    ) -> None:
        self.db_path = db_path or default_db_path()
        self.config = YamlConfig(yaml_path)
        self.settings = self.config.settings()
        self.sessions = SessionRepository(self.db_path)
        self.exercises = ExerciseRepository(self.db_path)
        self.sets = SetRepository(self.db_path)
        self.performance = PerformanceRepository(self.db_path)
        self.statistics = StatisticsService(
            self.performance, self.sessions, self.settings
        )
        self.async_statistics = AsyncStatisticsService(
            AsyncPerformanceRepository(self.db_path),
            AsyncSessionRepository(self.db_path),
            self.settings,
        )
        self.app = FastAPI(
            title="Progress API",
            description="REST API for session logging and progress trends",
            version=APP_VERSION,
        )
        self._setup_routes()

    @staticmethod
    def _raise_http(exc: Exception) -> None:
        if isinstance(exc, FetchError):
            raise HTTPException(status_code=503, detail=str(exc))
        if isinstance(exc, InvalidRangeError):
            raise HTTPException(status_code=422, detail=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))

    async def _push_progress(self, ws: WebSocket, subscriber: str, message: dict) -> None:
        if not isinstance(message, dict):
            await ws.send_json(
                {"status": "error", "request_id": None, "detail": "message must be an object"}
            )
            return
        request_id = message.get("request_id")
        try:
            result = await self.async_statistics.exercise_progress(
                str(message.get("user_id", "")),
                message.get("mode", "workout"),
                message.get("query", ""),
                message.get("metric", "reps"),
                int(message.get("days", 7)),
                fill=message.get("fill"),
                subscriber=subscriber,
            )
        except StaleRequestError:
            return
        except (FetchError, ValueError, TypeError) as e:
            await ws.send_json({"status": "error", "request_id": request_id, "detail": str(e)})
            return
        await ws.send_json({"status": "ok", "request_id": request_id, **result})

    def _setup_routes(self) -> None:
        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.sessions.fetch_detail(0)
                return {"status": "ok"}
            except FetchError as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @self.app.post("/sessions")
        def create_session(
            user_id: str,
            performed_at: Optional[str] = None,
            mode: str = "workout",
            kind: str = "workouts",
            result: Optional[str] = None,
            is_finalized: bool = True,
        ):
            try:
                sid = self.sessions.create(
                    user_id,
                    performed_at or datetime.date.today().isoformat(),
                    mode,
                    kind,
                    result,
                    is_finalized,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": sid}

        @self.app.post("/sessions/{session_id}/finish")
        def finish_session(session_id: int, finalized: bool = True):
            if self.sessions.fetch_detail(session_id) is None:
                raise HTTPException(status_code=404, detail="session not found")
            self.sessions.set_finalized(session_id, finalized)
            return {"status": "finished" if finalized else "open"}

        @self.app.post("/sessions/{session_id}/exercises")
        def add_exercise(session_id: int, name: str, exercise_kind: str = "exercise"):
            try:
                eid = self.exercises.add(session_id, name, exercise_kind)
            except ValueError as e:
                raise HTTPException(status_code=404 if "not found" in str(e) else 400, detail=str(e))
            return {"id": eid}

        @self.app.post("/exercises/{exercise_id}/sets")
        def add_set(
            exercise_id: int,
            reps: Optional[float] = None,
            weight: Optional[float] = None,
            attempted: Optional[float] = None,
            made: Optional[float] = None,
            distance: Optional[float] = None,
            time_min: Optional[float] = None,
            avg_time_sec: Optional[float] = None,
            points: Optional[float] = None,
            completed: bool = False,
        ):
            try:
                set_id = self.sets.add(
                    exercise_id,
                    completed=completed,
                    reps=reps,
                    weight=weight,
                    attempted=attempted,
                    made=made,
                    distance=distance,
                    time_min=time_min,
                    avg_time_sec=avg_time_sec,
                    points=points,
                )
            except ValueError as e:
                raise HTTPException(status_code=404 if "not found" in str(e) else 400, detail=str(e))
            return {"id": set_id}

        @self.app.get("/progress")
        def progress(
            user_id: str,
            query: str,
            metric: str,
            days: int = 7,
            mode: str = "workout",
            fill: Optional[str] = None,
        ):
            try:
                return self.statistics.exercise_progress(
                    user_id, mode, query, metric, days, fill=fill
                )
            except (FetchError, ValueError) as e:
                self._raise_http(e)

        @self.app.get("/progress/views")
        def progress_views(mode: str = "workout"):
            return self.statistics.views(mode)

        @self.app.get("/progress/view")
        def progress_view(
            user_id: str,
            query: str,
            view: str,
            days: int = 7,
            mode: str = "workout",
            fill: Optional[str] = None,
        ):
            try:
                return self.statistics.view_progress(
                    user_id, mode, query, view, days, fill=fill
                )
            except (FetchError, ValueError) as e:
                self._raise_http(e)

        @self.app.get("/records")
        def personal_records(user_id: str, query: str, mode: str = "workout"):
            try:
                return self.statistics.personal_records(user_id, mode, query)
            except FetchError as e:
                self._raise_http(e)

        @self.app.get("/exercises/most-logged")
        def most_logged(user_id: str, days: int = 30, mode: str = "workout", limit: int = 10):
            try:
                return self.statistics.most_logged(user_id, mode, days, limit)
            except (FetchError, ValueError) as e:
                self._raise_http(e)

        @self.app.get("/progress/kind")
        def progress_kind(user_id: str, query: str, mode: str = "workout"):
            try:
                kind = self.statistics.primary_exercise_kind(user_id, mode, query)
            except FetchError as e:
                self._raise_http(e)
            return {"exercise_kind": kind}

        @self.app.get("/progress/metrics")
        def progress_metrics(user_id: str, query: str, mode: str = "workout"):
            try:
                return self.statistics.metric_options(user_id, mode, query)
            except FetchError as e:
                self._raise_http(e)

        @self.app.get("/exercises/search")
        def search_exercises(user_id: str, query: str, mode: str = "workout", limit: int = 5):
            try:
                return self.statistics.search_exercises(user_id, mode, query, limit)
            except FetchError as e:
                self._raise_http(e)

        @self.app.get("/stats/{kind}")
        def history_stats(kind: str, user_id: str):
            try:
                return self.statistics.history_stats(user_id, kind)
            except FetchError as e:
                self._raise_http(e)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.websocket("/ws/progress")
        async def progress_socket(ws: WebSocket):
            await ws.accept()
            subscriber = f"ws-{id(ws)}"
            pending: asyncio.Task | None = None
            try:
                while True:
                    message = await ws.receive_json()
                    if pending is not None and not pending.done():
                        pending.cancel()
                    pending = asyncio.create_task(
                        self._push_progress(ws, subscriber, message)
                    )
            except WebSocketDisconnect:
                logger.debug("progress subscriber %s disconnected", subscriber)
            finally:
                if pending is not None and not pending.done():
                    pending.cancel()
                self.async_statistics.sequencer.release(subscriber)


def create_app(db_path: str | None = None, yaml_path: str | None = None) -> FastAPI:
    return ProgressAPI(db_path=db_path, yaml_path=yaml_path).app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app())
