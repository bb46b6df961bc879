import sqlite3
import aiosqlite
import os
import datetime
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from algorithms import (
    ActivityKind,
    CorpusEntry,
    ExerciseKind,
    FetchError,
    PerformanceRecord,
    normalize_mode,
)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "sessions": (
            """CREATE TABLE sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    mode TEXT NOT NULL DEFAULT 'workout',
                    kind TEXT NOT NULL DEFAULT 'workouts',
                    performed_at TEXT NOT NULL,
                    result TEXT,
                    is_finalized INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "user_id",
                "mode",
                "kind",
                "performed_at",
                "result",
                "is_finalized",
                "created_at",
            ],
        ),
        "session_exercises": (
            """CREATE TABLE session_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    exercise_kind TEXT NOT NULL DEFAULT 'exercise',
                    FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE
                );""",
            ["id", "session_id", "name", "exercise_kind"],
        ),
        "exercise_sets": (
            """CREATE TABLE exercise_sets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    exercise_id INTEGER NOT NULL,
                    set_index INTEGER NOT NULL DEFAULT 0,
                    reps REAL,
                    weight REAL,
                    attempted REAL,
                    made REAL,
                    distance REAL,
                    time_min REAL,
                    avg_time_sec REAL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    points REAL,
                    FOREIGN KEY(exercise_id) REFERENCES session_exercises(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "exercise_id",
                "set_index",
                "reps",
                "weight",
                "attempted",
                "made",
                "distance",
                "time_min",
                "avg_time_sec",
                "completed",
                "points",
            ],
        ),
    }

    def __init__(self, db_path: str = "progress.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            connection.execute("PRAGMA foreign_keys=on;")
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.execute("PRAGMA foreign_keys=off;")
            # keep child foreign keys pointing at the rebuilt table name
            conn.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_sessions_user_mode "
                "ON sessions (user_id, mode, performed_at);"
            )
            conn.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "mode":
                        return "'workout'"
                    if col == "kind":
                        return "'workouts'"
                    if col == "exercise_kind":
                        return "'exercise'"
                    if col in ("is_finalized",):
                        return "1"
                    if col in ("set_index", "completed"):
                        return "0"
                    if col == "created_at":
                        return "CURRENT_TIMESTAMP"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        try:
            with self._connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params)
                return cursor.fetchall()
        except sqlite3.Error as e:
            raise FetchError(str(e)) from e


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        try:
            async with self._async_connection() as conn:
                cursor = await conn.execute(query, params)
                rows = await cursor.fetchall()
                return list(rows)
        except sqlite3.Error as e:
            raise FetchError(str(e)) from e


def _activity_kind(kind: str) -> str:
    try:
        return ActivityKind(kind).value
    except ValueError:
        raise ValueError(f"unknown activity kind: {kind}")


class SessionQueries:
    """SQL shared by the sync and async session repositories."""

    COUNT = "SELECT COUNT(*) FROM sessions WHERE user_id = ? AND kind = ?;"
    RECENT_DATES = (
        "SELECT performed_at FROM sessions "
        "WHERE user_id = ? AND kind = ? AND is_finalized != 0 "
        "ORDER BY performed_at DESC, created_at DESC, id DESC LIMIT ?;"
    )
    RECENT_RESULTS = (
        "SELECT result FROM sessions "
        "WHERE user_id = ? AND kind = 'games' "
        "ORDER BY performed_at DESC, created_at DESC, id DESC LIMIT ?;"
    )


class SessionRepository(BaseRepository):
    """Repository for logged workouts, practices and games."""

    RESULTS = {"win", "loss", "tie"}

    def create(
        self,
        user_id: str,
        performed_at: str,
        mode: str = "workout",
        kind: str = "workouts",
        result: Optional[str] = None,
        is_finalized: bool = True,
        created_at: Optional[str] = None,
    ) -> int:
        kind = _activity_kind(kind)
        datetime.date.fromisoformat(performed_at)
        if result is not None:
            if kind != ActivityKind.GAMES.value:
                raise ValueError("only games carry a result")
            if result not in self.RESULTS:
                raise ValueError(f"result must be one of {sorted(self.RESULTS)}")
        created = created_at or datetime.datetime.now(datetime.timezone.utc).isoformat()
        return self.execute(
            "INSERT INTO sessions (user_id, mode, kind, performed_at, result, is_finalized, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?);",
            (
                user_id,
                normalize_mode(mode).value,
                kind,
                performed_at,
                result,
                int(is_finalized),
                created,
            ),
        )

    def fetch_detail(self, session_id: int) -> Optional[Tuple]:
        rows = self.fetch_all(
            "SELECT id, user_id, mode, kind, performed_at, result, is_finalized FROM sessions WHERE id = ?;",
            (session_id,),
        )
        return rows[0] if rows else None

    def set_finalized(self, session_id: int, finalized: bool) -> None:
        self.execute(
            "UPDATE sessions SET is_finalized = ? WHERE id = ?;",
            (int(finalized), session_id),
        )

    def count(self, user_id: str, kind: str) -> int:
        rows = self.fetch_all(SessionQueries.COUNT, (user_id, _activity_kind(kind)))
        return int(rows[0][0]) if rows else 0

    def fetch_recent_activity_dates(
        self, user_id: str, kind: str, limit: int = 30
    ) -> List[str]:
        rows = self.fetch_all(
            SessionQueries.RECENT_DATES, (user_id, _activity_kind(kind), limit)
        )
        return [r[0] for r in rows]

    def fetch_recent_results(self, user_id: str, limit: int = 999) -> List[Optional[str]]:
        rows = self.fetch_all(SessionQueries.RECENT_RESULTS, (user_id, limit))
        return [r[0] for r in rows]


class ExerciseRepository(BaseRepository):
    """Repository for exercises logged within a session."""

    def add(self, session_id: int, name: str, exercise_kind: str = "exercise") -> int:
        name = (name or "").strip()
        if not name:
            raise ValueError("exercise name must not be empty")
        rows = self.fetch_all("SELECT id FROM sessions WHERE id = ?;", (session_id,))
        if not rows:
            raise ValueError("session not found")
        return self.execute(
            "INSERT INTO session_exercises (session_id, name, exercise_kind) VALUES (?, ?, ?);",
            (session_id, name, (exercise_kind or ExerciseKind.EXERCISE.value).lower()),
        )

    def fetch_for_session(self, session_id: int) -> List[Tuple[int, str, str]]:
        return self.fetch_all(
            "SELECT id, name, exercise_kind FROM session_exercises WHERE session_id = ? ORDER BY id;",
            (session_id,),
        )


class SetRepository(BaseRepository):
    """Repository for exercise_sets table operations."""

    NUMERIC_FIELDS = (
        "reps",
        "weight",
        "attempted",
        "made",
        "distance",
        "time_min",
        "avg_time_sec",
        "points",
    )

    def add(self, exercise_id: int, completed: bool = False, **values: Optional[float]) -> int:
        unknown = set(values) - set(self.NUMERIC_FIELDS)
        if unknown:
            raise ValueError(f"unknown set fields: {', '.join(sorted(unknown))}")
        for key, value in values.items():
            if value is not None and value < 0:
                raise ValueError(f"{key} must be non-negative")
        rows = self.fetch_all("SELECT id FROM session_exercises WHERE id = ?;", (exercise_id,))
        if not rows:
            raise ValueError("exercise not found")
        rows = self.fetch_all(
            "SELECT COALESCE(MAX(set_index), -1) + 1 FROM exercise_sets WHERE exercise_id = ?;",
            (exercise_id,),
        )
        set_index = int(rows[0][0]) if rows else 0
        cols = ["exercise_id", "set_index", "completed"] + list(self.NUMERIC_FIELDS)
        params = [exercise_id, set_index, int(completed)] + [
            values.get(f) for f in self.NUMERIC_FIELDS
        ]
        return self.execute(
            f"INSERT INTO exercise_sets ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)});",
            tuple(params),
        )

    def bulk_add(self, exercise_id: int, entries: Iterable[dict]) -> list[int]:
        return [self.add(exercise_id, **entry) for entry in entries]


class PerformanceQueries:
    """SQL and row mapping shared by the performance repositories."""

    CANDIDATES = (
        "SELECT s.id, e.id, e.name, e.exercise_kind, s.performed_at, "
        "x.reps, x.weight, x.attempted, x.made, x.distance, x.time_min, "
        "x.avg_time_sec, x.points, x.completed "
        "FROM exercise_sets x "
        "JOIN session_exercises e ON x.exercise_id = e.id "
        "JOIN sessions s ON e.session_id = s.id "
        "WHERE s.user_id = ? AND s.mode = ? AND s.performed_at >= ? AND s.performed_at <= ? "
        "ORDER BY s.performed_at, e.id, x.set_index;"
    )
    LOGGED = (
        "SELECT e.name, s.performed_at FROM session_exercises e "
        "JOIN sessions s ON e.session_id = s.id "
        "WHERE s.user_id = ? AND s.mode = ? AND s.performed_at >= ? AND s.performed_at <= ? "
        "ORDER BY s.performed_at, e.id;"
    )
    CORPUS = (
        "SELECT e.name, e.exercise_kind FROM session_exercises e "
        "JOIN sessions s ON e.session_id = s.id "
        "WHERE s.user_id = ? AND s.mode = ? ORDER BY e.id;"
    )

    @staticmethod
    def params(
        user_id: str, mode: str, start_date: datetime.date, end_date: datetime.date
    ) -> Tuple:
        return (
            user_id,
            normalize_mode(mode).value,
            start_date.isoformat(),
            end_date.isoformat(),
        )

    @staticmethod
    def to_logged(row: Tuple) -> Tuple[str, datetime.date]:
        name, performed_at = row
        return name, datetime.date.fromisoformat(performed_at[:10])

    @staticmethod
    def to_record(row: Tuple) -> PerformanceRecord:
        (
            session_id,
            exercise_id,
            name,
            kind,
            performed_at,
            reps,
            weight,
            attempted,
            made,
            distance,
            time_min,
            avg_time_sec,
            points,
            completed,
        ) = row
        return PerformanceRecord(
            session_id=session_id,
            exercise_id=exercise_id,
            exercise_name=name,
            exercise_kind=kind,
            performed_at=datetime.date.fromisoformat(performed_at[:10]),
            reps=reps,
            weight=weight,
            attempted=attempted,
            made=made,
            distance=distance,
            time_min=time_min,
            avg_time_sec=avg_time_sec,
            points=points,
            completed=bool(completed),
        )


class PerformanceRepository(BaseRepository):
    """Read side feeding the progress engine."""

    def fetch_candidate_records(
        self,
        user_id: str,
        mode: str,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> List[PerformanceRecord]:
        rows = self.fetch_all(
            PerformanceQueries.CANDIDATES,
            PerformanceQueries.params(user_id, mode, start_date, end_date),
        )
        return [PerformanceQueries.to_record(r) for r in rows]

    def fetch_exercise_history(self, user_id: str, mode: str) -> List[PerformanceRecord]:
        return self.fetch_candidate_records(
            user_id, mode, datetime.date.min, datetime.date.max
        )

    def fetch_logged_exercises(
        self,
        user_id: str,
        mode: str,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> List[Tuple[str, datetime.date]]:
        rows = self.fetch_all(
            PerformanceQueries.LOGGED,
            PerformanceQueries.params(user_id, mode, start_date, end_date),
        )
        return [PerformanceQueries.to_logged(r) for r in rows]

    def fetch_exercise_corpus(self, user_id: str, mode: str) -> List[CorpusEntry]:
        rows = self.fetch_all(
            PerformanceQueries.CORPUS, (user_id, normalize_mode(mode).value)
        )
        return [CorpusEntry(name=name, exercise_kind=kind) for name, kind in rows]


class AsyncPerformanceRepository(AsyncBaseRepository):
    """Async read side feeding the progress engine."""

    async def fetch_candidate_records(
        self,
        user_id: str,
        mode: str,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> List[PerformanceRecord]:
        rows = await self.fetch_all(
            PerformanceQueries.CANDIDATES,
            PerformanceQueries.params(user_id, mode, start_date, end_date),
        )
        return [PerformanceQueries.to_record(r) for r in rows]

    async def fetch_exercise_history(self, user_id: str, mode: str) -> List[PerformanceRecord]:
        return await self.fetch_candidate_records(
            user_id, mode, datetime.date.min, datetime.date.max
        )

    async def fetch_logged_exercises(
        self,
        user_id: str,
        mode: str,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> List[Tuple[str, datetime.date]]:
        rows = await self.fetch_all(
            PerformanceQueries.LOGGED,
            PerformanceQueries.params(user_id, mode, start_date, end_date),
        )
        return [PerformanceQueries.to_logged(r) for r in rows]

    async def fetch_exercise_corpus(self, user_id: str, mode: str) -> List[CorpusEntry]:
        rows = await self.fetch_all(
            PerformanceQueries.CORPUS, (user_id, normalize_mode(mode).value)
        )
        return [CorpusEntry(name=name, exercise_kind=kind) for name, kind in rows]


class AsyncSessionRepository(AsyncBaseRepository):
    """Async reads of session counts, dates and game results."""

    async def count(self, user_id: str, kind: str) -> int:
        rows = await self.fetch_all(SessionQueries.COUNT, (user_id, _activity_kind(kind)))
        return int(rows[0][0]) if rows else 0

    async def fetch_recent_activity_dates(
        self, user_id: str, kind: str, limit: int = 30
    ) -> List[str]:
        rows = await self.fetch_all(
            SessionQueries.RECENT_DATES, (user_id, _activity_kind(kind), limit)
        )
        return [r[0] for r in rows]

    async def fetch_recent_results(self, user_id: str, limit: int = 999) -> List[Optional[str]]:
        rows = await self.fetch_all(SessionQueries.RECENT_RESULTS, (user_id, limit))
        return [r[0] for r in rows]


def default_db_path() -> str:
    return os.environ.get("PROGRESS_DB", "progress.db")
