import requests
from typing import Optional

class ProgressClient:
    """Simple REST client for the progress API."""

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def create_session(self, user_id: str, performed_at: str, **params: str) -> int:
        resp = requests.post(
            f"{self.base_url}/sessions",
            params={"user_id": user_id, "performed_at": performed_at, **params},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def add_exercise(self, session_id: int, name: str, exercise_kind: str = "exercise") -> int:
        resp = requests.post(
            f"{self.base_url}/sessions/{session_id}/exercises",
            params={"name": name, "exercise_kind": exercise_kind},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def add_set(self, exercise_id: int, **values: float) -> int:
        resp = requests.post(
            f"{self.base_url}/exercises/{exercise_id}/sets",
            params=values,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def progress(
        self,
        user_id: str,
        query: str,
        metric: str,
        days: int = 7,
        mode: str = "workout",
        fill: Optional[str] = None,
    ) -> dict:
        params = {"user_id": user_id, "query": query, "metric": metric, "days": days, "mode": mode}
        if fill:
            params["fill"] = fill
        resp = requests.get(f"{self.base_url}/progress", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def stats(self, user_id: str, kind: str = "workouts") -> dict:
        resp = requests.get(
            f"{self.base_url}/stats/{kind}",
            params={"user_id": user_id},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def views(self, mode: str = "workout") -> list:
        resp = requests.get(
            f"{self.base_url}/progress/views", params={"mode": mode}, timeout=self.timeout
        )
        resp.raise_for_status()
        return resp.json()

    def view_progress(
        self, user_id: str, query: str, view: str, days: int = 7, mode: str = "workout"
    ) -> dict:
        params = {"user_id": user_id, "query": query, "view": view, "days": days, "mode": mode}
        resp = requests.get(f"{self.base_url}/progress/view", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def records(self, user_id: str, query: str, mode: str = "workout") -> dict:
        resp = requests.get(
            f"{self.base_url}/records",
            params={"user_id": user_id, "query": query, "mode": mode},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def most_logged(
        self, user_id: str, days: int = 30, mode: str = "workout", limit: int = 10
    ) -> list:
        resp = requests.get(
            f"{self.base_url}/exercises/most-logged",
            params={"user_id": user_id, "days": days, "mode": mode, "limit": limit},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()
