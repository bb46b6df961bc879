import os
import sys
import unittest
from unittest import mock

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import client
from client import ProgressClient


class FakeResponse:
    def __init__(self, payload) -> None:
        self.payload = payload

    def raise_for_status(self) -> None:
        pass

    def json(self):
        return self.payload


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.client = ProgressClient(base_url="http://testserver/", timeout=3.0)

    def test_create_session(self) -> None:
        with mock.patch.object(client.requests, "post", return_value=FakeResponse({"id": 4})) as post:
            sid = self.client.create_session("u1", "2024-01-01", kind="games", result="win")
        self.assertEqual(sid, 4)
        post.assert_called_once_with(
            "http://testserver/sessions",
            params={"user_id": "u1", "performed_at": "2024-01-01", "kind": "games", "result": "win"},
            timeout=3.0,
        )

    def test_add_exercise_and_set(self) -> None:
        with mock.patch.object(client.requests, "post", return_value=FakeResponse({"id": 2})) as post:
            self.assertEqual(self.client.add_exercise(4, "Free Throws", "shooting"), 2)
            self.assertEqual(self.client.add_set(2, attempted=10, made=7), 2)
        self.assertEqual(post.call_args_list[0].args[0], "http://testserver/sessions/4/exercises")
        self.assertEqual(post.call_args_list[1].kwargs["params"], {"attempted": 10, "made": 7})

    def test_views_records_and_most_logged(self) -> None:
        with mock.patch.object(client.requests, "get", return_value=FakeResponse([])) as get:
            self.client.views("soccer")
            self.client.view_progress("u1", "bench", "tonnage", days=30)
            self.client.records("u1", "bench")
            self.client.most_logged("u1", days=90, limit=5)
        urls = [c.args[0] for c in get.call_args_list]
        self.assertEqual(
            urls,
            [
                "http://testserver/progress/views",
                "http://testserver/progress/view",
                "http://testserver/records",
                "http://testserver/exercises/most-logged",
            ],
        )
        self.assertEqual(get.call_args_list[1].kwargs["params"]["view"], "tonnage")
        self.assertEqual(
            get.call_args_list[3].kwargs["params"],
            {"user_id": "u1", "days": 90, "mode": "workout", "limit": 5},
        )

    def test_progress_and_stats(self) -> None:
        payload = {"buckets": [], "scale": None}
        with mock.patch.object(client.requests, "get", return_value=FakeResponse(payload)) as get:
            self.assertEqual(self.client.progress("u1", "bench", "reps", days=30, fill="zero"), payload)
            self.client.stats("u1", "games")
        params = get.call_args_list[0].kwargs["params"]
        self.assertEqual(params["days"], 30)
        self.assertEqual(params["fill"], "zero")
        self.assertEqual(get.call_args_list[1].args[0], "http://testserver/stats/games")


if __name__ == "__main__":
    unittest.main()
