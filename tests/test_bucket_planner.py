import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import BucketPlanner, InvalidRangeError


TODAY = datetime.date(2024, 6, 15)
YESTERDAY = TODAY - datetime.timedelta(days=1)


class BucketPlannerTestCase(unittest.TestCase):
    def test_lookup_table(self) -> None:
        expected = {7: (7, 1), 30: (4, 7), 90: (6, 15), 180: (6, 30), 360: (6, 60)}
        for days, (count, size) in expected.items():
            plan = BucketPlanner.plan(days, today=TODAY)
            self.assertEqual(plan.bucket_count, count)
            self.assertEqual(plan.bucket_size_days, size)
            self.assertEqual(len(plan.buckets), count)
            self.assertFalse(plan.fallback_applied)

    def test_contiguity(self) -> None:
        for days in BucketPlanner.supported_ranges():
            plan = BucketPlanner.plan(days, today=TODAY)
            span = plan.bucket_count * plan.bucket_size_days
            self.assertEqual(plan.start_date, TODAY - datetime.timedelta(days=span))
            self.assertEqual(plan.end_date, YESTERDAY)
            for prev, nxt in zip(plan.buckets, plan.buckets[1:]):
                self.assertEqual(nxt.start_date, prev.end_date + datetime.timedelta(days=1))
                self.assertEqual(nxt.index, prev.index + 1)
            for bucket in plan.buckets:
                width = (bucket.end_date - bucket.start_date).days + 1
                self.assertEqual(width, plan.bucket_size_days)

    def test_oldest_first(self) -> None:
        plan = BucketPlanner.plan(7, today=TODAY)
        self.assertEqual(plan.buckets[0].index, 0)
        self.assertEqual(plan.buckets[0].start_date, datetime.date(2024, 6, 8))
        self.assertEqual(plan.buckets[-1].index, 6)
        self.assertEqual(plan.buckets[-1].start_date, YESTERDAY)

    def test_today_excluded(self) -> None:
        plan = BucketPlanner.plan(30, today=TODAY)
        self.assertIsNone(BucketPlanner.bucket_index(plan, TODAY))
        self.assertEqual(BucketPlanner.bucket_index(plan, YESTERDAY), 3)
        self.assertEqual(BucketPlanner.bucket_index(plan, plan.start_date), 0)
        before = plan.start_date - datetime.timedelta(days=1)
        self.assertIsNone(BucketPlanner.bucket_index(plan, before))

    def test_fallback_policy(self) -> None:
        with self.assertLogs("algorithms.bucket_planner", level="WARNING"):
            plan = BucketPlanner.plan(45, today=TODAY)
        self.assertTrue(plan.fallback_applied)
        self.assertEqual(plan.requested_days, 45)
        self.assertEqual(plan.days, 7)
        self.assertEqual((plan.bucket_count, plan.bucket_size_days), (7, 1))

    def test_strict_policy(self) -> None:
        with self.assertRaises(InvalidRangeError) as ctx:
            BucketPlanner.plan(45, today=TODAY, policy="strict")
        self.assertEqual(ctx.exception.days, 45)
        plan = BucketPlanner.plan(90, today=TODAY, policy="strict")
        self.assertEqual(plan.bucket_count, 6)

    def test_unknown_policy(self) -> None:
        with self.assertRaises(ValueError):
            BucketPlanner.plan(7, today=TODAY, policy="lenient")

    def test_deterministic(self) -> None:
        self.assertEqual(
            BucketPlanner.plan(180, today=TODAY), BucketPlanner.plan(180, today=TODAY)
        )


if __name__ == "__main__":
    unittest.main()
