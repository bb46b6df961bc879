import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import BucketPlanner, PerformanceRecord, SeriesAggregator


TODAY = datetime.date(2024, 6, 15)


def record(day: datetime.date, name: str = "Bench Press", **fields) -> PerformanceRecord:
    return PerformanceRecord(session_id=1, exercise_name=name, performed_at=day, **fields)


class SeriesAggregatorTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.aggregator = SeriesAggregator()

    def test_round_trip_ninety_days(self) -> None:
        plan = BucketPlanner.plan(90, today=TODAY)
        records = [
            record(plan.start_date + datetime.timedelta(days=offset), reps=value)
            for offset, value in [(0, 10), (16, 20), (32, 30)]
        ]
        series = self.aggregator.aggregate(records, {"Bench Press"}, plan, "reps")
        self.assertEqual([b.index for b in series], [0, 1, 2])
        self.assertEqual([b.value for b in series], [10.0, 20.0, 30.0])
        self.assertEqual(series[1].start_date, plan.start_date + datetime.timedelta(days=15))

    def test_mean_and_rounding(self) -> None:
        plan = BucketPlanner.plan(7, today=TODAY)
        day = TODAY - datetime.timedelta(days=1)
        records = [record(day, weight=w) for w in (100.0, 100.0, 101.0)]
        series = self.aggregator.aggregate(records, {"Bench Press"}, plan, "weight")
        self.assertEqual(len(series), 1)
        self.assertEqual(series[0].index, 6)
        self.assertEqual(series[0].value, 100.33)

    def test_integer_rounding(self) -> None:
        plan = BucketPlanner.plan(7, today=TODAY)
        day = TODAY - datetime.timedelta(days=2)
        records = [record(day, reps=r) for r in (5, 6)]
        series = SeriesAggregator(round_digits=0).aggregate(records, {"Bench Press"}, plan, "reps")
        self.assertEqual(series[0].value, 6.0)

    def test_filters_names_dates_and_nulls(self) -> None:
        plan = BucketPlanner.plan(7, today=TODAY)
        yesterday = TODAY - datetime.timedelta(days=1)
        records = [
            record(yesterday, reps=5),
            record(yesterday, name="Squat", reps=50),
            record(TODAY, reps=50),
            record(plan.start_date - datetime.timedelta(days=1), reps=50),
            record(yesterday, weight=80.0),
        ]
        series = self.aggregator.aggregate(records, {"Bench Press"}, plan, "reps")
        self.assertEqual([(b.index, b.value) for b in series], [(6, 5.0)])

    def test_empty_input(self) -> None:
        plan = BucketPlanner.plan(30, today=TODAY)
        self.assertEqual(self.aggregator.aggregate([], {"Bench Press"}, plan, "reps"), [])

    def test_fill_modes(self) -> None:
        plan = BucketPlanner.plan(30, today=TODAY)
        records = [record(TODAY - datetime.timedelta(days=3), reps=8)]
        null_series = self.aggregator.aggregate(records, {"Bench Press"}, plan, "reps", fill="null")
        self.assertEqual([b.value for b in null_series], [None, None, None, 8.0])
        zero_series = SeriesAggregator(fill="zero").aggregate(records, {"Bench Press"}, plan, "reps")
        self.assertEqual([b.value for b in zero_series], [0.0, 0.0, 0.0, 8.0])
        with self.assertRaises(ValueError):
            self.aggregator.aggregate(records, {"Bench Press"}, plan, "reps", fill="spline")

    def test_huge_values_do_not_overflow(self) -> None:
        plan = BucketPlanner.plan(7, today=TODAY)
        day = TODAY - datetime.timedelta(days=1)
        series = self.aggregator.aggregate([record(day, weight=1e307)], {"Bench Press"}, plan, "weight")
        self.assertEqual([(b.index, b.value) for b in series], [(6, 1e307)])

        records = [record(day, reps=1e200, weight=1e200)]
        self.assertEqual(
            self.aggregator.aggregate(records, {"Bench Press"}, plan, "reps_x_weight"), []
        )
        series = self.aggregator.aggregate(records, {"Bench Press"}, plan, "reps_x_weight", fill="null")
        self.assertTrue(all(b.value is None for b in series))

    def test_bucket_mean_overflow_is_empty(self) -> None:
        plan = BucketPlanner.plan(7, today=TODAY)
        day = TODAY - datetime.timedelta(days=1)
        records = [record(day, weight=1.7e308), record(day, weight=1.7e308)]
        self.assertEqual(self.aggregator.aggregate(records, {"Bench Press"}, plan, "weight"), [])

    def test_view_reduction(self) -> None:
        plan = BucketPlanner.plan(7, today=TODAY)
        day = TODAY - datetime.timedelta(days=1)
        records = [
            record(day, exercise_id=1, reps=5, weight=100.0),
            record(day, exercise_id=1, reps=5, weight=110.0),
            record(TODAY - datetime.timedelta(days=3), exercise_id=2, reps=10, weight=50.0),
        ]
        series = self.aggregator.aggregate_view(records, {"Bench Press"}, plan, "performance")
        self.assertEqual([(b.index, b.value) for b in series], [(4, 500.0), (6, 550.0)])
        series = self.aggregator.aggregate_view(
            records, {"Bench Press"}, plan, "tonnage", fill="zero"
        )
        self.assertEqual([b.value for b in series], [0.0, 0.0, 0.0, 0.0, 500.0, 0.0, 2100.0])
        with self.assertRaises(ValueError):
            self.aggregator.aggregate_view(records, {"Bench Press"}, plan, "volume")

    def test_input_not_mutated(self) -> None:
        plan = BucketPlanner.plan(7, today=TODAY)
        records = [record(TODAY - datetime.timedelta(days=1), reps=5)]
        snapshot = [r.model_dump() for r in records]
        first = self.aggregator.aggregate(records, {"Bench Press"}, plan, "reps")
        second = self.aggregator.aggregate(records, {"Bench Press"}, plan, "reps")
        self.assertEqual(first, second)
        self.assertEqual([r.model_dump() for r in records], snapshot)
        self.assertTrue(all(b.value is None for b in plan.buckets))


if __name__ == "__main__":
    unittest.main()
