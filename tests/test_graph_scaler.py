import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import Bucket, GraphScaler


def series(*values):
    start = datetime.date(2024, 1, 1)
    return [
        Bucket(index=i, start_date=start, end_date=start, value=v)
        for i, v in enumerate(values)
    ]


class GraphScalerTestCase(unittest.TestCase):
    def test_flat_series_is_padded(self) -> None:
        scale = GraphScaler.scale(series(50.0, 50.0, 50.0, 50.0, 50.0))
        self.assertTrue(scale.padded)
        self.assertEqual(scale.actual_min, 50.0)
        self.assertLess(scale.display_min, 50.0)
        self.assertGreater(scale.display_max, 50.0)
        self.assertEqual(len(scale.ticks), GraphScaler.TICK_COUNT)
        for a, b in zip(scale.ticks, scale.ticks[1:]):
            self.assertLess(a, b)

    def test_huge_flat_series_stays_finite(self) -> None:
        scale = GraphScaler.scale(series(1e307))
        self.assertTrue(scale.padded)
        self.assertLess(scale.display_min, 1e307)
        self.assertEqual(len(scale.ticks), GraphScaler.TICK_COUNT)

    def test_padding_tiers(self) -> None:
        self.assertAlmostEqual(GraphScaler.padding(200.0), 40.0)
        self.assertAlmostEqual(GraphScaler.padding(-150.0), 30.0)
        self.assertAlmostEqual(GraphScaler.padding(50.0), 5.0)
        self.assertAlmostEqual(GraphScaler.padding(5.0), 1.0)
        self.assertAlmostEqual(GraphScaler.padding(0.0), 1.0)

    def test_zero_series(self) -> None:
        scale = GraphScaler.scale(series(0.0))
        self.assertEqual((scale.display_min, scale.display_max), (-1.0, 1.0))
        self.assertEqual(scale.ticks[0], -1.0)
        self.assertEqual(scale.ticks[-1], 1.0)

    def test_varied_series_uses_data_range(self) -> None:
        scale = GraphScaler.scale(series(10.0, None, 30.0, 20.0))
        self.assertFalse(scale.padded)
        self.assertEqual((scale.display_min, scale.display_max), (10.0, 30.0))
        self.assertEqual(scale.ticks, [10.0, 14.0, 18.0, 22.0, 26.0, 30.0])

    def test_no_data(self) -> None:
        self.assertIsNone(GraphScaler.scale([]))
        self.assertIsNone(GraphScaler.scale(series(None, None)))


if __name__ == "__main__":
    unittest.main()
