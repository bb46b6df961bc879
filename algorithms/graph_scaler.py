from __future__ import annotations

import math
from typing import Iterable, Optional

from .math_tools import MathTools
from .models import Bucket, GraphScale


class GraphScaler:
    """Compute the display range and y-axis ticks for a progress series."""

    TICK_COUNT = 6

    @staticmethod
    def padding(value: float) -> float:
        """Padding applied around a flat series at ``value``."""
        magnitude = abs(value)
        if magnitude >= 100:
            return magnitude * 0.2
        if magnitude >= 10:
            return magnitude * 0.1
        return max(magnitude * 0.1, 1.0)

    @classmethod
    def scale(cls, series: Iterable[Bucket]) -> Optional[GraphScale]:
        """Return the scale for ``series`` or ``None`` when nothing can be drawn."""
        values = [b.value for b in series if b.value is not None]
        if not values:
            return None
        actual_min = min(values)
        actual_max = max(values)
        padded = actual_min == actual_max
        if padded:
            pad = cls.padding(actual_min)
            display_min, display_max = actual_min - pad, actual_max + pad
            if not (math.isfinite(display_min) and math.isfinite(display_max)):
                display_min, display_max = actual_min, actual_max
        else:
            display_min, display_max = actual_min, actual_max
        ticks = MathTools.linspace(display_min, display_max, cls.TICK_COUNT)
        if not all(math.isfinite(t) for t in ticks):
            ticks = sorted({display_min, display_max})
        return GraphScale(
            actual_min=actual_min,
            actual_max=actual_max,
            display_min=display_min,
            display_max=display_max,
            ticks=ticks,
            padded=padded,
        )
