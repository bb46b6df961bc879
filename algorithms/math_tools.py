import math
from typing import Iterable, Optional

import numpy as np


class MathTools:
    """Numeric helpers shared by the aggregation and scaling code."""

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @staticmethod
    def as_number(value: object) -> Optional[float]:
        """Return ``value`` as a finite float or ``None``."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        return number

    @staticmethod
    def mean(values: Iterable[float]) -> Optional[float]:
        """Arithmetic mean, ``None`` for an empty input or a non-finite result."""
        data = list(values)
        if not data:
            return None
        with np.errstate(over="ignore", invalid="ignore"):
            result = np.mean(np.asarray(data, dtype=float))
        return MathTools.as_number(float(result))

    @staticmethod
    def round_value(value: float, digits: int = 2) -> float:
        """Round half away from zero to ``digits`` decimals."""
        if digits < 0:
            raise ValueError("digits must be non-negative")
        factor = 10 ** digits
        scaled = abs(value) * factor
        if not math.isfinite(scaled):
            return value
        rounded = math.floor(scaled + 0.5) / factor
        return math.copysign(rounded, value) if rounded else 0.0

    @staticmethod
    def linspace(start: float, stop: float, count: int) -> list[float]:
        """Return ``count`` evenly spaced values from ``start`` to ``stop``."""
        if count < 2:
            raise ValueError("count must be at least 2")
        return [float(v) for v in np.linspace(start, stop, count)]
