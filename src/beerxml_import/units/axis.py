"""Chart axis helpers for temperature readings."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from beerxml_import.schema import UnitSystem

DEFAULT_RANGES: dict[str, tuple[float, float]] = {
    "imperial": (60.0, 80.0),
    "metric": (15.0, 27.0),
}
ABSOLUTE_BOUNDS: dict[str, tuple[float, float]] = {
    "imperial": (32.0, 100.0),
    "metric": (0.0, 38.0),
}
MIN_BUFFER: dict[str, float] = {"imperial": 2.0, "metric": 1.0}


@dataclass(frozen=True)
class AxisRange:
    min_value: float
    max_value: float


def get_temperature_axis_config(
    temperatures: Iterable[float],
    unit_system: UnitSystem,
    buffer_percent: float = 5,
) -> AxisRange:
    """Return a padded [min, max] range for plotting temperatures.

    The padding is ``buffer_percent`` of the observed range, never less than
    2 degrees F or 1 degree C, and the result stays within freezing point and
    a high brewing temperature for the unit system.
    """
    values = [float(t) for t in temperatures if t is not None and math.isfinite(float(t))]
    if not values:
        low, high = DEFAULT_RANGES[unit_system]
        return AxisRange(min_value=low, max_value=high)

    low, high = min(values), max(values)
    buffer = max((high - low) * (buffer_percent / 100), MIN_BUFFER[unit_system])
    absolute_min, absolute_max = ABSOLUTE_BOUNDS[unit_system]
    return AxisRange(
        min_value=max(absolute_min, math.floor(low - buffer)),
        max_value=min(absolute_max, math.ceil(high + buffer)),
    )
