# src/hrtpk/interpolation.py
import math
from typing import Optional

import numpy as np

from .types import SimulationResult


def interpolate_series(time_h: np.ndarray, values: np.ndarray, hour: float) -> Optional[float]:
    """
    Linear interpolation on a sorted grid.

    Clamps to the first/last sample outside the grid and returns the stored
    sample on an exact hit. None for an empty grid or a non-finite hour.
    """
    n = len(time_h)
    if n == 0 or hour is None or not math.isfinite(hour):
        return None
    if hour <= time_h[0]:
        return float(values[0])
    if hour >= time_h[-1]:
        return float(values[-1])

    hi = int(np.searchsorted(time_h, hour, side="left"))
    if time_h[hi] == hour:
        return float(values[hi])
    lo = hi - 1

    t0, t1 = time_h[lo], time_h[hi]
    c0, c1 = values[lo], values[hi]
    if t1 == t0:
        return float(c0)
    return float(c0 + (c1 - c0) * (hour - t0) / (t1 - t0))


def interpolate_concentration(sim: Optional[SimulationResult], hour: float) -> Optional[float]:
    """Combined curve (pg/mL) at *hour*."""
    if sim is None:
        return None
    return interpolate_series(sim.time_h, sim.conc_pg_ml, hour)


def interpolate_concentration_e2(sim: Optional[SimulationResult], hour: float) -> Optional[float]:
    """E2 (pg/mL) at *hour*."""
    if sim is None:
        return None
    return interpolate_series(sim.time_h, sim.conc_pg_ml_e2, hour)


def interpolate_concentration_cpa(sim: Optional[SimulationResult], hour: float) -> Optional[float]:
    """CPA (ng/mL) at *hour*."""
    if sim is None:
        return None
    return interpolate_series(sim.time_h, sim.conc_pg_ml_cpa, hour)
