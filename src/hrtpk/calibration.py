# src/hrtpk/calibration.py
"""
Lab-draw calibration of the E2 curve.

Each usable lab result gives a ratio observed / predicted at its draw time.
The ratios become a time-varying multiplier r(t) that the caller applies to
the simulated E2 concentration. CPA has no lab branch.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Sequence

import numpy as np

from .interpolation import interpolate_concentration_e2
from .types import LabResult, LabUnit, SimulationResult

logger = logging.getLogger(__name__)

PMOL_L_PER_PG_ML = 3.671
RATIO_MIN = 0.1
RATIO_MAX = 10.0
MIN_PREDICTED_PG_ML = 0.01


def convert_to_pg_ml(value: float, unit: LabUnit) -> float:
    """Lab value in pg/mL (pmol/L is divided by 3.671)."""
    if LabUnit(unit) is LabUnit.PMOL_L:
        return value / PMOL_L_PER_PG_ML
    return value


def _clamp_ratio(r: float) -> float:
    return min(RATIO_MAX, max(RATIO_MIN, r))


def _nearest_sample_e2(sim: SimulationResult, hour: float) -> float:
    t = sim.time_h
    if t.size == 0 or not math.isfinite(hour):
        return math.nan
    idx = int(np.searchsorted(t, hour))
    if idx <= 0:
        return float(sim.conc_pg_ml_e2[0])
    if idx >= t.size:
        return float(sim.conc_pg_ml_e2[-1])
    if hour - t[idx - 1] <= t[idx] - hour:
        idx -= 1
    return float(sim.conc_pg_ml_e2[idx])


def predicted_e2(sim: SimulationResult, hour: float) -> float:
    """Model E2 at a draw time; nearest grid sample if interpolation has no answer."""
    value = interpolate_concentration_e2(sim, hour)
    if value is None or math.isnan(value):
        value = _nearest_sample_e2(sim, hour)
    return value


def calibration_points(sim: Optional[SimulationResult],
                       lab_results: Sequence[LabResult]) -> list[tuple[float, float]]:
    """Validated (time_h, ratio) pairs sorted by time."""
    if sim is None:
        return []

    points: list[tuple[float, float]] = []
    for lab in lab_results:
        observed = convert_to_pg_ml(lab.conc_value, lab.unit)
        predicted = predicted_e2(sim, lab.time_h)
        if not (math.isfinite(observed) and math.isfinite(predicted)):
            logger.debug("Skipping lab %s: non-finite value", lab.id)
            continue
        if predicted <= MIN_PREDICTED_PG_ML or observed <= 0:
            logger.debug("Skipping lab %s: predicted %.4g, observed %.4g pg/mL",
                         lab.id, predicted, observed)
            continue
        points.append((float(lab.time_h), _clamp_ratio(observed / predicted)))

    points.sort(key=lambda p: p[0])
    return points


def create_calibration_interpolator(sim: Optional[SimulationResult],
                                    lab_results: Sequence[LabResult]) -> Callable[[float], float]:
    """
    Build r(hour) from lab draws.

      0 usable points : r(t) = 1
      1 point         : r(t) = that ratio everywhere
      2+ points       : piecewise linear between draws, flat beyond the
                        first/last draw, always within [0.1, 10]
    """
    points = calibration_points(sim, lab_results)

    if not points:
        return lambda hour: 1.0

    if len(points) == 1:
        ratio = points[0][1]
        return lambda hour: ratio

    times = np.array([p[0] for p in points], dtype=float)
    ratios = np.array([p[1] for p in points], dtype=float)
    logger.debug("Calibration built from %d lab points", len(points))

    def calibration(hour: float) -> float:
        if hour is None or math.isnan(hour):
            return 1.0
        return _clamp_ratio(float(np.interp(hour, times, ratios)))

    return calibration


def calibrated_concentration_e2(sim: Optional[SimulationResult],
                                calibration: Callable[[float], float], hour: float) -> float:
    """Simulated E2 at *hour* scaled by the calibration ratio (0 without data)."""
    base = interpolate_concentration_e2(sim, hour)
    if base is None:
        return 0.0
    return base * calibration(hour)
