# src/hrtpk/metrics.py
import numpy as np
from typing import Optional, Tuple, Union

from .interpolation import interpolate_series
from .types import Analyte, SimulationResult

COMBINED = "combined"

def series(sim: SimulationResult, analyte: Union[Analyte, str] = Analyte.E2) -> Tuple[np.ndarray, np.ndarray]:
    """(t, C) for E2 (pg/mL), CPA (ng/mL) or the combined display curve."""
    if analyte == COMBINED:
        return sim.time_h, sim.conc_pg_ml
    if Analyte(analyte) is Analyte.CPA:
        return sim.time_h, sim.conc_pg_ml_cpa
    return sim.time_h, sim.conc_pg_ml_e2

def _window(sim, analyte, start_h: Optional[float], end_h: Optional[float]):
    t, C = series(sim, analyte)
    mask = np.ones_like(t, dtype=bool)
    if start_h is not None:
        mask &= t >= start_h
    if end_h is not None:
        mask &= t <= end_h
    return t[mask], C[mask]

def cmax_tmax(sim: SimulationResult, analyte=Analyte.E2,
              start_h: Optional[float] = None, end_h: Optional[float] = None) -> Tuple[float, float]:
    """Peak concentration and its time; (nan, nan) for an empty window."""
    t, C = _window(sim, analyte, start_h, end_h)
    if C.size == 0:
        return float("nan"), float("nan")
    idx = int(np.argmax(C))
    return float(C[idx]), float(t[idx])

def cmin_tmin(sim: SimulationResult, analyte=Analyte.E2,
              start_h: Optional[float] = None, end_h: Optional[float] = None) -> Tuple[float, float]:
    t, C = _window(sim, analyte, start_h, end_h)
    if C.size == 0:
        return float("nan"), float("nan")
    idx = int(np.argmin(C))
    return float(C[idx]), float(t[idx])

def auc_between(sim: SimulationResult, analyte=Analyte.E2,
                start_h: Optional[float] = None, end_h: Optional[float] = None) -> float:
    """Trapezoid AUC over the grid samples inside the window (conc*h)."""
    t, C = _window(sim, analyte, start_h, end_h)
    if t.size < 2:
        return 0.0
    return float(np.trapezoid(C, t))

def cavg(sim: SimulationResult, analyte=Analyte.E2,
         start_h: Optional[float] = None, end_h: Optional[float] = None) -> float:
    """
    Time-weighted average concentration over the window. The grid is not
    uniform around dose times, so a plain mean of the samples would be biased.
    """
    t, C = _window(sim, analyte, start_h, end_h)
    if t.size == 0:
        return float("nan")
    span = float(t[-1] - t[0])
    if span <= 0:
        return float(C[0])
    return float(np.trapezoid(C, t)) / span

def trough_before(sim: SimulationResult, hour: float, analyte=Analyte.E2) -> Optional[float]:
    """
    Concentration just before *hour* (typically the next dose time).
    Every event time is a grid sample, so the trough is the last sample
    strictly before it; falls back to the interpolated value.
    """
    t, C = series(sim, analyte)
    idx = int(np.searchsorted(t, hour, side="left"))
    if idx == 0:
        return interpolate_series(t, C, hour)
    return float(C[idx - 1])

def peak_to_trough_ratio(sim: SimulationResult, analyte=Analyte.E2,
                         start_h: Optional[float] = None, end_h: Optional[float] = None) -> float:
    """
    Peak-to-Trough Ratio (PTR) = Cmax / Cmin over the window.
    """
    t, C = _window(sim, analyte, start_h, end_h)
    if C.size == 0:
        return float("nan")
    cmax_val = float(np.max(C))
    cmin_val = float(np.min(C))
    if cmin_val <= 0:
        return float("inf")
    return cmax_val / cmin_val

def fluctuation_index(sim: SimulationResult, analyte=Analyte.E2,
                      start_h: Optional[float] = None, end_h: Optional[float] = None) -> float:
    """
    Fluctuation Index (FI) = (Cmax - Cmin) / Cavg over the window.
    """
    t, C = _window(sim, analyte, start_h, end_h)
    if C.size == 0:
        return float("nan")
    avg = cavg(sim, analyte, start_h, end_h)
    if avg == 0.0:
        return float("inf")
    return (float(np.max(C)) - float(np.min(C))) / avg
