# src/hrtpk/config.py
from __future__ import annotations

import math
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class SimulationConfig:
    """
    Grid and distribution constants used by run_simulation.

    steps           : evenly spaced samples before event times are merged in
    lead_in_h       : hours simulated before the first event
    tail_h          : hours simulated after the last event (14 days)
    vd_e2_l_per_kg  : E2 volume of distribution (L/kg)
    vd_cpa_l_per_kg : CPA volume of distribution (L/kg)
    """
    steps: int = 1000
    lead_in_h: float = 24.0
    tail_h: float = 24.0 * 14
    vd_e2_l_per_kg: float = 2.0
    vd_cpa_l_per_kg: float = 14.0

    def __post_init__(self):
        _validate_positive_int("steps", self.steps)
        if self.steps < 2:
            raise ValueError(f"steps must be >= 2 (got {self.steps}).")
        _validate_non_negative("lead_in_h", self.lead_in_h)
        _validate_non_negative("tail_h", self.tail_h)
        _validate_positive("vd_e2_l_per_kg", self.vd_e2_l_per_kg)
        _validate_positive("vd_cpa_l_per_kg", self.vd_cpa_l_per_kg)

    def with_overrides(self, **changes) -> "SimulationConfig":
        """Return a copy with some fields replaced (validated again)."""
        return replace(self, **changes)


def _validate_positive(name: str, x: float) -> None:
    if not (math.isfinite(x) and x > 0):
        raise ValueError(f"{name} must be > 0 (got {x}).")

def _validate_non_negative(name: str, x: float) -> None:
    if not (math.isfinite(x) and x >= 0):
        raise ValueError(f"{name} must be >= 0 (got {x}).")

def _validate_positive_int(name: str, x: int) -> None:
    if isinstance(x, bool) or not (isinstance(x, int) and x > 0):
        raise ValueError(f"{name} must be a positive integer (got {x}).")


DEFAULT_CONFIG = SimulationConfig()
