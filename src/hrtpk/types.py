# src/hrtpk/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

import numpy as np

# All time is in HOURS since the Unix epoch. Masses are in mg.


class Analyte(str, Enum):
    """What a lab can measure and the engine reports separately."""
    E2 = "E2"
    CPA = "CPA"


class Route(str, Enum):
    INJECTION = "injection"
    PATCH_APPLY = "patchApply"
    PATCH_REMOVE = "patchRemove"
    GEL = "gel"
    ORAL = "oral"
    SUBLINGUAL = "sublingual"


class Ester(str, Enum):
    E2 = "E2"    # estradiol
    EB = "EB"    # estradiol benzoate
    EV = "EV"    # estradiol valerate
    EC = "EC"    # estradiol cypionate
    EN = "EN"    # estradiol enanthate
    CPA = "CPA"  # cyproterone acetate

    @property
    def analyte(self) -> Analyte:
        return Analyte.CPA if self is Ester.CPA else Analyte.E2


class ExtraKey(str, Enum):
    """Keys of the sparse route-modifier bag carried on a DoseEvent."""
    CONCENTRATION_MG_ML = "concentrationMGmL"
    AREA_CM2 = "areaCM2"
    RELEASE_RATE_UG_PER_DAY = "releaseRateUGPerDay"
    SUBLINGUAL_THETA = "sublingualTheta"
    SUBLINGUAL_TIER = "sublingualTier"
    GEL_SITE = "gelSite"


class LabUnit(str, Enum):
    PG_ML = "pg/ml"
    PMOL_L = "pmol/l"


@dataclass(frozen=True)
class DoseEvent:
    """
    A single administration (or patch removal).

    id       : caller-owned identifier
    route    : how the dose is given
    time_h   : hours since the epoch
    dose_mg  : mass of the compound as taken (NOT E2-equivalent);
               ignored for patchRemove and release-rate patches
    ester    : compound form
    extras   : sparse route modifiers keyed by ExtraKey values
    """
    id: str
    route: Route
    time_h: float
    dose_mg: float
    ester: Ester = Ester.E2
    extras: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "route", Route(self.route))
        object.__setattr__(self, "ester", Ester(self.ester))
        # Accept ExtraKey members as keys, but always store wire names.
        normalized = {(k.value if isinstance(k, ExtraKey) else str(k)): v
                      for k, v in dict(self.extras).items()}
        object.__setattr__(self, "extras", MappingProxyType(normalized))


@dataclass(frozen=True)
class LabResult:
    id: str
    time_h: float
    conc_value: float
    unit: LabUnit

    def __post_init__(self):
        object.__setattr__(self, "unit", LabUnit(self.unit))


@dataclass(frozen=True)
class PKParams:
    """
    Rate constants (1/h) and bioavailability for one dose event.

    frac_fast : share of the dose routed through the fast branch
    k1_fast   : absorption constant of the fast branch
    k1_slow   : absorption constant of the slow branch
    k2        : ester hydrolysis constant (0 when the chain is one-compartment)
    k3        : elimination constant
    F         : overall bioavailability multiplier (already E2-normalized)
    F_fast    : bioavailability of the fast branch
    F_slow    : bioavailability of the slow branch
    rate_mg_h : zero-order input rate for release-rate patches
    """
    frac_fast: float = 0.0
    k1_fast: float = 0.0
    k1_slow: float = 0.0
    k2: float = 0.0
    k3: float = 0.0
    F: float = 0.0
    F_fast: float = 0.0
    F_slow: float = 0.0
    rate_mg_h: float = 0.0


def _frozen(a) -> np.ndarray:
    arr = np.array(a, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class SimulationResult:
    """
    Output of one simulation run.

    time_h          : grid (h), sorted and unique
    conc_pg_ml      : combined display curve, E2 pg/mL + CPA ng/mL * 1000
    conc_pg_ml_e2   : E2 concentration (pg/mL)
    conc_pg_ml_cpa  : CPA concentration in ng/mL (the name is kept for
                      parity with the combined/E2 series)
    auc             : trapezoid integral of conc_pg_ml over time_h (pg*h/mL)
    """
    time_h: np.ndarray
    conc_pg_ml: np.ndarray
    conc_pg_ml_e2: np.ndarray
    conc_pg_ml_cpa: np.ndarray
    auc: float

    def __post_init__(self):
        for name in ("time_h", "conc_pg_ml", "conc_pg_ml_e2", "conc_pg_ml_cpa"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))
        object.__setattr__(self, "auc", float(self.auc))
