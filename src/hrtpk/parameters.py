# src/hrtpk/parameters.py
"""
Per-event parameter resolution.

Maps (route, ester, route modifiers) to the rate constants and
bioavailability used by the closed-form solvers. Every function here is
total: unknown or malformed inputs fall back to the route's defaults, so a
bad extras bag can never push NaN into a simulation.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union

import numpy as np

from .types import DoseEvent, Ester, ExtraKey, PKParams, Route


# --------------------------
# Constant tables
# --------------------------
MOLECULAR_WEIGHT = {
    Ester.E2: 272.38,
    Ester.EB: 376.50,
    Ester.EV: 356.50,
    Ester.EC: 396.58,
    Ester.EN: 384.56,
    Ester.CPA: 416.94,
}

K_CLEAR = 0.41             # E2 elimination, non-depot routes (1/h)
K_CLEAR_INJECTION = 0.041  # apparent elimination after an IM/SC depot (1/h)
DEPOT_K1_CORR = 1.0

# Two-part depot: share of the dose in the fast-releasing pool and the
# absorption constant of each pool.
DEPOT_FRAC_FAST = {Ester.EB: 0.90, Ester.EV: 0.40, Ester.EC: 0.229164549, Ester.EN: 0.05, Ester.E2: 1.0}
DEPOT_K1_FAST = {Ester.EB: 0.144, Ester.EV: 0.0216, Ester.EC: 0.005035046, Ester.EN: 0.0010, Ester.E2: 0.0}
DEPOT_K1_SLOW = {Ester.EB: 0.114, Ester.EV: 0.0138, Ester.EC: 0.004510574, Ester.EN: 0.0050, Ester.E2: 0.0}

FORMATION_FRACTION = {Ester.EB: 0.1092, Ester.EV: 0.0623, Ester.EC: 0.1173, Ester.EN: 0.12, Ester.E2: 1.0}
FORMATION_FRACTION_DEFAULT = 0.08

ESTER_K2 = {Ester.EB: 0.090, Ester.EV: 0.070, Ester.EC: 0.045, Ester.EN: 0.015, Ester.E2: 0.0}

ORAL_KA_E2 = 0.32
ORAL_KA_EV = 0.05
ORAL_BIOAVAILABILITY = 0.03
SUBLINGUAL_KA_FAST = 1.8

GEL_KA = 0.022
PATCH_KA_FIRST_ORDER = 0.0075

# Cyproterone acetate is only modelled as an oral tablet and is reported in
# its own pool, so none of the E2 tables above apply to it.
CPA_BIOAVAILABILITY = 0.7
CPA_KA = 1.0
CPA_KE = 0.017


class SublingualTierName(str, Enum):
    QUICK = "quick"
    CASUAL = "casual"
    STANDARD = "standard"
    STRICT = "strict"


# Wire tier index -> tier. Order matters; never derive it from a dict.
SL_TIER_ORDER = (
    SublingualTierName.QUICK,
    SublingualTierName.CASUAL,
    SublingualTierName.STANDARD,
    SublingualTierName.STRICT,
)

@dataclass(frozen=True)
class TierPreset:
    theta: float
    hold_min: float

SUBLINGUAL_TIERS = {
    SublingualTierName.QUICK: TierPreset(theta=0.01, hold_min=2),
    SublingualTierName.CASUAL: TierPreset(theta=0.04, hold_min=5),
    SublingualTierName.STANDARD: TierPreset(theta=0.11, hold_min=10),
    SublingualTierName.STRICT: TierPreset(theta=0.18, hold_min=15),
}
DEFAULT_SUBLINGUAL_TIER = SublingualTierName.STANDARD


class GelSite(str, Enum):
    ARM = "arm"
    THIGH = "thigh"
    SCROTAL = "scrotal"


GEL_SITE_ORDER = (GelSite.ARM, GelSite.THIGH, GelSite.SCROTAL)
GEL_SITE_BIOAVAILABILITY = {
    GelSite.ARM: 0.05,
    GelSite.THIGH: 0.05,
    GelSite.SCROTAL: 0.40,
}
DEFAULT_GEL_SITE = GelSite.ARM


# --------------------------
# Route modifiers
# --------------------------
@dataclass(frozen=True)
class SublingualTheta:
    theta: float

@dataclass(frozen=True)
class SublingualTier:
    tier: SublingualTierName

@dataclass(frozen=True)
class PatchRelease:
    release_rate_ug_per_day: float

@dataclass(frozen=True)
class GelApplication:
    site: GelSite


RouteModifier = Union[SublingualTheta, SublingualTier, PatchRelease, GelApplication]


def _finite_number(v) -> Optional[float]:
    if isinstance(v, bool) or not isinstance(v, (int, float, np.integer, np.floating)):
        return None
    x = float(v)
    return x if math.isfinite(x) else None


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def parse_route_modifier(route: Route, extras: Optional[Mapping] = None) -> Optional[RouteModifier]:
    """Pick the modifier relevant to *route* out of a sparse extras bag."""
    if not extras:
        return None
    extras = {(k.value if isinstance(k, ExtraKey) else k): v for k, v in extras.items()}

    if route is Route.SUBLINGUAL:
        theta = _finite_number(extras.get(ExtraKey.SUBLINGUAL_THETA.value))
        if theta is not None:
            return SublingualTheta(theta=min(1.0, max(0.0, theta)))
        tier = _finite_number(extras.get(ExtraKey.SUBLINGUAL_TIER.value))
        if tier is not None:
            idx = _round_half_up(tier)
            name = SL_TIER_ORDER[idx] if 0 <= idx < len(SL_TIER_ORDER) else DEFAULT_SUBLINGUAL_TIER
            return SublingualTier(tier=name)
        return None

    if route is Route.PATCH_APPLY:
        rate = _finite_number(extras.get(ExtraKey.RELEASE_RATE_UG_PER_DAY.value))
        if rate is not None and rate > 0:
            return PatchRelease(release_rate_ug_per_day=rate)
        return None

    if route is Route.GEL:
        site = _finite_number(extras.get(ExtraKey.GEL_SITE.value))
        if site is not None:
            idx = _round_half_up(site)
            return GelApplication(site=GEL_SITE_ORDER[idx] if 0 <= idx < len(GEL_SITE_ORDER) else DEFAULT_GEL_SITE)
        return None

    return None


def event_modifier(event: DoseEvent) -> Optional[RouteModifier]:
    return parse_route_modifier(event.route, event.extras)


# --------------------------
# Bioavailability
# --------------------------
def get_to_e2_factor(ester: Ester) -> float:
    """Mass of E2 delivered per mg of ester (1.0 for E2 itself and for CPA)."""
    if ester is Ester.E2 or ester is Ester.CPA:
        return 1.0
    return MOLECULAR_WEIGHT[Ester.E2] / MOLECULAR_WEIGHT[ester]


def e2_equivalent_mg(event: DoseEvent) -> float:
    """Dose expressed as mg of E2 (display helper)."""
    return event.dose_mg * get_to_e2_factor(event.ester)


def sublingual_theta(modifier: Optional[RouteModifier]) -> float:
    if isinstance(modifier, SublingualTheta):
        return modifier.theta
    if isinstance(modifier, SublingualTier):
        return SUBLINGUAL_TIERS[modifier.tier].theta
    return SUBLINGUAL_TIERS[DEFAULT_SUBLINGUAL_TIER].theta


def _gel_site(modifier: Optional[RouteModifier]) -> GelSite:
    return modifier.site if isinstance(modifier, GelApplication) else DEFAULT_GEL_SITE


def _sublingual_branch_bioavailability(ester: Ester) -> tuple[float, float]:
    """(F_fast, F_slow): mucosal uptake skips first pass, the swallowed rest does not."""
    to_e2 = get_to_e2_factor(ester)
    return to_e2, ORAL_BIOAVAILABILITY * to_e2


def _bioavailability(route: Route, ester: Ester, modifier: Optional[RouteModifier]) -> float:
    # Single source of truth for F; resolve_params and
    # get_bioavailability_multiplier both land here.
    if route is Route.PATCH_REMOVE:
        return 0.0
    if ester is Ester.CPA:
        return CPA_BIOAVAILABILITY

    to_e2 = get_to_e2_factor(ester)
    if route is Route.INJECTION:
        return FORMATION_FRACTION.get(ester, FORMATION_FRACTION_DEFAULT) * to_e2
    if route is Route.ORAL:
        return ORAL_BIOAVAILABILITY * to_e2
    if route is Route.SUBLINGUAL:
        theta = sublingual_theta(modifier)
        f_fast, f_slow = _sublingual_branch_bioavailability(ester)
        return theta * f_fast + (1.0 - theta) * f_slow
    if route is Route.GEL:
        return GEL_SITE_BIOAVAILABILITY[_gel_site(modifier)] * to_e2
    if route is Route.PATCH_APPLY:
        return 1.0 * to_e2
    return 0.0


def get_bioavailability_multiplier(route: Route, ester: Ester, extras: Optional[Mapping] = None) -> float:
    """
    Fraction of the taken mass that reaches the circulation as E2
    (or as CPA for cyproterone acetate).
    """
    route, ester = Route(route), Ester(ester)
    return _bioavailability(route, ester, parse_route_modifier(route, extras))


def _oral_ka(ester: Ester) -> float:
    return ORAL_KA_EV if ester is Ester.EV else ORAL_KA_E2


# --------------------------
# Parameter resolution
# --------------------------
def resolve_params(event: DoseEvent) -> PKParams:
    """Rate constants and bioavailability for one event. Never raises."""
    route, ester = event.route, event.ester
    modifier = event_modifier(event)
    F = _bioavailability(route, ester, modifier)

    if route is Route.PATCH_REMOVE:
        return PKParams()

    if ester is Ester.CPA:
        return PKParams(frac_fast=1.0, k1_fast=CPA_KA, k3=CPA_KE, F=F, F_fast=F, F_slow=F)

    k3 = K_CLEAR_INJECTION if route is Route.INJECTION else K_CLEAR

    if route is Route.INJECTION:
        return PKParams(
            frac_fast=DEPOT_FRAC_FAST.get(ester, 1.0),
            k1_fast=DEPOT_K1_FAST.get(ester, 0.0) * DEPOT_K1_CORR,
            k1_slow=DEPOT_K1_SLOW.get(ester, 0.0) * DEPOT_K1_CORR,
            k2=ESTER_K2.get(ester, 0.0),
            k3=k3, F=F, F_fast=F, F_slow=F,
        )

    if route is Route.SUBLINGUAL:
        f_fast, f_slow = _sublingual_branch_bioavailability(ester)
        return PKParams(
            frac_fast=sublingual_theta(modifier),
            k1_fast=SUBLINGUAL_KA_FAST,
            k1_slow=_oral_ka(ester),
            # Only EV needs hydrolysis after absorption.
            k2=ESTER_K2[Ester.EV] if ester is Ester.EV else 0.0,
            k3=k3, F=F, F_fast=f_fast, F_slow=f_slow,
        )

    if route is Route.GEL:
        return PKParams(frac_fast=1.0, k1_fast=GEL_KA, k3=k3, F=F, F_fast=F, F_slow=F)

    if route is Route.PATCH_APPLY:
        if isinstance(modifier, PatchRelease):
            rate_mg_h = (modifier.release_rate_ug_per_day / 24000.0) * F
            return PKParams(frac_fast=1.0, k3=k3, F=F, F_fast=F, F_slow=F, rate_mg_h=rate_mg_h)
        return PKParams(frac_fast=1.0, k1_fast=PATCH_KA_FIRST_ORDER, k3=k3, F=F, F_fast=F, F_slow=F)

    # Route.ORAL
    return PKParams(frac_fast=1.0, k1_fast=_oral_ka(ester), k3=k3, F=F, F_fast=F, F_slow=F)


# --------------------------
# Sublingual hold time <-> theta
# --------------------------
def _tier_points() -> tuple[np.ndarray, np.ndarray]:
    presets = sorted(SUBLINGUAL_TIERS.values(), key=lambda p: p.hold_min)
    return (np.array([p.hold_min for p in presets], dtype=float),
            np.array([p.theta for p in presets], dtype=float))


def _interp_extrapolate(x: float, xp: np.ndarray, fp: np.ndarray) -> float:
    """np.interp inside the table, straight-line continuation of the end segments outside."""
    if x < xp[0]:
        slope = (fp[1] - fp[0]) / ((xp[1] - xp[0]) or 1.0)
        return float(fp[0] + (x - xp[0]) * slope)
    if x > xp[-1]:
        slope = (fp[-1] - fp[-2]) / ((xp[-1] - xp[-2]) or 1.0)
        return float(fp[-1] + (x - xp[-1]) * slope)
    return float(np.interp(x, xp, fp))


def theta_from_hold(hold_min: float) -> float:
    """Fast-pathway fraction for a sublingual hold of *hold_min* minutes."""
    if hold_min <= 0:
        return 0.0
    holds, thetas = _tier_points()
    theta = _interp_extrapolate(max(1.0, float(hold_min)), holds, thetas)
    return min(1.0, max(0.0, theta))


def hold_from_theta(theta: float) -> float:
    """Inverse of theta_from_hold (minutes, at least 1)."""
    holds, thetas = _tier_points()
    return max(1.0, _interp_extrapolate(float(theta), thetas, holds))
