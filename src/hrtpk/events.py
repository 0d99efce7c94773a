# src/hrtpk/events.py
from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .models.one_compartment import one_compartment_amount
from .models.patch import first_order_patch_amount, zero_order_patch_amount
from .models.three_compartment import three_compartment_amount
from .parameters import resolve_params
from .types import DoseEvent, Ester, PKParams, Route


def patch_wear_durations(sorted_events: Sequence[DoseEvent]) -> list[float]:
    """
    Wear length (h) of every patchApply in a time-sorted event list.

    A patch is worn until the first patchRemove strictly after it is applied;
    without one the wear is open-ended (inf). Non-apply entries get nan.
    """
    removals = np.array([e.time_h for e in sorted_events if e.route is Route.PATCH_REMOVE], dtype=float)
    removals.sort()

    wear: list[float] = []
    for e in sorted_events:
        if e.route is not Route.PATCH_APPLY:
            wear.append(math.nan)
            continue
        idx = int(np.searchsorted(removals, e.time_h, side="right"))
        wear.append(float(removals[idx] - e.time_h) if idx < removals.size else math.inf)
    return wear


class EventModel:
    """
    Closed-form amount-in-body curve for one dose event.

    amount(time_h) takes absolute hours (scalar or array) and returns mg,
    before division by the volume of distribution.
    """

    def __init__(self, event: DoseEvent, params: PKParams, wear_h: float = math.inf):
        self.event = event
        self.params = params
        self.wear_h = wear_h

    @classmethod
    def from_event(cls, event: DoseEvent, wear_h: float = math.inf) -> "EventModel":
        return cls(event, resolve_params(event), wear_h)

    @property
    def analyte(self):
        return self.event.ester.analyte

    def amount(self, time_h):
        tau = np.asarray(time_h, dtype=float) - self.event.time_h
        A = self._amount_since_dose(tau)
        return float(A) if A.ndim == 0 else A

    def _amount_since_dose(self, tau: np.ndarray) -> np.ndarray:
        e, p = self.event, self.params
        dose = e.dose_mg

        if e.route is Route.PATCH_REMOVE:
            return np.zeros_like(tau)

        # Release-rate patches depend only on the rate; doseMG is 0 for them.
        if e.route is Route.PATCH_APPLY and p.rate_mg_h > 0:
            return zero_order_patch_amount(tau, p.rate_mg_h, p.k3, self.wear_h)

        if not dose > 0:
            return np.zeros_like(tau)

        if e.ester is Ester.CPA:
            return one_compartment_amount(tau, dose, p.F, p.k1_fast, p.k3)

        if e.route is Route.INJECTION:
            dose_fast = dose * p.frac_fast
            dose_slow = dose * (1.0 - p.frac_fast)
            return (three_compartment_amount(tau, dose_fast, p.F, p.k1_fast, p.k2, p.k3)
                    + three_compartment_amount(tau, dose_slow, p.F, p.k1_slow, p.k2, p.k3))

        if e.route is Route.SUBLINGUAL:
            dose_fast = dose * p.frac_fast
            dose_slow = dose * (1.0 - p.frac_fast)
            if p.k2 > 0:
                return (three_compartment_amount(tau, dose_fast, p.F_fast, p.k1_fast, p.k2, p.k3)
                        + three_compartment_amount(tau, dose_slow, p.F_slow, p.k1_slow, p.k2, p.k3))
            return (one_compartment_amount(tau, dose_fast, p.F_fast, p.k1_fast, p.k3)
                    + one_compartment_amount(tau, dose_slow, p.F_slow, p.k1_slow, p.k3))

        if e.route is Route.PATCH_APPLY:
            return first_order_patch_amount(tau, dose, p.F, p.k1_fast, p.k3, self.wear_h)

        # gel, oral
        return one_compartment_amount(tau, dose, p.F, p.k1_fast, p.k3)

    def __repr__(self):
        return f"EventModel(route={self.event.route.value}, ester={self.event.ester.value}, t={self.event.time_h})"
