# src/hrtpk/solvers.py
"""
Numerical reference for the closed-form event models.

Integrates the same compartment chains with scipy's solve_ivp, splitting
the integration at patch removal so the input switch is a hard boundary.
Slower than the closed forms and not used by run_simulation; it exists to
cross-check them.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Sequence

import numpy as np
from scipy.integrate import solve_ivp

from .config import DEFAULT_CONFIG, SimulationConfig
from .events import EventModel
from .helpers import sort_events
from .models.one_compartment import one_compartment_rhs
from .models.three_compartment import three_compartment_rhs
from .simulate import build_event_models
from .types import Analyte, DoseEvent, Ester, Route

logger = logging.getLogger(__name__)

RTOL = 1e-10
ATOL = 1e-12

RHS = Callable[[float, np.ndarray], list]


def _integrate_body_amount(tau: np.ndarray, y0: Sequence[float], rhs_before: RHS,
                           rhs_after: RHS = None, switch_h: float = math.inf,
                           at_switch: Callable[[np.ndarray], np.ndarray] = None) -> np.ndarray:
    """
    Body amount (last state) at each tau >= 0; zero before the dose.

    rhs_before drives [0, switch_h]; at switch_h the state passes through
    at_switch and rhs_after takes over.
    """
    tau = np.asarray(tau, dtype=float)
    out = np.zeros_like(tau)
    tau_end = float(tau.max()) if tau.size else 0.0
    if tau_end <= 0:
        return out

    # Segment boundaries: dose time, the switch (if reached) and the horizon
    bounds = [0.0]
    if 0.0 < switch_h < tau_end:
        bounds.append(float(switch_h))
    bounds.append(tau_end)

    y = np.asarray(y0, dtype=float)
    for idx in range(1, len(bounds)):
        a, b = bounds[idx - 1], bounds[idx]
        rhs = rhs_before if idx == 1 else rhs_after
        sol = solve_ivp(rhs, t_span=(a, b), y0=y, method="DOP853",
                        rtol=RTOL, atol=ATOL, dense_output=True)
        if not sol.success:
            raise RuntimeError(f"ODE integration failed on [{a}, {b}] h: {sol.message}")

        seg = (tau > a) & (tau <= b)
        if np.any(seg):
            out[seg] = sol.sol(tau[seg])[-1]
        y = sol.y[:, -1]
        if idx == 1 and len(bounds) == 3 and at_switch is not None:
            y = at_switch(y)
    return out


def _chain(tau, dose_mg, F, k1, k2, k3) -> np.ndarray:
    if dose_mg <= 0 or k1 <= 0 or k3 <= 0:
        return np.zeros_like(tau)
    if k2 > 0:
        rhs = lambda t, y: three_compartment_rhs(t, y, k1, k2, k3)
        return _integrate_body_amount(tau, [dose_mg * F, 0.0, 0.0], rhs)
    rhs = lambda t, y: one_compartment_rhs(t, y, k1, k3)
    return _integrate_body_amount(tau, [dose_mg * F, 0.0], rhs)


def event_amount_ode(model: EventModel, time_h) -> np.ndarray:
    """Numerically integrated counterpart of EventModel.amount (mg)."""
    e, p = model.event, model.params
    tau = np.asarray(time_h, dtype=float) - e.time_h
    dose = e.dose_mg

    if e.route is Route.PATCH_REMOVE:
        return np.zeros_like(tau)

    if e.route is Route.PATCH_APPLY and p.rate_mg_h > 0:
        if p.k3 <= 0:
            return np.zeros_like(tau)
        rate, k3 = p.rate_mg_h, p.k3
        return _integrate_body_amount(
            tau, [0.0],
            rhs_before=lambda t, y: [rate - k3 * y[0]],
            rhs_after=lambda t, y: [-k3 * y[0]],
            switch_h=model.wear_h,
        )

    if not dose > 0:
        return np.zeros_like(tau)

    if e.ester is Ester.CPA or e.route in (Route.GEL, Route.ORAL):
        return _chain(tau, dose, p.F, p.k1_fast, 0.0, p.k3)

    if e.route is Route.INJECTION:
        return (_chain(tau, dose * p.frac_fast, p.F, p.k1_fast, p.k2, p.k3)
                + _chain(tau, dose * (1.0 - p.frac_fast), p.F, p.k1_slow, p.k2, p.k3))

    if e.route is Route.SUBLINGUAL:
        return (_chain(tau, dose * p.frac_fast, p.F_fast, p.k1_fast, p.k2, p.k3)
                + _chain(tau, dose * (1.0 - p.frac_fast), p.F_slow, p.k1_slow, p.k2, p.k3))

    # Route.PATCH_APPLY, first-order release
    ka, k3 = p.k1_fast, p.k3
    if ka <= 0 or k3 <= 0:
        return np.zeros_like(tau)

    def peel_off(y):
        # Removing the patch takes the unabsorbed drug with it.
        return np.array([0.0, y[1]])

    return _integrate_body_amount(
        tau, [dose * p.F, 0.0],
        rhs_before=lambda t, y: one_compartment_rhs(t, y, ka, k3),
        rhs_after=lambda t, y: one_compartment_rhs(t, y, ka, k3),
        switch_h=model.wear_h,
        at_switch=peel_off,
    )


def simulate_events_ode(events: Sequence[DoseEvent], body_weight_kg: float, t_eval,
                        config: SimulationConfig = DEFAULT_CONFIG) -> dict[Analyte, np.ndarray]:
    """
    Concentrations on t_eval (absolute hours, sorted) by numerical
    integration: E2 in pg/mL and CPA in ng/mL.
    """
    t = np.asarray(t_eval, dtype=float)
    amounts = {Analyte.E2: np.zeros_like(t), Analyte.CPA: np.zeros_like(t)}
    if len(events) == 0:
        return amounts

    models = build_event_models(sort_events(events))
    for m in models:
        amounts[m.analyte] += event_amount_ode(m, t)
    logger.debug("Integrated %d event models on %d points", len(models), t.size)

    return {
        Analyte.E2: amounts[Analyte.E2] * 1e9 / (config.vd_e2_l_per_kg * body_weight_kg * 1000.0),
        Analyte.CPA: amounts[Analyte.CPA] * 1e6 / (config.vd_cpa_l_per_kg * body_weight_kg * 1000.0),
    }
