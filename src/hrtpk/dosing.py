# src/hrtpk/dosing.py
from __future__ import annotations

import uuid
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np

from .types import DoseEvent, Ester, ExtraKey, Route


def _new_id() -> str:
    return uuid.uuid4().hex


def single_dose(route: Route, dose_mg: float, time_h: float, ester: Ester = Ester.E2,
                extras: Optional[Mapping] = None, *, event_id: Optional[str] = None) -> list[DoseEvent]:
    """
    A schedule with exactly one event.
    Examples:
      - 5 mg EV injection at t=0 h
      - 2 mg E2 sublingual at t=8 h with extras={ExtraKey.SUBLINGUAL_TIER: 2}
    """
    route = Route(route)
    if route is Route.PATCH_REMOVE:
        raise ValueError("Use patch_schedule() for patch removals.")
    _validate_positive("dose_mg", dose_mg)
    _validate_finite("time_h", time_h)
    return [DoseEvent(id=event_id or _new_id(), route=route, time_h=float(time_h),
                      dose_mg=float(dose_mg), ester=Ester(ester), extras=dict(extras or {}))]


def repeated_doses(route: Route, dose_mg: float, every_h: float, count: int,
                   start_h: float = 0.0, ester: Ester = Ester.E2,
                   extras: Optional[Mapping] = None) -> list[DoseEvent]:
    """
    A repeated schedule, e.g. 4 mg EV every 168 h, 8 times.

    dose_mg  : mass of each dose (mg of the ester, not E2-equivalent)
    every_h  : spacing between doses (hours)
    count    : number of doses
    start_h  : time of the first dose
    """
    route = Route(route)
    if route in (Route.PATCH_APPLY, Route.PATCH_REMOVE):
        raise ValueError("Use patch_schedule() for patches.")
    _validate_positive("dose_mg", dose_mg)
    _validate_positive("every_h", every_h)
    _validate_positive_int("count", count)
    _validate_finite("start_h", start_h)

    times_h = float(start_h) + np.arange(count, dtype=float) * float(every_h)
    return [
        DoseEvent(id=_new_id(), route=route, time_h=float(t), dose_mg=float(dose_mg),
                  ester=Ester(ester), extras=dict(extras or {}))
        for t in times_h
    ]


def patch_schedule(dose_mg: float, wear_h: float, count: int, start_h: float = 0.0,
                   release_rate_ug_per_day: Optional[float] = None) -> list[DoseEvent]:
    """
    Back-to-back patches: apply at start_h + i*wear_h, remove wear_h later.
    With a release rate the patches are modelled as zero-order input.
    """
    _validate_positive("dose_mg", dose_mg)
    _validate_positive("wear_h", wear_h)
    _validate_positive_int("count", count)
    _validate_finite("start_h", start_h)
    extras = {}
    if release_rate_ug_per_day is not None:
        _validate_positive("release_rate_ug_per_day", release_rate_ug_per_day)
        extras[ExtraKey.RELEASE_RATE_UG_PER_DAY.value] = float(release_rate_ug_per_day)

    events: list[DoseEvent] = []
    for i in range(count):
        applied = float(start_h) + i * float(wear_h)
        events.append(DoseEvent(id=_new_id(), route=Route.PATCH_APPLY, time_h=applied,
                                dose_mg=float(dose_mg), ester=Ester.E2, extras=extras))
        events.append(DoseEvent(id=_new_id(), route=Route.PATCH_REMOVE, time_h=applied + float(wear_h),
                                dose_mg=0.0, ester=Ester.E2))
    return events


def from_explicit_schedule(entries: Sequence[Tuple[float, float]], route: Route,
                           ester: Ester = Ester.E2, extras: Optional[Mapping] = None) -> list[DoseEvent]:
    """
    Build a schedule from manual (time_h, dose_mg) entries.
    Example: entries=[(0.0, 5.0), (120.0, 5.0), (240.0, 4.0)]
    """
    events: list[DoseEvent] = []
    for time_h, dose_mg in entries:
        events.extend(single_dose(route, dose_mg, time_h, ester, extras))
    events.sort(key=lambda e: e.time_h)
    return events


def combine_schedules(*schedules: Sequence[DoseEvent]) -> list[DoseEvent]:
    """
    Merge schedules (e.g. EV injections + oral CPA) into one time-ordered list.
    A removal sorts after an application at the same instant.
    """
    all_events: list[DoseEvent] = []
    for s in schedules:
        all_events.extend(s)
    return sorted(all_events, key=lambda e: (e.time_h, e.route is Route.PATCH_REMOVE))


# --------------------------
# Small input validators
# --------------------------
def _validate_positive(name: str, x: float) -> None:
    if not (np.isfinite(x) and x > 0):
        raise ValueError(f"{name} must be > 0 (got {x}).")

def _validate_finite(name: str, x: float) -> None:
    if not np.isfinite(x):
        raise ValueError(f"{name} must be a finite number (got {x}).")

def _validate_positive_int(name: str, x: int) -> None:
    if isinstance(x, bool) or not (isinstance(x, int) and x > 0):
        raise ValueError(f"{name} must be a positive integer (got {x}).")
