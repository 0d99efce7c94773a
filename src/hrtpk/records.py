# src/hrtpk/records.py
"""
Plain-JSON shape of dose events and lab results.

This is the decrypted form that import/export hands over. An encrypted
envelope ({"encrypted": true, "iv", "salt", "data"}) must be decrypted by
the caller first; it is recognised here only so it can be refused clearly.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .types import DoseEvent, Ester, LabResult, LabUnit, Route

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = ("iv", "salt", "data")


class EncryptedPayloadError(ValueError):
    """Raised when an encrypted export envelope is passed where plain records are expected."""


@dataclass(frozen=True)
class Records:
    events: list[DoseEvent]
    lab_results: list[LabResult]
    weight_kg: Optional[float] = None


def is_encrypted_envelope(payload: Any) -> bool:
    return (isinstance(payload, Mapping)
            and bool(payload.get("encrypted"))
            and all(payload.get(k) for k in ENVELOPE_KEYS))


def _require(record: Mapping, key: str):
    if key not in record:
        raise ValueError(f"record is missing '{key}': {dict(record)!r}")
    return record[key]


def _number(record: Mapping, key: str) -> float:
    value = _require(record, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"'{key}' must be a finite number (got {value!r}).")
    return float(value)


def _enum(cls, record: Mapping, key: str):
    value = _require(record, key)
    try:
        return cls(value)
    except ValueError:
        raise ValueError(f"unknown {key} {value!r}") from None


def dose_event_from_dict(record: Mapping) -> DoseEvent:
    extras = record.get("extras") or {}
    if not isinstance(extras, Mapping):
        raise ValueError(f"'extras' must be an object (got {extras!r}).")
    return DoseEvent(
        id=str(_require(record, "id")),
        route=_enum(Route, record, "route"),
        time_h=_number(record, "timeH"),
        dose_mg=_number(record, "doseMG"),
        ester=_enum(Ester, record, "ester"),
        extras=dict(extras),
    )


def dose_event_to_dict(event: DoseEvent) -> dict:
    return {
        "id": event.id,
        "route": event.route.value,
        "timeH": event.time_h,
        "doseMG": event.dose_mg,
        "ester": event.ester.value,
        "extras": dict(event.extras),
    }


def lab_result_from_dict(record: Mapping) -> LabResult:
    return LabResult(
        id=str(_require(record, "id")),
        time_h=_number(record, "timeH"),
        conc_value=_number(record, "concValue"),
        unit=_enum(LabUnit, record, "unit"),
    )


def lab_result_to_dict(lab: LabResult) -> dict:
    return {"id": lab.id, "timeH": lab.time_h, "concValue": lab.conc_value, "unit": lab.unit.value}


def load_records(payload: Any) -> Records:
    """
    Accept either a bare list of dose events or an export object with
    "events" and optional "labResults" and "weight".
    """
    if is_encrypted_envelope(payload):
        raise EncryptedPayloadError("payload is encrypted; decrypt it before loading")

    weight_kg = None
    if isinstance(payload, list):
        raw_events, raw_labs = payload, []
    elif isinstance(payload, Mapping):
        raw_events = payload.get("events") or []
        raw_labs = payload.get("labResults") or []
        if payload.get("weight") is not None:
            weight_kg = _number(payload, "weight")
    else:
        raise ValueError(f"unsupported payload type {type(payload).__name__}")

    events = [dose_event_from_dict(r) for r in raw_events]
    labs = [lab_result_from_dict(r) for r in raw_labs]
    logger.debug("Loaded %d dose events and %d lab results", len(events), len(labs))
    return Records(events=events, lab_results=labs, weight_kg=weight_kg)


def dump_records(events, lab_results=(), weight_kg: Optional[float] = None) -> dict:
    """Inverse of load_records, in the export object shape."""
    payload = {
        "events": [dose_event_to_dict(e) for e in events],
        "labResults": [lab_result_to_dict(lab) for lab in lab_results],
    }
    if weight_kg is not None:
        payload["weight"] = weight_kg
    return payload
