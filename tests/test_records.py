import json
import math

import pytest

from hrtpk.interpolation import interpolate_concentration_e2
from hrtpk.records import (
    EncryptedPayloadError, dose_event_from_dict, dump_records, is_encrypted_envelope, load_records,
)
from hrtpk.simulate import run_simulation
from hrtpk.types import DoseEvent, Ester, LabResult, LabUnit, Route

EXPORT = {
    "events": [
        {"id": "a", "route": "injection", "timeH": 480000.0, "doseMG": 5.0, "ester": "EV", "extras": {}},
        {"id": "b", "route": "sublingual", "timeH": 480012.0, "doseMG": 2.0, "ester": "E2",
         "extras": {"sublingualTier": 3}},
        {"id": "c", "route": "patchRemove", "timeH": 480084.0, "doseMG": 0, "ester": "E2"},
    ],
    "labResults": [
        {"id": "lab1", "timeH": 480100.0, "concValue": 550.0, "unit": "pmol/l"},
    ],
    "weight": 64.5,
}


def test_load_export_object():
    records = load_records(EXPORT)
    assert [e.route for e in records.events] == [Route.INJECTION, Route.SUBLINGUAL, Route.PATCH_REMOVE]
    assert records.events[0].ester is Ester.EV
    assert records.events[1].extras["sublingualTier"] == 3
    assert dict(records.events[2].extras) == {}
    assert records.lab_results == [LabResult(id="lab1", time_h=480100.0, conc_value=550.0, unit=LabUnit.PMOL_L)]
    assert records.weight_kg == 64.5


def test_dump_then_load_through_json():
    events = [DoseEvent(id="g", route=Route.GEL, time_h=10.0, dose_mg=1.5, extras={"gelSite": 2})]
    labs = [LabResult(id="l", time_h=30.0, conc_value=120.0, unit=LabUnit.PG_ML)]
    payload = json.loads(json.dumps(dump_records(events, labs, weight_kg=70.0)))
    assert payload["events"][0]["route"] == "gel"
    assert payload["labResults"][0]["unit"] == "pg/ml"

    records = load_records(payload)
    assert records.events == events
    assert records.lab_results == labs
    assert records.weight_kg == 70.0


def test_bare_event_list():
    records = load_records(EXPORT["events"][:2])
    assert len(records.events) == 2
    assert records.lab_results == []
    assert records.weight_kg is None


def test_encrypted_envelope_is_refused():
    envelope = {"encrypted": True, "iv": "aXY=", "salt": "c2FsdA==", "data": "ZGF0YQ=="}
    assert is_encrypted_envelope(envelope)
    assert not is_encrypted_envelope(EXPORT)
    assert not is_encrypted_envelope({"encrypted": True, "iv": "", "salt": "s", "data": "d"})
    with pytest.raises(EncryptedPayloadError):
        load_records(envelope)


def test_malformed_records():
    good = dict(EXPORT["events"][0])
    for key in ("id", "route", "timeH", "doseMG", "ester"):
        broken = {k: v for k, v in good.items() if k != key}
        with pytest.raises(ValueError):
            dose_event_from_dict(broken)
    with pytest.raises(ValueError):
        dose_event_from_dict({**good, "route": "nasal"})
    with pytest.raises(ValueError):
        dose_event_from_dict({**good, "doseMG": "5"})
    with pytest.raises(ValueError):
        dose_event_from_dict({**good, "extras": [1, 2]})
    with pytest.raises(ValueError):
        load_records({"events": [], "labResults": [{"id": "x", "timeH": 1.0, "concValue": 2.0, "unit": "ng/dl"}]})
    with pytest.raises(ValueError):
        load_records("not records")


def test_exported_rate_patch_simulates():
    """An app export saves rate-mode patches with doseMG 0; they must still produce a curve."""
    payload = [
        {"id": "p1", "route": "patchApply", "timeH": 0.0, "doseMG": 0, "ester": "E2",
         "extras": {"releaseRateUGPerDay": 100}},
    ]
    records = load_records(json.loads(json.dumps(payload)))
    sim = run_simulation(records.events, 70.0)

    rate_mg_h, k3 = 100.0 / 24000.0, 0.41
    amount = rate_mg_h / k3 * (1.0 - math.exp(-k3 * 72.0))
    expected = amount * 1e9 / (2.0 * 70.0 * 1000.0)
    assert interpolate_concentration_e2(sim, 72.0) == pytest.approx(expected, rel=1e-6)


def test_lab_unit_is_required():
    with pytest.raises(TypeError):
        LabResult(id="l", time_h=1.0, conc_value=100.0)
    assert LabResult(id="l", time_h=1.0, conc_value=100.0, unit="pg/ml").unit is LabUnit.PG_ML
    with pytest.raises(ValueError):
        LabResult(id="l", time_h=1.0, conc_value=100.0, unit="ng/dl")
