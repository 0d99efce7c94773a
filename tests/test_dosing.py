import numpy as np
import pytest

from hrtpk.dosing import combine_schedules, from_explicit_schedule, patch_schedule, repeated_doses, single_dose
from hrtpk.types import Ester, ExtraKey, Route


def test_single_dose():
    (event,) = single_dose(Route.INJECTION, 5.0, 12.0, Ester.EV, event_id="first")
    assert event.id == "first"
    assert (event.route, event.time_h, event.dose_mg, event.ester) == (Route.INJECTION, 12.0, 5.0, Ester.EV)
    assert dict(event.extras) == {}

    (tagged,) = single_dose("sublingual", 2.0, 0.0, extras={ExtraKey.SUBLINGUAL_TIER: 2})
    assert tagged.route is Route.SUBLINGUAL
    assert dict(tagged.extras) == {"sublingualTier": 2}


def test_repeated_count_and_spacing():
    events = repeated_doses(Route.INJECTION, 4.0, every_h=168.0, count=8, start_h=24.0, ester=Ester.EV)
    times = np.array([e.time_h for e in events])
    assert len(events) == 8
    assert times[0] == 24.0
    assert np.allclose(np.diff(times), 168.0)
    assert len({e.id for e in events}) == 8
    assert all(e.ester is Ester.EV and e.dose_mg == 4.0 for e in events)


def test_input_validation():
    with pytest.raises(ValueError):
        repeated_doses(Route.ORAL, 0.0, every_h=24.0, count=3)
    with pytest.raises(ValueError):
        repeated_doses(Route.ORAL, 2.0, every_h=-1.0, count=3)
    with pytest.raises(ValueError):
        repeated_doses(Route.ORAL, 2.0, every_h=24.0, count=0)
    with pytest.raises(ValueError):
        repeated_doses(Route.ORAL, 2.0, every_h=24.0, count=2.5)
    with pytest.raises(ValueError):
        repeated_doses(Route.ORAL, 2.0, every_h=24.0, count=True)
    with pytest.raises(ValueError):
        single_dose(Route.ORAL, 2.0, float("nan"))
    with pytest.raises(ValueError):
        single_dose(Route.PATCH_REMOVE, 1.0, 0.0)
    with pytest.raises(ValueError):
        repeated_doses(Route.PATCH_APPLY, 1.0, every_h=84.0, count=2)
    with pytest.raises(ValueError):
        patch_schedule(1.0, wear_h=84.0, count=1, release_rate_ug_per_day=0.0)


def test_patch_schedule_pairs():
    events = patch_schedule(1.0, wear_h=84.0, count=3, start_h=6.0, release_rate_ug_per_day=100.0)
    applies = [e for e in events if e.route is Route.PATCH_APPLY]
    removes = [e for e in events if e.route is Route.PATCH_REMOVE]
    assert [e.time_h for e in applies] == [6.0, 90.0, 174.0]
    assert [e.time_h for e in removes] == [90.0, 174.0, 258.0]
    assert all(e.extras[ExtraKey.RELEASE_RATE_UG_PER_DAY.value] == 100.0 for e in applies)
    assert all(dict(e.extras) == {} for e in removes)

    legacy = patch_schedule(1.0, wear_h=84.0, count=1)
    assert dict(legacy[0].extras) == {}


def test_combine_orders_removal_after_application():
    patches = patch_schedule(1.0, wear_h=84.0, count=2)
    oral = repeated_doses(Route.ORAL, 12.5, every_h=84.0, count=2, ester=Ester.CPA)
    merged = combine_schedules(patches, oral)
    times = [e.time_h for e in merged]
    assert times == sorted(times)
    at_84 = [e.route for e in merged if e.time_h == 84.0]
    assert at_84.index(Route.PATCH_REMOVE) == len(at_84) - 1


def test_explicit_schedule_is_sorted():
    events = from_explicit_schedule([(240.0, 4.0), (0.0, 5.0), (120.0, 5.0)], Route.INJECTION, Ester.EC)
    assert [(e.time_h, e.dose_mg) for e in events] == [(0.0, 5.0), (120.0, 5.0), (240.0, 4.0)]
    assert all(e.ester is Ester.EC for e in events)
