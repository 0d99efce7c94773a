import importlib

import pytest

MODULES = [
    "hrtpk.types", "hrtpk.config", "hrtpk.parameters", "hrtpk.helpers", "hrtpk.events",
    "hrtpk.models.one_compartment", "hrtpk.models.three_compartment", "hrtpk.models.patch",
    "hrtpk.simulate", "hrtpk.interpolation", "hrtpk.calibration", "hrtpk.metrics",
    "hrtpk.dosing", "hrtpk.records", "hrtpk.solvers",
]


@pytest.mark.parametrize("name", MODULES)
def test_module_imports(name):
    importlib.import_module(name)


def test_default_config_is_built_at_import():
    from hrtpk.config import DEFAULT_CONFIG, SimulationConfig
    assert DEFAULT_CONFIG == SimulationConfig()
    assert (DEFAULT_CONFIG.steps, DEFAULT_CONFIG.lead_in_h, DEFAULT_CONFIG.tail_h) == (1000, 24.0, 336.0)
    assert (DEFAULT_CONFIG.vd_e2_l_per_kg, DEFAULT_CONFIG.vd_cpa_l_per_kg) == (2.0, 14.0)
