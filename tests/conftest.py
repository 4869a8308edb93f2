"""Shared fixtures for the well evaluation tests."""

import numpy as np
import pytest

from wellcheck import (
    Connection,
    DeferredLogger,
    EconomicLimits,
    FormationVolumeRateConverter,
    InjectionControls,
    InjectionWell,
    PhaseUsage,
    ProductionControls,
    ProductionWell,
    RegionProperties,
    WellState,
    WellTestState,
)


@pytest.fixture
def pu():
    """Black-oil phase usage: water, oil, gas at positions 0, 1, 2."""
    return PhaseUsage.black_oil()


@pytest.fixture
def converter(pu):
    """Rate converter with simple, uniform region properties."""
    return FormationVolumeRateConverter(
        phase_usage=pu,
        default=RegionProperties(
            water_formation_volume_factor=1.0,
            oil_formation_volume_factor=1.2,
            gas_formation_volume_factor=0.005,
        ),
    )


@pytest.fixture
def deferred_logger():
    return DeferredLogger()


@pytest.fixture
def well_test_state():
    return WellTestState()


def make_producer(
    name="P1",
    group_name="G1",
    modes=(),
    economic_limits=None,
    connections=None,
    **controls,
):
    if connections is None:
        connections = [Connection(index=0, completion=1)]
    return ProductionWell(
        name=name,
        group_name=group_name,
        connections=connections,
        automatic_shut_in=controls.pop("automatic_shut_in", True),
        efficiency_factor=controls.pop("efficiency_factor", 1.0),
        controls=ProductionControls(modes=modes, **controls),
        economic_limits=economic_limits or EconomicLimits(),
    )


def make_injector(name="I1", group_name="G1", injector_type="water", modes=(), **controls):
    return InjectionWell(
        name=name,
        group_name=group_name,
        connections=[Connection(index=0, completion=1)],
        efficiency_factor=controls.pop("efficiency_factor", 1.0),
        controls=InjectionControls(injector_type=injector_type, modes=modes, **controls),
    )


def make_state(name, surface_rates, perforation_rates=None, **kwargs):
    surface_rates = np.asarray(surface_rates, dtype=float)
    if perforation_rates is None:
        perforation_rates = [surface_rates]
    kwargs.setdefault("reservoir_rates", np.zeros_like(surface_rates))
    return WellState(
        name=name,
        surface_rates=surface_rates,
        perforation_rates=perforation_rates,
        **kwargs,
    )
