"""Unit tests for the layered standard atmosphere."""

import numpy as np
import pytest
from orbitalAscent.atmosphere import (
    LAYERS,
    MAX_GEOPOTENTIAL,
    R_GEOPOTENTIAL,
    atmosphere,
    compare_models,
    dynamic_pressure,
    geometric_to_geopotential,
    mach_number,
    pressure_ratio,
    sutherland_viscosity,
)


def _geometric(h):
    """Inverse of the geopotential conversion."""
    return R_GEOPOTENTIAL * h / (R_GEOPOTENTIAL - h)


def test_sea_level_values():
    atm = atmosphere(0.0)
    assert np.isclose(atm.temperature, 288.15)
    assert np.isclose(atm.pressure, 101325.0)
    assert np.isclose(atm.density, 1.225, rtol=1e-3)
    assert np.isclose(atm.speed_of_sound, 340.3, rtol=1e-3)
    assert np.isclose(atm.dynamic_viscosity, 1.789e-5, rtol=1e-2)
    assert atm.layer == 0
    assert not atm.is_extrapolated


def test_published_layer_pressures():
    # US Standard Atmosphere 1976, Table 4
    published = [101325.0, 22632.1, 5474.89, 868.019, 110.906, 66.9389, 3.95642]
    assert np.allclose(LAYERS[:, 3], published, rtol=1e-3)
    assert np.allclose(LAYERS[:, 1], [288.15, 216.65, 216.65, 228.65, 270.65, 270.65, 214.65])


def test_negative_altitude_clamped():
    below = atmosphere(-500.0)
    sea = atmosphere(0.0)
    assert below.pressure == sea.pressure
    assert below.density == sea.density


def test_geopotential_conversion():
    assert geometric_to_geopotential(0.0) == 0.0
    assert geometric_to_geopotential(86000.0) == pytest.approx(MAX_GEOPOTENTIAL, abs=1.0)


@pytest.mark.parametrize("h_base", list(LAYERS[1:, 0]) + [MAX_GEOPOTENTIAL])
def test_continuous_at_layer_boundaries(h_base):
    z = _geometric(h_base)
    atm = atmosphere(np.array([z - 1e-6, z + 1e-6]))
    assert np.isclose(atm.temperature[0], atm.temperature[1], rtol=1e-9)
    assert np.isclose(atm.pressure[0], atm.pressure[1], rtol=1e-9)
    assert np.isclose(atm.density[0], atm.density[1], rtol=1e-9)


def test_layer_selection():
    layers = [atmosphere(_geometric(h) + 1.0).layer for h in LAYERS[:, 0]]
    assert layers == list(range(7))


def test_pressure_and_density_monotonic():
    altitudes = np.linspace(-1000.0, 250e3, 25001)
    atm = atmosphere(altitudes)
    assert np.all(np.diff(atm.pressure) <= 0)
    assert np.all(np.diff(atm.density) <= 0)
    assert np.all(atm.pressure > 0)


def test_extrapolation_above_table():
    top = atmosphere(86000.0)
    high = atmosphere(150e3)
    assert high.is_extrapolated
    assert high.layer == 6
    assert high.temperature == pytest.approx(top.temperature, rel=1e-6)
    assert high.pressure < top.pressure * 1e-3
    assert np.isfinite(high.density) and high.density > 0


def test_vectorised_matches_scalar():
    altitudes = np.array([0.0, 5e3, 15e3, 40e3, 80e3, 120e3])
    atm = atmosphere(altitudes)
    for i, alt in enumerate(altitudes):
        assert np.isclose(atm.density[i], atmosphere(alt).density)
        assert atm.layer[i] == atmosphere(alt).layer


def test_sutherland_reference_point():
    assert np.isclose(sutherland_viscosity(273.15), 1.716e-5)


def test_helpers():
    assert pressure_ratio(0.0) == pytest.approx(1.0)
    assert pressure_ratio(200e3) < 1e-6
    assert mach_number(340.294, 0.0) == pytest.approx(1.0, rel=1e-3)
    assert dynamic_pressure(0.0, 100.0) == pytest.approx(0.5 * 1.225 * 100.0 ** 2, rel=1e-3)


def test_compare_models():
    result = compare_models(10e3)
    assert result['altitude'] == 10e3
    assert result['us_standard_density'] > 0
    assert result['simple_density'] > 0
    assert abs(result['percent_difference']) < 50
