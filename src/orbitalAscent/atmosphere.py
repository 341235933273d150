# Licensed under the PolyForm Noncommercial License 1.0.0
"""
US Standard Atmosphere 1976, 0-86 km geometric altitude.

Seven layers with linear temperature profiles in geopotential altitude.
Above the top of the table pressure decays exponentially with a scale
height taken from the top-layer temperature, which is held constant.

Reference: U.S. Standard Atmosphere, 1976 (NOAA-S/T 76-1562), Tables 3-4.
"""

from typing import Union
import numpy as np

from .models import AtmosphericSample, P_sea_level, g0

ArrayLike = Union[float, int, np.ndarray]

R_GEOPOTENTIAL = 6356766.0  # Effective Earth radius for geopotential altitude (m)
M0 = 0.0289644  # Molar mass of dry air (kg/mol)
R_STAR = 8.31447  # Universal gas constant (J/(mol K))
GAMMA = 1.4

# Sutherland's law constants for air
SUTHERLAND_MU0 = 1.716e-5  # Pa s
SUTHERLAND_T0 = 273.15  # K
SUTHERLAND_S = 110.4  # K

T0 = 288.15  # Sea level temperature (K)

# Base geopotential altitude (m), temperature lapse rate (K/m)
LAYER_TABLE = [
    (0.0,     -0.0065),  # Troposphere
    (11000.0,  0.0),     # Tropopause
    (20000.0,  0.001),   # Stratosphere I
    (32000.0,  0.0028),  # Stratosphere II
    (47000.0,  0.0),     # Stratopause
    (51000.0, -0.0028),  # Mesosphere I
    (71000.0, -0.002),   # Mesosphere II
]

MAX_GEOPOTENTIAL = 84852.0  # Top of the layer table (m), 86 km geometric


def _layer_pressure(P_b: float, T_b: float, L: float, dh: float) -> float:
    if abs(L) < 1e-10:
        return P_b * np.exp(-g0 * M0 * dh / (R_STAR * T_b))
    return P_b * (T_b / (T_b + L * dh)) ** (g0 * M0 / (R_STAR * L))


def _build_layers() -> np.ndarray:
    """
    Rows of [base altitude, base temperature, lapse rate, base pressure].

    Each base is the top of the layer below, which keeps temperature and
    pressure continuous across every boundary (e.g. 216.65 K / 22632 Pa at 11 km).
    """
    rows = []
    T_b, P_b = T0, P_sea_level
    for i, (h_b, L) in enumerate(LAYER_TABLE):
        if i > 0:
            prev_h, prev_L = LAYER_TABLE[i - 1]
            dh = h_b - prev_h
            P_b = _layer_pressure(P_b, T_b, prev_L, dh)
            T_b = T_b + prev_L * dh
        rows.append([h_b, T_b, L, P_b])
    return np.array(rows)


LAYERS = _build_layers()

SIMPLE_RHO0 = 1.225  # kg/m^3
SIMPLE_SCALE_HEIGHT = 8500.0  # m


def geometric_to_geopotential(z: ArrayLike) -> ArrayLike:
    """Convert geometric altitude (m) to geopotential altitude (m)."""
    return R_GEOPOTENTIAL * z / (R_GEOPOTENTIAL + z)


def layer_index(h: ArrayLike) -> np.ndarray:
    """Index of the highest layer whose base is at or below geopotential altitude h."""
    h = np.atleast_1d(h)
    idx = np.searchsorted(LAYERS[:, 0], h, side="right") - 1
    return np.clip(idx, 0, len(LAYERS) - 1)


def _temperature_pressure(h: np.ndarray):
    """Temperature and pressure inside the layer table (h is geopotential)."""
    idx = layer_index(h)
    h_b, T_b, L, P_b = LAYERS[idx].T
    dh = h - h_b
    T = T_b + L * dh

    isothermal = np.abs(L) < 1e-10
    P = np.empty_like(h, dtype=float)

    # Isothermal layer: P = P_b * exp(-g0*M0*dh/(R*T_b))
    P[isothermal] = P_b[isothermal] * np.exp(-g0 * M0 * dh[isothermal] / (R_STAR * T_b[isothermal]))

    # Gradient layer: P = P_b * (T_b/T)^(g0*M0/(R*L))
    grad = ~isothermal
    exponent = g0 * M0 / (R_STAR * L[grad])
    P[grad] = P_b[grad] * (T_b[grad] / T[grad]) ** exponent

    return T, P, idx


def sutherland_viscosity(T: ArrayLike) -> ArrayLike:
    """Dynamic viscosity of air (Pa s) from Sutherland's law."""
    return (SUTHERLAND_MU0 * (T / SUTHERLAND_T0) ** 1.5
            * (SUTHERLAND_T0 + SUTHERLAND_S) / (T + SUTHERLAND_S))


def atmosphere(altitude: ArrayLike) -> AtmosphericSample:
    """
    Atmospheric properties at the given geometric altitude.

    Args:
        altitude: Geometric altitude above sea level (m). Float/int or np.ndarray.
            Negative altitudes are clamped to sea level.

    Returns:
        AtmosphericSample whose fields are floats for scalar input and
        arrays of the input's shape otherwise.
    """
    scalar = np.ndim(altitude) == 0
    z = np.maximum(np.atleast_1d(np.asarray(altitude, dtype=float)), 0.0)
    h = geometric_to_geopotential(z)

    extrapolated = h > MAX_GEOPOTENTIAL
    T, P, idx = _temperature_pressure(np.minimum(h, MAX_GEOPOTENTIAL))

    # Exponential decay above the table at the top-layer temperature
    scale_height = R_STAR * T[extrapolated] / (M0 * g0)
    P[extrapolated] = P[extrapolated] * np.exp(-(h[extrapolated] - MAX_GEOPOTENTIAL) / scale_height)

    rho = P * M0 / (R_STAR * T)  # Ideal gas law
    a = np.sqrt(GAMMA * R_STAR * T / M0)
    visc = sutherland_viscosity(T)

    if scalar:
        return AtmosphericSample(
            temperature=float(T[0]),
            pressure=float(P[0]),
            density=float(rho[0]),
            speed_of_sound=float(a[0]),
            dynamic_viscosity=float(visc[0]),
            geopotential_altitude=float(h[0]),
            layer=int(idx[0]),
            is_extrapolated=bool(extrapolated[0]),
        )

    shape = np.shape(altitude)
    return AtmosphericSample(
        temperature=T.reshape(shape),
        pressure=P.reshape(shape),
        density=rho.reshape(shape),
        speed_of_sound=a.reshape(shape),
        dynamic_viscosity=visc.reshape(shape),
        geopotential_altitude=h.reshape(shape),
        layer=idx.reshape(shape),
        is_extrapolated=extrapolated.reshape(shape),
    )


def density(altitude: ArrayLike) -> ArrayLike:
    return atmosphere(altitude).density


def pressure(altitude: ArrayLike) -> ArrayLike:
    return atmosphere(altitude).pressure


def pressure_ratio(altitude: ArrayLike) -> ArrayLike:
    """Local pressure over sea-level pressure, 1 at the pad and 0 in vacuum."""
    return pressure(altitude) / P_sea_level


def mach_number(velocity: ArrayLike, altitude: ArrayLike) -> ArrayLike:
    return velocity / atmosphere(altitude).speed_of_sound


def dynamic_pressure(altitude: ArrayLike, velocity: ArrayLike) -> ArrayLike:
    """q = 0.5 * rho * v^2 (Pa)."""
    return 0.5 * density(altitude) * velocity * velocity


def simple_density(altitude: ArrayLike) -> ArrayLike:
    """Single exponential atmosphere, kept for comparison with the layered model."""
    return SIMPLE_RHO0 * np.exp(-np.asarray(altitude, dtype=float) / SIMPLE_SCALE_HEIGHT)


def compare_models(altitude: float) -> dict:
    """Density from both models and their percent difference."""
    us_std = float(density(altitude))
    simple = float(simple_density(altitude))
    return {
        'altitude': altitude,
        'us_standard_density': us_std,
        'simple_density': simple,
        'percent_difference': (us_std - simple) / us_std * 100,
    }
