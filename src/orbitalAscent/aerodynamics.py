# Licensed under the PolyForm Noncommercial License 1.0.0
"""
Mach-dependent drag model.

The baseline curve is a piecewise fit to Saturn V wind tunnel data
(NASA TM X-53770), scaled for slender vehicles by fineness ratio:
    subsonic    - skin friction, Cd roughly constant
    transonic   - sharp rise from shock formation, peak near M 1.05
    supersonic  - gradual fall as shocks turn oblique
    hypersonic  - asymptotic approach to a minimum
"""

import logging
from typing import Tuple, Union
import numpy as np

from .atmosphere import atmosphere
from .models import RocketConfig, StageSpec, omega_earth

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]

REFERENCE_FINENESS = 11.0  # Saturn V length/diameter


def fineness_adjustment(fineness_ratio: float) -> float:
    """Cd scale factor; slender vehicles above the reference ratio get less drag."""
    if not np.isfinite(fineness_ratio) or fineness_ratio <= 0:
        return 1.0
    return min(1.0, REFERENCE_FINENESS / fineness_ratio)


def baseline_drag_coefficient(mach: ArrayLike) -> ArrayLike:
    """
    Baseline Cd against Mach number for the reference fineness ratio.

    Non-finite or negative Mach numbers give 0.
    """
    scalar = np.ndim(mach) == 0
    M = np.atleast_1d(np.asarray(mach, dtype=float))
    valid = np.isfinite(M) & (M >= 0)
    M = np.where(valid, M, 0.0)

    # Transonic drag rise uses smoothstep between 0.32 and 0.50
    t = np.clip((M - 0.8) / 0.2, 0.0, 1.0)
    smooth = t * t * (3 - 2 * t)

    conditions = [
        M < 0.6,
        M < 0.8,
        M < 1.0,
        M < 1.05,
        M < 1.2,
        M < 2.0,
        M < 3.0,
        M < 5.0,
    ]
    choices = [
        np.full_like(M, 0.30),
        0.30 + (M - 0.6) / 0.2 * 0.02,
        0.32 + smooth * 0.18,
        0.50 + (M - 1.0) * 0.4,
        0.52 - (M - 1.05) * 0.4,
        0.46 - (M - 1.2) / 0.8 * 0.10,
        0.36 - (M - 2.0) / 1.0 * 0.06,
        0.30 - (M - 3.0) / 2.0 * 0.05,
    ]
    hypersonic = 0.22 + 0.03 * np.exp(-(M - 5.0) / 3.0)

    cd = np.select(conditions, choices, default=hypersonic)
    cd = np.where(valid, cd, 0.0)

    if scalar:
        return float(cd[0])
    return cd.reshape(np.shape(mach))


def mach_drag_coefficient(mach: ArrayLike, fineness_ratio: float) -> ArrayLike:
    """Cd referenced to the cross-sectional area, corrected for fineness ratio."""
    return baseline_drag_coefficient(mach) * fineness_adjustment(fineness_ratio)


def atmosphere_velocity(x: float, y: float) -> Tuple[float, float]:
    """Velocity of the co-rotating atmosphere at (x, y)."""
    return omega_earth * y, -omega_earth * x


def air_relative_velocity(x: float, y: float, vx: float, vy: float) -> Tuple[float, float, float]:
    """
    Velocity relative to the atmosphere.

    Returns:
        Tuple of (airspeed, air_vx, air_vy)
    """
    atm_vx, atm_vy = atmosphere_velocity(x, y)
    air_vx = vx - atm_vx
    air_vy = vy - atm_vy
    return float(np.hypot(air_vx, air_vy)), air_vx, air_vy


def drag_coefficient_and_mach(altitude: float, airspeed: float,
                              fineness_ratio: float = REFERENCE_FINENESS) -> Tuple[float, float]:
    """
    Drag coefficient and Mach number for telemetry.

    Degenerate inputs (non-finite, negative altitude or airspeed) give (0.0, 0.0).
    """
    if not np.isfinite(altitude) or altitude < 0:
        return 0.0, 0.0
    if not np.isfinite(airspeed) or airspeed < 0:
        return 0.0, 0.0

    a = atmosphere(altitude).speed_of_sound
    if not np.isfinite(a) or a <= 0:
        logger.debug("Invalid speed of sound %r at altitude %.1f m", a, altitude)
        return 0.0, 0.0

    mach = airspeed / a
    cd = mach_drag_coefficient(mach, fineness_ratio)
    cd = cd if np.isfinite(cd) and cd >= 0 else 0.0
    mach = mach if np.isfinite(mach) and mach >= 0 else 0.0
    return float(cd), float(mach)


def drag_force(altitude: float, airspeed: float, stage: StageSpec, fineness_ratio: float) -> float:
    """
    Drag magnitude 0.5 * rho * v^2 * Cd * A (N).

    Args:
        altitude: Geometric altitude (m)
        airspeed: Speed relative to the atmosphere (m/s)
        stage: Active stage, whose diameter sets the reference area
        fineness_ratio: Vehicle length over diameter
    """
    if not np.isfinite(airspeed) or airspeed <= 0:
        return 0.0
    if not np.isfinite(altitude):
        return 0.0
    atm = atmosphere(max(altitude, 0.0))
    cd = mach_drag_coefficient(airspeed / atm.speed_of_sound, fineness_ratio)
    return 0.5 * atm.density * airspeed * airspeed * cd * stage.reference_area


def drag_acceleration(x: float, y: float, vx: float, vy: float, altitude: float,
                      mass: float, config: RocketConfig, stage_index: int) -> Tuple[float, float]:
    """Drag acceleration vector opposing the air-relative velocity."""
    if stage_index >= len(config.stages) or mass <= 0:
        return 0.0, 0.0
    airspeed, air_vx, air_vy = air_relative_velocity(x, y, vx, vy)
    if airspeed <= 0:
        return 0.0, 0.0
    drag = drag_force(altitude, airspeed, config.stages[stage_index], config.fineness_ratio)
    accel = drag / mass
    return -accel * air_vx / airspeed, -accel * air_vy / airspeed
