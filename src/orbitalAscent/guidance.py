# Licensed under the PolyForm Noncommercial License 1.0.0
"""
Closed-loop ascent and orbit insertion guidance.

Below the atmosphere limit the vehicle flies a gravity turn: vertical
ascent, a short pitch kick, then it follows the surface-relative velocity
vector, holding attitude while dynamic pressure is near its peak.

Above the limit the predicted orbit is classified into one insertion case
by walking INSERTION_CASES in order; the first matching predicate wins.
Pitch is in degrees above local horizontal throughout.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, NamedTuple, Optional, Tuple
import math
import numpy as np

from .aerodynamics import air_relative_velocity
from .atmosphere import dynamic_pressure
from .constraints import local_frame
from .models import (
    BurnAnnouncement,
    GuidanceConfig,
    OrbitalElements,
    RocketConfig,
    ThrustDirection,
    VehicleState,
    R_earth,
    g0,
)
from .orbital import circular_velocity, vis_viva

VERTICAL_ASCENT_TIME = 10.0  # s
PITCH_KICK_END = 13.0  # s
PITCH_KICK_ANGLE = 5.0  # degrees off vertical at the end of the kick
MAX_Q_HOLD_FRACTION = 0.8
MIN_VERTICAL_SPEED = 100.0  # m/s

VACUUM_START_FPA = 20.0  # degrees, target flight-path angle at the atmosphere limit
FPA_GAIN = 1.5
THROTTLE_DOWN_BAND = 20e3  # m of apoapsis deficit over which throttle is reduced
MIN_THROTTLE = 0.2
NEAR_APSIS_WINDOW = 10.0  # s


class InsertionCase(str, Enum):
    EMERGENCY_HORIZONTAL = "0"
    RAISE_APOAPSIS = "1"
    EMERGENCY_PROGRADE = "2a"
    RAISE_PERIAPSIS = "2b"
    LOWER_APOAPSIS = "3"
    CIRCULARIZE = "4a"
    COAST_TO_APOAPSIS = "4b"
    ORBIT_ACHIEVED = "5"


class InsertionInputs(NamedTuple):
    periapsis: float
    apoapsis: float
    target: float
    safe_periapsis: float
    near_apoapsis: bool
    descending: bool
    tolerance: float


# Evaluated top to bottom, first match wins
INSERTION_CASES: Tuple[Tuple[InsertionCase, Callable[[InsertionInputs], bool]], ...] = (
    (InsertionCase.EMERGENCY_HORIZONTAL, lambda c: c.periapsis < 0 and c.apoapsis >= c.target),
    (InsertionCase.RAISE_APOAPSIS, lambda c: c.apoapsis < c.target - c.tolerance),
    (InsertionCase.EMERGENCY_PROGRADE, lambda c: c.periapsis < c.safe_periapsis and c.descending),
    (InsertionCase.RAISE_PERIAPSIS, lambda c: c.periapsis < c.safe_periapsis),
    (InsertionCase.LOWER_APOAPSIS, lambda c: c.apoapsis > c.target + c.tolerance),
    (InsertionCase.CIRCULARIZE, lambda c: c.periapsis < c.target - c.tolerance and c.near_apoapsis),
    (InsertionCase.COAST_TO_APOAPSIS, lambda c: c.periapsis < c.target - c.tolerance),
    (InsertionCase.ORBIT_ACHIEVED, lambda c: True),
)


def select_insertion_case(periapsis: float, apoapsis: float, target: float, safe_periapsis: float,
                          near_apoapsis: bool, descending: bool, tolerance: float = 10e3) -> InsertionCase:
    """
    Classify the orbit-insertion state. Altitudes in metres.

    Always returns exactly one case; ORBIT_ACHIEVED is the fall-through.
    """
    inputs = InsertionInputs(periapsis, apoapsis, target, safe_periapsis,
                             near_apoapsis, descending, tolerance)
    for case, predicate in INSERTION_CASES:
        if predicate(inputs):
            return case
    return InsertionCase.ORBIT_ACHIEVED


@dataclass
class GuidanceDecision:
    """Unconstrained guidance output, before the pitch limiter."""
    pitch: float
    throttle: float
    phase: str
    reason: str
    direction: ThrustDirection = ThrustDirection.GUIDED
    horizontal_sign: float = 1.0
    case: Optional[str] = None
    announcement: Optional[BurnAnnouncement] = None


def flight_path_angle(x: float, y: float, vx: float, vy: float) -> Tuple[float, float]:
    """
    Angle of a velocity above local horizontal.

    Returns:
        Tuple of (angle in degrees, horizontal sign) where the sign is +1 when
        the horizontal component points east.
    """
    up, east = local_frame(x, y)
    v_up = vx * up[0] + vy * up[1]
    v_east = vx * east[0] + vy * east[1]
    sign = -1.0 if v_east < 0 else 1.0
    if v_up == 0 and v_east == 0:
        return 90.0, sign
    return math.degrees(math.atan2(v_up, abs(v_east))), sign


def burn_time_estimate(delta_v: float, state: VehicleState, config: RocketConfig) -> float:
    """Rocket-equation burn duration at full vacuum thrust of the active stage."""
    if state.current_stage >= len(config.stages) or delta_v <= 0:
        return 0.0
    stage = config.stages[state.current_stage]
    ve = stage.isp_vac * g0
    m0 = state.total_mass(config)
    m_dot = stage.thrust_vac / ve
    return m0 * (1 - math.exp(-delta_v / ve)) / m_dot


def circularization_delta_v(orbit: OrbitalElements) -> float:
    """Δv to raise periapsis to apoapsis altitude with a burn at apoapsis."""
    if not orbit.is_bound:
        return 0.0
    r_ap = orbit.apoapsis_altitude + R_earth
    return max(circular_velocity(r_ap) - vis_viva(r_ap, orbit.semi_major_axis), 0.0)


def retrograde_delta_v(orbit: OrbitalElements, target_altitude: float) -> float:
    """Δv to bring apoapsis down to the target with a burn at periapsis."""
    if not orbit.is_bound:
        return 0.0
    r_pe = orbit.periapsis_altitude + R_earth
    if r_pe <= 0:
        return 0.0
    new_sma = (r_pe + target_altitude + R_earth) / 2
    return max(vis_viva(r_pe, orbit.semi_major_axis) - vis_viva(r_pe, new_sma), 0.0)


def _near(time_to: float, period: float, window: float) -> bool:
    """True within `window` seconds before or after an apsis."""
    if not (math.isfinite(time_to) and math.isfinite(period)):
        return False
    return min(time_to, period - time_to) <= window


def target_flight_path_angle(altitude: float, guidance: GuidanceConfig) -> float:
    """Target FPA (degrees) falling linearly from VACUUM_START_FPA to 0 at target altitude."""
    span = guidance.target_altitude - guidance.atmosphere_limit
    if span <= 0:
        return 0.0
    progress = float(np.clip((altitude - guidance.atmosphere_limit) / span, 0.0, 1.0))
    return VACUUM_START_FPA * (1 - progress)


def _atmospheric_guidance(state: VehicleState, previous_pitch: float) -> GuidanceDecision:
    t = state.time
    if t < VERTICAL_ASCENT_TIME:
        return GuidanceDecision(90.0, 1.0, "vertical-ascent", "Vertical ascent")

    if t < PITCH_KICK_END:
        fraction = (t - VERTICAL_ASCENT_TIME) / (PITCH_KICK_END - VERTICAL_ASCENT_TIME)
        return GuidanceDecision(90.0 - PITCH_KICK_ANGLE * fraction, 1.0, "pitch-kick",
                                "Pitch kick - starting gravity turn")

    airspeed, air_vx, air_vy = air_relative_velocity(state.x, state.y, state.vx, state.vy)
    fpa, sign = flight_path_angle(state.x, state.y, air_vx, air_vy)
    q = float(dynamic_pressure(state.altitude, airspeed))

    if state.max_q > 0 and q > MAX_Q_HOLD_FRACTION * state.max_q:
        return GuidanceDecision(fpa, 1.0, "max-q-hold",
                                f"Max-Q protection (q={q / 1000:.1f} kPa) - holding prograde",
                                horizontal_sign=sign)

    up, _ = local_frame(state.x, state.y)
    vertical_speed = state.vx * up[0] + state.vy * up[1]
    pitch = fpa
    reason = "Gravity turn - following prograde"
    if vertical_speed < MIN_VERTICAL_SPEED and pitch < previous_pitch:
        pitch = previous_pitch
        reason = f"Gravity turn - holding pitch, vertical speed {vertical_speed:.0f} m/s"
    return GuidanceDecision(pitch, 1.0, "gravity-turn", reason, horizontal_sign=sign)


def _vacuum_guidance(state: VehicleState, config: RocketConfig, guidance: GuidanceConfig,
                     orbit: OrbitalElements) -> GuidanceDecision:
    fpa, sign = flight_path_angle(state.x, state.y, state.vx, state.vy)
    target = guidance.target_altitude
    target_fpa = target_flight_path_angle(state.altitude, guidance)

    circ_dv = circularization_delta_v(orbit)
    circ_time = burn_time_estimate(circ_dv, state, config)
    retro_dv = retrograde_delta_v(orbit, target)
    retro_time = burn_time_estimate(retro_dv, state, config)
    near_apoapsis = _near(orbit.time_to_apoapsis, orbit.period, max(NEAR_APSIS_WINDOW, circ_time / 2))
    near_periapsis = _near(orbit.time_to_periapsis, orbit.period, max(NEAR_APSIS_WINDOW, retro_time / 2))

    case = select_insertion_case(
        orbit.periapsis_altitude, orbit.apoapsis_altitude, target, guidance.safe_periapsis,
        near_apoapsis, orbit.is_descending, guidance.orbit_tolerance,
    )
    ap_km = orbit.apoapsis_altitude / 1000
    pe_km = orbit.periapsis_altitude / 1000

    def prograde(reason, throttle=1.0, announcement=None):
        return GuidanceDecision(fpa, throttle, "vacuum-guidance", reason, ThrustDirection.PROGRADE,
                                sign, case.value, announcement)

    def coast(reason):
        return GuidanceDecision(fpa, 0.0, "vacuum-guidance", reason, ThrustDirection.PROGRADE,
                                sign, case.value)

    if case is InsertionCase.EMERGENCY_HORIZONTAL:
        return GuidanceDecision(0.0, 1.0, "vacuum-guidance",
                                f"Emergency: periapsis {pe_km:.0f} km below surface - horizontal burn",
                                ThrustDirection.GUIDED, sign, case.value)

    if case is InsertionCase.RAISE_APOAPSIS:
        deficit = target - orbit.apoapsis_altitude
        throttle = float(np.clip(deficit / THROTTLE_DOWN_BAND, MIN_THROTTLE, 1.0))
        pitch = target_fpa + FPA_GAIN * (target_fpa - fpa)
        return GuidanceDecision(pitch, throttle, "vacuum-guidance",
                                f"Raising apoapsis ({ap_km:.0f} km, FPA target {target_fpa:.1f} deg)",
                                ThrustDirection.GUIDED, sign, case.value)

    if case is InsertionCase.EMERGENCY_PROGRADE:
        return prograde(f"Emergency: periapsis {pe_km:.0f} km and descending - prograde burn")

    if case in (InsertionCase.RAISE_PERIAPSIS, InsertionCase.COAST_TO_APOAPSIS):
        if guidance.direct_ascent:
            return prograde(f"Direct ascent - raising periapsis ({pe_km:.0f} km)",
                            announcement=BurnAnnouncement("direct-ascent", circ_dv, circ_time))
        if near_apoapsis:
            return prograde(f"Starting circularization at apoapsis (periapsis {pe_km:.0f} km)",
                            announcement=BurnAnnouncement("circularization", circ_dv, circ_time))
        return coast(f"Coasting to apoapsis ({orbit.time_to_apoapsis:.0f}s)")

    if case is InsertionCase.LOWER_APOAPSIS:
        if near_periapsis:
            # Flipping the horizontal sign reverses thrust in one sub-step; the rate limit only sees pitch
            return GuidanceDecision(-fpa, 1.0, "vacuum-guidance",
                                    f"Starting retrograde burn at periapsis (apoapsis {ap_km:.0f} km)",
                                    ThrustDirection.RETROGRADE, -sign, case.value,
                                    BurnAnnouncement("retrograde", retro_dv, retro_time))
        return coast(f"Apoapsis {ap_km:.0f} km above target - coasting to periapsis "
                     f"({orbit.time_to_periapsis:.0f}s)")

    if case is InsertionCase.CIRCULARIZE:
        return prograde(f"Circularizing at apoapsis (periapsis {pe_km:.0f} km)",
                        announcement=BurnAnnouncement("circularization", circ_dv, circ_time))

    return coast(f"Orbit achieved ({pe_km:.0f} x {ap_km:.0f} km)")


def compute_guidance(state: VehicleState, config: RocketConfig, guidance: GuidanceConfig,
                     orbit: OrbitalElements, previous_pitch: float) -> GuidanceDecision:
    """
    Guidance decision for the current sub-step.

    Args:
        state: Current vehicle state (read only)
        config: Vehicle configuration
        guidance: Guidance policy
        orbit: Orbital elements predicted from the current state
        previous_pitch: Last constrained pitch command (degrees)
    """
    if state.altitude < guidance.atmosphere_limit:
        return _atmospheric_guidance(state, previous_pitch)
    return _vacuum_guidance(state, config, guidance, orbit)
