# Licensed under the PolyForm Noncommercial License 1.0.0
"""Thrust, specific impulse and mass flow of the active stage."""

from typing import Tuple

from .atmosphere import pressure_ratio
from .models import RocketConfig, VehicleState, g0


def _active_stage(state: VehicleState, config: RocketConfig):
    """The burning stage, or None when the engine cannot produce thrust."""
    if not state.engine_on or state.current_stage >= len(config.stages):
        return None
    if state.propellant_remaining[state.current_stage] <= 0:
        return None
    return config.stages[state.current_stage]


def _blend(sea_level: float, vacuum: float, altitude: float) -> float:
    """Interpolate a sea-level/vacuum pair by local pressure ratio."""
    ratio = float(pressure_ratio(altitude))
    return sea_level * ratio + vacuum * (1 - ratio)


def current_isp(state: VehicleState, config: RocketConfig, altitude: float) -> float:
    stage = _active_stage(state, config)
    if stage is None:
        return 0.0
    return _blend(stage.isp_sl, stage.isp_vac, altitude)


def current_thrust(state: VehicleState, config: RocketConfig, altitude: float,
                   throttle: float = 1.0) -> float:
    """Thrust (N) at the given altitude and throttle; 0 when off or dry."""
    stage = _active_stage(state, config)
    if stage is None:
        return 0.0
    return _blend(stage.thrust_sl, stage.thrust_vac, altitude) * throttle


def mass_flow_rate(state: VehicleState, config: RocketConfig, altitude: float,
                   throttle: float = 1.0) -> float:
    """Propellant mass flow (kg/s) = thrust / (isp * g0)."""
    isp = current_isp(state, config, altitude)
    if isp <= 0:
        return 0.0
    return current_thrust(state, config, altitude, throttle) / (isp * g0)


def thrust_and_mass_flow(state: VehicleState, config: RocketConfig, altitude: float,
                         throttle: float = 1.0) -> Tuple[float, float]:
    return (current_thrust(state, config, altitude, throttle),
            mass_flow_rate(state, config, altitude, throttle))
