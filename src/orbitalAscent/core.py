# Licensed under the PolyForm Noncommercial License 1.0.0
"""Core simulation loop for the ascent guidance simulator."""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union
import logging
import math
import numpy as np

from .aerodynamics import air_relative_velocity, drag_acceleration, drag_coefficient_and_mach, drag_force
from .atmosphere import density
from .constraints import PitchLimiter, local_frame
from .guidance import (
    MAX_Q_HOLD_FRACTION,
    PITCH_KICK_END,
    VERTICAL_ASCENT_TIME,
    InsertionCase,
    compute_guidance,
)
from .models import (
    DEFAULT_ROCKET_CONFIG,
    KARMAN_LINE,
    TRAIL_INTERVAL,
    BurnMode,
    FlightEvent,
    GuidanceCommand,
    GuidanceConfig,
    GuidanceTriggers,
    OrbitalElements,
    RocketConfig,
    VehicleState,
    R_earth,
    mu,
)
from .orbital import orbital_elements
from .propulsion import thrust_and_mass_flow

logger = logging.getLogger(__name__)

MAX_OUTER_DT = 1.0  # Simulated seconds per update call
ASCENT_STEP = 0.05  # s
ORBIT_STEP = 0.01  # s, coasting above ORBIT_STEP_ALTITUDE
ORBIT_STEP_ALTITUDE = 150e3  # m
MAX_SUBSTEPS = 1000
LIFTOFF_GRACE = 1.0  # s before ground contact counts as impact
PITCH_PROGRAM_END = 600.0  # s
MANUAL_BURN_ALTITUDE = 150e3  # m
MIN_RADIUS = 1.0  # m

Vector = Tuple[float, float]


def gravity(r: float) -> float:
    """Gravitational acceleration magnitude at radius r from Earth's centre."""
    return mu / max(r, MIN_RADIUS) ** 2


def gravity_acceleration(x: float, y: float) -> Vector:
    """Gravity vector pointing toward Earth's centre."""
    r = max(math.hypot(x, y), MIN_RADIUS)
    g = gravity(r)
    return -g * x / r, -g * y / r


def symplectic_euler_step(x: float, y: float, vx: float, vy: float,
                          ax: float, ay: float, dt: float) -> Tuple[float, float, float, float]:
    """Advance velocity from the acceleration, then position with the new velocity."""
    vx += ax * dt
    vy += ay * dt
    x += vx * dt
    y += vy * dt
    return x, y, vx, vy


def sub_step_size(altitude: float, engine_on: bool) -> float:
    """Finer steps for unpowered orbital coasting."""
    if altitude > ORBIT_STEP_ALTITUDE and not engine_on:
        return ORBIT_STEP
    return ASCENT_STEP


def sub_step_count(dt: float, step_size: float) -> int:
    """Number of integration sub-steps for an outer step, capped at MAX_SUBSTEPS."""
    return min(max(1, math.ceil(dt / step_size)), MAX_SUBSTEPS)


def burn_direction(mode: BurnMode, x: float, y: float, vx: float, vy: float) -> Vector:
    """Fixed thrust unit vector for a manual burn mode."""
    speed = math.hypot(vx, vy)
    prograde = (vx / speed, vy / speed) if speed > 0 else (0.0, 0.0)
    up, _ = local_frame(x, y)
    # Planar model: normal is the in-plane perpendicular picked by the sense of rotation
    h = x * vy - y * vx
    normal = (-up[1], up[0]) if h > 0 else (up[1], -up[0])

    directions = {
        BurnMode.PROGRADE: prograde,
        BurnMode.RETROGRADE: (-prograde[0], -prograde[1]),
        BurnMode.NORMAL: normal,
        BurnMode.ANTI_NORMAL: (-normal[0], -normal[1]),
        BurnMode.RADIAL: up,
        BurnMode.ANTI_RADIAL: (-up[0], -up[1]),
    }
    return directions[mode]


@dataclass(frozen=True)
class Telemetry:
    """Read-only view of the simulation for display and logging."""
    time: float
    x: float
    y: float
    vx: float
    vy: float
    altitude: float
    speed: float
    mass: float
    stage: int
    propellant: Tuple[float, ...]
    engine_on: bool
    burn_mode: Optional[BurnMode]
    fairing_jettisoned: bool
    dynamic_pressure: float
    max_q: float
    mach: float
    drag_coefficient: float
    drag: float
    running: bool
    command: Optional[GuidanceCommand]
    orbit: OrbitalElements


class AscentSimulator:
    """
    Simulates a launch vehicle from the pad to orbit under closed-loop guidance.

    The simulator owns a single VehicleState and advances it with `update`,
    called once per frame with the wall-clock delta.
    """

    def __init__(self, config: RocketConfig = DEFAULT_ROCKET_CONFIG,
                 guidance: Optional[GuidanceConfig] = None):
        """
        Initialize the simulator.

        Args:
            config: Vehicle description
            guidance: Guidance policy, defaults to GuidanceConfig()
        """
        self.config = config
        self.guidance = guidance if guidance is not None else GuidanceConfig()
        self.triggers = GuidanceTriggers()
        self.reset()

    def reset(self):
        """Put a fresh vehicle on the pad and clear every one-shot flag."""
        self.state = VehicleState.on_pad(self.config)
        self.triggers.reset()
        self.limiter = PitchLimiter()
        self.events: List[FlightEvent] = []
        self._fired = set()
        self.last_command: Optional[GuidanceCommand] = None
        self.orbit = orbital_elements(self.state.x, self.state.y, self.state.vx, self.state.vy)
        self._next_trail_time = 0.0

    # ------------------------------------------------------------------
    # Events

    def _emit(self, message: str, key: Optional[str] = None, level: int = logging.INFO):
        """Record a flight event; events with a key fire at most once per flight."""
        if key is not None:
            if key in self._fired:
                return
            self._fired.add(key)
        self.events.append(FlightEvent(self.state.time, message))
        logger.log(level, "T+%.1fs %s", self.state.time, message)

    # ------------------------------------------------------------------
    # Manual burns

    def set_burn_mode(self, mode: Union[BurnMode, str, None]):
        """
        Select a manual burn direction, or None to end the current burn.

        Raises:
            ValueError: if mode is not a BurnMode or one of its values
        """
        if mode is not None and not isinstance(mode, BurnMode):
            try:
                mode = BurnMode(mode)
            except ValueError:
                raise ValueError(f"Unknown burn mode {mode!r}") from None

        s = self.state
        if mode == s.burn_mode:
            return
        if s.burn_mode is not None and s.burn_start_time is not None:
            self._end_burn()
            s.engine_on = False
        s.burn_mode = mode
        s.burn_start_time = None

    def _end_burn(self, suffix: str = ""):
        s = self.state
        start = s.burn_start_time if s.burn_start_time is not None else s.time
        name = s.burn_mode.value.upper()
        self._emit(f"{name} burn ended{suffix} ({s.time - start:.1f}s)")
        s.burn_mode = None
        s.burn_start_time = None

    def _has_propellant(self) -> bool:
        s = self.state
        return s.current_stage < len(self.config.stages) and s.propellant_remaining[s.current_stage] > 0

    def _manual_burn_active(self, altitude: float) -> bool:
        s = self.state
        if s.burn_mode is None:
            return False
        pitch_program_complete = s.time > PITCH_PROGRAM_END or (not s.engine_on and altitude > MANUAL_BURN_ALTITUDE)
        return pitch_program_complete and altitude > MANUAL_BURN_ALTITUDE

    # ------------------------------------------------------------------
    # Integration

    def _integrate(self, thrust_dir: Vector, throttle: float, dt: float):
        """One symplectic Euler sub-step under gravity, thrust and drag."""
        s = self.state
        r = s.radius
        altitude = r - R_earth
        mass = s.total_mass(self.config)

        gx, gy = gravity_acceleration(s.x, s.y)
        thrust, m_dot = thrust_and_mass_flow(s, self.config, altitude, throttle)
        thrust_accel = thrust / mass if mass > 0 else 0.0
        dax, day = drag_acceleration(s.x, s.y, s.vx, s.vy, altitude, mass, self.config, s.current_stage)

        ax = gx + thrust_accel * thrust_dir[0] + dax
        ay = gy + thrust_accel * thrust_dir[1] + day
        s.x, s.y, s.vx, s.vy = symplectic_euler_step(s.x, s.y, s.vx, s.vy, ax, ay, dt)

        if s.engine_on and s.current_stage < len(self.config.stages):
            s.propellant_remaining[s.current_stage] -= m_dot * dt
        s.time += dt

    def _guided_substep(self, dt: float):
        """Re-run guidance for this sub-step, then integrate."""
        s = self.state
        orbit = orbital_elements(s.x, s.y, s.vx, s.vy)
        decision = compute_guidance(s, self.config, self.guidance, orbit, self.limiter.previous_pitch)
        command = self.limiter.apply(decision, s.x, s.y, dt)

        s.engine_on = command.throttle > 0 and self._has_propellant()
        s.guidance_phase = command.phase
        s.guidance_pitch = command.pitch
        s.guidance_throttle = command.throttle
        s.guidance_reason = command.reason
        self.last_command = command

        self._announce(command)
        self._integrate(command.thrust_dir, command.throttle, dt)

    def _announce(self, command: GuidanceCommand):
        if command.case == InsertionCase.ORBIT_ACHIEVED.value:
            self._emit(f"Orbit achieved - {command.reason}", key="orbit")

        burn = command.announcement
        if burn is None or not self.state.engine_on or command.throttle <= 0:
            return
        if burn.kind == "retrograde":
            if not self.triggers.retrograde_burn_started:
                self.triggers.retrograde_burn_started = True
                self._emit(f"Retrograde burn start (Δv: {burn.delta_v / 1000:.1f} km/s, {burn.burn_time:.1f}s)")
        elif not self.triggers.circularization_burn_started:
            self.triggers.circularization_burn_started = True
            if burn.kind == "direct-ascent":
                self._emit("Direct ascent burn - raising periapsis to target")
            else:
                self._emit(f"Circularization burn start (Δv: {burn.delta_v / 1000:.1f} km/s, "
                           f"{burn.burn_time:.1f}s)")

    def _check_impact(self) -> bool:
        s = self.state
        if s.radius < R_earth and s.time > LIFTOFF_GRACE:
            s.running = False
            self._emit("MISSION FAILURE - Ground impact", key="impact", level=logging.WARNING)
            return True
        return False

    def update(self, dt: float, time_warp: float = 1.0) -> int:
        """
        Advance the simulation by one frame.

        Args:
            dt: Wall-clock time since the last frame (s)
            time_warp: Time acceleration factor

        Returns:
            Number of integration sub-steps taken
        """
        s = self.state
        if not s.running:
            return 0

        dt = min(dt * time_warp, MAX_OUTER_DT)
        if not dt > 0:
            return 0
        if self._check_impact():
            return 0

        altitude = s.altitude
        manual = self._manual_burn_active(altitude)
        if manual:
            if not s.engine_on and self._has_propellant():
                s.engine_on = True
            direction = burn_direction(s.burn_mode, s.x, s.y, s.vx, s.vy)
            s.guidance_phase = f"manual-{s.burn_mode.value}"

            def advance(step_dt):
                self._integrate(direction, 1.0, step_dt)
        else:
            advance = self._guided_substep

        steps = sub_step_count(dt, sub_step_size(altitude, s.engine_on))
        step_dt = dt / steps
        taken = 0
        for _ in range(steps):
            advance(step_dt)
            taken += 1
            if self._check_impact():
                break

        if s.running:
            self._finish_tick(manual)
        return taken

    def _finish_tick(self, manual: bool):
        """Staging, burn bookkeeping and one-shot events after the sub-steps."""
        s = self.state
        n_stages = len(self.config.stages)

        if s.current_stage < n_stages and s.propellant_remaining[s.current_stage] <= 0:
            s.propellant_remaining[s.current_stage] = 0.0
            if s.current_stage < n_stages - 1:
                self._emit("MECO" if s.current_stage == 0 else f"Stage {s.current_stage + 1} cutoff")
                s.current_stage += 1
                self._emit("Stage separation")
                self._emit(f"SES-{s.current_stage}")
                if s.burn_mode is not None and s.burn_start_time is not None:
                    self._end_burn(" - out of propellant")
            else:
                self._emit("SECO", key="seco")
                s.engine_on = False
                if s.burn_mode is not None and s.burn_start_time is not None:
                    self._end_burn(" - out of propellant")

        if s.burn_mode is not None and s.burn_start_time is not None and not s.engine_on:
            self._end_burn()
        if manual and s.burn_mode is not None and s.burn_start_time is None:
            s.burn_start_time = s.time

        altitude = s.altitude
        if not s.fairing_jettisoned and altitude > self.config.fairing_jettison_altitude:
            s.fairing_jettisoned = True
            self._emit("Fairing jettison")

        airspeed, _, _ = air_relative_velocity(s.x, s.y, s.vx, s.vy)
        q = 0.5 * float(density(altitude)) * airspeed * airspeed
        if q > s.max_q:
            s.max_q = q
        elif s.max_q > 0 and q < MAX_Q_HOLD_FRACTION * s.max_q and altitude < self.guidance.atmosphere_limit:
            self._emit(f"Max-Q ({s.max_q / 1000:.1f} kPa)", key="max-q")

        self.orbit = orbital_elements(s.x, s.y, s.vx, s.vy)

        if s.time >= self._next_trail_time:
            s.trail.append((s.x, s.y))
            self._next_trail_time = s.time + TRAIL_INTERVAL

        if s.time >= VERTICAL_ASCENT_TIME:
            self._emit("Gravity turn kick", key="kick")
        if s.time >= PITCH_KICK_END:
            self._emit("Gravity turn active - thrusting prograde", key="turn")
        if altitude >= KARMAN_LINE:
            self._emit("Kármán line - SPACE!", key="karman")

    # ------------------------------------------------------------------
    # Output

    def snapshot(self) -> Telemetry:
        """Read-only telemetry for the current state."""
        s = self.state
        altitude = s.altitude
        airspeed, _, _ = air_relative_velocity(s.x, s.y, s.vx, s.vy)
        cd, mach = drag_coefficient_and_mach(altitude, airspeed, self.config.fineness_ratio)
        drag = 0.0
        if s.current_stage < len(self.config.stages):
            drag = drag_force(altitude, airspeed, self.config.stages[s.current_stage], self.config.fineness_ratio)
        return Telemetry(
            time=s.time,
            x=s.x,
            y=s.y,
            vx=s.vx,
            vy=s.vy,
            altitude=altitude,
            speed=s.speed,
            mass=s.total_mass(self.config),
            stage=s.current_stage,
            propellant=tuple(s.propellant_remaining),
            engine_on=s.engine_on,
            burn_mode=s.burn_mode,
            fairing_jettisoned=s.fairing_jettisoned,
            dynamic_pressure=0.5 * float(density(altitude)) * airspeed * airspeed,
            max_q=s.max_q,
            mach=mach,
            drag_coefficient=cd,
            drag=drag,
            running=s.running,
            command=self.last_command,
            orbit=self.orbit,
        )

    def run(self, duration: float, frame_dt: float = 0.1, time_warp: float = 1.0,
            callback: Optional[Callable[["AscentSimulator"], None]] = None) -> Dict:
        """
        Fly the vehicle for `duration` simulated seconds.

        Args:
            duration: Simulated time to run (s)
            frame_dt: Wall-clock frame length passed to update (s)
            time_warp: Time acceleration factor
            callback: Called after every frame, e.g. to change burn mode

        Returns:
            Dictionary containing simulation results

        Raises:
            ValueError: if frame_dt or time_warp is not positive
        """
        if not frame_dt > 0:
            raise ValueError(f"frame_dt must be positive, got {frame_dt!r}")
        if not time_warp > 0:
            raise ValueError(f"time_warp must be positive, got {time_warp!r}")
        keys = ['t', 'x', 'y', 'vx', 'vy', 'm', 'stage', 'altitude', 'velocity', 'pitch',
                'throttle', 'apoapsis', 'periapsis', 'drag', 'mach', 'cd', 'q']
        records = {k: [] for k in keys}

        def record():
            snap = self.snapshot()
            records['t'].append(snap.time)
            records['x'].append(snap.x)
            records['y'].append(snap.y)
            records['vx'].append(snap.vx)
            records['vy'].append(snap.vy)
            records['m'].append(snap.mass)
            records['stage'].append(snap.stage)
            records['altitude'].append(snap.altitude)
            records['velocity'].append(snap.speed)
            records['pitch'].append(self.state.guidance_pitch)
            records['throttle'].append(self.state.guidance_throttle if snap.engine_on else 0.0)
            records['apoapsis'].append(snap.orbit.apoapsis_altitude)
            records['periapsis'].append(snap.orbit.periapsis_altitude)
            records['drag'].append(snap.drag)
            records['mach'].append(snap.mach)
            records['cd'].append(snap.drag_coefficient)
            records['q'].append(snap.dynamic_pressure)

        end_time = self.state.time + duration
        record()
        while self.state.running and self.state.time < end_time - 1e-9:
            remaining = (end_time - self.state.time) / time_warp
            self.update(min(frame_dt, remaining), time_warp)
            record()
            if callback is not None:
                callback(self)

        results = {k: np.array(v) for k, v in records.items()}
        results.update({
            'events': list(self.events),
            'rocket': self,
            'success': self.state.running,
            'message': self.events[-1].message if self.events else 'Simulation completed',
        })
        return results
