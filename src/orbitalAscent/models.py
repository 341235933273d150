# Licensed under the PolyForm Noncommercial License 1.0.0
"""Data models and constants for the ascent guidance simulator."""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional, Tuple
import math

# Physical constants
G = 6.67430e-11  # Gravitational constant (m^3 kg^-1 s^-2)
R_earth = 6.371e6  # Earth's radius (m)
M_earth = 5.972e24  # Earth's mass (kg)
g0 = 9.80665  # Standard gravity (m/s^2)
mu = M_earth * G  # Earth's gravitational parameter (m^3 s^-2)
omega_earth = 7.2921159e-5  # Earth's rotation rate (rad/s)
P_sea_level = 101325.0  # Sea level pressure (Pa)
KARMAN_LINE = 100e3  # Conventional edge of space (m)

TRAIL_INTERVAL = 0.1  # Simulated seconds between trail samples
TRAIL_LENGTH = 10000


class BurnMode(str, Enum):
    """Fixed thrust directions selectable for a manual burn."""
    PROGRADE = "prograde"
    RETROGRADE = "retrograde"
    NORMAL = "normal"
    ANTI_NORMAL = "anti-normal"
    RADIAL = "radial"
    ANTI_RADIAL = "anti-radial"


class ThrustDirection(str, Enum):
    """How a guidance command's thrust vector was derived."""
    PROGRADE = "prograde"
    RETROGRADE = "retrograde"
    GUIDED = "guided"


class OrbitStatus(str, Enum):
    ELLIPTIC = "elliptic"
    HYPERBOLIC = "hyperbolic"
    DEGENERATE = "degenerate"


@dataclass(frozen=True)
class StageSpec:
    """A single rocket stage.

    Attributes:
        thrust_sl: Thrust at sea level (N)
        thrust_vac: Thrust in vacuum (N)
        isp_sl: Specific impulse at sea level (s)
        isp_vac: Specific impulse in vacuum (s)
        propellant_mass: Loaded propellant (kg)
        dry_mass: Mass of the empty stage (kg)
        diameter: Stage diameter used for the drag reference area (m)
    """
    thrust_sl: float
    thrust_vac: float
    isp_sl: float
    isp_vac: float
    propellant_mass: float
    dry_mass: float
    diameter: float

    def __post_init__(self):
        for name in ("thrust_sl", "thrust_vac", "isp_sl", "isp_vac", "diameter"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")
        if self.propellant_mass < 0 or self.dry_mass < 0:
            raise ValueError("propellant_mass and dry_mass must be non-negative")

    @property
    def reference_area(self) -> float:
        return math.pi * (self.diameter / 2) ** 2


@dataclass(frozen=True)
class RocketConfig:
    """Immutable vehicle description supplied at simulation start."""
    stages: Tuple[StageSpec, ...]
    total_length: float
    fairing_jettison_altitude: float
    payload_mass: float = 0.0
    fairing_mass: float = 0.0

    def __post_init__(self):
        if len(self.stages) == 0:
            raise ValueError("RocketConfig needs at least one stage")
        # Accept any sequence but store a tuple so the config stays hashable
        object.__setattr__(self, "stages", tuple(self.stages))
        if self.total_length <= 0:
            raise ValueError(f"total_length must be positive, got {self.total_length!r}")
        if self.payload_mass < 0 or self.fairing_mass < 0:
            raise ValueError("payload_mass and fairing_mass must be non-negative")

    @property
    def fineness_ratio(self) -> float:
        """Length over first-stage diameter."""
        return self.total_length / self.stages[0].diameter


@dataclass(frozen=True)
class GuidanceConfig:
    """Tunable guidance policy.

    Attributes:
        target_altitude: Altitude of the target circular orbit (m)
        orbit_tolerance: Band around the target counted as achieved (m)
        safe_periapsis: Periapsis below which the orbit is not safe (m)
        atmosphere_limit: Altitude splitting atmospheric and vacuum guidance (m)
        direct_ascent: Raise periapsis immediately instead of coasting to apoapsis
    """
    target_altitude: float = 400e3
    orbit_tolerance: float = 10e3
    safe_periapsis: float = 100e3
    atmosphere_limit: float = 70e3
    direct_ascent: bool = False

    def __post_init__(self):
        if self.target_altitude <= 0:
            raise ValueError(f"target_altitude must be positive, got {self.target_altitude!r}")
        if self.orbit_tolerance <= 0:
            raise ValueError(f"orbit_tolerance must be positive, got {self.orbit_tolerance!r}")


@dataclass
class AtmosphericSample:
    """Atmospheric properties at one altitude (or an array of altitudes)."""
    temperature: float  # K
    pressure: float  # Pa
    density: float  # kg/m^3
    speed_of_sound: float  # m/s
    dynamic_viscosity: float  # Pa s
    geopotential_altitude: float  # m
    layer: int
    is_extrapolated: bool


@dataclass
class OrbitalElements:
    """Osculating two-body elements predicted from the current state.

    Altitudes are measured from the planet's surface. For hyperbolic
    trajectories the apoapsis altitude and period are infinite.
    """
    apoapsis_altitude: float
    periapsis_altitude: float
    semi_major_axis: float
    eccentricity: float
    period: float
    is_descending: bool
    time_to_apoapsis: float = math.inf
    time_to_periapsis: float = math.inf
    status: OrbitStatus = OrbitStatus.ELLIPTIC

    @property
    def is_bound(self) -> bool:
        return self.status is OrbitStatus.ELLIPTIC

    @classmethod
    def degenerate(cls) -> "OrbitalElements":
        return cls(
            apoapsis_altitude=0.0,
            periapsis_altitude=-R_earth,
            semi_major_axis=0.0,
            eccentricity=1.0,
            period=0.0,
            is_descending=False,
            status=OrbitStatus.DEGENERATE,
        )


@dataclass
class BurnAnnouncement:
    """Δv and duration estimate attached to a burn the guidance wants announced."""
    kind: str  # "circularization", "direct-ascent" or "retrograde"
    delta_v: float
    burn_time: float


@dataclass
class GuidanceCommand:
    """Output of one guidance evaluation after constraints are applied."""
    thrust_dir: Tuple[float, float]
    throttle: float
    phase: str
    pitch: float  # degrees above local horizontal
    reason: str
    direction: ThrustDirection = ThrustDirection.GUIDED
    case: Optional[str] = None
    announcement: Optional[BurnAnnouncement] = None


@dataclass
class GuidanceTriggers:
    """One-shot flags so each burn start is announced once per flight."""
    circularization_burn_started: bool = False
    retrograde_burn_started: bool = False

    def reset(self):
        self.circularization_burn_started = False
        self.retrograde_burn_started = False


@dataclass
class FlightEvent:
    time: float
    message: str


@dataclass
class VehicleState:
    """Mutable vehicle state owned by the simulator."""
    x: float
    y: float
    vx: float
    vy: float
    time: float
    current_stage: int
    propellant_remaining: List[float]
    engine_on: bool = True
    burn_mode: Optional[BurnMode] = None
    burn_start_time: Optional[float] = None
    fairing_jettisoned: bool = False
    max_q: float = 0.0
    running: bool = True
    trail: Deque[Tuple[float, float]] = field(default_factory=lambda: deque(maxlen=TRAIL_LENGTH))

    # Written by guidance only
    guidance_phase: str = "pre-launch"
    guidance_pitch: float = 90.0
    guidance_throttle: float = 1.0
    guidance_reason: str = ""

    @classmethod
    def on_pad(cls, config: RocketConfig) -> "VehicleState":
        """Launch-pad state: on the surface, at rest in the rotating frame."""
        x, y = 0.0, R_earth
        return cls(
            x=x,
            y=y,
            vx=omega_earth * y,
            vy=-omega_earth * x,
            time=0.0,
            current_stage=0,
            propellant_remaining=[stage.propellant_mass for stage in config.stages],
        )

    @property
    def radius(self) -> float:
        return math.hypot(self.x, self.y)

    @property
    def altitude(self) -> float:
        return self.radius - R_earth

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)

    def total_mass(self, config: RocketConfig) -> float:
        """Payload, fairing (while attached) and every stage not yet dropped."""
        mass = config.payload_mass
        if not self.fairing_jettisoned:
            mass += config.fairing_mass
        for i in range(self.current_stage, len(config.stages)):
            mass += config.stages[i].dry_mass + max(self.propellant_remaining[i], 0.0)
        return mass


DEFAULT_ROCKET_CONFIG = RocketConfig(
    stages=(
        StageSpec(
            thrust_sl=7.607e6,
            thrust_vac=8.227e6,
            isp_sl=282.0,
            isp_vac=311.0,
            propellant_mass=395700.0,
            dry_mass=25600.0,
            diameter=3.7,
        ),
        StageSpec(
            thrust_sl=0.840e6,
            thrust_vac=0.934e6,
            isp_sl=320.0,
            isp_vac=348.0,
            propellant_mass=92670.0,
            dry_mass=3900.0,
            diameter=3.7,
        ),
    ),
    total_length=70.0,
    fairing_jettison_altitude=110e3,
    payload_mass=15000.0,
    fairing_mass=1700.0,
)
