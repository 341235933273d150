# Licensed under the PolyForm Noncommercial License 1.0.0
"""Two-body orbital elements predicted from position and velocity."""

import logging
from typing import Dict, Sequence, Tuple
import math
import numpy as np
from scipy.integrate import solve_ivp

from .models import OrbitalElements, OrbitStatus, R_earth, mu

logger = logging.getLogger(__name__)

MIN_RADIUS = 1.0  # m, below this the elements are undefined
MIN_ENERGY = 1e-9  # J/kg, treated as parabolic
CIRCULAR_ECCENTRICITY = 1e-9


def _radius(state):
    return np.sqrt(state[0] ** 2 + state[1] ** 2)


def _speed(state):
    return np.sqrt(state[2] ** 2 + state[3] ** 2)


def specific_energy(state: Sequence) -> np.ndarray:
    """Specific orbital energy v^2/2 - mu/r (J/kg). state is [x, y, vx, vy, ...]."""
    r = np.maximum(_radius(state), MIN_RADIUS)
    return 0.5 * _speed(state) ** 2 - mu / r


def angular_momentum(state: Sequence) -> np.ndarray:
    """Specific angular momentum x*vy - y*vx (m^2/s); negative for eastward flight."""
    x, y, vx, vy = state[0], state[1], state[2], state[3]
    return x * vy - y * vx


def semi_major_axis(state: Sequence) -> np.ndarray:
    """Signed semi-major axis; negative when hyperbolic, infinite when parabolic."""
    energy = np.atleast_1d(specific_energy(state))
    safe = np.where(np.abs(energy) < MIN_ENERGY, -1.0, energy)
    sma = np.where(np.abs(energy) < MIN_ENERGY, np.inf, -mu / (2 * safe))
    if sma.size == 1:
        return sma[0]
    return sma


def eccentricity_vector(state: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    x, y, vx, vy = state[0], state[1], state[2], state[3]
    r = np.maximum(_radius(state), MIN_RADIUS)
    v2 = vx ** 2 + vy ** 2
    rv = x * vx + y * vy

    ex = (v2 - mu / r) * x / mu - rv * vx / mu
    ey = (v2 - mu / r) * y / mu - rv * vy / mu
    return ex, ey


def eccentricity(state: Sequence) -> np.ndarray:
    """Orbital eccentricity (0 = circle, 1 = parabola)."""
    ex, ey = eccentricity_vector(state)
    return np.sqrt(ex ** 2 + ey ** 2)


def orbital_period(state: Sequence) -> np.ndarray:
    """Orbital period (s); infinite for unbound trajectories."""
    a = np.atleast_1d(semi_major_axis(state)).astype(float)
    period = np.full_like(a, np.inf)
    bound = np.isfinite(a) & (a > 0)
    period[bound] = 2 * np.pi * np.sqrt(a[bound] ** 3 / mu)
    if period.size == 1:
        return period[0]
    return period


def periapsis_apoapsis(state: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    """Periapsis and apoapsis radii from the planet's centre (m)."""
    a = np.atleast_1d(semi_major_axis(state)).astype(float)
    e = np.atleast_1d(eccentricity(state)).astype(float)
    h = np.atleast_1d(angular_momentum(state)).astype(float)

    bound = np.isfinite(a) & (a > 0)
    rp = np.empty_like(a)
    ra = np.full_like(a, np.inf)
    rp[bound] = a[bound] * (1 - e[bound])
    ra[bound] = a[bound] * (1 + e[bound])
    # p / (1 + e) holds for every conic
    rp[~bound] = h[~bound] ** 2 / mu / (1 + e[~bound])

    if rp.size == 1:
        return rp[0], ra[0]
    return rp, ra


def circular_velocity(radius: float) -> float:
    return math.sqrt(mu / radius)


def vis_viva(radius: float, sma: float) -> float:
    """Speed at radius on an orbit with semi-major axis sma."""
    return math.sqrt(max(mu * (2.0 / radius - 1.0 / sma), 0.0))


def _apsis_times(x, y, vx, vy, a, e) -> Tuple[float, float]:
    """Time until next apoapsis and periapsis on an elliptic orbit."""
    n = math.sqrt(mu / a ** 3)
    if e < CIRCULAR_ECCENTRICITY:
        return 0.0, 0.0

    ex, ey = eccentricity_vector((x, y, vx, vy))
    r = math.hypot(x, y)
    cos_nu = float(np.clip((ex * x + ey * y) / (e * r), -1.0, 1.0))
    nu = math.acos(cos_nu)
    if x * vx + y * vy < 0:
        nu = 2 * math.pi - nu

    E = 2 * math.atan2(math.sqrt(max(1 - e, 0.0)) * math.sin(nu / 2),
                       math.sqrt(1 + e) * math.cos(nu / 2))
    M = (E - e * math.sin(E)) % (2 * math.pi)

    to_apoapsis = ((math.pi - M) % (2 * math.pi)) / n
    to_periapsis = ((2 * math.pi - M) % (2 * math.pi)) / n
    return to_apoapsis, to_periapsis


def orbital_elements(x: float, y: float, vx: float, vy: float) -> OrbitalElements:
    """
    Predict the osculating orbit from an inertial position and velocity.

    Degenerate states (radius near zero, non-finite input) are reported with
    OrbitStatus.DEGENERATE instead of propagating NaN; unbound trajectories
    report OrbitStatus.HYPERBOLIC with an infinite apoapsis.
    """
    values = (x, y, vx, vy)
    if not all(math.isfinite(v) for v in values) or math.hypot(x, y) < MIN_RADIUS:
        logger.debug("Degenerate orbital state %r", values)
        return OrbitalElements.degenerate()

    a = float(semi_major_axis(values))
    e = float(eccentricity(values))
    rp, ra = (float(r) for r in periapsis_apoapsis(values))
    descending = x * vx + y * vy < 0

    if not (math.isfinite(a) and a > 0):
        return OrbitalElements(
            apoapsis_altitude=math.inf,
            periapsis_altitude=rp - R_earth,
            semi_major_axis=a,
            eccentricity=e,
            period=math.inf,
            is_descending=descending,
            status=OrbitStatus.HYPERBOLIC,
        )

    # Bound orbits have e <= 1; purely radial ones sit on the limit
    e = min(e, 1.0)
    to_apoapsis, to_periapsis = _apsis_times(x, y, vx, vy, a, e)
    return OrbitalElements(
        apoapsis_altitude=ra - R_earth,
        periapsis_altitude=rp - R_earth,
        semi_major_axis=a,
        eccentricity=e,
        period=float(orbital_period(values)),
        is_descending=descending,
        time_to_apoapsis=to_apoapsis,
        time_to_periapsis=to_periapsis,
    )


def _two_body(t, y):
    r = np.sqrt(y[0] ** 2 + y[1] ** 2)
    k = -mu / r ** 3
    return np.array([y[2], y[3], k * y[0], k * y[1]])


def propagate_two_body(x: float, y: float, vx: float, vy: float, duration: float,
                       n_points: int = 500, **solver_kwargs) -> Dict[str, np.ndarray]:
    """
    Reference coast propagation under point-mass gravity only.

    Args:
        x, y, vx, vy: Initial inertial state
        duration: Propagation time (s)
        n_points: Number of output samples
        **solver_kwargs: Additional arguments to pass to solve_ivp

    Returns:
        Dictionary with 't', 'x', 'y', 'vx', 'vy' arrays
    """
    def surface_event(t, state):
        return np.sqrt(state[0] ** 2 + state[1] ** 2) - R_earth

    surface_event.terminal = True
    surface_event.direction = -1

    solver_kwargs.setdefault('rtol', 1e-10)
    solver_kwargs.setdefault('atol', 1e-6)
    sol = solve_ivp(
        _two_body,
        (0.0, duration),
        np.array([x, y, vx, vy], dtype=float),
        method='DOP853',
        t_eval=np.linspace(0.0, duration, n_points),
        events=[surface_event],
        **solver_kwargs
    )

    return {
        't': sol.t,
        'x': sol.y[0],
        'y': sol.y[1],
        'vx': sol.y[2],
        'vy': sol.y[3],
    }
