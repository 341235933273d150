# Licensed under the PolyForm Noncommercial License 1.0.0
"""Pitch clamp and rate limiter applied to every guidance output."""

from typing import Tuple
import math
import numpy as np

from .models import GuidanceCommand

PITCH_MIN = -5.0  # degrees above local horizontal
PITCH_MAX = 90.0
PITCH_RATE_LIMIT = 3.0  # degrees per second


def local_frame(x: float, y: float) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """Unit vectors (up, east) at position (x, y)."""
    r = math.hypot(x, y)
    if r <= 0:
        return (0.0, 1.0), (1.0, 0.0)
    up = (x / r, y / r)
    east = (up[1], -up[0])
    return up, east


def thrust_vector(pitch_deg: float, x: float, y: float, horizontal_sign: float = 1.0) -> Tuple[float, float]:
    """
    Convert a pitch above local horizontal to an inertial unit vector.

    Args:
        pitch_deg: Pitch above local horizontal (degrees)
        x, y: Position of the vehicle
        horizontal_sign: +1 to lean east, -1 to lean west
    """
    up, east = local_frame(x, y)
    p = math.radians(pitch_deg)
    hx, hy = east[0] * horizontal_sign, east[1] * horizontal_sign
    return (math.cos(p) * hx + math.sin(p) * up[0],
            math.cos(p) * hy + math.sin(p) * up[1])


class PitchLimiter:
    """
    Reconciles every guidance phase into a realisable attitude.

    The commanded pitch is clamped to [PITCH_MIN, PITCH_MAX] and may move at
    most PITCH_RATE_LIMIT * dt away from the previous command.
    """

    def __init__(self, initial_pitch: float = PITCH_MAX, rate_limit: float = PITCH_RATE_LIMIT):
        self.rate_limit = rate_limit
        self.initial_pitch = initial_pitch
        self.previous_pitch = initial_pitch

    def reset(self):
        self.previous_pitch = self.initial_pitch

    def limit(self, pitch_deg: float, dt: float) -> float:
        """Clamp, then rate limit relative to the previous command."""
        if not np.isfinite(pitch_deg):
            pitch_deg = self.previous_pitch
        target = float(np.clip(pitch_deg, PITCH_MIN, PITCH_MAX))
        max_step = self.rate_limit * max(dt, 0.0)
        pitch = self.previous_pitch + float(np.clip(target - self.previous_pitch, -max_step, max_step))
        self.previous_pitch = pitch
        return pitch

    def apply(self, decision, x: float, y: float, dt: float) -> GuidanceCommand:
        """Turn a raw guidance decision into a command with a thrust unit vector."""
        pitch = self.limit(decision.pitch, dt)
        throttle = float(np.clip(decision.throttle, 0.0, 1.0)) if np.isfinite(decision.throttle) else 0.0
        return GuidanceCommand(
            thrust_dir=thrust_vector(pitch, x, y, decision.horizontal_sign),
            throttle=throttle,
            phase=decision.phase,
            pitch=pitch,
            reason=decision.reason,
            direction=decision.direction,
            case=decision.case,
            announcement=decision.announcement,
        )
