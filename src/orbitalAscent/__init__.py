# Licensed under the PolyForm Noncommercial License 1.0.0
"""Orbital Ascent - closed-loop guidance of a launch vehicle from the pad to orbit."""

from .models import (
    G,
    R_earth,
    M_earth,
    g0,
    mu,
    BurnMode,
    GuidanceCommand,
    GuidanceConfig,
    OrbitalElements,
    RocketConfig,
    StageSpec,
    VehicleState,
    DEFAULT_ROCKET_CONFIG,
)

from .atmosphere import atmosphere
from .aerodynamics import mach_drag_coefficient
from .orbital import orbital_elements
from .guidance import InsertionCase, select_insertion_case
from .core import AscentSimulator
from .config import load_config
from .plotting import plot_results

__version__ = "0.1.0"
__all__ = [
    "AscentSimulator",
    "BurnMode",
    "GuidanceCommand",
    "GuidanceConfig",
    "InsertionCase",
    "OrbitalElements",
    "RocketConfig",
    "StageSpec",
    "VehicleState",
    "DEFAULT_ROCKET_CONFIG",
    "atmosphere",
    "mach_drag_coefficient",
    "orbital_elements",
    "select_insertion_case",
    "load_config",
    "plot_results",
    "G",
    "R_earth",
    "M_earth",
    "g0",
    "mu",
]
