# Licensed under the PolyForm Noncommercial License 1.0.0
"""Plotting functions for ascent simulation results."""

from typing import Dict, Optional
import numpy as np
import matplotlib.pyplot as plt

from .models import R_earth
from .orbital import propagate_two_body


def plot_results(results: Dict, show: bool = True, save_path: Optional[str] = None,
                 predict_orbit: bool = True) -> None:
    """
    Plot simulation results.

    Args:
        results: Dictionary returned by AscentSimulator.run
        show: Whether to display the plot
        save_path: If provided, save the plot to this path
        predict_orbit: Overlay the coast arc predicted from the final state
    """
    stages = results['stage']
    t = results['t']

    fig, axes = plt.subplots(3, 3, figsize=(15, 15))

    # Define colours for stages
    unique_stages = np.unique(stages)
    colors = plt.cm.viridis(np.linspace(0, 1, len(unique_stages)))

    # 1. Trajectory around Earth, coloured by stage
    for stage_num, color in zip(unique_stages, colors):
        mask = stages == stage_num
        axes[0, 0].plot(results['x'][mask], results['y'][mask], color=color, label=f"Stage {int(stage_num) + 1}")

    if predict_orbit and len(t) > 0:
        rocket = results.get('rocket')
        period = rocket.orbit.period if rocket is not None else np.inf
        duration = period if np.isfinite(period) else 6000.0
        coast = propagate_two_body(results['x'][-1], results['y'][-1],
                                   results['vx'][-1], results['vy'][-1], duration)
        axes[0, 0].plot(coast['x'], coast['y'], color='grey', ls=':', label="Predicted coast")

    circle = plt.Circle((0, 0), R_earth, color='blue', alpha=0.3)
    axes[0, 0].add_artist(circle)
    axes[0, 0].set_aspect('equal')
    axes[0, 0].set_title("Trajectory Around Earth")
    axes[0, 0].set_xlabel("x [m]")
    axes[0, 0].set_ylabel("y [m]")
    axes[0, 0].legend()

    # 2. Altitude vs Time
    for stage_num, color in zip(unique_stages, colors):
        mask = stages == stage_num
        axes[0, 1].plot(t[mask], results['altitude'][mask] / 1000, color=color,
                        label=f"Stage {int(stage_num) + 1}")
    axes[0, 1].set_title("Altitude vs Time")
    axes[0, 1].set_xlabel("Time [s]")
    axes[0, 1].set_ylabel("Altitude [km]")
    axes[0, 1].legend()

    # 3. Commanded pitch and throttle
    axes[0, 2].plot(t, results['pitch'], color='tab:blue', ls='--', label="Pitch [deg]")
    ax_throttle = axes[0, 2].twinx()
    ax_throttle.plot(t, results['throttle'], color='tab:orange', label="Throttle")
    ax_throttle.set_ylim(-0.05, 1.05)
    axes[0, 2].set_title("Time vs commanded pitch and throttle")
    axes[0, 2].set_xlabel("Time [s]")
    axes[0, 2].set_ylabel("Pitch above horizon [deg]")
    ax_throttle.set_ylabel("Throttle")

    # 4. Speed vs Time
    for stage_num, color in zip(unique_stages, colors):
        mask = stages == stage_num
        axes[1, 0].plot(t[mask], results['velocity'][mask], color=color, label=f"Stage {int(stage_num) + 1}")
    axes[1, 0].set_title("Speed vs Time")
    axes[1, 0].set_xlabel("Time [s]")
    axes[1, 0].set_ylabel("Speed [m/s]")
    axes[1, 0].legend()

    # 5. Drag and dynamic pressure
    axes[1, 1].plot(t, results['drag'], color='tab:red', label="Drag [N]")
    ax_q = axes[1, 1].twinx()
    ax_q.plot(t, results['q'] / 1000, color='tab:green', ls='--', label="q [kPa]")
    axes[1, 1].set_title("Drag vs Time")
    axes[1, 1].set_xlabel("Time [s]")
    axes[1, 1].set_ylabel("Drag [N]")
    ax_q.set_ylabel("Dynamic pressure [kPa]")

    # 6. Speed vs Altitude
    for stage_num, color in zip(unique_stages, colors):
        mask = stages == stage_num
        axes[1, 2].plot(results['velocity'][mask], results['altitude'][mask] / 1000,
                        color=color, label=f"Stage {int(stage_num) + 1}")
    axes[1, 2].set_title("Speed vs Altitude")
    axes[1, 2].set_xlabel("Speed [m/s]")
    axes[1, 2].set_ylabel("Altitude [km]")
    axes[1, 2].legend()

    # 7. Apoapsis and periapsis, unbound samples hidden
    apoapsis = np.where(np.isfinite(results['apoapsis']), results['apoapsis'], np.nan)
    axes[2, 0].plot(t, apoapsis / 1000, label="Apoapsis", ls='-')
    axes[2, 0].plot(t, results['periapsis'] / 1000, label="Periapsis", ls='--')
    axes[2, 0].set_ylim(bottom=-200)
    axes[2, 0].set_title("Time vs Apoapsis and Periapsis")
    axes[2, 0].set_xlabel("Time [s]")
    axes[2, 0].set_ylabel("Altitude [km]")
    axes[2, 0].legend()

    # 8. Mach number and drag coefficient
    axes[2, 1].plot(results['mach'], results['cd'], color='tab:purple')
    axes[2, 1].set_title("Drag coefficient vs Mach")
    axes[2, 1].set_xlabel("Mach")
    axes[2, 1].set_ylabel("Cd")

    # 9. Mass vs Time
    for stage_num, color in zip(unique_stages, colors):
        mask = stages == stage_num
        axes[2, 2].plot(t[mask], results['m'][mask] / 1000, color=color, label=f"Stage {int(stage_num) + 1}")
    axes[2, 2].set_title("Mass vs Time")
    axes[2, 2].set_xlabel("Time [s]")
    axes[2, 2].set_ylabel("Mass [t]")
    axes[2, 2].legend()

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()

    plt.close()
