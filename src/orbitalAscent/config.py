# Licensed under the PolyForm Noncommercial License 1.0.0
"""Load vehicle and guidance configuration from YAML."""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import os
import yaml

from .models import DEFAULT_ROCKET_CONFIG, GuidanceConfig, RocketConfig, StageSpec

CONFIG_ENV = "ASCENT_CONFIG"  # path to a default YAML document


def _load_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc


def rocket_config_from_dict(data: Dict[str, Any]) -> RocketConfig:
    """
    Build a RocketConfig from a mapping.

    Expected keys: stages (list of StageSpec fields), total_length,
    fairing_jettison_altitude, and optionally payload_mass and fairing_mass.
    """
    try:
        stages = tuple(StageSpec(**stage) for stage in data["stages"])
        return RocketConfig(
            stages=stages,
            total_length=data["total_length"],
            fairing_jettison_altitude=data["fairing_jettison_altitude"],
            payload_mass=data.get("payload_mass", 0.0),
            fairing_mass=data.get("fairing_mass", 0.0),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed rocket configuration: {exc}") from exc


def guidance_config_from_dict(data: Dict[str, Any]) -> GuidanceConfig:
    try:
        return GuidanceConfig(**data)
    except TypeError as exc:
        raise ValueError(f"Malformed guidance configuration: {exc}") from exc


def load_config(path: Union[str, Path, None] = None) -> Tuple[RocketConfig, GuidanceConfig]:
    """
    Load a YAML document with optional `rocket:` and `guidance:` sections.

    Missing sections fall back to the defaults. With no path, the file named
    by $ASCENT_CONFIG is used if set, else the defaults are returned.

    Raises:
        FileNotFoundError: if the requested file does not exist
        ValueError: if the document is malformed
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV)
        if not env_path:
            return DEFAULT_ROCKET_CONFIG, GuidanceConfig()
        path = env_path

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    doc = _load_yaml(path)
    if not isinstance(doc, dict):
        raise ValueError(f"Expected a mapping at the top of {path}")

    rocket: Optional[Dict[str, Any]] = doc.get("rocket")
    guidance: Optional[Dict[str, Any]] = doc.get("guidance")
    rocket_config = rocket_config_from_dict(rocket) if rocket else DEFAULT_ROCKET_CONFIG
    guidance_config = guidance_config_from_dict(guidance) if guidance else GuidanceConfig()
    return rocket_config, guidance_config
