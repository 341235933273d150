"""Tests for configuration objects and the YAML loader."""

import pytest
from orbitalAscent import DEFAULT_ROCKET_CONFIG, GuidanceConfig, RocketConfig, StageSpec, load_config
from orbitalAscent.config import CONFIG_ENV, rocket_config_from_dict

VEHICLE_YAML = """
rocket:
  total_length: 30.0
  fairing_jettison_altitude: 90000
  payload_mass: 300
  stages:
    - {thrust_sl: 200000, thrust_vac: 230000, isp_sl: 260, isp_vac: 300,
       propellant_mass: 9000, dry_mass: 1000, diameter: 1.5}
    - {thrust_sl: 20000, thrust_vac: 25000, isp_sl: 300, isp_vac: 340,
       propellant_mass: 2000, dry_mass: 300, diameter: 1.2}
guidance:
  target_altitude: 250000
  direct_ascent: true
"""


def test_defaults_without_path(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    rocket, guidance = load_config()
    assert rocket is DEFAULT_ROCKET_CONFIG
    assert guidance == GuidanceConfig()


def test_load_from_file(tmp_path):
    path = tmp_path / "vehicle.yaml"
    path.write_text(VEHICLE_YAML)
    rocket, guidance = load_config(path)

    assert len(rocket.stages) == 2
    assert rocket.stages[1].isp_vac == 340
    assert rocket.fairing_mass == 0.0
    assert rocket.fineness_ratio == pytest.approx(20.0)
    assert guidance.target_altitude == 250000
    assert guidance.direct_ascent
    assert guidance.orbit_tolerance == 10e3


def test_env_var_path(tmp_path, monkeypatch):
    path = tmp_path / "guidance_only.yaml"
    path.write_text("guidance:\n  safe_periapsis: 120000\n")
    monkeypatch.setenv(CONFIG_ENV, str(path))
    rocket, guidance = load_config()
    assert rocket is DEFAULT_ROCKET_CONFIG
    assert guidance.safe_periapsis == 120000


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize("text", [
    "rocket: [1, 2",
    "- just\n- a list\n",
    "rocket:\n  total_length: 30\n",
    "guidance:\n  warp_speed: 9\n",
    "guidance:\n  target_altitude: -5\n",
])
def test_malformed_documents(tmp_path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text)
    with pytest.raises(ValueError):
        load_config(path)


def test_stage_validation():
    with pytest.raises(ValueError):
        StageSpec(thrust_sl=0.0, thrust_vac=1.0, isp_sl=1.0, isp_vac=1.0,
                  propellant_mass=1.0, dry_mass=1.0, diameter=1.0)
    with pytest.raises(ValueError):
        StageSpec(thrust_sl=1.0, thrust_vac=1.0, isp_sl=1.0, isp_vac=1.0,
                  propellant_mass=-1.0, dry_mass=1.0, diameter=1.0)
    with pytest.raises(ValueError):
        RocketConfig(stages=(), total_length=10.0, fairing_jettison_altitude=1.0)
    with pytest.raises(ValueError):
        rocket_config_from_dict({"stages": [{"thrust_sl": 1.0}], "total_length": 1.0,
                                 "fairing_jettison_altitude": 1.0})


def test_stages_stored_as_tuple():
    stage = DEFAULT_ROCKET_CONFIG.stages[0]
    config = RocketConfig(stages=[stage], total_length=40.0, fairing_jettison_altitude=1e5)
    assert isinstance(config.stages, tuple)
    assert config.stages[0].reference_area == pytest.approx(3.14159 * 1.85 ** 2, rel=1e-4)
