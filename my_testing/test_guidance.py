"""Unit tests for guidance case selection, guidance laws and the pitch limiter."""

import itertools
import math
import numpy as np
import pytest
from orbitalAscent import DEFAULT_ROCKET_CONFIG, GuidanceConfig, VehicleState
from orbitalAscent.constraints import PITCH_MAX, PITCH_MIN, PITCH_RATE_LIMIT, PitchLimiter, thrust_vector
from orbitalAscent.guidance import (
    INSERTION_CASES,
    InsertionInputs,
    InsertionCase,
    burn_time_estimate,
    circularization_delta_v,
    compute_guidance,
    flight_path_angle,
    retrograde_delta_v,
    select_insertion_case,
    target_flight_path_angle,
)
from orbitalAscent.models import R_earth, ThrustDirection, mu
from orbitalAscent.orbital import orbital_elements, vis_viva

TARGET = 400e3
SAFE = 100e3


@pytest.mark.parametrize("pe, ap, near, descending, expected", [
    (-50e3, 450e3, False, False, InsertionCase.EMERGENCY_HORIZONTAL),
    (-50e3, 400e3, True, True, InsertionCase.EMERGENCY_HORIZONTAL),
    (-50e3, 300e3, False, False, InsertionCase.RAISE_APOAPSIS),
    (150e3, 200e3, True, True, InsertionCase.RAISE_APOAPSIS),
    (50e3, 400e3, False, True, InsertionCase.EMERGENCY_PROGRADE),
    (50e3, 400e3, True, False, InsertionCase.RAISE_PERIAPSIS),
    (-10e3, 395e3, False, False, InsertionCase.RAISE_PERIAPSIS),
    (200e3, 500e3, False, False, InsertionCase.LOWER_APOAPSIS),
    (200e3, 400e3, True, False, InsertionCase.CIRCULARIZE),
    (200e3, 400e3, False, False, InsertionCase.COAST_TO_APOAPSIS),
    (395e3, 405e3, False, True, InsertionCase.ORBIT_ACHIEVED),
    (400e3, 400e3, True, False, InsertionCase.ORBIT_ACHIEVED),
])
def test_case_table(pe, ap, near, descending, expected):
    assert select_insertion_case(pe, ap, TARGET, SAFE, near, descending) is expected


def test_case_zero_beats_case_one():
    # Pe < 0 and Ap >= target is an emergency even though the orbit is not yet raised
    case = select_insertion_case(-50e3, 450e3, 400e3, 100e3, False, False)
    assert case is InsertionCase.EMERGENCY_HORIZONTAL


def test_table_order_decides():
    altitudes = [-100e3, 0.0, 50e3, 150e3, 385e3, 395e3, 400e3, 405e3, 420e3, math.inf]
    for pe, ap, near, desc in itertools.product(altitudes, altitudes, (False, True), (False, True)):
        case = select_insertion_case(pe, ap, TARGET, SAFE, near, desc)
        inputs = InsertionInputs(pe, ap, TARGET, SAFE, near, desc, 10e3)
        matches = [c for c, predicate in INSERTION_CASES if predicate(inputs)]
        assert case is matches[0]


def test_pitch_limiter_bounds_and_rate():
    rng = np.random.default_rng(42)
    limiter = PitchLimiter()
    previous = limiter.previous_pitch
    for _ in range(5000):
        raw = rng.uniform(-200.0, 200.0)
        dt = rng.uniform(0.0, 0.2)
        pitch = limiter.limit(raw, dt)
        assert PITCH_MIN <= pitch <= PITCH_MAX
        assert abs(pitch - previous) <= PITCH_RATE_LIMIT * dt + 1e-9
        previous = pitch


def test_pitch_limiter_converges_and_ignores_nan():
    limiter = PitchLimiter()
    for _ in range(100):
        pitch = limiter.limit(45.0, 1.0)
    assert pitch == pytest.approx(45.0)
    assert limiter.limit(float('nan'), 1.0) == pytest.approx(45.0)
    assert limiter.limit(-90.0, 100.0) == PITCH_MIN
    limiter.reset()
    assert limiter.previous_pitch == PITCH_MAX


def test_thrust_vector_frame():
    assert thrust_vector(90.0, 0.0, R_earth) == pytest.approx((0.0, 1.0))
    assert thrust_vector(0.0, 0.0, R_earth) == pytest.approx((1.0, 0.0))
    assert thrust_vector(0.0, 0.0, R_earth, -1.0) == pytest.approx((-1.0, 0.0))
    vx, vy = thrust_vector(30.0, R_earth, 0.0)
    assert math.hypot(vx, vy) == pytest.approx(1.0)


def test_flight_path_angle():
    assert flight_path_angle(0.0, R_earth, 100.0, 100.0) == pytest.approx((45.0, 1.0))
    assert flight_path_angle(0.0, R_earth, -100.0, 100.0) == pytest.approx((45.0, -1.0))
    assert flight_path_angle(0.0, R_earth, 100.0, -100.0)[0] == pytest.approx(-45.0)
    assert flight_path_angle(0.0, R_earth, 0.0, 0.0)[0] == 90.0


def test_target_flight_path_angle_progress():
    config = GuidanceConfig(target_altitude=400e3)
    assert target_flight_path_angle(70e3, config) > target_flight_path_angle(200e3, config)
    assert target_flight_path_angle(400e3, config) == 0.0
    assert target_flight_path_angle(900e3, config) == 0.0


def _state_at(t, altitude=0.0, vx=None, vy=0.0):
    state = VehicleState.on_pad(DEFAULT_ROCKET_CONFIG)
    state.time = t
    state.y = R_earth + altitude
    if vx is not None:
        state.vx = vx
    state.vy = vy
    return state


def _guide(state, guidance=None, previous=90.0):
    guidance = guidance or GuidanceConfig()
    orbit = orbital_elements(state.x, state.y, state.vx, state.vy)
    return compute_guidance(state, DEFAULT_ROCKET_CONFIG, guidance, orbit, previous)


def test_vertical_ascent_then_pitch_kick():
    decision = _guide(_state_at(5.0))
    assert decision.phase == "vertical-ascent"
    assert decision.pitch == 90.0
    assert decision.throttle == 1.0

    decision = _guide(_state_at(11.5, altitude=500.0, vy=50.0))
    assert decision.phase == "pitch-kick"
    assert decision.pitch == pytest.approx(87.5)


def test_max_q_hold_and_gravity_turn():
    state = _state_at(40.0, altitude=8e3, vy=300.0)
    state.vx = 7.2921159e-5 * state.y + 150.0
    state.max_q = 1.0
    decision = _guide(state)
    assert decision.phase == "max-q-hold"
    assert decision.pitch == pytest.approx(math.degrees(math.atan2(300.0, 150.0)), rel=1e-6)

    state.max_q = 1e9
    decision = _guide(state)
    assert decision.phase == "gravity-turn"
    assert decision.pitch == pytest.approx(math.degrees(math.atan2(300.0, 150.0)), rel=1e-6)


def test_gravity_turn_vertical_speed_safeguard():
    state = _state_at(40.0, altitude=2e3, vy=20.0)
    state.vx = 7.2921159e-5 * state.y + 200.0
    state.max_q = 1e9
    decision = _guide(state, previous=80.0)
    assert decision.phase == "gravity-turn"
    assert decision.pitch == 80.0


def test_vacuum_orbit_achieved():
    r = R_earth + 400e3
    state = _state_at(1000.0, altitude=400e3, vx=math.sqrt(mu / r))
    decision = _guide(state)
    assert decision.phase == "vacuum-guidance"
    assert decision.case == InsertionCase.ORBIT_ACHIEVED.value
    assert decision.throttle == 0.0


def test_vacuum_raise_apoapsis_throttles_down():
    r = R_earth + 120e3
    far = _guide(_state_at(300.0, altitude=120e3, vx=5000.0, vy=500.0))
    assert far.case == InsertionCase.RAISE_APOAPSIS.value
    assert far.throttle == 1.0

    # Apoapsis just short of the target
    orbit_speed = vis_viva(r, (r + R_earth + 385e3) / 2)
    near = _guide(_state_at(300.0, altitude=120e3, vx=orbit_speed))
    assert near.case == InsertionCase.RAISE_APOAPSIS.value
    assert 0.2 <= near.throttle < 1.0


def test_vacuum_retrograde_at_periapsis():
    r_p, r_a = R_earth + 400e3, R_earth + 600e3
    state = _state_at(1000.0, altitude=400e3, vx=vis_viva(r_p, (r_p + r_a) / 2))
    decision = _guide(state)
    assert decision.case == InsertionCase.LOWER_APOAPSIS.value
    assert decision.direction is ThrustDirection.RETROGRADE
    assert decision.throttle == 1.0
    assert decision.announcement.kind == "retrograde"
    assert decision.announcement.delta_v > 0
    # Thrust points against the eastward velocity even though pitch stays near horizontal
    assert decision.horizontal_sign == -1.0
    tx, ty = thrust_vector(decision.pitch, state.x, state.y, decision.horizontal_sign)
    assert tx * state.vx + ty * state.vy < 0


def test_direct_ascent_skips_coast():
    r_p, r_a = R_earth + 150e3, R_earth + 400e3
    # Just past periapsis, far from apoapsis
    state = _state_at(1000.0, altitude=150e3, vx=vis_viva(r_p, (r_p + r_a) / 2), vy=5.0)

    traditional = _guide(state)
    assert traditional.case == InsertionCase.COAST_TO_APOAPSIS.value
    assert traditional.throttle == 0.0

    direct = _guide(state, GuidanceConfig(direct_ascent=True))
    assert direct.throttle == 1.0
    assert direct.direction is ThrustDirection.PROGRADE
    assert direct.announcement.kind == "direct-ascent"


def test_burn_estimates():
    r_p, r_a = R_earth + 200e3, R_earth + 400e3
    orbit = orbital_elements(0.0, r_p, vis_viva(r_p, (r_p + r_a) / 2), 0.0)
    dv = circularization_delta_v(orbit)
    assert dv == pytest.approx(math.sqrt(mu / r_a) - vis_viva(r_a, (r_p + r_a) / 2), rel=1e-6)
    assert retrograde_delta_v(orbit, 400e3) == pytest.approx(0.0, abs=1e-3)

    state = VehicleState.on_pad(DEFAULT_ROCKET_CONFIG)
    state.current_stage = 1
    assert burn_time_estimate(dv, state, DEFAULT_ROCKET_CONFIG) > 0
    state.current_stage = 2
    assert burn_time_estimate(dv, state, DEFAULT_ROCKET_CONFIG) == 0.0
