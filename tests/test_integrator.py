import sys
sys.path.insert(0, 'src')

import logging

import pytest

from track_simulator.core.integrator import SemiImplicitEulerIntegrator
from track_simulator.core.state import MassState, PhysicsParameters
from track_simulator.core.track import ParabolicTrack


@pytest.fixture
def track():
    return ParabolicTrack()


def test_mass_at_rest_at_bottom_stays_at_rest(track):
    integ = SemiImplicitEulerIntegrator()
    params = PhysicsParameters()
    state = MassState.on_track(track, 0.0)
    for _ in range(100):
        state = integ.advance(state, params, track, 0.001)
    assert state.x == 0.0
    assert state.v == 0.0


def test_gravity_pulls_towards_bottom(track):
    integ = SemiImplicitEulerIntegrator()
    params = PhysicsParameters(gravity=9.8)
    left = MassState.on_track(track, -100.0)
    right = MassState.on_track(track, 100.0)
    assert integ.acceleration(left, params, track) > 0.0
    assert integ.acceleration(right, params, track) < 0.0
    # g_s * sin(theta) with g_s = 196 px/s², sin(theta) = -1/sqrt(2)
    assert integ.acceleration(left, params, track) == pytest.approx(196.0 / 2 ** 0.5)


def test_velocity_is_updated_before_position(track):
    integ = SemiImplicitEulerIntegrator()
    params = PhysicsParameters()
    state = MassState.on_track(track, -100.0)
    h = 0.001
    new = integ.advance(state, params, track, h)

    a = integ.acceleration(state, params, track)
    v_expected = a * h
    x_expected = -100.0 + v_expected * float(track.cos_theta(-100.0)) * h
    assert new.v == pytest.approx(v_expected)
    assert new.x == pytest.approx(x_expected)
    assert new.y == pytest.approx(float(track.height(new.x)))
    # input state untouched
    assert state.x == -100.0 and state.v == 0.0


def test_drag_opposes_motion(track):
    integ = SemiImplicitEulerIntegrator()
    params = PhysicsParameters(gravity=0.0, friction_enabled=True, friction_setting=0.5)
    state = MassState.on_track(track, 0.0, v=10.0)
    assert integ.acceleration(state, params, track) == pytest.approx(-5.0)


def test_disabled_friction_keeps_setting_but_no_drag(track):
    integ = SemiImplicitEulerIntegrator()
    params = PhysicsParameters(gravity=0.0, friction_enabled=False, friction_setting=0.5)
    assert params.friction_coefficient == 0.0
    assert params.friction_setting == 0.5
    state = MassState.on_track(track, 0.0, v=10.0)
    assert integ.acceleration(state, params, track) == 0.0


def test_counters_and_dissipated_work(track):
    integ = SemiImplicitEulerIntegrator()
    params = PhysicsParameters(friction_enabled=True, friction_setting=0.3)
    state = MassState.on_track(track, -100.0)
    for _ in range(50):
        state = integ.advance(state, params, track, 0.001)
    assert integ.n_steps == 50
    assert integ.dissipated_work > 0.0

    integ.reset_counters()
    assert integ.n_steps == 0
    assert integ.dissipated_work == 0.0


def test_no_dissipated_work_without_friction(track):
    integ = SemiImplicitEulerIntegrator()
    params = PhysicsParameters()
    state = MassState.on_track(track, -100.0)
    for _ in range(50):
        state = integ.advance(state, params, track, 0.001)
    assert integ.dissipated_work == 0.0


def test_large_sub_step_warns_once(track, caplog):
    integ = SemiImplicitEulerIntegrator(max_sub_step=0.01)
    params = PhysicsParameters()
    state = MassState.on_track(track, -100.0)
    with caplog.at_level(logging.WARNING, logger="track_simulator.core.integrator"):
        state = integ.advance(state, params, track, 0.05)
        state = integ.advance(state, params, track, 0.05)
    warnings = [r for r in caplog.records if "exceeds" in r.getMessage()]
    assert len(warnings) == 1


def test_stability_info():
    info = SemiImplicitEulerIntegrator().get_stability_info()
    assert info["symplectic"] is False
    assert info["method"] == "semi-implicit Euler"
    assert info["order"] == 1
