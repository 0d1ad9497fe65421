import sys
sys.path.insert(0, 'src')

import pytest

from track_simulator.core.engine import SimulationController
from track_simulator.core.state import RunState
from track_simulator import terminal_monitor as tm


def test_energy_bar():
    assert tm.energy_bar(0.5, 10, ascii_only=True) == "#####....."
    assert tm.energy_bar(2.0, 4, ascii_only=True) == "####"
    assert tm.energy_bar(-1.0, 3, ascii_only=True) == "..."
    assert tm.energy_bar(0.5, 0) == ""


def test_sparkline_width():
    assert tm._sparkline([], 5, ascii_only=True) == "     "
    assert tm._sparkline([1.0, 2.0, 3.0], 0, ascii_only=True) == ""
    line = tm._sparkline([0.0, 1.0, 2.0, 3.0], 8, ascii_only=True)
    assert len(line) == 8
    assert line[-1] == "@"


def test_render_scene_shows_mass_once():
    ctrl = SimulationController()
    lines = tm.render_scene(ctrl, 80, 25, ascii_only=True)
    assert len(lines) == 25
    assert "".join(lines).count("O") == 1
    assert "." in "".join(lines)

    ctrl.grab(*ctrl.viewport.world_to_screen(ctrl.state.x, ctrl.state.y))
    lines = tm.render_scene(ctrl, 80, 25, ascii_only=True)
    assert "".join(lines).count("@") == 1
    assert "O" not in "".join(lines)


def test_keys_drive_controller():
    ctrl = SimulationController()
    mon = tm.LiveMonitor(ctrl, tm.MonitorConfig(drag_step_px=5.0, gravity_step=0.5))

    assert mon.handle_key(ord(" "))
    assert ctrl.run_state is RunState.RUNNING
    mon.handle_key(ord(" "))
    assert ctrl.run_state is RunState.IDLE

    mon.handle_key(ord("g"))
    assert ctrl.is_dragging
    mon.handle_key(tm._KEY_RIGHT)
    assert ctrl.state.x == pytest.approx(-95.0)
    mon.handle_key(tm._KEY_LEFT)
    mon.handle_key(tm._KEY_LEFT)
    assert ctrl.state.x == pytest.approx(-105.0)
    mon.handle_key(ord("g"))
    assert ctrl.run_state is RunState.IDLE

    mon.handle_key(ord("f"))
    assert ctrl.params.friction_enabled
    assert ctrl.params.friction_coefficient == pytest.approx(ctrl.params.friction_setting)

    mon.handle_key(ord("+"))
    assert ctrl.params.gravity == pytest.approx(10.3)
    ctrl.set_gravity(0.2)
    mon.handle_key(ord("-"))
    assert ctrl.params.gravity == 0.0

    mon.handle_key(ord("r"))
    assert ctrl.state.x == -100.0

    assert mon.handle_key(ord("q")) is False


def test_arrow_keys_ignored_when_not_dragging():
    ctrl = SimulationController()
    mon = tm.LiveMonitor(ctrl)
    mon.handle_key(tm._KEY_RIGHT)
    assert ctrl.state.x == -100.0


def test_tick_feeds_wall_time_and_buffers():
    ctrl = SimulationController()
    mon = tm.LiveMonitor(ctrl, tm.MonitorConfig(buffer_len=3))
    ctrl.toggle_run()

    mon.tick(10.0)
    assert ctrl.sim_time == 0.0
    mon.tick(10.05)
    assert ctrl.sim_time == pytest.approx(0.05)
    mon.tick(12.0)
    assert ctrl.sim_time == pytest.approx(0.15)
    mon.tick(12.01)

    assert len(mon.buf_pot) == 3
    assert len(mon.buf_thermal) == 3
    assert mon.buf_pot[-1] < mon.buf_pot[0]


@pytest.mark.parametrize(
    "encoding, expected",
    [("UTF-8", True), ("utf8", True), ("ANSI_X3.4-1968", False), ("cp1252", False), ("", False)],
)
def test_unicode_detection_follows_locale(monkeypatch, encoding, expected):
    monkeypatch.setattr(tm.locale, "getpreferredencoding", lambda do_setlocale=True: encoding)
    assert tm._supports_unicode() is expected
