"""Terminal live view.

Curses based full screen view of the track, the mass and the energy bars.
Designed to be light, dependency free, and usable over SSH.

The view is a pure presentation collaborator: it measures wall-clock time
between frames, feeds it to ``SimulationController.advance_frame`` and
translates key presses into controller commands. It never touches the
simulation state directly.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

import locale
import time

try:
    import curses  # type: ignore
except ImportError:  # pragma: no cover
    curses = None  # type: ignore

from .core.energy import EnergyReport
from .core.engine import SimulationConstants, SimulationController
from .core.state import MassSnapshot


_SPARK = "▁▂▃▄▅▆▇█"
_SPARK_ASCII = " .:-=+*#%@"

_KEY_LEFT = getattr(curses, "KEY_LEFT", 260)
_KEY_RIGHT = getattr(curses, "KEY_RIGHT", 261)


def _supports_unicode() -> bool:
    """True when the terminal encoding can draw the block characters."""
    encoding = locale.getpreferredencoding(False) or ""
    return "utf" in encoding.lower()


def _safe_addstr(stdscr, y: int, x: int, s: str, attr: int = 0) -> None:
    """Add string to curses window without raising on small terminals."""
    h, w = stdscr.getmaxyx()
    if y < 0 or y >= h or x >= w:
        return
    s = str(s)[: max(0, w - x - 1)]
    if not s:
        return
    try:
        stdscr.addstr(y, x, s, attr)
    except curses.error:
        return


def _sparkline(values, width: int, ascii_only: bool) -> str:
    if width <= 0:
        return ""
    if values is None or len(values) == 0:
        return " " * width

    v = list(values)
    if len(v) == 1:
        v = v * 2

    vmin = min(v)
    vmax = max(v)
    if abs(vmax - vmin) < 1e-30:
        vmax = vmin + 1.0

    chars = _SPARK_ASCII if ascii_only else _SPARK
    nlev = len(chars) - 1

    out = []
    n = len(v)
    for j in range(width):
        i0 = int(j * n / width)
        i1 = max(int((j + 1) * n / width), i0 + 1)
        y = max(v[i0:i1])
        k = int(round((y - vmin) / (vmax - vmin) * nlev))
        out.append(chars[max(0, min(nlev, k))])
    return "".join(out)


def energy_bar(fraction: float, width: int, ascii_only: bool = False) -> str:
    """Horizontal bar filled to ``fraction`` (clipped to [0, 1])."""
    if width <= 0:
        return ""
    frac = min(1.0, max(0.0, float(fraction)))
    filled = int(round(frac * width))
    fill, empty = ("#", ".") if ascii_only else ("█", "·")
    return fill * filled + empty * (width - filled)


def render_scene(ctrl: SimulationController, width: int, height: int, ascii_only: bool = False) -> List[str]:
    """Rasterise the track and the mass into ``height`` strings of ``width`` cells.

    The controller's viewport (in pixels) is scaled onto the character grid.
    """
    if width <= 0 or height <= 0:
        return []
    grid = [[" "] * width for _ in range(height)]
    vp = ctrl.viewport

    def to_cell(sx: float, sy: float):
        col = int(round(sx / vp.width * (width - 1)))
        row = int(round(sy / vp.height * (height - 1)))
        return row, col

    track_ch = "." if ascii_only else "·"
    sx, sy = vp.track_polyline(ctrl.track)
    for px, py in zip(sx, sy):
        row, col = to_cell(px, py)
        if 0 <= row < height and 0 <= col < width:
            grid[row][col] = track_ch

    snap = ctrl.get_mass_state()
    row, col = to_cell(*vp.world_to_screen(snap.x, snap.y))
    if 0 <= row < height and 0 <= col < width:
        grid[row][col] = "@" if ctrl.is_dragging else "O"

    return ["".join(r).rstrip() for r in grid]


@dataclass
class MonitorConfig:
    buffer_len: int = 300
    refresh_s: float = 1.0 / 30.0
    ascii_only: bool = False
    drag_step_px: float = 5.0
    gravity_step: float = 0.5


class LiveMonitor:
    def __init__(self, ctrl: SimulationController, cfg: Optional[MonitorConfig] = None) -> None:
        self.ctrl = ctrl
        self.cfg = cfg or MonitorConfig()
        self.t_last: Optional[float] = None

        self.buf_pot: Deque[float] = deque(maxlen=self.cfg.buffer_len)
        self.buf_kin: Deque[float] = deque(maxlen=self.cfg.buffer_len)
        self.buf_thermal: Deque[float] = deque(maxlen=self.cfg.buffer_len)

        ctrl.frame_listeners.append(self._on_frame)

    def _on_frame(self, snapshot: MassSnapshot, report: EnergyReport) -> None:
        self.buf_pot.append(report.potential)
        self.buf_kin.append(report.kinetic)
        self.buf_thermal.append(report.thermal)

    def tick(self, now: float) -> None:
        """Advance the controller by the wall time since the previous tick."""
        elapsed = 0.0 if self.t_last is None else now - self.t_last
        self.t_last = now
        self.ctrl.advance_frame(elapsed)

    def handle_key(self, ch: int) -> bool:
        """Translate a key press into a controller command.

        Returns ``False`` when the user asked to quit.
        """
        ctrl = self.ctrl
        if ch in (ord("q"), ord("Q")):
            return False
        if ch == ord(" "):
            ctrl.toggle_run()
        elif ch in (ord("r"), ord("R")):
            ctrl.reset()
        elif ch in (ord("g"), ord("G")):
            if ctrl.is_dragging:
                ctrl.release()
            else:
                snap = ctrl.get_mass_state()
                ctrl.grab(*ctrl.viewport.world_to_screen(snap.x, snap.y))
        elif ch in (_KEY_LEFT, _KEY_RIGHT) and ctrl.is_dragging:
            step = self.cfg.drag_step_px if ch == _KEY_RIGHT else -self.cfg.drag_step_px
            sx, _sy = ctrl.viewport.world_to_screen(ctrl.state.x, ctrl.state.y)
            ctrl.drag_to(sx + step)
        elif ch in (ord("f"), ord("F")):
            p = ctrl.params
            ctrl.set_friction(not p.friction_enabled, p.friction_setting)
        elif ch in (ord("+"), ord("=")):
            ctrl.set_gravity(ctrl.params.gravity + self.cfg.gravity_step)
        elif ch in (ord("-"), ord("_")):
            ctrl.set_gravity(max(0.0, ctrl.params.gravity - self.cfg.gravity_step))
        return True

    def _render(self, stdscr) -> None:
        stdscr.erase()
        h, w = stdscr.getmaxyx()
        ctrl = self.ctrl
        snap = ctrl.get_mass_state()
        report = ctrl.get_energy_report()
        ascii_only = self.cfg.ascii_only

        p = ctrl.params
        friction = f"{p.friction_coefficient:.3f}" if p.friction_enabled else "off"
        header = (
            f"Parabolic track  {snap.run_state.value:<8}  t {snap.sim_time:8.2f} s   "
            f"x {snap.x:8.2f}  v {snap.v:8.2f}   g {p.gravity:.1f}  friction {friction}"
        )
        _safe_addstr(stdscr, 0, 0, header)

        panel_h = 5
        scene_h = max(0, h - panel_h - 2)
        for i, line in enumerate(render_scene(ctrl, w - 1, scene_h, ascii_only)):
            _safe_addstr(stdscr, 1 + i, 0, line)

        bar_w = max(10, (w - 40) // 2)
        spark_w = max(0, w - bar_w - 26)
        fractions = report.bar_fractions(SimulationConstants.MIN_ENERGY_DENOMINATOR)
        rows = [
            ("potential", report.potential, fractions["potential"], self.buf_pot, 1),
            ("kinetic", report.kinetic, fractions["kinetic"], self.buf_kin, 2),
            ("thermal", report.thermal, fractions["thermal"], self.buf_thermal, 5),
            ("total", report.total, fractions["total"], None, 0),
        ]
        y0 = 1 + scene_h
        for i, (label, value, frac, buf, color) in enumerate(rows):
            attr = curses.color_pair(color) if color and curses.has_colors() else 0
            bar = energy_bar(frac, bar_w, ascii_only)
            spark = _sparkline(list(buf), spark_w, ascii_only) if buf is not None else ""
            _safe_addstr(stdscr, y0 + i, 0, f"{label:<10}{round(value):>6d} J ", 0)
            _safe_addstr(stdscr, y0 + i, 18, bar, attr)
            _safe_addstr(stdscr, y0 + i, 19 + bar_w, spark, attr)

        footer = "space run/pause  r reset  g grab/release  ←/→ drag  f friction  +/- gravity  q quit"
        _safe_addstr(stdscr, h - 1, 0, footer)
        stdscr.refresh()

    def run(self) -> None:
        if curses is None:
            raise RuntimeError("curses is not available on this platform")
        locale.setlocale(locale.LC_ALL, "")
        curses.wrapper(self._loop)

    def _loop(self, stdscr) -> None:
        curses.curs_set(0)
        stdscr.nodelay(True)
        stdscr.keypad(True)
        stdscr.timeout(int(max(1, self.cfg.refresh_s * 1000.0)))

        if curses.has_colors():
            curses.start_color()
            try:
                curses.use_default_colors()
                curses.init_pair(1, curses.COLOR_BLUE, -1)
                curses.init_pair(2, curses.COLOR_GREEN, -1)
                curses.init_pair(5, curses.COLOR_RED, -1)
            except curses.error:
                pass

        self.cfg.ascii_only = bool(self.cfg.ascii_only or not _supports_unicode())

        while True:
            self.tick(time.perf_counter())
            self._render(stdscr)

            ch = stdscr.getch()
            if ch != -1 and not self.handle_key(ch):
                break


def run_live_monitor(ctrl: SimulationController, cfg: Optional[MonitorConfig] = None) -> None:
    """Run the full screen live view until the user quits."""
    LiveMonitor(ctrl, cfg).run()
