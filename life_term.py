#!/usr/bin/env python3
"""
  R E S T L E S S   L I F E
  Conway's Game of Life in the terminal, and it never gets stuck.

  Every half-block glyph is a cell. Click anywhere to scatter life around
  the pointer. When the grid falls into a loop (or freezes into a still
  life) the universe is reseeded, at most once per cooldown period.

  Controls:
    q         quit               SPACE     pause / resume
    r         restart            +/-       speed
    s         toggle stats overlay
    mouse     seed life around the clicked cell

  Stats are logged to life_stats.csv beside this script unless --stats says
  otherwise.
"""

from __future__ import annotations

import argparse
import curses
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, ClassVar

import numpy as np

from life_engine import (
    CELL_RESOLUTION,
    MAX_HISTORY_SIZE,
    RESTART_AFTER,
    SEED_DENSITY,
    SEED_RADIUS,
    LifeConfig,
    LifeSession,
    grid_shape,
)

logger = logging.getLogger(__name__)

# ── Half-block characters ───────────────────────────────────────────────
UPPER_HALF = "\u2580"  # ▀  top cell alive
LOWER_HALF = "\u2584"  # ▄  bottom cell alive
FULL_BLOCK = "\u2588"  # █  both alive

# Indexed by top + 2 * bottom
GLYPHS = np.array([" ", UPPER_HALF, LOWER_HALF, FULL_BLOCK])

ALIVE_COLOR: int = 15   # bright white
DEFAULT_DELAY: float = 16.0  # ms between frames, roughly one display refresh
DELAY_STEP: float = 10.0
MIN_DELAY: float = 0.0
MAX_DELAY: float = 500.0

LOG_PATH = Path(__file__).resolve().parent / "life_stats.csv"


# ═══════════════════════════════════════════════════════════════════════
#  Viewport
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Viewport:
    """
    Drawing surface measured in units, ``resolution`` units per cell.

    A terminal column is one cell wide and a terminal row is two cells
    tall (top and bottom half-block), so a ``rows x cols`` terminal area
    becomes a ``cols x 2*rows`` grid.
    """

    width: int
    height: int
    resolution: int = CELL_RESOLUTION

    @classmethod
    def from_terminal(
        cls, term_rows: int, term_cols: int, resolution: int = CELL_RESOLUTION
    ) -> Viewport:
        term_rows = max(1, term_rows)
        term_cols = max(1, term_cols)
        return cls(term_cols * resolution, term_rows * 2 * resolution, resolution)

    @property
    def shape(self) -> tuple[int, int]:
        cols, rows = grid_shape(self.width, self.height, self.resolution)
        return max(1, cols), max(1, rows)

    def to_cell(self, x: float, y: float) -> tuple[int, int]:
        """Unit coordinates -> (col, row), clamped onto the grid."""
        cols, rows = self.shape
        col = int(x // self.resolution)
        row = int(y // self.resolution)
        return min(max(col, 0), cols - 1), min(max(row, 0), rows - 1)

    def term_to_cell(self, term_y: int, term_x: int) -> tuple[int, int]:
        """Terminal character position -> cell under its top half."""
        return self.to_cell(term_x * self.resolution, term_y * 2 * self.resolution)


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes session telemetry to CSV for post-hoc tuning."""

    HEADER: ClassVar[str] = "gen,time_s,pop,history,cycle_period,restarts,event\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            logger.warning("stats disabled, cannot write %s", self._path)
            self._fh = None

    def log(
        self,
        gen: int,
        pop: int,
        history: int,
        cycle: int,
        restarts: int,
        event: str = "",
    ) -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        self._fh.write(f"{gen},{t:.1f},{pop},{history},{cycle},{restarts},{event}\n")
        # Flush on events or periodically
        if event or gen % 50 == 0:
            try:
                self._fh.flush()
            except OSError:
                pass

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Color management
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class ColorMap:
    """Precomputed curses attributes; zero until ``setup()`` runs."""

    alive_attr: int = 0
    status_attr: int = curses.A_DIM
    panel_attr: int = curses.A_DIM

    def setup(self) -> None:
        curses.start_color()
        curses.use_default_colors()
        if curses.has_colors() and curses.COLOR_PAIRS > 1:
            color = ALIVE_COLOR if curses.COLORS > ALIVE_COLOR else curses.COLOR_WHITE
            curses.init_pair(1, color, -1)
            self.alive_attr = curses.color_pair(1) | curses.A_BOLD
        else:
            self.alive_attr = curses.A_BOLD


# ═══════════════════════════════════════════════════════════════════════
#  Host state + input
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class HostState:
    """Front-end knobs that are not part of the simulation."""

    delay: float = DEFAULT_DELAY
    show_stats: bool = False
    running: bool = True


def handle_key(key: int, session: LifeSession, host: HostState) -> str:
    """Apply a keypress. Returns the session event it caused, if any."""
    if key in (ord("q"), ord("Q")):
        host.running = False
    elif key in (ord("r"), ord("R")):
        return session.restart()
    elif key == ord(" "):
        session.paused = not session.paused
    elif key in (ord("+"), ord("=")):
        host.delay = max(MIN_DELAY, host.delay - DELAY_STEP)
    elif key in (ord("-"), ord("_")):
        host.delay = min(MAX_DELAY, host.delay + DELAY_STEP)
    elif key in (ord("s"), ord("S")):
        host.show_stats = not host.show_stats
    return ""


def seed_from_pointer(
    session: LifeSession, viewport: Viewport, term_y: int, term_x: int
) -> tuple[int, int]:
    """Seed around the cell under a terminal click; returns that cell."""
    col, row = viewport.term_to_cell(term_y, term_x)
    session.seed_at(col, row)
    return col, row


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def render_lines(cells: np.ndarray, max_rows: int, max_cols: int) -> list[str]:
    """Fold pairs of grid rows into half-block text lines."""
    if cells.shape[0] % 2:
        cells = np.vstack([cells, np.zeros((1, cells.shape[1]), dtype=cells.dtype)])
    top = cells[0::2, :max_cols][:max_rows]
    bot = cells[1::2, :max_cols][:max_rows]
    codes = top.astype(np.intp) + 2 * bot.astype(np.intp)
    return ["".join(line) for line in GLYPHS[codes].tolist()]


def render(
    stdscr: curses.window,
    session: LifeSession,
    cmap: ColorMap,
    show_stats: bool = False,
) -> None:
    """Half-block grid, status bar and optional stats overlay."""
    max_y, max_x = stdscr.getmaxyx()
    lines = render_lines(session.grid.cells, max_y - 1, max_x)

    for y, line in enumerate(lines):
        text = line.rstrip()
        if not text:
            continue
        try:
            stdscr.addstr(y, 0, text, cmap.alive_attr)
        except curses.error:
            pass

    if show_stats:
        _draw_stats_overlay(stdscr, session, cmap, max_y, max_x)

    # ── Status bar ─────────────────────────────────────────────────
    monitor = session.monitor
    state = "paused" if session.paused else monitor.state(session.clock())
    left = (
        f"  gen {session.generation:,}  pop {session.population():,}"
        f"  history {len(monitor.history)}/{monitor.max_history}"
        f"  restarts {session.restarts}  {state}"
    )
    right = "q r spc +/- s  click=seed  "
    pad = max_x - 1 - len(left) - len(right)
    status = left + " " * pad + right if pad > 0 else left
    try:
        stdscr.addstr(max_y - 1, 0, status[: max_x - 1], cmap.status_attr)
    except curses.error:
        pass


def _draw_stats_overlay(
    stdscr: curses.window,
    session: LifeSession,
    cmap: ColorMap,
    max_y: int,
    max_x: int,
) -> None:
    """Draw the stagnation monitor panel in the bottom-right."""
    panel_w = 36
    panel_h = 8
    x0 = max_x - panel_w - 2
    y0 = max_y - panel_h - 2

    if x0 < 0 or y0 < 0:
        return

    monitor = session.monitor
    now = session.clock()
    cycle = monitor.cycle_period
    lines = [
        f"{'':─<{panel_w - 2}}",
        " stagnation monitor",
        f" history     : {len(monitor.history)}/{monitor.max_history}",
        f" cycle       : {'none' if cycle == 0 else f'period {cycle}'}",
        f" cooldown    : {monitor.cooldown_remaining(now):.1f}s",
        f" restarts    : {session.restarts}",
        f" last event  : {session.last_event or 'none'}",
        f" grid        : {session.cols}x{session.rows}",
    ]

    for i, line in enumerate(lines):
        row = y0 + i
        if 0 <= row < max_y - 1:
            padded = f" {line:<{panel_w - 1}}"[:panel_w]
            try:
                stdscr.addstr(row, x0, padded, cmap.panel_attr)
            except curses.error:
                pass


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def main(
    stdscr: curses.window,
    config: LifeConfig,
    delay: float = DEFAULT_DELAY,
    stats_path: Path = LOG_PATH,
) -> None:
    curses.curs_set(0)
    stdscr.nodelay(True)
    stdscr.timeout(0)
    curses.mousemask(curses.ALL_MOUSE_EVENTS)

    cmap = ColorMap()
    cmap.setup()

    max_y, max_x = stdscr.getmaxyx()
    viewport = Viewport.from_terminal(max_y - 1, max_x, config.resolution)
    session = LifeSession.from_viewport(viewport.width, viewport.height, config)
    host = HostState(delay=delay)

    stats = StatsLogger(stats_path)
    stats.open()
    last_logged = -1

    try:
        while host.running:
            # ── Input ──────────────────────────────────────────────
            try:
                key = stdscr.getch()
            except curses.error:
                key = -1

            event = ""
            if key == curses.KEY_MOUSE:
                try:
                    _, mx, my, _, bstate = curses.getmouse()
                except curses.error:
                    bstate = 0
                if bstate & (curses.BUTTON1_CLICKED | curses.BUTTON1_PRESSED):
                    seed_from_pointer(session, viewport, my, mx)
            elif key == curses.KEY_RESIZE:
                max_y, max_x = stdscr.getmaxyx()
                viewport = Viewport.from_terminal(max_y - 1, max_x, config.resolution)
                event = session.resize(*viewport.shape)
            elif key != -1:
                event = handle_key(key, session, host)
                if not host.running:
                    break

            # ── Simulate ───────────────────────────────────────────
            event = session.tick() or event

            # ── Log ────────────────────────────────────────────────
            gen = session.total_generations
            if event or (gen % 10 == 0 and gen != last_logged):
                last_logged = gen
                stats.log(
                    gen=gen,
                    pop=session.population(),
                    history=len(session.monitor.history),
                    cycle=session.monitor.cycle_period,
                    restarts=session.restarts,
                    event=event,
                )

            # ── Render ─────────────────────────────────────────────
            stdscr.erase()
            render(stdscr, session, cmap, show_stats=host.show_stats)
            stdscr.refresh()

            time.sleep(host.delay / 1000.0)

    finally:
        stats.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Conway's Game of Life that reseeds itself when it stagnates"
    )
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducible runs")
    parser.add_argument("--history", type=int, default=MAX_HISTORY_SIZE,
                        help=f"Snapshots kept for repeat detection (default: {MAX_HISTORY_SIZE})")
    parser.add_argument("--restart-after", type=float, default=RESTART_AFTER,
                        help=f"Seconds between stagnation restarts (default: {RESTART_AFTER:g})")
    parser.add_argument("--radius", type=int, default=SEED_RADIUS,
                        help=f"Seeding radius around a click (default: {SEED_RADIUS})")
    parser.add_argument("--density", type=float, default=SEED_DENSITY,
                        help=f"Chance a cell starts or gets seeded alive (default: {SEED_DENSITY:g})")
    parser.add_argument("--wrap-rows", action="store_true",
                        help="Wrap the top and bottom edges too (full torus)")
    parser.add_argument("--delay", type=float, default=DEFAULT_DELAY,
                        help=f"Milliseconds between frames (default: {DEFAULT_DELAY:g})")
    parser.add_argument("--stats", type=Path, default=LOG_PATH,
                        help="CSV file for session telemetry")
    parser.add_argument("--debug-log", type=Path, default=None,
                        help="Write debug log records to this file")
    return parser


def config_from_args(args: argparse.Namespace) -> LifeConfig:
    return LifeConfig(
        max_history=args.history,
        restart_after=args.restart_after,
        seed_radius=args.radius,
        density=args.density,
        wrap_rows=args.wrap_rows,
        seed=args.seed,
    )


def cli(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    # curses owns the terminal, so diagnostics go to a file or nowhere
    if args.debug_log is not None:
        logging.basicConfig(
            filename=args.debug_log,
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    try:
        curses.wrapper(main, config, args.delay, args.stats)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
