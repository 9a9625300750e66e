"""
Restless Life engine.

Conway's Game of Life on a grid whose columns wrap around, plus a
stagnation monitor that notices when the grid starts repeating itself
and asks for a fresh random universe once a cooldown has passed.

The host (terminal front end, benchmark, tests) drives everything through
a LifeSession: one tick per frame, one seed call per click.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, ClassVar, Iterable

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

logger = logging.getLogger(__name__)

# ── Defaults ────────────────────────────────────────────────────────────
CELL_RESOLUTION: int = 10      # viewport units per cell
MAX_HISTORY_SIZE: int = 10     # snapshots kept for repeat detection
RESTART_AFTER: float = 10.0    # seconds between stagnation restarts
SEED_RADIUS: int = 2           # 5x5 block around a click
SEED_DENSITY: float = 0.5      # chance a cell starts / gets seeded alive

# ── Convolution kernel (reused every step) ────────────────────────────
NEIGHBOR_KERNEL: NDArray = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.int16)

Clock = Callable[[], float]


def grid_shape(width: int, height: int, resolution: int = CELL_RESOLUTION) -> tuple[int, int]:
    """Viewport size in units -> (cols, rows)."""
    if resolution < 1:
        raise ValueError(f"resolution must be >= 1, got {resolution}")
    return width // resolution, height // resolution


# ═══════════════════════════════════════════════════════════════════════
#  Configuration
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LifeConfig:
    """Tunables for a session. Defaults match the classic canvas toy."""

    resolution: int = CELL_RESOLUTION
    max_history: int = MAX_HISTORY_SIZE
    restart_after: float = RESTART_AFTER
    seed_radius: int = SEED_RADIUS
    density: float = SEED_DENSITY
    # False: rows past the top/bottom edge read as dead, columns still wrap.
    wrap_rows: bool = False
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.resolution < 1:
            raise ValueError(f"resolution must be >= 1, got {self.resolution}")
        if self.max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {self.max_history}")
        if self.restart_after < 0:
            raise ValueError(f"restart_after must be >= 0, got {self.restart_after}")
        if self.seed_radius < 0:
            raise ValueError(f"seed_radius must be >= 0, got {self.seed_radius}")
        if not 0.0 <= self.density <= 1.0:
            raise ValueError(f"density must be within [0, 1], got {self.density}")


# ═══════════════════════════════════════════════════════════════════════
#  The grid
# ═══════════════════════════════════════════════════════════════════════

class LifeGrid:
    """
    A cols x rows Game of Life grid.

    Cells live in an int8 array indexed ``cells[row, col]``; the public
    API speaks (col, row). Columns always wrap. Rows wrap only when
    ``wrap_rows`` is set, otherwise anything above row 0 or below the
    last row counts as dead.
    """

    def __init__(self, cells: NDArray[np.int8], wrap_rows: bool = False) -> None:
        if cells.ndim != 2 or cells.shape[0] < 1 or cells.shape[1] < 1:
            raise ValueError(f"grid needs at least one row and column, got shape {cells.shape}")
        self.cells: NDArray[np.int8] = cells
        self.wrap_rows: bool = wrap_rows

    # ── Construction ────────────────────────────────────────────────

    @classmethod
    def create(
        cls,
        cols: int,
        rows: int,
        rng: np.random.Generator,
        density: float = SEED_DENSITY,
        wrap_rows: bool = False,
    ) -> LifeGrid:
        """Random grid: every cell alive independently with ``density``."""
        if cols < 1 or rows < 1:
            raise ValueError(f"grid must be at least 1x1, got {cols}x{rows}")
        cells = (rng.random((rows, cols)) < density).astype(np.int8)
        return cls(cells, wrap_rows=wrap_rows)

    @classmethod
    def from_cells(
        cls,
        cols: int,
        rows: int,
        live: Iterable[tuple[int, int]] = (),
        wrap_rows: bool = False,
    ) -> LifeGrid:
        """Empty grid with the given (col, row) cells switched on."""
        if cols < 1 or rows < 1:
            raise ValueError(f"grid must be at least 1x1, got {cols}x{rows}")
        cells = np.zeros((rows, cols), dtype=np.int8)
        for col, row in live:
            cells[row % rows, col % cols] = 1
        return cls(cells, wrap_rows=wrap_rows)

    def copy(self) -> LifeGrid:
        return LifeGrid(self.cells.copy(), wrap_rows=self.wrap_rows)

    # ── Accessors ───────────────────────────────────────────────────

    @property
    def cols(self) -> int:
        return int(self.cells.shape[1])

    @property
    def rows(self) -> int:
        return int(self.cells.shape[0])

    @property
    def shape(self) -> tuple[int, int]:
        return self.cols, self.rows

    def alive(self, col: int, row: int) -> bool:
        return bool(self.cells[row, col])

    def live_cells(self) -> set[tuple[int, int]]:
        rows, cols = np.nonzero(self.cells)
        return set(zip(cols.tolist(), rows.tolist()))

    def population(self) -> int:
        return int(self.cells.sum())

    def snapshot(self) -> bytes:
        """Whole grid, row-major, as an equality key for the monitor."""
        return self.cells.tobytes()

    # ── Simulation ──────────────────────────────────────────────────

    def neighbor_counts(self) -> NDArray[np.int16]:
        """Live neighbours of every cell under this grid's edge rules."""
        g = self.cells.astype(np.int16)
        # Columns wrap: pad one column from the opposite edge on each side.
        padded = np.pad(g, ((0, 0), (1, 1)), mode="wrap")
        if self.wrap_rows:
            padded = np.pad(padded, ((1, 1), (0, 0)), mode="wrap")
        else:
            padded = np.pad(padded, ((1, 1), (0, 0)), mode="constant")
        n = convolve(padded, NEIGHBOR_KERNEL, mode="constant", cval=0)
        return n[1:-1, 1:-1]

    def step(self) -> LifeGrid:
        """Next generation as a new grid. ``self`` is left untouched."""
        n = self.neighbor_counts()
        alive = self.cells.astype(np.bool_)
        n_is_3 = n == 3
        birth = ~alive & n_is_3
        survive = alive & (n_is_3 | (n == 2))
        return LifeGrid((birth | survive).astype(np.int8), wrap_rows=self.wrap_rows)

    def seed_around(
        self,
        col: int,
        row: int,
        rng: np.random.Generator,
        radius: int = SEED_RADIUS,
        density: float = SEED_DENSITY,
    ) -> None:
        """
        Sprinkle life around (col, row), in place.

        The centre always comes alive. Every other cell of the square
        block turns on with probability ``density`` and is otherwise left
        as it was. The block wraps on both axes, whatever ``wrap_rows``
        says about neighbour counting.
        """
        if not (0 <= col < self.cols and 0 <= row < self.rows):
            raise IndexError(
                f"cell ({col}, {row}) outside {self.cols}x{self.rows} grid"
            )
        if radius < 0:
            raise ValueError(f"radius must be >= 0, got {radius}")

        offsets = np.arange(-radius, radius + 1)
        # Column offset on the first axis, row offset on the second.
        d_col, d_row = np.meshgrid(offsets, offsets, indexing="ij")
        hits = rng.random(d_col.shape) < density
        hits[radius, radius] = True

        self.cells[(row + d_row[hits]) % self.rows, (col + d_col[hits]) % self.cols] = 1


# ═══════════════════════════════════════════════════════════════════════
#  Stagnation monitor
# ═══════════════════════════════════════════════════════════════════════

class StagnationMonitor:
    """
    Remembers the last few grid snapshots and flags a restart once one
    of them comes back.

    A still life counts too: it repeats itself every generation. The
    restart is only granted when more than ``restart_after`` seconds have
    passed since the previous one, so a stuck grid keeps running until
    the cooldown is over.
    """

    TRACKING: ClassVar[str] = "tracking"
    COOLDOWN: ClassVar[str] = "cooldown"

    def __init__(
        self,
        max_history: int = MAX_HISTORY_SIZE,
        restart_after: float = RESTART_AFTER,
        last_restart: float = 0.0,
    ) -> None:
        if max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {max_history}")
        if restart_after < 0:
            raise ValueError(f"restart_after must be >= 0, got {restart_after}")
        self.max_history: int = max_history
        self.restart_after: float = restart_after
        self.last_restart: float = last_restart
        self.history: deque[bytes] = deque(maxlen=max_history)

        # Telemetry
        self.cycle_period: int = 0   # generations back to the repeat (0 = none)
        self.repeats: int = 0        # repeats seen since the last reset

    def observe(self, snapshot: bytes, now: float) -> bool:
        """Record ``snapshot``. True means: restart the grid now."""
        if snapshot in self.history:
            idx = len(self.history) - 1
            while self.history[idx] != snapshot:
                idx -= 1
            self.cycle_period = len(self.history) - idx
            self.repeats += 1
            if now - self.last_restart > self.restart_after:
                self.history.clear()
                return True
            return False

        self.cycle_period = 0
        self.history.append(snapshot)
        return False

    def reset(self, now: float) -> None:
        self.history.clear()
        self.last_restart = now
        self.cycle_period = 0
        self.repeats = 0

    def cooldown_remaining(self, now: float) -> float:
        return max(0.0, self.restart_after - (now - self.last_restart))

    def state(self, now: float) -> str:
        if now - self.last_restart > self.restart_after:
            return self.TRACKING
        return self.COOLDOWN


# ═══════════════════════════════════════════════════════════════════════
#  Session
# ═══════════════════════════════════════════════════════════════════════

class LifeSession:
    """
    Grid, history and restart timer for one running simulation.

    Call ``tick()`` once per frame. Manual restarts, resizes and stagnation
    restarts all go through the same reset: a new random grid, an empty
    history and a fresh cooldown.
    """

    def __init__(
        self,
        cols: int,
        rows: int,
        config: LifeConfig | None = None,
        rng: np.random.Generator | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config: LifeConfig = config if config is not None else LifeConfig()
        self.rng: np.random.Generator = (
            rng if rng is not None else np.random.default_rng(self.config.seed)
        )
        self.clock: Clock = clock

        self.grid: LifeGrid = self._new_grid(cols, rows)
        self.monitor: StagnationMonitor = StagnationMonitor(
            max_history=self.config.max_history,
            restart_after=self.config.restart_after,
            last_restart=self.clock(),
        )

        self.paused: bool = False
        self.generation: int = 0          # since the last reset
        self.total_generations: int = 0
        self.restarts: int = 0
        self.last_event: str = ""

    @classmethod
    def from_viewport(
        cls,
        width: int,
        height: int,
        config: LifeConfig | None = None,
        rng: np.random.Generator | None = None,
        clock: Clock = time.monotonic,
    ) -> LifeSession:
        cfg = config if config is not None else LifeConfig()
        cols, rows = grid_shape(width, height, cfg.resolution)
        return cls(cols, rows, config=cfg, rng=rng, clock=clock)

    def _new_grid(self, cols: int, rows: int) -> LifeGrid:
        return LifeGrid.create(
            cols, rows, self.rng,
            density=self.config.density,
            wrap_rows=self.config.wrap_rows,
        )

    # ── Accessors ───────────────────────────────────────────────────

    @property
    def cols(self) -> int:
        return self.grid.cols

    @property
    def rows(self) -> int:
        return self.grid.rows

    def population(self) -> int:
        return self.grid.population()

    # ── Frame loop ──────────────────────────────────────────────────

    def tick(self) -> str:
        """Advance one generation. Returns event string (empty if none)."""
        if self.paused:
            return ""

        self.grid = self.grid.step()
        self.generation += 1
        self.total_generations += 1

        if self.monitor.observe(self.grid.snapshot(), self.clock()):
            event = f"restart:stagnant(cycle={self.monitor.cycle_period})"
            self._reset(self.cols, self.rows, event)
            return event
        return ""

    def restart(self) -> str:
        event = "restart:manual"
        self._reset(self.cols, self.rows, event)
        return event

    def resize(self, cols: int, rows: int) -> str:
        event = "restart:resize"
        self._reset(cols, rows, event)
        return event

    def seed_at(self, col: int, row: int) -> None:
        self.grid.seed_around(
            col, row, self.rng,
            radius=self.config.seed_radius,
            density=self.config.density,
        )

    def _reset(self, cols: int, rows: int, event: str) -> None:
        self.grid = self._new_grid(cols, rows)
        self.monitor.reset(self.clock())
        logger.debug(
            "%s after %d generations, grid %dx%d",
            event, self.generation, cols, rows,
        )
        self.generation = 0
        self.restarts += 1
        self.last_event = event
