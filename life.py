"""
  Sounding Life: the simulation core.

  Conway's Game of Life (B3/S23) on a fixed rectangular grid with hard
  edges. A generation clock advances the world once per fixed interval no
  matter how often the host calls tick(), so the cadence of life is
  independent of the frame rate of whatever draws it (or plays it).

  Three layers, leaves first:

    Grid             owns cell state, payloads and state-change observers
    rule engine      count phase, apply phase, optional revival
    GenerationClock  turns frame timestamps into generations

  Simulation ties them together with a seedable random source and the
  optional "game over" RestartPolicy used by the sound variant.

  The renderer (life_term.py) and the synthesizer (life_music.py) only
  observe this module; nothing here draws or makes noise.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Callable, ClassVar, Iterable, Iterator

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

logger = logging.getLogger(__name__)

# ── Neighbourhood ───────────────────────────────────────────────────────
NEIGHBOR_KERNEL: NDArray = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.int16)

NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = tuple(
    (dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1) if (dr, dc) != (0, 0)
)

# ── Timing ──────────────────────────────────────────────────────────────
DEFAULT_GENERATION_INTERVAL: float = 1.0   # seconds per generation
DEFAULT_RESTART_PAUSE: float = 2.0         # seconds of silence after extinction

# ── Sound variant tuning ────────────────────────────────────────────────
# Initial coin is uniform(1..99) < 50, revival is a flat 5% per dead cell.
SOUND_SEED_PROBABILITY: float = 49 / 99
SOUND_REVIVE_PROBABILITY: float = 0.05

# ── Pattern library ─────────────────────────────────────────────────────
PATTERNS: dict[str, list[tuple[int, int]]] = {
    "block": [(0, 0), (0, 1), (1, 0), (1, 1)],
    "blinker": [(0, 0), (0, 1), (0, 2)],
    "toad": [(0, 1), (0, 2), (0, 3), (1, 0), (1, 1), (1, 2)],
    "beacon": [(0, 0), (0, 1), (1, 0), (2, 3), (3, 2), (3, 3)],
    "glider": [(0, 1), (1, 2), (2, 0), (2, 1), (2, 2)],
    "r_pentomino": [(0, 1), (0, 2), (1, 0), (1, 1), (2, 1)],
}

Initializer = Callable[[int, int], bool]
PayloadFactory = Callable[[int, int], Any]
Observer = Callable[["Cell", bool], None]


# ═══════════════════════════════════════════════════════════════════════
#  Errors
# ═══════════════════════════════════════════════════════════════════════

class LifeError(Exception):
    """Base exception for everything raised by the simulation core.

    Carries a ``details`` dict so hosts can log structured context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class InvalidDimensionError(LifeError, ValueError):
    """Raised when a grid is built with a non-positive row or column count."""

    def __init__(self, rows: Any, columns: Any) -> None:
        super().__init__(
            f"grid dimensions must be positive integers, got {rows!r}x{columns!r}",
            details={"rows": rows, "columns": columns},
        )
        self.rows = rows
        self.columns = columns


class OutOfBoundsError(LifeError, IndexError):
    """Raised when a coordinate falls outside the grid. Never clamped."""

    def __init__(self, row: int, column: int, rows: int, columns: int) -> None:
        super().__init__(
            f"cell ({row}, {column}) is outside a {rows}x{columns} grid",
            details={"row": row, "column": column, "rows": rows, "columns": columns},
        )
        self.row = row
        self.column = column


class InvalidTimestampError(LifeError, ValueError):
    """Raised by a strict clock when a timestamp goes backwards or is not finite."""

    def __init__(
        self, previous: float | None, current: float, message: str | None = None
    ) -> None:
        super().__init__(
            message or f"timestamp {current} is earlier than previous timestamp {previous}",
            details={"previous": previous, "current": current},
        )
        self.previous = previous
        self.current = current


class ConfigurationError(LifeError, ValueError):
    """Raised for an invalid or unknown configuration option."""

    def __init__(self, key: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Configuration error for '{key}': {message}", details=details)
        self.key = key


# ═══════════════════════════════════════════════════════════════════════
#  Cells and the grid
# ═══════════════════════════════════════════════════════════════════════

class Cell:
    """Handle on one automaton unit.

    State lives in the owning grid's arrays so the rule engine can work on
    whole generations at once; the handle is created once per coordinate and
    reads and writes straight through to the grid.
    """

    __slots__ = ("_grid", "row", "column", "_payload")

    def __init__(self, grid: Grid, row: int, column: int, payload: Any = None) -> None:
        self._grid = grid
        self.row = row
        self.column = column
        self._payload = payload

    @property
    def alive(self) -> bool:
        return bool(self._grid._alive[self.row, self.column])

    @alive.setter
    def alive(self, value: bool) -> None:
        self._grid._set_alive(self.row, self.column, bool(value))

    @property
    def live_neighbor_count(self) -> int:
        """Scratch count from the last count phase. Stale at rest."""
        return int(self._grid._neighbors[self.row, self.column])

    @live_neighbor_count.setter
    def live_neighbor_count(self, value: int) -> None:
        self._grid._neighbors[self.row, self.column] = value

    @property
    def payload(self) -> Any:
        return self._payload

    def __repr__(self) -> str:
        state = "alive" if self.alive else "dead"
        return f"Cell({self.row}, {self.column}, {state})"


def _check_dimensions(rows: Any, columns: Any) -> None:
    """Both must be positive integers (numpy integers count, bools do not)."""
    for value in (rows, columns):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
            raise InvalidDimensionError(rows, columns)


def dead(row: int, column: int) -> bool:
    """Initializer for an empty world."""
    return False


class Grid:
    """Fixed-size rectangular world of cells with hard edges.

    Cells are created once here and mutated in place for the lifetime of the
    grid. ``population`` is kept exact by every mutation path, and observers
    registered with :meth:`subscribe` hear about every flip of ``alive``.
    """

    def __init__(
        self,
        rows: int,
        columns: int,
        initializer: Initializer | None = None,
        payload: PayloadFactory | None = None,
    ) -> None:
        _check_dimensions(rows, columns)

        self.rows: int = int(rows)
        self.columns: int = int(columns)
        self._initializer: Initializer = initializer if initializer is not None else dead

        self._alive: NDArray[np.bool_] = np.zeros((self.rows, self.columns), dtype=np.bool_)
        self._neighbors: NDArray[np.int16] = np.zeros((self.rows, self.columns), dtype=np.int16)
        self._observers: list[Observer] = []

        self._cells: tuple[tuple[Cell, ...], ...] = tuple(
            tuple(
                Cell(self, r, c, payload(r, c) if payload is not None else None)
                for c in range(self.columns)
            )
            for r in range(self.rows)
        )

        self._alive[:] = self._draw_initial()
        self._population: int = int(np.count_nonzero(self._alive))

    # ── Shape and addressing ────────────────────────────────────────

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.columns

    @property
    def size(self) -> int:
        return self.rows * self.columns

    @property
    def population(self) -> int:
        return self._population

    def is_valid_coordinate(self, row: int, column: int) -> bool:
        return 0 <= row < self.rows and 0 <= column < self.columns

    def cell_at(self, row: int, column: int) -> Cell:
        if not self.is_valid_coordinate(row, column):
            raise OutOfBoundsError(row, column, self.rows, self.columns)
        return self._cells[row][column]

    def cells(self) -> Iterator[tuple[int, int, Cell]]:
        """Row-major traversal of every (row, column, cell). Restartable."""
        for row, line in enumerate(self._cells):
            for column, cell in enumerate(line):
                yield row, column, cell

    def __iter__(self) -> Iterator[tuple[int, int, Cell]]:
        return self.cells()

    def alive_mask(self) -> NDArray[np.bool_]:
        """Copy of the live-cell mask, safe to hand to collaborators."""
        return self._alive.copy()

    def neighbor_counts(self) -> NDArray[np.int16]:
        return self._neighbors.copy()

    # ── Observers ───────────────────────────────────────────────────

    def subscribe(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, cell: Cell, alive: bool) -> None:
        for observer in list(self._observers):
            observer(cell, alive)

    # ── Mutation ────────────────────────────────────────────────────

    def _draw_initial(self) -> NDArray[np.bool_]:
        mask = np.zeros((self.rows, self.columns), dtype=np.bool_)
        for row in range(self.rows):
            for column in range(self.columns):
                mask[row, column] = bool(self._initializer(row, column))
        return mask

    def _set_alive(self, row: int, column: int, value: bool) -> None:
        if self._alive[row, column] == value:
            return
        self._alive[row, column] = value
        self._population += 1 if value else -1
        self._notify(self._cells[row][column], value)

    def _commit(self, next_alive: NDArray[np.bool_]) -> tuple[int, int]:
        """Swap in a whole new generation. Returns (births, deaths)."""
        flipped = next_alive != self._alive
        changed = int(np.count_nonzero(flipped))
        if changed == 0:
            return 0, 0

        births = int(np.count_nonzero(flipped & next_alive))
        deaths = changed - births
        np.copyto(self._alive, next_alive)
        self._population += births - deaths

        if self._observers:
            rows, cols = np.nonzero(flipped)
            for r, c in zip(rows.tolist(), cols.tolist()):
                self._notify(self._cells[r][c], bool(next_alive[r, c]))
        return births, deaths

    def assign(self, mask: Iterable[Iterable[bool]] | NDArray[np.bool_]) -> tuple[int, int]:
        """Replace the whole state with ``mask`` (same shape as the grid)."""
        arr = np.asarray(mask, dtype=np.bool_)
        if arr.shape != self.shape:
            raise ValueError(f"mask shape {arr.shape} does not match grid shape {self.shape}")
        return self._commit(arr)

    def reseed(self) -> tuple[int, int]:
        """Re-run the initializer over every cell."""
        self._neighbors[:] = 0
        return self._commit(self._draw_initial())

    def clear(self) -> tuple[int, int]:
        self._neighbors[:] = 0
        return self._commit(np.zeros_like(self._alive))

    def __repr__(self) -> str:
        return f"Grid({self.rows}x{self.columns}, population={self._population})"


# ═══════════════════════════════════════════════════════════════════════
#  Initializers and payloads
# ═══════════════════════════════════════════════════════════════════════

def random_initializer(
    probability: float, rng: np.random.Generator | None = None
) -> Initializer:
    """Weighted coin per cell. Every reseed flips fresh coins."""
    if not 0.0 <= probability <= 1.0:
        raise ConfigurationError("seed_probability", f"must be in [0, 1], got {probability}")
    gen = rng if rng is not None else np.random.default_rng()

    def initializer(row: int, column: int) -> bool:
        return bool(gen.random() < probability)

    return initializer


def pattern_initializer(
    cells: Iterable[tuple[int, int]], origin: tuple[int, int] = (0, 0)
) -> Initializer:
    """Live cells at ``origin`` + each offset. Off-grid offsets are ignored."""
    oy, ox = origin
    live = frozenset((oy + dy, ox + dx) for dy, dx in cells)

    def initializer(row: int, column: int) -> bool:
        return (row, column) in live

    return initializer


def named_pattern(name: str, origin: tuple[int, int] = (0, 0)) -> Initializer:
    try:
        cells = PATTERNS[name]
    except KeyError:
        raise ConfigurationError(
            "pattern", f"unknown pattern {name!r}, choose from {sorted(PATTERNS)}"
        ) from None
    return pattern_initializer(cells, origin)


def cell_frequency(row: int, column: int) -> float:
    """Resonance of a cell in Hz.

    Row 0 and column 0 get a 0 Hz carrier; the modulator still makes them sound.
    """
    return float(row * column * 10)


# ═══════════════════════════════════════════════════════════════════════
#  Rule engine
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GenerationReport:
    """What one generation transition did to the grid."""
    births: int = 0
    deaths: int = 0
    revivals: int = 0
    population: int = 0


def live_neighbors(grid: Grid, row: int, column: int) -> int:
    """Count live neighbours of one cell, one offset at a time."""
    if not grid.is_valid_coordinate(row, column):
        raise OutOfBoundsError(row, column, grid.rows, grid.columns)
    count = 0
    for dr, dc in NEIGHBOR_OFFSETS:
        r, c = row + dr, column + dc
        if grid.is_valid_coordinate(r, c) and grid._alive[r, c]:
            count += 1
    return count


def count_neighbors(grid: Grid) -> NDArray[np.int16]:
    """Phase 1: write every cell's live-neighbour count.

    Reads only ``alive`` and writes only the count scratch, so visiting
    order is irrelevant. Zero padding outside the grid gives hard edges.
    """
    convolve(
        grid._alive.astype(np.int16),
        NEIGHBOR_KERNEL,
        output=grid._neighbors,
        mode="constant",
        cval=0,
    )
    return grid._neighbors


def apply_rules(grid: Grid) -> tuple[int, int]:
    """Phase 2: decide and commit every cell's next state.

    Precedence: exactly 3 neighbours lives; fewer than 2 or more than 3
    dies; exactly 2 keeps whatever the cell already was.
    Returns (births, deaths).
    """
    n = grid._neighbors
    next_alive = np.where(n == 3, True, np.where((n < 2) | (n > 3), False, grid._alive))
    return grid._commit(next_alive)


def revive(grid: Grid, probability: float, rng: np.random.Generator | None = None) -> int:
    """Spontaneous life: each dead cell comes back with chance ``probability``.

    Not part of the B3/S23 rules. Runs after the apply phase, so it never
    feeds into the counts of the generation that just happened.
    """
    if not 0.0 <= probability <= 1.0:
        raise ConfigurationError("revive_probability", f"must be in [0, 1], got {probability}")
    if probability == 0.0:
        return 0
    gen = rng if rng is not None else np.random.default_rng()
    revived = (gen.random(grid.shape) < probability) & ~grid._alive
    if not revived.any():
        return 0
    births, _ = grid._commit(grid._alive | revived)
    return births


def next_generation(
    grid: Grid,
    revive_probability: float = 0.0,
    rng: np.random.Generator | None = None,
) -> GenerationReport:
    """Count, apply, then optionally revive. One full transition."""
    count_neighbors(grid)
    births, deaths = apply_rules(grid)
    revivals = revive(grid, revive_probability, rng)
    return GenerationReport(
        births=births,
        deaths=deaths,
        revivals=revivals,
        population=grid.population,
    )


# ═══════════════════════════════════════════════════════════════════════
#  Generation clock
# ═══════════════════════════════════════════════════════════════════════

class GenerationClock:
    """Accumulates frame time and fires ``step`` once per interval.

    At most one generation per tick: when a long frame covers several
    intervals the excess is dropped, not replayed. The first tick only
    records a reference timestamp.
    """

    def __init__(
        self,
        step: Callable[[], object],
        interval: float = DEFAULT_GENERATION_INTERVAL,
        strict: bool = True,
    ) -> None:
        self._step = step
        self._interval: float = _check_interval(interval)
        self.strict: bool = strict
        self.accumulated: float = 0.0
        self.previous: float | None = None
        self.fired: int = 0
        self.clamped: int = 0

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        self._interval = _check_interval(value)

    def tick(self, timestamp: float) -> bool:
        """Advance to ``timestamp``. Returns True if a generation fired."""
        if not math.isfinite(timestamp):
            if self.strict:
                raise InvalidTimestampError(
                    self.previous, timestamp, f"timestamp {timestamp} is not finite"
                )
            logger.warning("ignoring non-finite timestamp %r", timestamp)
            self.clamped += 1
            return False

        if self.previous is None:
            self.previous = timestamp
            return False

        delta = timestamp - self.previous
        if delta < 0:
            if self.strict:
                raise InvalidTimestampError(self.previous, timestamp)
            logger.warning(
                "timestamp went backwards (%.6f -> %.6f); clamping delta to 0",
                self.previous, timestamp,
            )
            self.clamped += 1
            delta = 0.0

        self.accumulated += delta
        fired = False
        if self.accumulated > self._interval:
            self.accumulated = 0.0
            self._step()
            self.fired += 1
            fired = True

        self.previous = timestamp
        return fired

    def reset(self) -> None:
        self.accumulated = 0.0
        self.previous = None


def _check_number(key: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise ConfigurationError(key, f"must be a number, got {value!r}")


def _check_interval(value: float) -> float:
    _check_number("generation_interval_seconds", value)
    if not value > 0:
        raise ConfigurationError("generation_interval_seconds", f"must be > 0, got {value}")
    return float(value)


# ═══════════════════════════════════════════════════════════════════════
#  Restart policy (sound variant "game over")
# ═══════════════════════════════════════════════════════════════════════

class RestartPolicy:
    """Reseeds an extinct world after a pause instead of advancing it.

    Consulted at every generation boundary. While it returns True the
    generation is skipped. Time is measured with the tick timestamps, so
    the pause never blocks the host.
    """

    def __init__(self, pause: float = DEFAULT_RESTART_PAUSE) -> None:
        _check_number("restart_pause_seconds", pause)
        if pause < 0:
            raise ConfigurationError("restart_pause_seconds", f"must be >= 0, got {pause}")
        self.pause: float = float(pause)
        self.extinct_since: float | None = None
        self.restarts: int = 0

    @property
    def pending(self) -> bool:
        return self.extinct_since is not None

    def check(self, grid: Grid, now: float) -> bool:
        if self.extinct_since is None:
            if grid.population > 0:
                return False
            self.extinct_since = now
            logger.info("extinction at t=%.3f; reseeding in %.1fs", now, self.pause)
            return True

        if grid.population > 0:
            # Somebody brought a cell back by hand during the pause.
            self.extinct_since = None
            return False

        if now - self.extinct_since >= self.pause:
            grid.reseed()
            self.extinct_since = None
            self.restarts += 1
            logger.info("reseeded after extinction (restart #%d, population %d)",
                        self.restarts, grid.population)
        return True

    def reset(self) -> None:
        self.extinct_since = None


# ═══════════════════════════════════════════════════════════════════════
#  Configuration
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class LifeConfig:
    """Options for a simulation run.

    Attributes:
        rows, columns: Grid dimensions (fixed for the run)
        generation_interval_seconds: Wall time between generations
        revive_probability: Per-dead-cell chance of spontaneous life
        wraparound: Reserved. Toroidal grids are not supported
        seed_probability: Initial live density for random seeding
        seed: Seed for the run's random generator (None = entropy)
        restart_on_extinction: Enable the game-over RestartPolicy
        restart_pause_seconds: Pause before reseeding an extinct world
        strict: Reject backwards timestamps instead of clamping them
    """

    rows: int = 8
    columns: int = 8
    generation_interval_seconds: float = DEFAULT_GENERATION_INTERVAL
    revive_probability: float = 0.0
    wraparound: bool = False
    seed_probability: float = 0.0
    seed: int | None = None
    restart_on_extinction: bool = False
    restart_pause_seconds: float = DEFAULT_RESTART_PAUSE
    strict: bool = True

    ALIASES: ClassVar[dict[str, str]] = {
        "generationIntervalSeconds": "generation_interval_seconds",
        "reviveProbability": "revive_probability",
        "seedProbability": "seed_probability",
        "restartOnExtinction": "restart_on_extinction",
        "restartPauseSeconds": "restart_pause_seconds",
    }

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        _check_dimensions(self.rows, self.columns)
        self.rows, self.columns = int(self.rows), int(self.columns)

        for key in ("generation_interval_seconds", "revive_probability",
                    "seed_probability", "restart_pause_seconds"):
            _check_number(key, getattr(self, key))
        for key in ("wraparound", "restart_on_extinction", "strict"):
            if not isinstance(getattr(self, key), bool):
                raise ConfigurationError(key, f"must be true or false, got {getattr(self, key)!r}")
        if self.seed is not None and (
            isinstance(self.seed, bool) or not isinstance(self.seed, (int, np.integer))
        ):
            raise ConfigurationError("seed", f"must be an integer, got {self.seed!r}")

        _check_interval(self.generation_interval_seconds)

        if not 0.0 <= self.revive_probability <= 1.0:
            raise ConfigurationError(
                "revive_probability", f"must be in [0, 1], got {self.revive_probability}"
            )
        if not 0.0 <= self.seed_probability <= 1.0:
            raise ConfigurationError(
                "seed_probability", f"must be in [0, 1], got {self.seed_probability}"
            )
        if self.wraparound:
            raise ConfigurationError("wraparound", "toroidal grids are reserved and not supported")
        if self.restart_pause_seconds < 0:
            raise ConfigurationError(
                "restart_pause_seconds", f"must be >= 0, got {self.restart_pause_seconds}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> LifeConfig:
        """Build from a mapping. camelCase option names are accepted."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in d.items():
            name = cls.ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(key, "unknown option")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: Path | str) -> LifeConfig:
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(str(path), f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(str(path), "top level must be an object")
        return cls.from_dict(data)

    @classmethod
    def sound_variant(cls, **overrides: Any) -> LifeConfig:
        """Defaults of the audio-reactive demo: noisy, self-restarting, lenient."""
        options: dict[str, Any] = {
            "seed_probability": SOUND_SEED_PROBABILITY,
            "revive_probability": SOUND_REVIVE_PROBABILITY,
            "restart_on_extinction": True,
            "strict": False,
        }
        options.update(overrides)
        return cls(**options)


# ═══════════════════════════════════════════════════════════════════════
#  Simulation
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SimulationSnapshot:
    """Immutable summary of the simulation for collaborators."""
    generation: int = 0
    population: int = 0
    density: float = 0.0
    births: int = 0
    deaths: int = 0
    revivals: int = 0
    restarts: int = 0
    restart_pending: bool = False
    paused: bool = False


class Simulation:
    """Owns one world, its clock and its randomness.

    Drive it with :meth:`tick` once per host frame. All mutation (ticks,
    toggles, restarts) must come from the same thread.
    """

    def __init__(
        self,
        grid: Grid,
        config: LifeConfig | None = None,
        rng: np.random.Generator | None = None,
        restart_policy: RestartPolicy | None = None,
    ) -> None:
        self.grid: Grid = grid
        self.config: LifeConfig = (
            config if config is not None else LifeConfig(rows=grid.rows, columns=grid.columns)
        )
        self.rng: np.random.Generator = (
            rng if rng is not None else np.random.default_rng(self.config.seed)
        )
        self.restart_policy: RestartPolicy | None = restart_policy
        self.clock: GenerationClock = GenerationClock(
            self.advance,
            interval=self.config.generation_interval_seconds,
            strict=self.config.strict,
        )
        self.generation: int = 0
        self.last_report: GenerationReport | None = None
        self._paused: bool = False
        self._now: float = 0.0

    @classmethod
    def from_config(
        cls,
        config: LifeConfig,
        initializer: Initializer | None = None,
        payload: PayloadFactory | None = None,
    ) -> Simulation:
        rng = np.random.default_rng(config.seed)
        if initializer is None and config.seed_probability > 0:
            initializer = random_initializer(config.seed_probability, rng)
        grid = Grid(config.rows, config.columns, initializer, payload)
        policy = (
            RestartPolicy(config.restart_pause_seconds) if config.restart_on_extinction else None
        )
        return cls(grid, config, rng=rng, restart_policy=policy)

    # ── Driving ─────────────────────────────────────────────────────

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        if self._paused:
            self._paused = False
            # Time spent paused must not count towards the next generation.
            self.clock.reset()

    def tick(self, timestamp: float) -> bool:
        """Per-frame entry point. Returns True if a generation fired."""
        if self._paused:
            return False
        self._now = timestamp
        return self.clock.tick(timestamp)

    def advance(self) -> GenerationReport | None:
        """Run one generation now, unless the restart policy holds it."""
        if self.restart_policy is not None and self.restart_policy.check(self.grid, self._now):
            return None

        report = next_generation(self.grid, self.config.revive_probability, self.rng)
        self.generation += 1
        self.last_report = report
        logger.debug(
            "gen %d: +%d -%d revived %d pop %d",
            self.generation, report.births, report.deaths, report.revivals, report.population,
        )
        return report

    # ── Host controls ───────────────────────────────────────────────

    def toggle(self, row: int, column: int) -> bool:
        cell = self.grid.cell_at(row, column)
        cell.alive = not cell.alive
        return cell.alive

    def restart(self) -> None:
        self.grid.reseed()
        self.clock.reset()
        self.generation = 0
        self.last_report = None
        if self.restart_policy is not None:
            self.restart_policy.reset()

    def clear(self) -> None:
        self.grid.clear()
        self.generation = 0
        self.last_report = None

    def snapshot(self) -> SimulationSnapshot:
        report = self.last_report or GenerationReport(population=self.grid.population)
        policy = self.restart_policy
        return SimulationSnapshot(
            generation=self.generation,
            population=self.grid.population,
            density=self.grid.population / self.grid.size,
            births=report.births,
            deaths=report.deaths,
            revivals=report.revivals,
            restarts=policy.restarts if policy is not None else 0,
            restart_pending=policy.pending if policy is not None else False,
            paused=self._paused,
        )
