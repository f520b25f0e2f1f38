#!/usr/bin/env python3
"""
  Sounding Life in a terminal.

  A small board of cells, one generation per second by default. In the
  sound variant every living cell sings its own frequency (row x column x
  10 Hz), dead cells occasionally come back on their own, and a world that
  dies out reseeds itself after a short silence.

  Controls:
    q         quit               SPACE     pause / resume
    r         reseed             c         clear
    +/-       faster / slower    mouse     toggle cells
    m         mute / unmute      [ / ]     volume down / up

  Stats are logged to life_stats.csv beside this script.
"""

from __future__ import annotations

import argparse
import curses
import logging
import time
from pathlib import Path
from typing import IO, ClassVar

from life import (
    PATTERNS,
    GenerationReport,
    LifeConfig,
    LifeError,
    Simulation,
    cell_frequency,
    named_pattern,
)
from life_music import LifeSynth

logger = logging.getLogger(__name__)

LOG_PATH = Path(__file__).resolve().parent / "life_stats.csv"

FRAME_SECS: float = 1.0 / 30.0
CELL_WIDTH: int = 2            # terminal columns per cell
ALIVE_GLYPH: str = "\u2588\u2588"  # ██
DEAD_GLYPH: str = "\u00b7 "        # ·
MIN_INTERVAL: float = 0.1
MAX_INTERVAL: float = 5.0


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes per-generation telemetry to CSV."""

    HEADER: ClassVar[str] = "gen,time_s,population,births,deaths,revivals,event\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> bool:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError as e:
            logger.warning("stats disabled, cannot write %s: %s", self._path, e)
            self._fh = None
        return self._fh is not None

    def log(self, gen: int, report: GenerationReport | None, event: str = "") -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        r = report or GenerationReport()
        self._fh.write(
            f"{gen},{t:.1f},{r.population},{r.births},{r.deaths},{r.revivals},{event}\n"
        )
        if event or gen % 50 == 0:
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def screen_to_cell(term_y: int, term_x: int, top: int = 1) -> tuple[int, int]:
    """Map a terminal position to the (row, column) drawn there."""
    return term_y - top, term_x // CELL_WIDTH


def status_line(sim: Simulation, music_status: str = "") -> str:
    snap = sim.snapshot()
    parts = [
        f"gen {snap.generation}",
        f"pop {snap.population}/{sim.grid.size}",
        f"{sim.clock.interval:.1f}s/gen",
    ]
    if snap.revivals:
        parts.append(f"revived {snap.revivals}")
    if snap.restart_pending:
        parts.append("extinct - reseeding")
    if snap.restarts:
        parts.append(f"restarts {snap.restarts}")
    if snap.paused:
        parts.append("PAUSED")
    if music_status:
        parts.append(music_status)
    return "  ".join(parts)


def render(stdscr: curses.window, sim: Simulation, music_status: str = "") -> None:
    max_y, max_x = stdscr.getmaxyx()
    top = 1
    try:
        stdscr.addstr(0, 0, status_line(sim, music_status)[: max_x - 1], curses.A_REVERSE)
    except curses.error:
        pass

    alive = sim.grid.alive_mask()
    rows = min(sim.grid.rows, max_y - top)
    cols = min(sim.grid.columns, (max_x - 1) // CELL_WIDTH)
    for r in range(rows):
        line = "".join(ALIVE_GLYPH if alive[r, c] else DEAD_GLYPH for c in range(cols))
        try:
            stdscr.addstr(top + r, 0, line)
        except curses.error:
            pass


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def build_simulation(args: argparse.Namespace) -> Simulation:
    if args.config is not None:
        config = LifeConfig.from_json(args.config)
    elif args.sound:
        config = LifeConfig.sound_variant()
    else:
        config = LifeConfig(seed_probability=0.3, strict=False)

    overrides = {
        "rows": args.rows,
        "columns": args.cols,
        "generation_interval_seconds": args.interval,
        "revive_probability": args.revive,
        "seed_probability": args.density,
        "seed": args.seed,
    }
    options = config.to_dict()
    options.update({k: v for k, v in overrides.items() if v is not None})
    config = LifeConfig.from_dict(options)

    initializer = None
    if args.pattern is not None:
        initializer = named_pattern(args.pattern, (config.rows // 2 - 1, config.columns // 2 - 1))
    return Simulation.from_config(config, initializer=initializer, payload=cell_frequency)


def main(stdscr: curses.window, sim: Simulation, music: LifeSynth | None,
         stats_path: Path | None) -> None:
    curses.curs_set(0)
    stdscr.nodelay(True)
    stdscr.timeout(0)
    curses.mousemask(curses.ALL_MOUSE_EVENTS)

    stats = StatsLogger(stats_path) if stats_path is not None else None
    if stats is not None:
        stats.open()

    try:
        while True:
            # ── Input ──────────────────────────────────────────────
            try:
                key = stdscr.getch()
            except curses.error:
                key = -1

            if key in (ord("q"), ord("Q")):
                break
            elif key == ord(" "):
                if sim.paused:
                    sim.resume()
                else:
                    sim.pause()
            elif key in (ord("r"), ord("R")):
                sim.restart()
            elif key in (ord("c"), ord("C")):
                sim.clear()
            elif key in (ord("+"), ord("=")):
                sim.clock.interval = max(MIN_INTERVAL, sim.clock.interval / 1.5)
            elif key in (ord("-"), ord("_")):
                sim.clock.interval = min(MAX_INTERVAL, sim.clock.interval * 1.5)
            elif key in (ord("m"), ord("M")):
                if music is not None:
                    music.toggle_mute()
            elif key == ord("["):
                if music is not None:
                    music.adjust_volume(-0.1)
            elif key == ord("]"):
                if music is not None:
                    music.adjust_volume(0.1)
            elif key == curses.KEY_MOUSE:
                try:
                    _, mx, my, _, bstate = curses.getmouse()
                except curses.error:
                    bstate = 0
                if bstate & (curses.BUTTON1_CLICKED | curses.BUTTON1_PRESSED):
                    row, col = screen_to_cell(my, mx)
                    if sim.grid.is_valid_coordinate(row, col):
                        sim.toggle(row, col)

            # ── Simulate ───────────────────────────────────────────
            restarts = sim.snapshot().restarts
            if sim.tick(time.monotonic()) and stats is not None:
                snap = sim.snapshot()
                if snap.restarts > restarts:
                    event = "restart"
                elif snap.restart_pending:
                    event = "extinct"
                else:
                    event = ""
                stats.log(sim.generation, sim.last_report, event)

            # ── Render ─────────────────────────────────────────────
            stdscr.erase()
            render(stdscr, sim, music.status_string() if music is not None else "")
            stdscr.refresh()

            time.sleep(FRAME_SECS)
    finally:
        if stats is not None:
            stats.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Conway's Game of Life, with a voice per cell")
    parser.add_argument("--rows", type=int, default=None, help="Grid rows (default: 8)")
    parser.add_argument("--cols", type=int, default=None, help="Grid columns (default: 8)")
    parser.add_argument("--interval", type=float, default=None,
                        help="Seconds per generation (default: 1.0)")
    parser.add_argument("--revive", type=float, default=None,
                        help="Chance a dead cell comes back each generation")
    parser.add_argument("--density", type=float, default=None,
                        help="Initial live-cell density for random seeding")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--pattern", choices=sorted(PATTERNS), default=None,
                        help="Start from a named pattern instead of random cells")
    parser.add_argument("--sound", action="store_true",
                        help="Sound variant: revival, restart on extinction, music")
    parser.add_argument("--no-music", action="store_true", help="Never open the audio device")
    parser.add_argument("--config", type=Path, default=None, help="JSON config file")
    parser.add_argument("--stats", type=Path, default=LOG_PATH,
                        help=f"CSV telemetry path (default: {LOG_PATH.name})")
    parser.add_argument("--log-file", type=Path, default=None,
                        help="Write log records here (the screen belongs to curses)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.log_file is not None:
        logging.basicConfig(filename=args.log_file, level=args.log_level,
                            format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(handlers=[logging.NullHandler()], level=args.log_level)

    try:
        sim = build_simulation(args)
    except (LifeError, OSError) as e:
        print(f"life_term: {e}")
        return 2

    music: LifeSynth | None = None
    if args.sound and not args.no_music:
        music = LifeSynth()
        music.attach(sim.grid)
        if not music.start():
            music.detach()
            music = None

    try:
        curses.wrapper(main, sim, music, args.stats)
    except KeyboardInterrupt:
        pass
    finally:
        if music is not None:
            music.stop()
            music.detach()
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
