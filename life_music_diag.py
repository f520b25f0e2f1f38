#!/usr/bin/env python3
"""Offline diagnostic renderer for the sound variant of Life.

Runs the simulation headlessly with synthetic frame timestamps, renders
what the synthesizer would have played, writes it to a WAV file and
prints a per-second report of loudness, polyphony and population.

Usage:
    python3 life_music_diag.py                     # 10 s of the 8x8 sound variant
    python3 life_music_diag.py --duration 30 --seed 7
    python3 life_music_diag.py --rows 12 --cols 12
    python3 life_music_diag.py --no-wav            # report only
"""
from __future__ import annotations

import argparse
import logging
import math
import sys
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from scipy.io import wavfile

from life import LifeConfig, LifeError, Simulation, cell_frequency
from life_music import SAMPLE_RATE, LifeSynth

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════════════

DEFAULT_DURATION: float = 10.0
DEFAULT_OUTPUT_DIR: str = "diag_output"
FPS: float = 30.0


# ═══════════════════════════════════════════════════════════════════════
#  Headless run
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FrameStat:
    """State of the world after one host frame."""
    time: float
    generation: int
    population: int
    voices: int


@dataclass
class DiagRun:
    audio: NDArray[np.float32]
    frames: list[FrameStat] = field(default_factory=list)
    restarts: int = 0

    @property
    def generations(self) -> int:
        return self.frames[-1].generation if self.frames else 0


def run_headless(
    duration_secs: float,
    config: LifeConfig,
    fps: float = FPS,
) -> DiagRun:
    """Drive a Simulation + LifeSynth for duration_secs of synthetic time."""
    sim = Simulation.from_config(config, payload=cell_frequency)
    synth = LifeSynth()
    synth.attach(sim.grid)

    n_frames = int(duration_secs * fps)
    samples_per_frame = SAMPLE_RATE / fps
    chunks: list[NDArray[np.float32]] = []
    frames: list[FrameStat] = []
    rendered = 0

    try:
        for frame in range(n_frames):
            t = frame / fps
            sim.tick(t)

            # Render exactly up to the end of this frame (no drift)
            target = int(round((frame + 1) * samples_per_frame))
            chunks.append(synth.render(target - rendered))
            rendered = target

            frames.append(FrameStat(t, sim.generation, sim.grid.population, synth.sounding))
    finally:
        synth.detach()

    audio = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float32)
    run = DiagRun(audio=audio, frames=frames, restarts=sim.snapshot().restarts)
    logger.info("rendered %d frames: %d generations, %d restarts",
                len(frames), run.generations, run.restarts)
    return run


# ═══════════════════════════════════════════════════════════════════════
#  Analysis
# ═══════════════════════════════════════════════════════════════════════

def rms(signal: NDArray[np.float32]) -> float:
    if len(signal) == 0:
        return 0.0
    return float(np.sqrt(np.mean(signal.astype(np.float64) ** 2)))


def to_db(value: float) -> float:
    return 20.0 * math.log10(value) if value > 1e-10 else -200.0


def format_report(run: DiagRun, fps: float = FPS) -> str:
    lines: list[str] = []
    duration = len(run.audio) / SAMPLE_RATE
    lines.append("=" * 64)
    lines.append("  SOUNDING LIFE DIAGNOSTIC")
    lines.append("=" * 64)
    lines.append(f"  duration {duration:.1f}s  generations {run.generations}  "
                 f"restarts {run.restarts}")
    peak = float(np.max(np.abs(run.audio))) if len(run.audio) else 0.0
    lines.append(f"  overall RMS {to_db(rms(run.audio)):6.1f} dB  peak {to_db(peak):6.1f} dB")
    lines.append("")
    lines.append(f"  {'sec':>4} {'RMS dB':>8} {'voices':>7} {'pop':>5} {'gen':>5}")
    lines.append("  " + "-" * 33)

    frames_per_sec = int(fps)
    for sec in range(int(duration)):
        seg = run.audio[sec * SAMPLE_RATE:(sec + 1) * SAMPLE_RATE]
        window = run.frames[sec * frames_per_sec:(sec + 1) * frames_per_sec]
        if not window:
            break
        voices = sum(f.voices for f in window) / len(window)
        last = window[-1]
        lines.append(f"  {sec:>4} {to_db(rms(seg)):8.1f} {voices:7.1f} "
                     f"{last.population:5d} {last.generation:5d}")
    return "\n".join(lines)


# ═══════════════════════════════════════════════════════════════════════
#  WAV output
# ═══════════════════════════════════════════════════════════════════════

def write_wav(path: Path, audio: NDArray[np.float32]) -> Path:
    """Peak-normalize and write a float32 mono WAV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    peak = float(np.max(np.abs(audio))) if len(audio) else 0.0
    if peak > 1e-8:
        normalized = (audio / peak * 0.95).astype(np.float32)
    else:
        normalized = audio.astype(np.float32)
    wavfile.write(str(path), SAMPLE_RATE, normalized)
    return path


# ═══════════════════════════════════════════════════════════════════════
#  Main
# ═══════════════════════════════════════════════════════════════════════

def main() -> None:
    parser = argparse.ArgumentParser(
        description="Render the sound variant of Life offline and analyze it",
    )
    parser.add_argument("--duration", type=float, default=DEFAULT_DURATION,
                        help=f"Seconds of simulated time (default: {DEFAULT_DURATION})")
    parser.add_argument("--rows", type=int, default=8, help="Grid rows (default: 8)")
    parser.add_argument("--cols", type=int, default=8, help="Grid columns (default: 8)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument("--revive", type=float, default=None,
                        help="Override the revival probability")
    parser.add_argument("--output-dir", type=Path, default=Path(DEFAULT_OUTPUT_DIR),
                        help=f"Directory for WAV output (default: {DEFAULT_OUTPUT_DIR})")
    parser.add_argument("--no-wav", action="store_true", help="Skip WAV output")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    overrides: dict[str, object] = {"rows": args.rows, "columns": args.cols, "seed": args.seed}
    if args.revive is not None:
        overrides["revive_probability"] = args.revive
    try:
        config = LifeConfig.sound_variant(**overrides)
    except LifeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    print(f"Simulating {args.duration:.1f}s of a {config.rows}x{config.columns} world...",
          end="", flush=True)
    run = run_headless(args.duration, config)
    print(f" {len(run.frames)} frames, {run.generations} generations.")

    if not args.no_wav:
        path = args.output_dir / f"life_{config.rows}x{config.columns}_seed{args.seed}.wav"
        try:
            write_wav(path, run.audio)
            print(f"Wrote {path}")
        except OSError as e:
            print(f"Failed to write {path}: {e}", file=sys.stderr)

    print()
    print(format_report(run))


if __name__ == "__main__":
    main()
