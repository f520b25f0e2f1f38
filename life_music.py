"""
Per-cell FM synthesizer for the sound variant of Life.

Every cell owns a resonance frequency (its payload). While the cell is
alive it sings a frequency-modulated tone at that pitch; when it dies the
tone is released. The synth hears about births and deaths through the
grid's observer hook and never touches the simulation itself.

Architecture:
  The simulation thread flips voices on and off from observer callbacks.
  The PyAudio callback thread renders whatever voices are sounding. Both
  sides go through a lock around the voice table.

Audio: 44100 Hz, mono, float32, 1024 frames/buffer (~23ms latency).
"""

from __future__ import annotations

import logging
import math
import threading

import numpy as np
from numpy.typing import NDArray

from life import Cell, Grid, cell_frequency

try:
    import pyaudio
    _HAS_PYAUDIO = True
except ImportError:
    pyaudio = None  # type: ignore[assignment]
    _HAS_PYAUDIO = False

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════════════

SAMPLE_RATE: int = 44100
BUFFER_SIZE: int = 1024
TWO_PI: float = 2.0 * math.pi

# FM voice: carrier = cell frequency, fixed modulator
MODULATOR_HZ: float = 679.0
MODULATION_INDEX: float = 0.8

# Gate ramps in seconds (click-free note on/off)
ATTACK_SECS: float = 0.01
RELEASE_SECS: float = 0.08

# Polyphony cap: one full 8x8 board
MAX_VOICES: int = 64


# ═══════════════════════════════════════════════════════════════════════
#  Utility functions
# ═══════════════════════════════════════════════════════════════════════

def soft_clip(x: NDArray[np.float32]) -> NDArray[np.float32]:
    """Soft clipping (tanh-based), in place."""
    np.tanh(x, out=x)
    return x


def fm_tone(
    n_samples: int,
    carrier_hz: float,
    modulator_hz: float = MODULATOR_HZ,
    index: float = MODULATION_INDEX,
    carrier_phase: float = 0.0,
    modulator_phase: float = 0.0,
) -> NDArray[np.float32]:
    """sin(carrier + index * sin(modulator)) for n_samples from the given phases."""
    k = np.arange(n_samples, dtype=np.float64)
    car = carrier_phase + TWO_PI * carrier_hz / SAMPLE_RATE * k
    mod = modulator_phase + TWO_PI * modulator_hz / SAMPLE_RATE * k
    return np.sin(car + index * np.sin(mod)).astype(np.float32)


# ═══════════════════════════════════════════════════════════════════════
#  Voice: one cell's tone
# ═══════════════════════════════════════════════════════════════════════

class FMVoice:
    """FM oscillator with phase accumulators and a linear gate ramp."""

    def __init__(
        self,
        carrier_hz: float,
        modulator_hz: float = MODULATOR_HZ,
        index: float = MODULATION_INDEX,
    ) -> None:
        self.carrier_hz: float = carrier_hz
        self.modulator_hz: float = modulator_hz
        self.index: float = index
        self.carrier_phase: float = 0.0
        self.modulator_phase: float = 0.0
        self.gate: bool = False
        self.level: float = 0.0

    @property
    def active(self) -> bool:
        return self.gate or self.level > 0.0

    def note_on(self) -> None:
        self.gate = True

    def note_off(self) -> None:
        self.gate = False

    def render(self, n_samples: int) -> NDArray[np.float32]:
        if not self.active or n_samples <= 0:
            return np.zeros(max(0, n_samples), dtype=np.float32)

        osc = fm_tone(n_samples, self.carrier_hz, self.modulator_hz, self.index,
                      self.carrier_phase, self.modulator_phase)
        self._advance_phases(n_samples)
        start, end = self._advance_gate(n_samples)
        return osc * np.linspace(start, end, n_samples, dtype=np.float32)

    def skip(self, n_samples: int) -> None:
        """Let n_samples pass without producing output (voice left out of the mix)."""
        if not self.active or n_samples <= 0:
            return
        self._advance_phases(n_samples)
        self._advance_gate(n_samples)

    def _advance_phases(self, n_samples: int) -> None:
        self.carrier_phase = math.fmod(
            self.carrier_phase + TWO_PI * self.carrier_hz / SAMPLE_RATE * n_samples, TWO_PI)
        self.modulator_phase = math.fmod(
            self.modulator_phase + TWO_PI * self.modulator_hz / SAMPLE_RATE * n_samples, TWO_PI)

    def _advance_gate(self, n_samples: int) -> tuple[float, float]:
        # Ramp towards the gate target; full swing takes ATTACK/RELEASE seconds
        target = 1.0 if self.gate else 0.0
        ramp_secs = ATTACK_SECS if self.gate else RELEASE_SECS
        max_step = n_samples / (SAMPLE_RATE * ramp_secs)
        start = self.level
        self.level = start + max(-max_step, min(max_step, target - start))
        return start, self.level


# ═══════════════════════════════════════════════════════════════════════
#  The synthesizer
# ═══════════════════════════════════════════════════════════════════════

class LifeSynth:
    """
    Sings the live cells of a grid.

    Call attach(grid) once, start() to open the audio device, and stop()
    on shutdown. render() works without any audio device and is what the
    offline tools use.
    """

    def __init__(
        self,
        modulator_hz: float = MODULATOR_HZ,
        index: float = MODULATION_INDEX,
        max_voices: int = MAX_VOICES,
    ) -> None:
        self._modulator_hz: float = modulator_hz
        self._index: float = index
        self._max_voices: int = max_voices
        self._voices: dict[tuple[int, int], FMVoice] = {}
        self._lock: threading.Lock = threading.Lock()
        self._grid: Grid | None = None

        self._muted: bool = False
        self._master_volume: float = 0.5

        self._pa: pyaudio.PyAudio | None = None  # type: ignore[name-defined]
        self._stream: pyaudio.Stream | None = None  # type: ignore[name-defined]
        self._running: bool = False
        self._buffer_count: int = 0
        self._underrun_count: int = 0

    # ── Public properties ──────────────────────────────────────────────

    @property
    def is_muted(self) -> bool:
        return self._muted

    @property
    def master_volume(self) -> float:
        return self._master_volume

    @property
    def volume_percent(self) -> int:
        return round(self._master_volume * 100)

    @property
    def sounding(self) -> int:
        """Voices that are gated on or still releasing."""
        with self._lock:
            return sum(1 for v in self._voices.values() if v.active)

    # ── Controls ───────────────────────────────────────────────────────

    def toggle_mute(self) -> None:
        self._muted = not self._muted

    def adjust_volume(self, delta: float) -> None:
        self._master_volume = max(0.0, min(1.0, self._master_volume + delta))

    # ── Grid wiring ────────────────────────────────────────────────────

    def attach(self, grid: Grid) -> None:
        """Follow ``grid``: cells alive right now start singing immediately."""
        self.detach()
        self._grid = grid
        grid.subscribe(self.on_cell_change)
        for _, _, cell in grid.cells():
            if cell.alive:
                self.on_cell_change(cell, True)

    def detach(self) -> None:
        if self._grid is not None:
            self._grid.unsubscribe(self.on_cell_change)
            self._grid = None
        with self._lock:
            for voice in self._voices.values():
                voice.note_off()

    def on_cell_change(self, cell: Cell, alive: bool) -> None:
        """Grid observer: a birth gates the cell's voice on, a death off."""
        key = (cell.row, cell.column)
        with self._lock:
            voice = self._voices.get(key)
            if alive:
                if voice is None:
                    voice = FMVoice(self._frequency_of(cell), self._modulator_hz, self._index)
                    self._voices[key] = voice
                voice.note_on()
            elif voice is not None:
                voice.note_off()

    @staticmethod
    def _frequency_of(cell: Cell) -> float:
        payload = cell.payload
        if isinstance(payload, (int, float)):
            return float(payload)
        return cell_frequency(cell.row, cell.column)

    # ── Rendering ──────────────────────────────────────────────────────

    def render(self, n_samples: int = BUFFER_SIZE) -> NDArray[np.float32]:
        """Mix every sounding voice into one buffer (volume, mute and clip applied)."""
        mix = np.zeros(n_samples, dtype=np.float32)
        with self._lock:
            active = [(key, v) for key, v in self._voices.items() if v.active]

            # Over the cap: mix an evenly spread subset of pitches, the rest
            # keep their envelopes moving silently
            mixed = active
            if len(active) > self._max_voices:
                by_pitch = sorted(active, key=lambda kv: kv[1].carrier_hz)
                step = len(by_pitch) / self._max_voices
                mixed = [by_pitch[int(i * step)] for i in range(self._max_voices)]
                chosen = {key for key, _ in mixed}
                for key, voice in active:
                    if key not in chosen:
                        voice.skip(n_samples)

            for _, voice in mixed:
                mix += voice.render(n_samples)

            for key, voice in active:
                if not voice.active:
                    del self._voices[key]

        if mixed:
            mix /= math.sqrt(len(mixed))

        if self._muted:
            mix[:] = 0.0
        else:
            mix *= self._master_volume
        return soft_clip(mix)

    # ── Lifecycle ──────────────────────────────────────────────────────

    def start(self) -> bool:
        """Start audio output. Returns True on success, False on failure."""
        if not _HAS_PYAUDIO:
            logger.info("pyaudio not installed; running silent")
            return False

        try:
            self._pa = pyaudio.PyAudio()
            self._stream = self._pa.open(
                format=pyaudio.paFloat32,
                channels=1,
                rate=SAMPLE_RATE,
                output=True,
                frames_per_buffer=BUFFER_SIZE,
                stream_callback=self._audio_callback,
            )
            self._running = True
            self._stream.start_stream()
            return True
        except OSError as e:
            logger.warning("could not open audio output: %s", e)
            self._running = False
            self._cleanup_audio()
            return False

    def stop(self) -> None:
        """Stop audio output and clean up resources."""
        self._running = False
        self._cleanup_audio()

    def _cleanup_audio(self) -> None:
        try:
            if self._stream is not None:
                if self._stream.is_active():
                    self._stream.stop_stream()
                self._stream.close()
        except OSError as e:
            logger.warning("error closing audio stream: %s", e)
        self._stream = None
        if self._pa is not None:
            self._pa.terminate()
        self._pa = None

    def _audio_callback(
        self,
        in_data: bytes | None,
        frame_count: int,
        time_info: dict[str, float],
        status_flags: int,
    ) -> tuple[bytes, int]:
        """PyAudio stream callback."""
        if not self._running:
            return (b"\x00" * (frame_count * 4), pyaudio.paComplete)

        if status_flags & pyaudio.paOutputUnderflow:
            self._underrun_count += 1

        samples = self.render(frame_count)
        self._buffer_count += 1
        return (samples.tobytes(), pyaudio.paContinue)

    # ── Status string for display ──────────────────────────────────────

    def status_string(self) -> str:
        if self._muted:
            return "[MUTE]"
        base = f"FM {self.volume_percent}% v{self.sounding}"
        if self._underrun_count > 0:
            base += f" XR:{self._underrun_count}"
        return base
