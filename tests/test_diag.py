"""
Tests for the offline renderer used by life_music_diag.
"""

import numpy as np
import pytest
from scipy.io import wavfile

from life import LifeConfig
from life_music import SAMPLE_RATE
from life_music_diag import format_report, rms, run_headless, to_db, write_wav


class TestHeadlessRun:
    """Tests for run_headless and its report."""

    def test_audio_length_matches_duration(self):
        """Rendering 3 s at 30 fps yields exactly 3 s of samples."""
        run = run_headless(3.0, LifeConfig.sound_variant(seed=0))
        assert len(run.frames) == 90
        assert len(run.audio) == 3 * SAMPLE_RATE
        assert run.audio.dtype == np.float32
        assert np.abs(run.audio).max() < 1.0

    def test_generations_follow_clock(self):
        """About one generation per simulated second."""
        run = run_headless(5.0, LifeConfig(seed_probability=0.5, seed=1))
        assert 4 <= run.generations <= 5
        times = [f.time for f in run.frames]
        assert times == sorted(times)

    def test_reproducible(self):
        """The same seed renders the same audio."""
        a = run_headless(2.0, LifeConfig.sound_variant(seed=5))
        b = run_headless(2.0, LifeConfig.sound_variant(seed=5))
        np.testing.assert_array_equal(a.audio, b.audio)

    def test_report(self):
        """The report has a header and one line per second."""
        run = run_headless(2.0, LifeConfig.sound_variant(seed=2))
        report = format_report(run)
        assert "SOUNDING LIFE DIAGNOSTIC" in report
        assert "generations" in report
        # header block (8 lines) + 2 per-second rows
        assert len(report.splitlines()) == 10


class TestHelpers:
    """Tests for level helpers and WAV output."""

    def test_rms_and_db(self):
        """RMS of a unit square wave is 1, i.e. 0 dB."""
        square = np.array([1.0, -1.0] * 100, dtype=np.float32)
        assert rms(square) == 1.0
        assert to_db(1.0) == 0.0
        assert rms(np.zeros(0, dtype=np.float32)) == 0.0
        assert to_db(0.0) == -200.0

    def test_write_wav_normalizes(self, tmp_path):
        """WAV output is peak-normalized float32 at the synth sample rate."""
        audio = (0.1 * np.sin(np.linspace(0, 20, 4410))).astype(np.float32)
        path = write_wav(tmp_path / "out" / "tone.wav", audio)
        rate, data = wavfile.read(path)
        assert rate == SAMPLE_RATE
        assert data.dtype == np.float32
        assert len(data) == 4410
        assert float(np.abs(data).max()) == pytest.approx(0.95, abs=1e-6)
