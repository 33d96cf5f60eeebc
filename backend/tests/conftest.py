"""Shared fixtures: synthetic signals and WAV containers."""
import io
import wave

import numpy as np
import pytest

from speakervec.core.config import Settings

SAMPLE_RATE = 16000


def _wav_bytes(pcm: np.ndarray, sample_rate: int = SAMPLE_RATE, channels: int = 1, sampwidth: int = 2) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(sampwidth)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm.tobytes())
    return buffer.getvalue()


def _tone(num_samples: int, frequency: float = 220.0, amplitude: float = 8000.0,
          sample_rate: int = SAMPLE_RATE, seed: int = 0) -> np.ndarray:
    rng = np.random.RandomState(seed)
    t = np.arange(num_samples) / sample_rate
    signal = amplitude * np.sin(2 * np.pi * frequency * t)
    signal += amplitude * 0.3 * np.sin(2 * np.pi * frequency * 2.5 * t)
    signal += rng.normal(0, amplitude * 0.02, num_samples)
    return np.clip(np.round(signal), -32768, 32767).astype("<i2")


@pytest.fixture
def make_wav():
    """Build WAV bytes from an int16 array."""
    return _wav_bytes


@pytest.fixture
def make_tone():
    """Build a deterministic int16 tone with a little noise."""
    return _tone


@pytest.fixture
def settings(tmp_path):
    """Default settings writing chunks under a temporary directory."""
    return Settings(output_dir=str(tmp_path / "chunks"))
