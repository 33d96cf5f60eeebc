"""Mel-frequency cepstral descriptors for individual frames."""
from dataclasses import dataclass, field
from typing import Iterable, List

import numpy as np
from scipy.fft import dct

from speakervec.audio.models import Frame
from speakervec.core.errors import ConfigError, EmptySequenceError, ExtractionError
from speakervec.core.logging import logger


def hz_to_mel(freq_hz):
    """Convert frequency in Hz to the mel scale (HTK formula)."""
    return 2595.0 * np.log10(1.0 + np.asarray(freq_hz, dtype=np.float64) / 700.0)


def mel_to_hz(mel):
    """Convert mel values back to Hz."""
    return 700.0 * (10.0 ** (np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


def mel_filterbank(num_bands: int, fft_size: int, sample_rate: int) -> np.ndarray:
    """
    Build triangular mel filters spanning 0 Hz to Nyquist.

    Args:
        num_bands: Number of filters
        fft_size: FFT length the filters are applied to
        sample_rate: Sample rate in Hz

    Returns:
        Filter matrix of shape (num_bands, fft_size // 2 + 1)
    """
    bin_freqs = np.fft.rfftfreq(fft_size, 1.0 / sample_rate)
    edges = mel_to_hz(np.linspace(hz_to_mel(0.0), hz_to_mel(sample_rate / 2.0), num_bands + 2))

    filters = np.zeros((num_bands, len(bin_freqs)), dtype=np.float64)
    for band in range(num_bands):
        left, center, right = edges[band], edges[band + 1], edges[band + 2]
        rising = (bin_freqs - left) / (center - left)
        falling = (right - bin_freqs) / (right - center)
        filters[band] = np.maximum(0.0, np.minimum(rising, falling))
    return filters


@dataclass
class DescriptorSequence:
    """Descriptors for the frames that survived extraction."""
    descriptors: np.ndarray  # (num_valid_frames, num_coefficients)
    frame_indices: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frame_indices)


class SpectralFeatureExtractor:
    """Computes a fixed-length cepstral descriptor per frame."""

    def __init__(
        self,
        sample_rate: int = 16000,
        window_size: int = 512,
        num_coefficients: int = 20,
        mel_bands: int = 26,
    ):
        if num_coefficients > mel_bands:
            raise ConfigError(
                f"num_coefficients ({num_coefficients}) cannot exceed mel_bands ({mel_bands})"
            )
        self.sample_rate = sample_rate
        self.window_size = window_size
        self.num_coefficients = num_coefficients
        self.mel_bands = mel_bands

        self._window = np.hanning(window_size)
        self._filterbank = mel_filterbank(mel_bands, window_size, sample_rate)
        if np.any(self._filterbank.sum(axis=1) == 0.0):
            raise ConfigError(
                f"{mel_bands} mel bands are too narrow for a {window_size}-sample window "
                f"at {sample_rate} Hz (empty filters)"
            )

    def extract(self, frame: Frame) -> np.ndarray:
        """
        Compute the descriptor of one frame.

        Args:
            frame: Frame of exactly window_size samples

        Returns:
            float64 array of length num_coefficients

        Raises:
            ExtractionError: If the frame has the wrong length or the result
                             is not finite (e.g. a silent frame)
        """
        samples = frame.samples
        if len(samples) != self.window_size:
            raise ExtractionError(
                f"frame {frame.index}: expected {self.window_size} samples, got {len(samples)}"
            )

        spectrum = np.fft.rfft(samples.astype(np.float64) * self._window)
        power = np.abs(spectrum) ** 2
        mel_energy = self._filterbank @ power

        with np.errstate(divide="ignore", invalid="ignore"):
            log_mel = np.log(mel_energy)
        if not np.all(np.isfinite(log_mel)):
            raise ExtractionError(f"frame {frame.index}: degenerate log mel spectrum")

        coefficients = dct(log_mel, type=2, norm="ortho")[: self.num_coefficients]
        if not np.all(np.isfinite(coefficients)):
            raise ExtractionError(f"frame {frame.index}: non-finite cepstral coefficients")
        return coefficients

    def extract_all(self, frames: Iterable[Frame]) -> DescriptorSequence:
        """
        Compute descriptors for a frame sequence, skipping failed frames.

        Raises:
            EmptySequenceError: If no frame produced a descriptor
        """
        rows = []
        indices = []
        skipped = []
        for frame in frames:
            try:
                rows.append(self.extract(frame))
                indices.append(frame.index)
            except ExtractionError as e:
                logger.debug(f"Skipping frame: {e}")
                skipped.append(frame.index)

        if not rows:
            raise EmptySequenceError(
                f"No descriptors extracted ({len(skipped)} frames, all failed)"
            )

        if skipped:
            logger.info(f"Skipped {len(skipped)} of {len(skipped) + len(rows)} frames during extraction")

        return DescriptorSequence(
            descriptors=np.vstack(rows),
            frame_indices=indices,
            skipped=skipped,
        )
