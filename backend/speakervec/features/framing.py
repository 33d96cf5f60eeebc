"""Slicing a signal into fixed-length, fixed-hop analysis frames."""
from typing import Iterator

from speakervec.audio.models import AudioSignal, Frame
from speakervec.core.errors import ConfigError


def frame_count(length: int, window_size: int, hop_size: int) -> int:
    """
    Number of complete frames that fit in a signal.

    Args:
        length: Signal length in samples
        window_size: Frame length in samples
        hop_size: Offset between consecutive frame starts

    Returns:
        floor((length - window_size) / hop_size) + 1, or 0 if the
        signal is shorter than one window
    """
    if length < window_size:
        return 0
    return (length - window_size) // hop_size + 1


class FrameSequence:
    """Lazy, re-iterable sequence of frames over one signal."""

    def __init__(self, signal: AudioSignal, window_size: int, hop_size: int):
        self.signal = signal
        self.window_size = window_size
        self.hop_size = hop_size
        self._count = frame_count(len(signal), window_size, hop_size)

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index: int) -> Frame:
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError(f"frame index {index} out of range")
        start = index * self.hop_size
        return Frame(
            index=index,
            start=start,
            samples=self.signal.samples[start:start + self.window_size],
        )

    def __iter__(self) -> Iterator[Frame]:
        for index in range(self._count):
            yield self[index]


class Framer:
    """Splits signals into overlapping frames; trailing partial windows are dropped."""

    def __init__(self, window_size: int = 512, hop_size: int = 256):
        if window_size <= 0:
            raise ConfigError(f"window_size must be positive, got {window_size}")
        if not 0 < hop_size <= window_size:
            raise ConfigError(
                f"hop_size must be in [1, window_size={window_size}], got {hop_size}"
            )
        self.window_size = window_size
        self.hop_size = hop_size

    def frames(self, signal: AudioSignal) -> FrameSequence:
        """Return the frames of ``signal``; iterating it again yields the same frames."""
        return FrameSequence(signal, self.window_size, self.hop_size)
