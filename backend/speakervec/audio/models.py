"""Audio data models and structures."""
from dataclasses import dataclass, field
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class WavFormat:
    """Format sub-block of a RIFF/WAVE container."""
    sample_rate: int
    channels: int
    bit_depth: int

    @property
    def bytes_per_sample(self) -> int:
        """Bytes per sample frame across all channels (block align)."""
        return (self.bit_depth // 8) * self.channels

    def to_dict(self) -> dict:
        return {
            "sample_rate": self.sample_rate,
            "channels": self.channels,
            "bit_depth": self.bit_depth,
        }


@dataclass(frozen=True)
class AudioSignal:
    """Decoded mono signal with samples normalized to [-1, 1]."""
    samples: np.ndarray  # float32, 1-D
    sample_rate: int
    channels: int = 1  # channel count of the source container

    def __post_init__(self):
        """Validate and freeze sample data."""
        if self.samples.ndim != 1:
            raise ValueError(f"Expected 1-D samples, got shape {self.samples.shape}")
        if self.samples.dtype != np.float32:
            raise ValueError(f"Expected float32 samples, got {self.samples.dtype}")
        self.samples.flags.writeable = False

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        """Signal duration in seconds."""
        return len(self.samples) / self.sample_rate


@dataclass(frozen=True)
class Frame:
    """A fixed-length view into an AudioSignal."""
    index: int
    start: int  # offset of the first sample in the parent signal
    samples: np.ndarray  # view, not a copy


@dataclass(frozen=True)
class PendingChunk:
    """A chunk selected by the chunking state machine but not yet written."""
    index: int
    start_time: float  # seconds, always index * chunk_duration
    duration: float  # seconds
    format: WavFormat
    pcm: bytes = field(repr=False)
    final: bool = False


@dataclass
class Chunk:
    """A sub-clip artifact written to disk."""
    index: int
    timestamp: int  # creation time, epoch milliseconds
    start_time: float
    duration: float
    format: WavFormat
    path: str
    speaker: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "start_time": self.start_time,
            "duration": self.duration,
            "format": self.format.to_dict(),
            "path": self.path,
            "speaker": self.speaker,
        }
