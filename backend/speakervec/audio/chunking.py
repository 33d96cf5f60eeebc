"""Chunking state machine: splits a WAV byte stream into timed sub-clips.

The machine is pure. ``advance`` consumes a piece of the byte stream and
returns the chunks selected for writing together with a new state;
``finish`` flushes the final partial chunk at end-of-stream. Writing files
is left to the caller (see ``chunk_writer``).

Phases: IDLE -> STREAMING -> {MATERIALIZING | SKIPPING} -> STREAMING -> ...
-> FINALIZING -> DONE. MATERIALIZING and SKIPPING are passed through while
full chunks are drained from the buffer; ``advance`` always returns in
IDLE (header incomplete) or STREAMING.
"""
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from speakervec.audio.models import PendingChunk, WavFormat
from speakervec.audio.wav import parse_header
from speakervec.core.config import Settings
from speakervec.core.errors import DecodeError
from speakervec.core.logging import logger


class ChunkerPhase(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    MATERIALIZING = "materializing"
    SKIPPING = "skipping"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class ChunkerConfig:
    """Timing parameters of one chunking run."""
    chunk_duration: float = 10.0
    min_duration: float = 1.0
    temporal_interval: float = 10.0

    @property
    def stride(self) -> int:
        """Write every ``stride``-th chunk; the others are dropped."""
        # Tolerance keeps exact multiples such as 0.3 / 0.1 from flooring to 2
        return max(1, math.floor(self.temporal_interval / self.chunk_duration + 1e-9))

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChunkerConfig":
        return cls(
            chunk_duration=settings.chunk_duration,
            min_duration=settings.min_duration,
            temporal_interval=settings.temporal_interval,
        )


@dataclass(frozen=True)
class ChunkerState:
    """Immutable snapshot of a chunking run."""
    config: ChunkerConfig
    phase: ChunkerPhase = ChunkerPhase.IDLE
    buffer: bytes = b""
    format: Optional[WavFormat] = None
    bytes_per_chunk: int = 0
    data_remaining: Optional[int] = None  # None: read until end-of-stream
    chunk_index: int = 0
    materialized: int = 0
    skipped: int = 0


def initial_state(config: Optional[ChunkerConfig] = None) -> ChunkerState:
    """State of a run that has not seen any bytes yet."""
    return ChunkerState(config=config or ChunkerConfig())


def _start_streaming(state: ChunkerState, data: bytes) -> Tuple[ChunkerState, bytes]:
    """Accumulate header bytes; once parsed, switch to STREAMING and return the sample bytes."""
    buffered = state.buffer + data
    header = parse_header(buffered)
    if header is None:
        return replace(state, buffer=buffered), b""

    wav_format = header.format
    samples_per_chunk = int(state.config.chunk_duration * wav_format.sample_rate)
    bytes_per_chunk = samples_per_chunk * wav_format.bytes_per_sample
    if bytes_per_chunk <= 0:
        raise DecodeError(
            f"chunk_duration {state.config.chunk_duration}s is shorter than one sample "
            f"at {wav_format.sample_rate} Hz"
        )

    logger.debug(
        f"Chunker header parsed: {wav_format.sample_rate} Hz, {wav_format.channels} ch, "
        f"{wav_format.bit_depth} bit, {bytes_per_chunk} bytes per chunk"
    )
    streaming = replace(
        state,
        phase=ChunkerPhase.STREAMING,
        buffer=b"",
        format=wav_format,
        bytes_per_chunk=bytes_per_chunk,
        data_remaining=header.data_size,
    )
    return streaming, buffered[header.data_offset:]


def advance(state: ChunkerState, data: bytes) -> Tuple[List[PendingChunk], ChunkerState]:
    """
    Feed the next piece of the byte stream.

    Args:
        state: Current state
        data: Next bytes of the WAV stream (any size, may split the header)

    Returns:
        (chunks to write, new state)

    Raises:
        DecodeError: If the header is malformed
        ValueError: If the run has already been finished
    """
    if state.phase in (ChunkerPhase.FINALIZING, ChunkerPhase.DONE):
        raise ValueError("Cannot advance a chunking run that has been finished")

    if state.phase is ChunkerPhase.IDLE:
        state, data = _start_streaming(state, data)
        if state.phase is ChunkerPhase.IDLE:
            return [], state

    # Bytes after the declared data chunk belong to trailing RIFF chunks
    data_remaining = state.data_remaining
    if data_remaining is not None:
        data = data[:data_remaining]
        data_remaining -= len(data)

    buffer = state.buffer + data
    config = state.config
    stride = config.stride
    bytes_per_chunk = state.bytes_per_chunk
    index = state.chunk_index
    materialized = state.materialized
    skipped = state.skipped

    emitted = []
    offset = 0
    while len(buffer) - offset >= bytes_per_chunk:
        if index % stride == 0:
            phase = ChunkerPhase.MATERIALIZING
            emitted.append(PendingChunk(
                index=index,
                start_time=index * config.chunk_duration,
                duration=config.chunk_duration,
                format=state.format,
                pcm=buffer[offset:offset + bytes_per_chunk],
            ))
            materialized += 1
        else:
            phase = ChunkerPhase.SKIPPING
            skipped += 1
        logger.debug(f"Chunk {index}: {phase.value}")
        offset += bytes_per_chunk
        index += 1

    return emitted, replace(
        state,
        phase=ChunkerPhase.STREAMING,
        buffer=buffer[offset:],
        data_remaining=data_remaining,
        chunk_index=index,
        materialized=materialized,
        skipped=skipped,
    )


def finish(state: ChunkerState) -> Tuple[List[PendingChunk], ChunkerState]:
    """
    Signal end-of-stream and flush the final partial chunk.

    The final chunk ignores the sampling stride; it is emitted whenever the
    remaining audio lasts at least ``min_duration`` seconds.

    Raises:
        DecodeError: If the stream ended before a complete header was seen
        ValueError: If the run has already been finished
    """
    if state.phase in (ChunkerPhase.FINALIZING, ChunkerPhase.DONE):
        raise ValueError("Chunking run already finished")
    if state.phase is ChunkerPhase.IDLE:
        raise DecodeError(
            f"Stream ended before a complete WAV header ({len(state.buffer)} bytes received)"
        )

    state = replace(state, phase=ChunkerPhase.FINALIZING)
    block_align = state.format.bytes_per_sample
    usable = len(state.buffer) - len(state.buffer) % block_align
    remaining_duration = usable / block_align / state.format.sample_rate

    emitted = []
    materialized = state.materialized
    if usable > 0 and remaining_duration >= state.config.min_duration:
        emitted.append(PendingChunk(
            index=state.chunk_index,
            start_time=state.chunk_index * state.config.chunk_duration,
            duration=remaining_duration,
            format=state.format,
            pcm=state.buffer[:usable],
            final=True,
        ))
        materialized += 1
    elif usable > 0:
        logger.debug(
            f"Dropping final {remaining_duration:.3f}s, shorter than min_duration "
            f"{state.config.min_duration}s"
        )

    return emitted, replace(
        state,
        phase=ChunkerPhase.DONE,
        buffer=b"",
        materialized=materialized,
    )
