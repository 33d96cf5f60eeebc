"""Writing chunks selected by the chunking state machine to disk."""
import os
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from speakervec.audio.chunking import ChunkerConfig, ChunkerPhase, advance, finish, initial_state
from speakervec.audio.models import Chunk, PendingChunk
from speakervec.audio.wav import write_wav
from speakervec.core.config import Settings
from speakervec.core.errors import ChunkWriteError, DecodeError
from speakervec.core.logging import logger

READ_SIZE = 64 * 1024


class ChunkWriter:
    """Writes pending chunks as standalone WAV files, in index order."""

    def __init__(
        self,
        output_dir: Union[str, Path],
        speaker: Optional[str] = None,
        max_chunks: int = 100,
        enforce_cap: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the writer.

        Args:
            output_dir: Destination directory, created if missing
            speaker: Optional speaker label stored in chunk metadata
            max_chunks: Chunk cap for this run (maxChunksPerSpeaker)
            enforce_cap: Drop chunks past the cap instead of only warning
            clock: Time source for chunk timestamps
        """
        self.output_dir = Path(output_dir)
        self.speaker = speaker
        self.max_chunks = max_chunks
        self.enforce_cap = enforce_cap
        self._clock = clock
        self.written: List[Chunk] = []
        self._last_index = -1
        self._cap_warned = False

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ChunkWriteError(f"Cannot create chunk directory {self.output_dir}: {e}") from e

    def write(self, pending: PendingChunk) -> Optional[Chunk]:
        """
        Write one chunk.

        Returns:
            The written Chunk, or None if it was dropped by the chunk cap

        Raises:
            ChunkWriteError: If the file cannot be written
        """
        if pending.index <= self._last_index:
            raise ValueError(
                f"Chunk {pending.index} written out of order (last was {self._last_index})"
            )
        self._last_index = pending.index

        if len(self.written) >= self.max_chunks:
            if self.enforce_cap:
                logger.debug(f"Chunk cap {self.max_chunks} reached, dropping chunk {pending.index}")
                return None
            if not self._cap_warned:
                logger.warning(
                    f"Chunk count for speaker {self.speaker or '<unknown>'} exceeds "
                    f"max_chunks_per_speaker={self.max_chunks} (not enforced)"
                )
                self._cap_warned = True

        timestamp = int(self._clock() * 1000)
        path = self.output_dir / f"chunk-{timestamp}-{pending.index}.wav"
        try:
            write_wav(str(path), pending.pcm, pending.format)
        except OSError as e:
            # Only complete chunks stay on disk
            path.unlink(missing_ok=True)
            raise ChunkWriteError(
                f"Failed to write chunk {pending.index} to {path}: {e}", written=self.written
            ) from e

        chunk = Chunk(
            index=pending.index,
            timestamp=timestamp,
            start_time=pending.start_time,
            duration=pending.duration,
            format=pending.format,
            path=str(path),
            speaker=self.speaker,
        )
        self.written.append(chunk)
        return chunk


class ChunkingSession:
    """One chunking run: feeds bytes through the state machine and writes what it emits."""

    def __init__(self, config: ChunkerConfig, writer: ChunkWriter):
        self.state = initial_state(config)
        self.writer = writer

    @property
    def done(self) -> bool:
        return self.state.phase is ChunkerPhase.DONE

    def _write_all(self, pending: List[PendingChunk]) -> List[Chunk]:
        chunks = []
        for item in pending:
            chunk = self.writer.write(item)
            if chunk is not None:
                chunks.append(chunk)
        return chunks

    def feed(self, data: bytes) -> List[Chunk]:
        """Consume the next bytes; returns the chunks written as a result."""
        pending, self.state = advance(self.state, data)
        return self._write_all(pending)

    def close(self) -> List[Chunk]:
        """Signal end-of-stream; returns the final chunk if one was written."""
        pending, self.state = finish(self.state)
        chunks = self._write_all(pending)
        logger.info(
            f"Chunking finished: {self.state.chunk_index} full chunk slots, "
            f"{len(self.writer.written)} written, {self.state.skipped} skipped by stride"
        )
        return chunks


class WavChunker:
    """Splits WAV recordings into fixed-duration chunk files."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.config = ChunkerConfig.from_settings(settings)

    def open_session(self, speaker: Optional[str] = None) -> ChunkingSession:
        """Start an incremental run, e.g. for a network stream."""
        writer = ChunkWriter(
            output_dir=self.settings.output_dir,
            speaker=speaker,
            max_chunks=self.settings.max_chunks_per_speaker,
            enforce_cap=self.settings.enforce_chunk_cap,
        )
        return ChunkingSession(self.config, writer)

    def chunk_stream(self, stream: Iterable[bytes], speaker: Optional[str] = None) -> List[Chunk]:
        """
        Chunk a byte stream end to end.

        Raises:
            DecodeError: On a malformed or absent header
            ChunkWriteError: If any chunk cannot be written
        """
        session = self.open_session(speaker)
        for data in stream:
            session.feed(data)
        session.close()
        return list(session.writer.written)

    def chunk_bytes(self, data: bytes, speaker: Optional[str] = None) -> List[Chunk]:
        """Chunk an in-memory WAV file."""
        return self.chunk_stream([data], speaker=speaker)

    def chunk_file(self, path: Union[str, os.PathLike], speaker: Optional[str] = None) -> List[Chunk]:
        """Chunk a WAV file, reading it incrementally."""
        try:
            handle = open(path, "rb")
        except OSError as e:
            raise DecodeError(f"Failed to open audio file {path}: {e}") from e

        with handle:
            chunks = self.chunk_stream(iter(lambda: handle.read(READ_SIZE), b""), speaker=speaker)
        logger.info(f"Chunked {path} into {len(chunks)} files under {self.settings.output_dir}")
        return chunks
