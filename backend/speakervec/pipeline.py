"""Main embedding pipeline orchestrator."""
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from speakervec.audio.ingestion import SampleReader
from speakervec.audio.models import AudioSignal, Chunk
from speakervec.core.config import EmbeddingMode, Settings
from speakervec.core.errors import SpeakerVecError
from speakervec.core.logging import logger
from speakervec.features.assembler import VectorAssembler
from speakervec.features.delta import compute_delta
from speakervec.features.framing import Framer
from speakervec.features.mfcc import SpectralFeatureExtractor


@dataclass
class EmbeddingResult:
    """Embedding(s) computed for one signal."""
    vectors: np.ndarray  # (frames, 2n) in sequence mode, (4n,) in aggregate mode
    mode: EmbeddingMode
    sample_rate: int
    frame_count: int  # frames produced by the framer, including skipped ones
    frame_indices: List[int] = field(default_factory=list)
    skipped_frames: List[int] = field(default_factory=list)
    source: str = "<signal>"

    @property
    def dimension(self) -> int:
        return int(self.vectors.shape[-1])

    def iter_vectors(self) -> List[List[float]]:
        """Vectors as plain lists, one per vector-store point."""
        if self.mode is EmbeddingMode.AGGREGATE:
            return [self.vectors.tolist()]
        return self.vectors.tolist()

    def to_dict(self, include_vectors: bool = True) -> dict:
        result = {
            "source": self.source,
            "mode": self.mode.value,
            "dimension": self.dimension,
            "sample_rate": self.sample_rate,
            "frame_count": self.frame_count,
            "skipped_frames": self.skipped_frames,
        }
        if include_vectors:
            result["vectors"] = self.iter_vectors()
        return result


@dataclass
class FileOutcome:
    """Result of one file in a batch: either an embedding or the error that stopped it."""
    path: str
    result: Optional[EmbeddingResult] = None
    error: Optional[SpeakerVecError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EmbeddingPipeline:
    """WAV bytes -> samples -> frames -> descriptors -> deltas -> embeddings."""

    def __init__(self, settings: Settings):
        """
        Build all pipeline stages from one settings object.

        Raises:
            ConfigError: If the settings are inconsistent with the declared
                         vector store dimension
        """
        self.settings = settings
        self.reader = SampleReader(expected_sample_rate=settings.sample_rate)
        self.framer = Framer(window_size=settings.window_size, hop_size=settings.hop_size)
        self.extractor = SpectralFeatureExtractor(
            sample_rate=settings.sample_rate,
            window_size=settings.window_size,
            num_coefficients=settings.num_coefficients,
            mel_bands=settings.mel_bands,
        )
        self.assembler = VectorAssembler(
            num_coefficients=settings.num_coefficients,
            mode=settings.embedding_mode,
            normalization=settings.normalization,
            vector_dimension=settings.vector_dimension,
        )
        self.delta_order = settings.delta_order

    @property
    def mode(self) -> EmbeddingMode:
        return self.assembler.mode

    @property
    def output_dimension(self) -> int:
        return self.assembler.output_dimension

    def embed_signal(self, signal: AudioSignal, source: str = "<signal>") -> EmbeddingResult:
        """
        Compute embeddings for a decoded signal.

        Raises:
            EmptySequenceError: If the signal yields no usable frame
        """
        start_time = time.time()

        frames = self.framer.frames(signal)
        sequence = self.extractor.extract_all(frames)
        static = self.assembler.normalize(sequence.descriptors)
        delta = compute_delta(static, order=self.delta_order)
        vectors = self.assembler.assemble(static, delta)

        processing_time = (time.time() - start_time) * 1000
        logger.debug(
            f"{source}: {len(frames)} frames, {len(sequence.skipped)} skipped, "
            f"{processing_time:.1f}ms"
        )

        return EmbeddingResult(
            vectors=vectors,
            mode=self.mode,
            sample_rate=signal.sample_rate,
            frame_count=len(frames),
            frame_indices=sequence.frame_indices,
            skipped_frames=sequence.skipped,
            source=source,
        )

    def embed_bytes(self, data: bytes, source: str = "<bytes>") -> EmbeddingResult:
        """Decode a WAV buffer and compute its embeddings."""
        signal = self.reader.read(data, source=source)
        return self.embed_signal(signal, source=source)

    def embed_file(self, path: Union[str, Path]) -> EmbeddingResult:
        """Decode a WAV file and compute its embeddings."""
        signal = self.reader.read_file(path)
        return self.embed_signal(signal, source=str(path))

    def embed_chunks(self, chunks: Sequence[Chunk]) -> List[Tuple[Chunk, EmbeddingResult]]:
        """Run each written chunk back through the pipeline."""
        return [(chunk, self.embed_file(chunk.path)) for chunk in chunks]

    def _embed_outcome(self, path: Union[str, Path]) -> FileOutcome:
        try:
            return FileOutcome(path=str(path), result=self.embed_file(path))
        except SpeakerVecError as e:
            logger.error(f"Failed to embed {path}: {e}")
            return FileOutcome(path=str(path), error=e)

    def embed_files(self, paths: Sequence[Union[str, Path]], max_workers: int = 1) -> List[FileOutcome]:
        """
        Embed independent files; a failure in one file does not stop the others.

        Args:
            paths: WAV files to process
            max_workers: Files processed concurrently (no state is shared)

        Returns:
            One FileOutcome per path, in input order
        """
        if max_workers <= 1:
            return [self._embed_outcome(path) for path in paths]

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self._embed_outcome, paths))
