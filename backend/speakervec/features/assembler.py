"""Combining static and delta descriptors into embeddings."""
from typing import Optional

import numpy as np

from speakervec.core.config import EmbeddingMode, NormalizationMode
from speakervec.core.errors import ConfigError


def normalize_global(descriptors: np.ndarray) -> np.ndarray:
    """Divide the whole matrix by its Frobenius norm (legacy behaviour)."""
    norm = np.linalg.norm(descriptors)
    if norm == 0.0:
        return descriptors.copy()
    return descriptors / norm


def normalize_per_frame(descriptors: np.ndarray) -> np.ndarray:
    """Scale each row to unit L2 norm; all-zero rows are left as they are."""
    norms = np.linalg.norm(descriptors, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return descriptors / norms


class VectorAssembler:
    """Turns descriptor/delta pairs into embeddings of a fixed dimension."""

    def __init__(
        self,
        num_coefficients: int,
        mode: EmbeddingMode = EmbeddingMode.SEQUENCE,
        normalization: NormalizationMode = NormalizationMode.FRAME,
        vector_dimension: Optional[int] = None,
    ):
        """
        Initialize the assembler.

        Args:
            num_coefficients: Descriptor length per frame
            mode: Sequence (per frame) or aggregate (per signal) output
            normalization: Per-frame or global descriptor scaling
            vector_dimension: Dimension declared by the downstream vector
                              store, checked eagerly when given

        Raises:
            ConfigError: If the output dimension differs from vector_dimension
        """
        self.num_coefficients = num_coefficients
        self.mode = EmbeddingMode(mode)
        self.normalization = NormalizationMode(normalization)

        if vector_dimension is not None and vector_dimension != self.output_dimension:
            raise ConfigError(
                f"Vector store expects dimension {vector_dimension}, but {num_coefficients} "
                f"coefficients in {self.mode.value} mode produce {self.output_dimension}"
            )

    @property
    def combined_dimension(self) -> int:
        return 2 * self.num_coefficients

    @property
    def output_dimension(self) -> int:
        """Length of each emitted vector."""
        if self.mode is EmbeddingMode.AGGREGATE:
            return 2 * self.combined_dimension
        return self.combined_dimension

    def normalize(self, descriptors: np.ndarray) -> np.ndarray:
        """Scale the descriptor matrix according to the configured policy."""
        descriptors = np.asarray(descriptors, dtype=np.float64)
        if self.normalization is NormalizationMode.GLOBAL:
            return normalize_global(descriptors)
        return normalize_per_frame(descriptors)

    def combine(self, static: np.ndarray, delta: np.ndarray) -> np.ndarray:
        """Concatenate static and delta descriptors frame by frame."""
        static = np.asarray(static, dtype=np.float64)
        delta = np.asarray(delta, dtype=np.float64)
        if static.shape != delta.shape:
            raise ValueError(f"Descriptor shape {static.shape} != delta shape {delta.shape}")
        if static.ndim != 2 or static.shape[1] != self.num_coefficients:
            raise ValueError(
                f"Expected descriptors of width {self.num_coefficients}, got shape {static.shape}"
            )
        return np.concatenate([static, delta], axis=1)

    def assemble(self, static: np.ndarray, delta: np.ndarray) -> np.ndarray:
        """
        Build the embedding for one signal.

        Returns:
            (T, 2n) matrix in sequence mode, or a (4n,) vector of
            per-dimension mean followed by per-dimension standard deviation
            in aggregate mode
        """
        combined = self.combine(static, delta)
        if self.mode is EmbeddingMode.SEQUENCE:
            return combined

        if combined.shape[0] == 0:
            raise ValueError("Cannot pool an empty descriptor sequence")
        mean = combined.mean(axis=0)
        std = combined.std(axis=0)
        return np.concatenate([mean, std])
