"""Configuration settings for the speaker embedding backend."""
from enum import Enum
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION = "0.1.0"


class EmbeddingMode(str, Enum):
    """Granularity of the embeddings handed to the vector store."""
    SEQUENCE = "sequence"  # one vector per frame
    AGGREGATE = "aggregate"  # one mean/std pooled vector per signal


class NormalizationMode(str, Enum):
    """How the descriptor matrix is scaled before deltas are taken."""
    FRAME = "frame"  # each frame by its own L2 norm
    GLOBAL = "global"  # whole matrix by a single norm (legacy behaviour)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        frozen=True,
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Audio settings
    sample_rate: int = 16000  # Hz, expected rate of the transcoded input

    # Feature extraction settings
    window_size: int = 512  # samples per frame (~32ms at 16 kHz)
    hop_size: int = 256  # 50% overlap
    num_coefficients: int = 20  # cepstral coefficients per frame
    mel_bands: int = 26  # triangular filters in the mel filterbank
    delta_order: int = 2  # regression half-width N

    # Embedding settings
    embedding_mode: EmbeddingMode = EmbeddingMode.SEQUENCE
    normalization: NormalizationMode = NormalizationMode.FRAME
    vector_dimension: Optional[int] = None  # dimension declared by the vector store

    # Chunking settings
    chunk_duration: float = 10.0  # seconds
    min_duration: float = 1.0  # shortest final partial chunk kept, seconds
    temporal_interval: float = 10.0  # seconds between written chunks
    max_chunks_per_speaker: int = 100  # advisory unless enforce_chunk_cap
    enforce_chunk_cap: bool = False
    output_dir: str = "./chunks"

    # Logging
    log_level: str = "INFO"

    @field_validator("sample_rate", "window_size", "hop_size", "num_coefficients", "mel_bands", "delta_order")
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"must be positive, got {value}")
        return value

    @field_validator("chunk_duration", "temporal_interval")
    @classmethod
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"must be positive, got {value}")
        return value

    @field_validator("min_duration")
    @classmethod
    def _non_negative_seconds(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"must not be negative, got {value}")
        return value

    @model_validator(mode="after")
    def _check_combinations(self) -> "Settings":
        if self.hop_size > self.window_size:
            raise ValueError(
                f"hop_size ({self.hop_size}) must not exceed window_size ({self.window_size})"
            )
        if self.num_coefficients > self.mel_bands:
            raise ValueError(
                f"num_coefficients ({self.num_coefficients}) must not exceed mel_bands ({self.mel_bands})"
            )
        ratio = self.temporal_interval / self.chunk_duration
        if ratio < 1 or abs(ratio - round(ratio)) > 1e-9:
            raise ValueError(
                f"temporal_interval ({self.temporal_interval}) must be an integer multiple "
                f"of chunk_duration ({self.chunk_duration})"
            )
        return self

