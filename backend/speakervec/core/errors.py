"""Exception taxonomy shared by the pipeline, the chunker and the API."""
from typing import List, Optional


class SpeakerVecError(Exception):
    """Base class for all errors raised by the backend."""


class DecodeError(SpeakerVecError):
    """Malformed, truncated or unsupported WAV container or header."""


class ExtractionError(SpeakerVecError):
    """A descriptor could not be computed for a frame."""


class EmptySequenceError(ExtractionError):
    """Every frame of a signal failed extraction (or there were none)."""


class ConfigError(SpeakerVecError):
    """Configuration is inconsistent with a component or the vector store."""


class ChunkWriteError(SpeakerVecError, OSError):
    """Writing a chunk artifact failed; the chunking run is aborted.

    ``written`` holds the chunks that were already on disk when the failure
    happened. They are not removed automatically.
    """

    def __init__(self, message: str, written: Optional[List] = None):
        super().__init__(message)
        self.written = list(written or [])
