"""Helper functions for ingesting WAV data and converting it to signals."""
from pathlib import Path
from typing import Union

import numpy as np

from speakervec.audio.models import AudioSignal
from speakervec.audio.wav import decode_header
from speakervec.core.errors import DecodeError
from speakervec.core.logging import logger

# int16 full scale; dividing by it maps samples into [-1, 1)
PCM16_SCALE = 32768.0


def pcm16_to_float(pcm: np.ndarray) -> np.ndarray:
    """Normalize signed 16-bit samples to float32 in [-1, 1]."""
    return (pcm.astype(np.float32) / PCM16_SCALE).astype(np.float32)


class SampleReader:
    """Decodes 16-bit PCM WAV containers into AudioSignal objects."""

    def __init__(self, expected_sample_rate: int = 16000):
        """
        Initialize the reader.

        Args:
            expected_sample_rate: Rate the transcoder is supposed to deliver.
                                  A mismatch is logged, never corrected.
        """
        self.expected_sample_rate = expected_sample_rate

    def read(self, data: bytes, source: str = "<bytes>") -> AudioSignal:
        """
        Decode a complete WAV buffer.

        Only the first channel of multi-channel input is kept.

        Args:
            data: WAV file contents
            source: Name used in log and error messages

        Returns:
            AudioSignal at the sample rate declared by the file

        Raises:
            DecodeError: On malformed headers or non-16-bit data
        """
        header = decode_header(data)
        wav_format = header.format

        if wav_format.bit_depth != 16:
            raise DecodeError(
                f"{source}: unsupported bit depth {wav_format.bit_depth}, only 16-bit PCM is supported"
            )

        if wav_format.sample_rate != self.expected_sample_rate:
            logger.warning(
                f"{source}: file sample rate ({wav_format.sample_rate}) differs from expected "
                f"({self.expected_sample_rate}); timings will use the file rate"
            )

        end = len(data)
        if header.data_size is not None:
            declared_end = header.data_offset + header.data_size
            if declared_end > len(data):
                logger.warning(
                    f"{source}: data chunk truncated, declared {header.data_size} bytes, "
                    f"found {len(data) - header.data_offset}"
                )
            else:
                end = declared_end

        block_align = wav_format.bytes_per_sample
        payload = data[header.data_offset:end]
        usable = len(payload) - len(payload) % block_align
        pcm = np.frombuffer(payload[:usable], dtype="<i2")

        # Keep only the first channel of interleaved input
        if wav_format.channels > 1:
            pcm = pcm.reshape(-1, wav_format.channels)[:, 0]

        return AudioSignal(
            samples=pcm16_to_float(pcm),
            sample_rate=wav_format.sample_rate,
            channels=wav_format.channels,
        )

    def read_file(self, path: Union[str, Path]) -> AudioSignal:
        """Decode a WAV file from disk."""
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise DecodeError(f"Failed to read audio from {path}: {e}") from e
        return self.read(data, source=str(path))


def validate_audio_data(data: bytes) -> bool:
    """
    Validate an incoming binary message before it is fed to a decoder.

    Args:
        data: Raw audio bytes

    Returns:
        True if valid, False otherwise
    """
    if len(data) == 0:
        logger.warning("Received empty audio data")
        return False

    return True
