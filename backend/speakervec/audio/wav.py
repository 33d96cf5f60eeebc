"""RIFF/WAVE container parsing and writing.

Header parsing is incremental: ``parse_header`` returns ``None`` while the
buffer is too short to decide, raises ``DecodeError`` as soon as the bytes
seen so far cannot be a valid linear PCM WAV header, and otherwise
returns the format together with the offset of the first sample byte. The
same parser serves the whole-file SampleReader and the streaming chunker.
"""
import io
import struct
import wave
from dataclasses import dataclass
from typing import Optional

from speakervec.audio.models import WavFormat
from speakervec.core.errors import DecodeError

WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_EXTENSIBLE = 0xFFFE

# Placeholder sizes written by encoders that stream without seeking back
UNKNOWN_DATA_SIZES = (0, 0xFFFFFFFF)


@dataclass(frozen=True)
class WavHeader:
    """Parsed header: format plus location of the sample data."""
    format: WavFormat
    data_offset: int
    data_size: Optional[int]  # None when the container does not declare it


def _parse_fmt(body: bytes) -> WavFormat:
    audio_format, channels, sample_rate, _byte_rate, _block_align, bit_depth = struct.unpack_from(
        "<HHIIHH", body
    )

    if audio_format == WAVE_FORMAT_EXTENSIBLE:
        if len(body) < 26:
            raise DecodeError("WAVE_FORMAT_EXTENSIBLE fmt chunk is truncated")
        # First two bytes of the sub-format GUID carry the actual format tag
        (audio_format,) = struct.unpack_from("<H", body, 24)

    if audio_format != WAVE_FORMAT_PCM:
        raise DecodeError(f"Unsupported WAV format tag 0x{audio_format:04x}, only linear PCM is supported")
    if channels == 0:
        raise DecodeError("WAV header declares zero channels")
    if sample_rate == 0:
        raise DecodeError("WAV header declares a zero sample rate")
    if bit_depth == 0 or bit_depth % 8 != 0:
        raise DecodeError(f"Invalid bit depth {bit_depth} in WAV header")

    return WavFormat(sample_rate=sample_rate, channels=channels, bit_depth=bit_depth)


def parse_header(data: bytes) -> Optional[WavHeader]:
    """
    Parse a WAV header from the start of ``data``.

    Args:
        data: Leading bytes of a WAV stream (may be incomplete)

    Returns:
        WavHeader, or None if more bytes are needed

    Raises:
        DecodeError: If the bytes cannot start a valid PCM WAV file
    """
    if len(data) >= 4 and data[:4] != b"RIFF":
        raise DecodeError("Missing RIFF magic")
    if len(data) >= 12 and data[8:12] != b"WAVE":
        raise DecodeError("RIFF container is not WAVE")
    if len(data) < 12:
        return None

    wav_format = None
    offset = 12
    while True:
        if len(data) < offset + 8:
            return None

        chunk_id = data[offset:offset + 4]
        (size,) = struct.unpack_from("<I", data, offset + 4)
        body_start = offset + 8

        if chunk_id == b"fmt ":
            if size < 16:
                raise DecodeError(f"fmt chunk too short ({size} bytes)")
            if len(data) < body_start + size:
                return None
            wav_format = _parse_fmt(data[body_start:body_start + size])
        elif chunk_id == b"data":
            if wav_format is None:
                raise DecodeError("data chunk found before fmt chunk")
            data_size = None if size in UNKNOWN_DATA_SIZES else size
            return WavHeader(format=wav_format, data_offset=body_start, data_size=data_size)

        # RIFF chunks are word aligned
        offset = body_start + size + (size & 1)


def decode_header(data: bytes) -> WavHeader:
    """Parse the header of a complete WAV buffer, failing if it is truncated."""
    header = parse_header(data)
    if header is None:
        raise DecodeError(f"Truncated WAV header ({len(data)} bytes)")
    return header


def encode_wav(pcm: bytes, wav_format: WavFormat) -> bytes:
    """
    Wrap raw PCM bytes in a standalone WAV container.

    Args:
        pcm: Interleaved little-endian PCM sample bytes
        wav_format: Format to declare in the header

    Returns:
        Complete WAV file contents
    """
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(wav_format.channels)
        wav_file.setsampwidth(wav_format.bit_depth // 8)
        wav_file.setframerate(wav_format.sample_rate)
        wav_file.writeframes(pcm)
    return buffer.getvalue()


def write_wav(path: str, pcm: bytes, wav_format: WavFormat) -> None:
    """Write raw PCM bytes to ``path`` as a WAV file."""
    with wave.open(path, "wb") as wav_file:
        wav_file.setnchannels(wav_format.channels)
        wav_file.setsampwidth(wav_format.bit_depth // 8)
        wav_file.setframerate(wav_format.sample_rate)
        wav_file.writeframes(pcm)
