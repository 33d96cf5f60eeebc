"""Tests for writing chunk files."""
import logging
import os
import wave

import pytest

from speakervec.audio import chunk_writer
from speakervec.audio.chunk_writer import ChunkWriter, WavChunker
from speakervec.audio.models import PendingChunk, WavFormat
from speakervec.core.config import Settings
from speakervec.core.errors import ChunkWriteError, DecodeError

MONO_16K = WavFormat(sample_rate=16000, channels=1, bit_depth=16)


def _pending(index, seconds=1.0):
    return PendingChunk(
        index=index,
        start_time=index * seconds,
        duration=seconds,
        format=MONO_16K,
        pcm=b"\x01\x00" * int(seconds * 16000),
    )


def test_chunk_files_are_standalone_wavs(settings, make_wav, make_tone):
    """Test each written chunk is a readable WAV with the source format."""
    pcm = make_tone(23 * 16000)

    chunks = WavChunker(settings).chunk_bytes(make_wav(pcm), speaker="alice")

    assert [c.index for c in chunks] == [0, 1, 2]
    for chunk in chunks:
        assert os.path.exists(chunk.path)
        assert chunk.speaker == "alice"
        with wave.open(chunk.path, "rb") as wav_file:
            assert wav_file.getframerate() == 16000
            assert wav_file.getnchannels() == 1
            assert wav_file.getsampwidth() == 2
            assert wav_file.getnframes() == int(chunk.duration * 16000)

    with wave.open(chunks[1].path, "rb") as wav_file:
        assert wav_file.readframes(wav_file.getnframes()) == pcm.tobytes()[320000:640000]


def test_chunk_names_use_timestamp_and_index(tmp_path):
    """Test files are named chunk-<epoch ms>-<index>.wav."""
    writer = ChunkWriter(tmp_path, clock=lambda: 1700000000.5)

    chunk = writer.write(_pending(4))

    assert chunk.timestamp == 1700000000500
    assert os.path.basename(chunk.path) == "chunk-1700000000500-4.wav"
    assert chunk.to_dict()["format"] == {"sample_rate": 16000, "channels": 1, "bit_depth": 16}


def test_output_directory_created(tmp_path):
    """Test a missing output directory is created."""
    target = tmp_path / "a" / "b"

    ChunkWriter(target).write(_pending(0))

    assert len(os.listdir(target)) == 1


def test_unwritable_output_directory(tmp_path):
    """Test a directory that cannot be created raises ChunkWriteError."""
    blocker = tmp_path / "file"
    blocker.write_bytes(b"")

    with pytest.raises(ChunkWriteError):
        ChunkWriter(blocker / "chunks")


def test_write_failure_reports_written_chunks(tmp_path, monkeypatch):
    """Test a failing write aborts with the chunks already on disk."""
    real_write = chunk_writer.write_wav
    calls = []

    def flaky_write(path, pcm, fmt):
        calls.append(path)
        if len(calls) == 2:
            raise OSError(28, "No space left on device")
        real_write(path, pcm, fmt)

    monkeypatch.setattr(chunk_writer, "write_wav", flaky_write)
    writer = ChunkWriter(tmp_path)
    first = writer.write(_pending(0))

    with pytest.raises(ChunkWriteError) as exc_info:
        writer.write(_pending(1))

    assert exc_info.value.written == [first]
    assert isinstance(exc_info.value, OSError)
    assert os.path.exists(first.path)


def test_write_failure_aborts_chunking_run(settings, make_wav, make_tone, monkeypatch):
    """Test the chunker stops at the first write failure."""
    def failing_write(path, pcm, fmt):
        raise OSError("disk full")

    monkeypatch.setattr(chunk_writer, "write_wav", failing_write)

    with pytest.raises(ChunkWriteError) as exc_info:
        WavChunker(settings).chunk_bytes(make_wav(make_tone(23 * 16000)))

    assert exc_info.value.written == []


def test_out_of_order_write_rejected(tmp_path):
    """Test chunks must be written in increasing index order."""
    writer = ChunkWriter(tmp_path)
    writer.write(_pending(2))

    with pytest.raises(ValueError):
        writer.write(_pending(1))


def test_chunk_cap_warns_when_not_enforced(tmp_path, caplog):
    """Test the cap is advisory by default: chunks are written with one warning."""
    writer = ChunkWriter(tmp_path, speaker="bob", max_chunks=2)

    with caplog.at_level(logging.WARNING, logger="speakervec"):
        chunks = [writer.write(_pending(i)) for i in range(4)]

    assert all(chunk is not None for chunk in chunks)
    assert len(writer.written) == 4
    warnings = [r for r in caplog.records if "exceeds max_chunks_per_speaker" in r.getMessage()]
    assert len(warnings) == 1


def test_chunk_cap_enforced(tmp_path):
    """Test chunks past the cap are dropped when enforcement is on."""
    writer = ChunkWriter(tmp_path, max_chunks=2, enforce_cap=True)

    chunks = [writer.write(_pending(i)) for i in range(4)]

    assert [c.index for c in chunks if c is not None] == [0, 1]
    assert chunks[2] is None and chunks[3] is None
    assert len(os.listdir(tmp_path)) == 2


def test_chunk_file_reads_incrementally(tmp_path, make_wav, make_tone):
    """Test chunking a WAV file from disk."""
    source = tmp_path / "input.wav"
    source.write_bytes(make_wav(make_tone(23 * 16000)))
    settings = Settings(output_dir=str(tmp_path / "out"), temporal_interval=20.0)

    chunks = WavChunker(settings).chunk_file(source, speaker="carol")

    assert [c.index for c in chunks] == [0, 2]
    assert chunks[1].start_time == 20.0
    assert sorted(os.listdir(tmp_path / "out")) == sorted(os.path.basename(c.path) for c in chunks)


def test_chunk_missing_file(settings, tmp_path):
    """Test a missing input file is a decode error."""
    with pytest.raises(DecodeError):
        WavChunker(settings).chunk_file(tmp_path / "missing.wav")


def test_session_feeds_incrementally(settings, make_wav, make_tone):
    """Test an incremental session writes chunks as soon as they are complete."""
    data = make_wav(make_tone(23 * 16000))
    session = WavChunker(settings).open_session(speaker="dave")

    assert session.feed(data[:300000]) == []
    written = session.feed(data[300000:400000])
    assert [c.index for c in written] == [0]
    written = session.feed(data[400000:])
    assert [c.index for c in written] == [1]
    final = session.close()

    assert [c.index for c in final] == [2]
    assert session.done
    assert len(session.writer.written) == 3


def test_partial_chunk_file_removed_on_failure(tmp_path, monkeypatch):
    """Test a write that fails midway leaves no file behind."""
    def failing_writeframes(self, data):
        raise OSError("disk full")

    monkeypatch.setattr(wave.Wave_write, "writeframes", failing_writeframes)
    writer = ChunkWriter(tmp_path, clock=lambda: 1.0)

    with pytest.raises(ChunkWriteError) as exc_info:
        writer.write(_pending(0))

    assert exc_info.value.written == []
    assert os.listdir(tmp_path) == []
