"""REST endpoint for splitting an uploaded recording into chunk files."""
from typing import Optional

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

router = APIRouter()


@router.post("/chunks")
async def create_chunks(request: Request, speaker: Optional[str] = None):
    """
    Split a WAV file sent as the raw request body into chunk files.

    Args:
        speaker: Optional speaker label stored with each chunk

    Returns:
        Metadata of every chunk written, in index order
    """
    data = await request.body()
    chunks = await run_in_threadpool(request.app.state.chunker.chunk_bytes, data, speaker=speaker)
    return {
        "speaker": speaker,
        "count": len(chunks),
        "chunks": [chunk.to_dict() for chunk in chunks],
    }
