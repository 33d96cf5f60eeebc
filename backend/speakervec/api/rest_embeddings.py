"""REST endpoints for computing embeddings and matching speakers."""
from typing import Optional

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from speakervec.core.logging import logger

router = APIRouter()


@router.post("/embeddings")
async def create_embeddings(request: Request, source: Optional[str] = None):
    """
    Compute embeddings for a WAV file sent as the raw request body.

    Args:
        source: Optional name echoed back in the response

    Returns:
        Embedding mode, dimension, frame statistics and the vectors
    """
    data = await request.body()
    pipeline = request.app.state.pipeline
    result = await run_in_threadpool(pipeline.embed_bytes, data, source=source or "upload")
    return result.to_dict()


@router.post("/speakers/{speaker}/enroll")
async def enroll_speaker(speaker: str, request: Request, source: Optional[str] = None):
    """Embed the uploaded WAV and store its vectors under ``speaker``."""
    data = await request.body()
    pipeline = request.app.state.pipeline
    result = await run_in_threadpool(pipeline.embed_bytes, data, source=source or f"{speaker}-upload")
    stored = await run_in_threadpool(request.app.state.speakers.enroll, speaker, result)
    return {
        "speaker": speaker,
        "points": stored,
        "dimension": result.dimension,
    }


@router.post("/speakers/identify")
async def identify_speaker(request: Request):
    """Find the enrolled speaker closest to the uploaded WAV."""
    data = await request.body()
    result = await run_in_threadpool(request.app.state.pipeline.embed_bytes, data, source="query")
    vote = await run_in_threadpool(request.app.state.speakers.identify, result)
    if vote.speaker is None:
        logger.info("Identification requested but no speakers are enrolled")
    return vote.to_dict()
