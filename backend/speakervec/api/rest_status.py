"""REST endpoints for health and configuration status."""
from fastapi import APIRouter, Request

from speakervec.core.config import VERSION

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Status and version information
    """
    return {
        "status": "ok",
        "version": VERSION
    }


@router.get("/config")
async def get_config(request: Request):
    """
    Active pipeline configuration.

    Returns:
        Embedding mode and dimensions, framing and chunking parameters
    """
    settings = request.app.state.settings
    pipeline = request.app.state.pipeline
    return {
        "embedding_mode": pipeline.mode.value,
        "normalization": settings.normalization.value,
        "output_dimension": pipeline.output_dimension,
        "sample_rate": settings.sample_rate,
        "window_size": settings.window_size,
        "hop_size": settings.hop_size,
        "num_coefficients": settings.num_coefficients,
        "chunk_duration": settings.chunk_duration,
        "temporal_interval": settings.temporal_interval,
        "min_duration": settings.min_duration,
        "max_chunks_per_speaker": settings.max_chunks_per_speaker,
        "enforce_chunk_cap": settings.enforce_chunk_cap,
    }
