"""FastAPI application entrypoint."""
from typing import Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from speakervec.api import rest_chunks, rest_embeddings, rest_status, ws_chunks
from speakervec.audio.chunk_writer import WavChunker
from speakervec.core.config import VERSION, Settings
from speakervec.core.errors import (
    ChunkWriteError,
    ConfigError,
    DecodeError,
    ExtractionError,
    SpeakerVecError,
)
from speakervec.core.logging import logger, setup_logging
from speakervec.pipeline import EmbeddingPipeline
from speakervec.services.speaker_service import SpeakerService
from speakervec.services.vector_store import InMemoryVectorStore, VectorStore

# Status codes for errors that cross the API boundary
ERROR_STATUS = {
    DecodeError: 400,
    ExtractionError: 422,
    ConfigError: 500,
    ChunkWriteError: 500,
}


async def speakervec_error_handler(request: Request, exc: SpeakerVecError) -> JSONResponse:
    """Map backend errors to JSON responses."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        500,
    )
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(settings: Optional[Settings] = None, store: Optional[VectorStore] = None) -> FastAPI:
    """
    Build the application and its services from one settings object.

    Args:
        settings: Configuration (read from the environment if omitted)
        store: Vector store to use (in-memory if omitted)

    Raises:
        ConfigError: If the pipeline output does not fit the vector store
    """
    settings = settings or Settings()
    setup_logging(settings)

    pipeline = EmbeddingPipeline(settings)
    store = store or InMemoryVectorStore(dimension=settings.vector_dimension or pipeline.output_dimension)
    if store.dimension != pipeline.output_dimension:
        raise ConfigError(
            f"Vector store dimension {store.dimension} does not match pipeline output "
            f"dimension {pipeline.output_dimension} ({pipeline.mode.value} mode)"
        )

    app = FastAPI(
        title="Speaker Embedding Backend",
        description="Speaker embeddings and time-addressable chunking for speech recordings",
        version=VERSION
    )

    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.chunker = WavChunker(settings)
    app.state.speakers = SpeakerService(store)

    app.add_exception_handler(SpeakerVecError, speakervec_error_handler)

    # Include routers
    app.include_router(rest_status.router)
    app.include_router(rest_embeddings.router)
    app.include_router(rest_chunks.router)

    # WebSocket endpoint
    @app.websocket("/ws/chunks")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for streamed chunking."""
        await ws_chunks.websocket_chunks_endpoint(websocket, app.state.chunker)

    logger.info(f"Speaker embedding backend configured on {settings.host}:{settings.port}")
    logger.info(
        f"Sample rate: {settings.sample_rate} Hz, window {settings.window_size}, hop {settings.hop_size}, "
        f"{settings.num_coefficients} coefficients, {pipeline.mode.value} mode "
        f"(dimension {pipeline.output_dimension})"
    )
    return app


if __name__ == "__main__":
    import sys

    from speakervec.cli import main
    sys.exit(main(["serve"]))
