"""WebSocket endpoint for chunking a recording while it is being uploaded."""
from fastapi import WebSocket
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketState

from speakervec.audio.chunk_writer import WavChunker
from speakervec.audio.ingestion import validate_audio_data
from speakervec.core.errors import ChunkWriteError, DecodeError
from speakervec.core.logging import logger

END_OF_STREAM = "end"


async def process_stream(chunker: WavChunker, websocket: WebSocket) -> None:
    """
    Feed binary messages through a chunking session and report written chunks.

    Protocol: the client sends the WAV file as binary messages, then the
    text message ``end``. Every written chunk is reported as a JSON
    ``chunk`` event, followed by a ``done`` summary. Disconnecting before
    ``end`` abandons the run; chunks already written stay on disk.

    Args:
        chunker: Chunker configured for this application
        websocket: Accepted WebSocket connection
    """
    speaker = websocket.query_params.get("speaker")
    session = await run_in_threadpool(chunker.open_session, speaker)
    written = 0

    while True:
        message = await websocket.receive()

        if message["type"] == "websocket.disconnect":
            logger.warning(
                f"WebSocket disconnected mid-stream, {written} chunks left on disk without finalization"
            )
            return

        data = message.get("bytes")
        if data is not None:
            if not validate_audio_data(data):
                continue
            chunks = await run_in_threadpool(session.feed, data)
        elif message.get("text") == END_OF_STREAM:
            chunks = await run_in_threadpool(session.close)
        else:
            logger.warning(f"Ignoring unexpected text message: {message.get('text')!r}")
            continue

        for chunk in chunks:
            await websocket.send_json({"event": "chunk", **chunk.to_dict()})
        written += len(chunks)

        if session.done:
            await websocket.send_json({
                "event": "done",
                "count": written,
                "skipped": session.state.skipped,
            })
            return


async def websocket_chunks_endpoint(websocket: WebSocket, chunker: WavChunker) -> None:
    """
    WebSocket endpoint handler for /ws/chunks.

    Accepts a binary WAV stream and sends JSON chunk events.
    """
    await websocket.accept()
    logger.info("New chunking WebSocket connection")

    try:
        await process_stream(chunker, websocket)
    except (DecodeError, ChunkWriteError) as e:
        logger.error(f"Chunking stream failed: {e}")
        await websocket.send_json({"event": "error", "detail": str(e)})
    finally:
        if websocket.client_state is not WebSocketState.DISCONNECTED:
            await websocket.close()
