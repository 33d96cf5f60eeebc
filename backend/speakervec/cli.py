"""Command line entry point: embed files, chunk a recording, or run the server."""
import argparse
import json
import sys
from typing import List, Optional

from speakervec.audio.chunk_writer import WavChunker
from speakervec.core.config import Settings
from speakervec.core.errors import SpeakerVecError
from speakervec.core.logging import logger, setup_logging
from speakervec.pipeline import EmbeddingPipeline


def embed_command(settings: Settings, paths: List[str], workers: int, vectors: bool) -> int:
    """Print one JSON line per file; returns the number of failed files."""
    pipeline = EmbeddingPipeline(settings)
    outcomes = pipeline.embed_files(paths, max_workers=workers)
    failures = 0
    for outcome in outcomes:
        if outcome.ok:
            print(json.dumps(outcome.result.to_dict(include_vectors=vectors)))
        else:
            failures += 1
            print(json.dumps({"source": outcome.path, "error": str(outcome.error)}))
    return failures


def chunk_command(settings: Settings, path: str, speaker: Optional[str]) -> int:
    """Chunk one file and print the chunk metadata."""
    chunks = WavChunker(settings).chunk_file(path, speaker=speaker)
    print(json.dumps([chunk.to_dict() for chunk in chunks], indent=2))
    return 0


def serve_command(settings: Settings) -> int:
    import uvicorn
    uvicorn.run(
        "speakervec.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Speaker embeddings and chunking for WAV recordings")
    subparsers = parser.add_subparsers(dest="command", required=True)

    embed_parser = subparsers.add_parser("embed", help="Compute embeddings for WAV files")
    embed_parser.add_argument("paths", nargs="+", help="WAV files (mono 16 kHz, 16-bit)")
    embed_parser.add_argument("--workers", type=int, default=1, help="Files processed in parallel")
    embed_parser.add_argument("--vectors", action="store_true", help="Include the vectors in the output")

    chunk_parser = subparsers.add_parser("chunk", help="Split a WAV file into chunk files")
    chunk_parser.add_argument("path", help="WAV file to split")
    chunk_parser.add_argument("--speaker", type=str, default=None, help="Speaker label for the chunks")
    chunk_parser.add_argument("--output_dir", type=str, default=None, help="Override the chunk directory")

    subparsers.add_parser("serve", help="Run the HTTP/WebSocket server")

    args = parser.parse_args(argv)

    overrides = {}
    if getattr(args, "output_dir", None):
        overrides["output_dir"] = args.output_dir
    settings = Settings(**overrides)
    setup_logging(settings)

    try:
        if args.command == "embed":
            return 1 if embed_command(settings, args.paths, args.workers, args.vectors) else 0
        if args.command == "chunk":
            return chunk_command(settings, args.path, args.speaker)
        return serve_command(settings)
    except SpeakerVecError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
