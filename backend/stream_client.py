#!/usr/bin/env python3
"""
Streaming Chunk Client - streams a WAV file to the /ws/chunks endpoint.

Sends the file in small binary messages (as an upload or a live recorder
would), then the text message "end", and prints every chunk the server
reports. Without a file argument a synthetic 23-second tone is streamed.
"""
import asyncio
import io
import json
import sys
import wave

import numpy as np
import websockets

# Audio configuration (must match server settings)
SAMPLE_RATE = 16000  # Hz
SYNTHETIC_SECONDS = 23

# Server configuration
SERVER_URL = "ws://localhost:8000/ws/chunks"

# Streaming parameters
MESSAGE_SIZE = 8192  # bytes per binary message
PAUSE_MS = 5         # ms to pause between messages


def generate_tone_wav(duration=SYNTHETIC_SECONDS, frequency=220):
    """Generate a mono 16-bit sine tone as WAV bytes."""
    t = np.arange(int(SAMPLE_RATE * duration)) / SAMPLE_RATE
    samples = (np.sin(2 * np.pi * frequency * t) * 8000).astype(np.int16)

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(SAMPLE_RATE)
        wav_file.writeframes(samples.tobytes())
    return buffer.getvalue()


async def stream_file(data: bytes, speaker: str = "demo"):
    """Stream WAV bytes and print the server's chunk events."""
    print("=" * 70)
    print("Speaker Embedding Backend - Streaming Chunk Client")
    print("=" * 70)
    print(f"Server: {SERVER_URL}")
    print(f"Payload: {len(data)} bytes in {MESSAGE_SIZE}-byte messages")
    print("=" * 70 + "\n")

    try:
        async with websockets.connect(f"{SERVER_URL}?speaker={speaker}", ping_interval=None) as websocket:
            print("✓ Connected to server\n")
            print("Index | Start (s) | Duration (s) | Path")
            print("-" * 70)

            async def receive_events():
                async for message in websocket:
                    event = json.loads(message)
                    if event["event"] == "chunk":
                        print(f"{event['index']:5d} | {event['start_time']:9.1f} | "
                              f"{event['duration']:12.2f} | {event['path']}")
                    elif event["event"] == "done":
                        print(f"\n✓ Done: {event['count']} chunks written, {event['skipped']} skipped")
                        return
                    elif event["event"] == "error":
                        print(f"\n✗ Server error: {event['detail']}")
                        return

            receiver = asyncio.create_task(receive_events())

            for offset in range(0, len(data), MESSAGE_SIZE):
                await websocket.send(data[offset:offset + MESSAGE_SIZE])
                await asyncio.sleep(PAUSE_MS / 1000.0)
            await websocket.send("end")

            await receiver

    except ConnectionRefusedError:
        print("\n✗ ERROR: Could not connect to server at", SERVER_URL)
        print("  Make sure the backend is running:")
        print("    cd backend && python -m speakervec.cli serve")
        sys.exit(1)


if __name__ == "__main__":
    if len(sys.argv) > 1:
        with open(sys.argv[1], "rb") as f:
            payload = f.read()
    else:
        payload = generate_tone_wav()

    try:
        asyncio.run(stream_file(payload))
    except KeyboardInterrupt:
        print("\n\nExiting...")
