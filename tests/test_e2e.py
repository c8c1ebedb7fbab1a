"""End-to-end tests against the real Deepgram API.

WHY: The unit tests fake both transports. These tests confirm that the
URL layout, auth header and subprotocol handshake are what Deepgram
actually accepts.

HOW: Uses the embedded one-second silence sample for both paths, so a run
costs almost nothing against the account's quota.

RULES:
- Requires DEEPGRAM_API_KEY in the environment or .env
- Marked with pytest.mark.skipif when no API key is available
- Silence produces an empty transcript, so only shape and status are checked
"""

from __future__ import annotations

import asyncio
import os

import pytest

from deepgram_stt.api.client import DeepgramClient
from deepgram_stt.api.live import SessionState
from deepgram_stt.api.sample import sample_audio_data

pytestmark = pytest.mark.skipif(
    not os.getenv("DEEPGRAM_API_KEY"),
    reason="DEEPGRAM_API_KEY not set",
)


def test_api_key_is_valid():
    async def _run():
        async with DeepgramClient() as client:
            return await client.is_api_key_valid()

    assert asyncio.run(_run()) is True


def test_batch_transcription_of_silence():
    async def _run():
        async with DeepgramClient(base_query_params={"model": "nova-2"}) as client:
            return await client.transcribe_from_bytes(sample_audio_data())

    result = asyncio.run(_run())
    assert result.error is None
    assert result.transcript == ""


def test_live_session_opens_and_closes():
    async def audio():
        # Skip the 44-byte WAV header and send raw PCM in 100 ms chunks
        pcm = sample_audio_data()[44:]
        for offset in range(0, len(pcm), 3200):
            yield pcm[offset:offset + 3200]
            await asyncio.sleep(0.1)

    async def _run():
        client = DeepgramClient(base_query_params={"encoding": "linear16", "sample_rate": 16000})
        transcriber = client.create_live_transcriber(audio())
        await transcriber.start()
        results = [r async for r in transcriber.stream]
        return transcriber, results

    transcriber, results = asyncio.run(_run())
    assert transcriber.state is SessionState.CLOSED
    assert all(r.error is None for r in results)
