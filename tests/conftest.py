"""Shared test fixtures for the deepgram_stt test suite.

WHY: Client and live-session tests need the same sample payloads and the
same fake transports. Centralizing them keeps every test on one set of
known-good Deepgram response shapes.

HOW: Payload fixtures mirror the two response layouts Deepgram uses.
FakeConnection is an in-memory stand-in for a websockets ClientConnection
(recv/send/close/close_code), and the fake_socket fixture patches
websockets.connect in the live module to hand it out. Audio-source
fixtures return async generator factories.

RULES:
- Network is never touched (httpx.MockTransport, FakeConnection)
- FakeConnection raises the same websockets exceptions as the real thing
- Items fed to FakeConnection are delivered in order; exceptions are raised
- Tests reach everything here through fixtures, never by import
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import patch

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close

# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------

BATCH_PAYLOAD: dict[str, Any] = {
    "metadata": {"request_id": "5c1d3b9e-0000-4000-8000-000000000001", "channels": 1},
    "results": {
        "channels": [
            {"alternatives": [{"transcript": "hello", "confidence": 0.99, "words": []}]}
        ]
    },
}

STREAMING_PAYLOAD: dict[str, Any] = {
    "type": "Results",
    "channel_index": [0, 1],
    "is_final": True,
    "channel": {"alternatives": [{"transcript": "hi", "confidence": 0.98, "words": []}]},
}

METADATA_PAYLOAD: dict[str, Any] = {
    "type": "Metadata",
    "request_id": "5c1d3b9e-0000-4000-8000-000000000002",
}

BATCH_JSON = json.dumps(BATCH_PAYLOAD)
STREAMING_JSON = json.dumps(STREAMING_PAYLOAD)
METADATA_JSON = json.dumps(METADATA_PAYLOAD)


@pytest.fixture
def batch_json():
    """Response body of a successful POST /v1/listen (transcript "hello")."""
    return BATCH_JSON


@pytest.fixture
def streaming_json():
    """One live-session Results message (transcript "hi")."""
    return STREAMING_JSON


@pytest.fixture
def metadata_json():
    """A live-session Metadata message, which carries no transcript."""
    return METADATA_JSON


# ---------------------------------------------------------------------------
# Fake WebSocket connection
# ---------------------------------------------------------------------------


class _PeerClose:
    def __init__(self, code: int) -> None:
        self.code = code


def _closed_error(code: int) -> Exception:
    frame = Close(code, "")
    if code == 1000:
        return ConnectionClosedOK(frame, frame, True)
    return ConnectionClosedError(frame, None, None)


class FakeConnection:
    """In-memory websockets connection driven by the test."""

    def __init__(self, incoming: tuple[Any, ...] = ()) -> None:
        self._incoming: asyncio.Queue = asyncio.Queue()
        for item in incoming:
            self._incoming.put_nowait(item)
        self.sent: list[bytes] = []
        self.close_calls: list[int] = []
        self.close_code = None
        self.connect_calls: list[tuple[str, dict[str, Any]]] = []
        self._replies: list[Any] = []

    def feed(self, item: Any) -> None:
        """Queue a server message (str/bytes) or an exception for recv()."""
        self._incoming.put_nowait(item)

    def peer_close(self, code: int = 1000) -> None:
        """Queue a close initiated by the server."""
        self._incoming.put_nowait(_PeerClose(code))

    def reply_to_next_send(self, *items: Any) -> None:
        """Queue items for recv() as soon as the next chunk is sent."""
        self._replies.extend(items)

    async def recv(self) -> Any:
        if self.close_code is not None and self._incoming.empty():
            raise _closed_error(self.close_code)
        item = await self._incoming.get()
        if isinstance(item, _PeerClose):
            if self.close_code is None:
                self.close_code = item.code
            raise _closed_error(self.close_code)
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, data: bytes) -> None:
        if self.close_code is not None:
            raise _closed_error(self.close_code)
        self.sent.append(data)
        for item in self._replies:
            self._incoming.put_nowait(item)
        self._replies.clear()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append(code)
        if self.close_code is None:
            self.close_code = code
        # Wake a pending recv() the way a completed close handshake does
        self._incoming.put_nowait(_PeerClose(self.close_code))


@pytest.fixture
def fake_socket():
    """Patch websockets.connect in the live module with a FakeConnection."""
    connection = FakeConnection()

    async def connect(url: str, **kwargs: Any) -> FakeConnection:
        connection.connect_calls.append((url, kwargs))
        return connection

    with patch("deepgram_stt.api.live.websockets") as mock_websockets:
        mock_websockets.connect = connect
        yield connection


# ---------------------------------------------------------------------------
# Audio sources
# ---------------------------------------------------------------------------


@pytest.fixture
def finite_audio():
    """Factory for an audio source that yields the given chunks, then finishes."""

    async def _audio(*chunks: bytes):
        for chunk in chunks:
            yield chunk

    return _audio


@pytest.fixture
def endless_audio():
    """Factory for an audio source that stalls after its chunks, like an idle microphone."""

    async def _audio(*chunks: bytes):
        for chunk in chunks:
            yield chunk
        await asyncio.Event().wait()

    return _audio
