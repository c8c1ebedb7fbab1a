"""Live transcription over a Deepgram WebSocket session.

WHY: Live transcription is a two-way pipe. Audio chunks flow out as the
caller produces them, and transcript messages flow back as Deepgram
produces them. Either side can end the session (the audio source runs dry,
the server closes, the consumer stops reading), and all three endings must
converge on one shutdown that runs exactly once.

HOW: LiveTranscriber opens the socket with websockets.connect, passing the
API key as the ["token", key] subprotocol pair. start() then launches two
asyncio tasks: an inbound pump that republishes every message into a
ResultStream, and an outbound pump that forwards audio chunks as binary
frames. Both pumps end in close(), which is guarded by a check-and-set on
the session state so its side effects run once.

RULES:
- States: idle -> active -> closed, no reopening
- close() sends a 1000 close frame, closes the stream, then cancels the
  other pump; concurrent callers wait for the first one to finish
- When the audio source runs dry, the close frame is sent first and the
  inbound pump drains what the server still had in flight before the
  stream is closed
- Transport errors are published as TranscriptResult("", error=exc),
  they do not end the stream by themselves
- Publishing to a closed ResultStream is a silent drop
- The audio source is borrowed: it is iterated, never closed
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections import deque
from collections.abc import AsyncIterable
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from deepgram_stt.api.models import TranscriptResult
from deepgram_stt.api.params import QueryParams, build_url
from deepgram_stt.config import DEEPGRAM_LIVE_URL, NORMAL_CLOSURE

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    """Lifecycle states of a LiveTranscriber.

    RULES:
    - idle: constructed, no connection yet
    - active: handshake done, pumps running
    - closed: terminal, the session must be discarded
    """

    IDLE = "idle"
    ACTIVE = "active"
    CLOSED = "closed"


class ResultStream:
    """Single-consumer async sequence of TranscriptResult.

    WHY: The consumer reads results at its own pace while the inbound pump
    keeps publishing. The consumer also needs a way to say "stop", which
    the session observes on the next message.

    HOW: An unbounded FIFO plus a waiter future. close() marks the stream
    closed; items already queued are still delivered, then iteration ends.

    RULES:
    - publish() after close() is dropped and returns False
    - close() is idempotent
    - Iteration order is publish order
    """

    def __init__(self) -> None:
        self._items: deque[TranscriptResult] = deque()
        self._closed = False
        self._waiter: asyncio.Future | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, result: TranscriptResult) -> bool:
        if self._closed:
            logger.debug("Dropping result published after stream close")
            return False
        self._items.append(result)
        self._wake()
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._wake()

    def _wake(self) -> None:
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)

    def __aiter__(self) -> ResultStream:
        return self

    async def __anext__(self) -> TranscriptResult:
        while not self._items:
            if self._closed:
                raise StopAsyncIteration
            self._waiter = asyncio.get_running_loop().create_future()
            try:
                await self._waiter
            finally:
                self._waiter = None
        return self._items.popleft()


class LiveTranscriber:
    """One live transcription session against the Deepgram streaming API.

    WHY: Bridges a caller-owned audio source and a consumer-facing result
    stream over a single WebSocket, with one shutdown path for every way
    the session can end.

    HOW: Construct idle, start() to connect and launch the pumps, iterate
    .stream for results, close() (or let either side finish) to shut down.
    Also usable as ``async with LiveTranscriber(...) as session:``.

    RULES:
    - audio_stream yields bytes-like chunks, in whatever encoding the
      query parameters declare (encoding, sample_rate, channels)
    - query_params are sent as-is; merging with client defaults is done
      by DeepgramClient.create_live_transcriber()
    - start() may be called once
    """

    def __init__(
        self,
        api_key: str,
        audio_stream: AsyncIterable[bytes],
        query_params: QueryParams | None = None,
        live_url: str | None = None,
    ) -> None:
        self.api_key = api_key
        self.audio_stream = audio_stream
        self.query_params = dict(query_params or {})
        self._live_url = live_url or DEEPGRAM_LIVE_URL
        self._state = SessionState.IDLE
        self._stream = ResultStream()
        self._connection: Any = None
        self._inbound_task: asyncio.Task | None = None
        self._outbound_task: asyncio.Task | None = None
        self._started = False
        self._close_frame_sent = False
        self._closed_event = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stream(self) -> ResultStream:
        """The results of this session, readable until the session closes."""
        return self._stream

    @property
    def url(self) -> str:
        return build_url(self._live_url, None, self.query_params)

    async def __aenter__(self) -> LiveTranscriber:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the connection and start forwarding in both directions.

        RULES:
        - Returns once the handshake is done and both pumps are scheduled
        - Handshake failures close the session and propagate
        - Raises RuntimeError if already started or closed
        """
        if self._started or self._state is SessionState.CLOSED:
            raise RuntimeError(
                "LiveTranscriber can only be started once; "
                "create a new session for further work."
            )
        self._started = True

        url = self.url
        logger.info("Opening live session to %s", self._live_url)
        try:
            connection = await websockets.connect(
                url,
                subprotocols=["token", self.api_key],
            )
        except BaseException:
            logger.warning("Live session handshake failed for %s", self._live_url)
            self._state = SessionState.CLOSED
            self._stream.close()
            self._closed_event.set()
            raise

        self._connection = connection
        if self._state is SessionState.CLOSED:
            # close() ran while the handshake was in flight
            await self._send_close_frame()
            return

        self._state = SessionState.ACTIVE
        self._inbound_task = asyncio.create_task(self._pump_inbound())
        self._outbound_task = asyncio.create_task(self._pump_outbound())

    async def close(self) -> None:
        """Shut the session down. Safe to call any number of times.

        RULES:
        - First caller sends the close frame and closes the stream
        - Concurrent callers wait until that has finished
        - The pump that is not the caller is cancelled afterwards
        """
        if self._state is SessionState.CLOSED:
            await self._closed_event.wait()
            return
        self._state = SessionState.CLOSED

        try:
            await self._send_close_frame()
        finally:
            self._stream.close()
            self._closed_event.set()
            logger.info("Live session closed")

        current = asyncio.current_task()
        for task in (self._inbound_task, self._outbound_task):
            if task is not None and task is not current and not task.done():
                task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the session has shut down, from whichever side."""
        await self._closed_event.wait()

    async def _send_close_frame(self) -> None:
        if self._close_frame_sent or self._connection is None:
            return
        self._close_frame_sent = True
        await self._connection.close(code=NORMAL_CLOSURE)

    async def _finish_sending(self) -> None:
        """Audio is done: close the socket, let the inbound pump drain and shut down."""
        if self._state is SessionState.CLOSED:
            return
        inbound = self._inbound_task
        if inbound is None or inbound.done():
            await self.close()
            return
        await self._send_close_frame()

    # ------------------------------------------------------------------
    # Pumps
    # ------------------------------------------------------------------

    async def _pump_inbound(self) -> None:
        """Republish every server message until the connection ends."""
        try:
            while True:
                try:
                    message = await self._connection.recv()
                except ConnectionClosedOK:
                    logger.debug("Live session connection closed normally")
                    break
                except (WebSocketException, OSError) as exc:
                    logger.warning("Live session transport error: %s", exc)
                    self._stream.publish(TranscriptResult("", error=exc))
                    if isinstance(exc, ConnectionClosed) or self._connection.close_code is not None:
                        break
                    continue

                if self._stream.closed:
                    logger.debug("Result stream closed by consumer, shutting down")
                    break
                self._stream.publish(TranscriptResult(_as_text(message)))
        except Exception as exc:
            logger.exception("Inbound pump failed during live session")
            self._stream.publish(TranscriptResult("", error=exc))
        finally:
            await self.close()

    async def _pump_outbound(self) -> None:
        """Forward audio chunks until the source is exhausted or the socket closes."""
        try:
            async for chunk in self.audio_stream:
                if self._connection.close_code is not None:
                    break
                await self._connection.send(bytes(chunk))
        except ConnectionClosed:
            logger.debug("Connection closed while sending audio")
        except Exception as exc:
            logger.exception("Audio source failed during live session")
            self._stream.publish(TranscriptResult("", error=exc))
        finally:
            await self._finish_sending()


def _as_text(message: str | bytes) -> str:
    # Undecodable bytes become U+FFFD; the JSON error surfaces on access
    if isinstance(message, (bytes, bytearray, memoryview)):
        return bytes(message).decode("utf-8", errors="replace")
    return message
