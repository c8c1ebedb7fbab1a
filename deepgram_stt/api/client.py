"""Async HTTP client for the Deepgram speech-to-text API.

WHY: Callers need to transcribe audio they hold in memory, on disk, or at a
public URL, and to open live sessions, without knowing Deepgram's URL
layout, auth header or body conventions. This module puts all of that
behind one client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. DeepgramClient is an
async context manager: enter it to get an authenticated HTTP client, exit
to close the connection pool. Batch methods POST to /v1/listen and wrap
the body in a TranscriptResult. Live methods build LiveTranscriber
sessions that carry the client's key, defaults and live endpoint.

RULES:
- Always use the async context manager for batch calls
  (async with DeepgramClient(...) as client: ...)
- Auth header is "Authorization: Token <key>" (not Bearer)
- base_query_params apply to every call; per-call query_params win per key
- Non-2xx responses are returned, not raised, with result.error set
- No retries: httpx errors propagate to the caller
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator
from pathlib import Path

import httpx

from deepgram_stt.api.live import LiveTranscriber
from deepgram_stt.api.models import TranscriptResult
from deepgram_stt.api.params import QueryParams, build_url, merge_params
from deepgram_stt.api.sample import sample_audio_data
from deepgram_stt.config import (
    DEEPGRAM_BASE_URL,
    DEEPGRAM_LIVE_URL,
    DEEPGRAM_TIMEOUT_S,
    load_api_key,
)

logger = logging.getLogger(__name__)

# Parameters for the key check; client defaults are not applied
_KEY_CHECK_QUERY_PARAMS = {"language": "en"}


class DeepgramAPIError(Exception):
    """Describes a non-2xx response from the Deepgram API.

    WHY: Batch calls hand back the response body even when the request
    failed, so callers can inspect Deepgram's error JSON. This typed error
    is attached as TranscriptResult.error to flag the failure.

    HOW: Wraps the HTTP status code and response body.

    RULES:
    - Always include status_code and message
    - message is the response body text
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Deepgram API error {status_code}: {message}")


class DeepgramClient:
    """Async client for Deepgram batch and live transcription.

    WHY: Provides one entry point for every transcription mode, sharing the
    key, default parameters and endpoints between them.

    HOW: Wraps httpx.AsyncClient with Token auth for batch calls. Live
    sessions do not need the HTTP client and can be created outside the
    context manager.

    RULES:
    - api_key defaults to load_api_key() from .env
    - base_url / live_url default to the config values
    - transport is passed through to httpx (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_query_params: QueryParams | None = None,
        base_url: str | None = None,
        live_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or load_api_key()
        self.base_query_params = dict(base_query_params or {})
        self._base_url = base_url or DEEPGRAM_BASE_URL
        self._live_url = live_url or DEEPGRAM_LIVE_URL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> DeepgramClient:
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Token {self.api_key}"},
            timeout=httpx.Timeout(DEEPGRAM_TIMEOUT_S, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "DeepgramClient must be used as an async context manager: "
                "async with DeepgramClient() as client: ..."
            )
        return self._client

    def _url(self, query_params: QueryParams | None) -> str:
        return build_url(self._base_url, self.base_query_params, query_params)

    # ------------------------------------------------------------------
    # Batch transcription
    # ------------------------------------------------------------------

    async def transcribe_from_bytes(
        self,
        data: bytes,
        query_params: QueryParams | None = None,
    ) -> TranscriptResult:
        """Transcribe raw audio bytes.

        WHY: The basic pre-recorded request: the audio itself is the body.

        HOW: POSTs the bytes unmodified to the listen endpoint. Deepgram
        sniffs the container format from the content.

        Args:
            data: Encoded audio (wav, mp3, flac, ...).
            query_params: Per-call parameters, layered over the defaults.

        Returns:
            TranscriptResult over the response body.
        """
        client = self._ensure_client()
        resp = await client.post(self._url(query_params), content=bytes(data))
        return _wrap_response(resp)

    async def transcribe_from_file(
        self,
        path: str | Path,
        query_params: QueryParams | None = None,
    ) -> TranscriptResult:
        """Transcribe a local audio file.

        RULES:
        - Raises FileNotFoundError before any network call if path is not a file
        - The whole file is read into memory, then sent as bytes
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Audio file not found: {path}")
        return await self.transcribe_from_bytes(path.read_bytes(), query_params)

    async def transcribe_from_url(
        self,
        url: str,
        query_params: QueryParams | None = None,
    ) -> TranscriptResult:
        """Transcribe audio that Deepgram fetches from a remote URL.

        HOW: POSTs {"url": url} as JSON instead of raw audio. Endpoint and
        auth are the same as for bytes.
        """
        client = self._ensure_client()
        resp = await client.post(
            self._url(query_params),
            json={"url": url},
            headers={"Accept": "application/json"},
        )
        return _wrap_response(resp)

    async def is_api_key_valid(self) -> bool:
        """Check that the key is accepted and the account still has credit.

        WHY: A cheap check for setup screens and health checks. Deepgram has
        no dedicated "whoami" for listen keys, so we transcribe one second
        of embedded silence.

        RULES:
        - Returns True only when the status code is exactly 200
        - 401, 402, 429, 5xx etc. return False instead of raising
        - Client default parameters are not applied to the key check
        """
        client = self._ensure_client()
        resp = await client.post(
            build_url(self._base_url, _KEY_CHECK_QUERY_PARAMS),
            content=sample_audio_data(),
            headers={"Content-Type": "audio/*"},
        )
        if resp.status_code != 200:
            logger.info("API key check returned %d", resp.status_code)
        return resp.status_code == 200

    # ------------------------------------------------------------------
    # Live transcription
    # ------------------------------------------------------------------

    def create_live_transcriber(
        self,
        audio_stream: AsyncIterable[bytes],
        query_params: QueryParams | None = None,
    ) -> LiveTranscriber:
        """Create an idle live session; call start() on it to connect."""
        return LiveTranscriber(
            self.api_key,
            audio_stream,
            query_params=merge_params(self.base_query_params, query_params),
            live_url=self._live_url,
        )

    async def transcribe_live(
        self,
        audio_stream: AsyncIterable[bytes],
        query_params: QueryParams | None = None,
    ) -> AsyncIterator[TranscriptResult]:
        """Stream audio to Deepgram and yield results as they arrive.

        HOW: Starts a LiveTranscriber and yields from its stream. Leaving
        the loop early (break, exception) closes the session.

        Usage:
            async for result in client.transcribe_live(chunks()):
                print(result.transcript)
        """
        transcriber = self.create_live_transcriber(audio_stream, query_params)
        await transcriber.start()
        try:
            async for result in transcriber.stream:
                yield result
        finally:
            await transcriber.close()


def _wrap_response(resp: httpx.Response) -> TranscriptResult:
    if resp.is_success:
        return TranscriptResult(resp.text)
    logger.warning("Deepgram returned %d for %s", resp.status_code, resp.request.url)
    return TranscriptResult(resp.text, error=DeepgramAPIError(resp.status_code, resp.text))
