"""Deepgram API client package - batch and live transcription.

WHY: All communication with Deepgram (HTTP for pre-recorded audio,
WebSocket for live audio) lives here, so the rest of an application only
sees TranscriptResult objects.

HOW: DeepgramClient (client.py) wraps httpx for batch calls and builds
LiveTranscriber sessions (live.py) on top of websockets. Query parameter
handling is shared via params.py.

RULES:
- All HTTP calls go through DeepgramClient (no direct httpx usage elsewhere)
- Authentication is via "Token <key>" header or ["token", key] subprotocols
"""

from deepgram_stt.api.client import DeepgramAPIError, DeepgramClient
from deepgram_stt.api.live import LiveTranscriber, ResultStream, SessionState
from deepgram_stt.api.models import ResultShape, TranscriptResult

__all__ = [
    "DeepgramAPIError",
    "DeepgramClient",
    "LiveTranscriber",
    "ResultShape",
    "ResultStream",
    "SessionState",
    "TranscriptResult",
]
