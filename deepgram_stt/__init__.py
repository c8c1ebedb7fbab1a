"""Deepgram speech-to-text SDK.

WHY: Deepgram offers pre-recorded transcription over HTTP and live
transcription over WebSocket. This package wraps both behind an asyncio
API that returns the same TranscriptResult envelope either way.

HOW: Two layers. config loads endpoints and the API key from the
environment. api holds the client, the live session and the result type.

RULES:
- Everything is async; there is no blocking variant
- No retries, no token refresh, no buffering: failures reach the caller
"""

from deepgram_stt.api import DeepgramClient, LiveTranscriber, TranscriptResult

__version__ = "0.1.0"

__all__ = ["DeepgramClient", "LiveTranscriber", "TranscriptResult", "__version__"]
