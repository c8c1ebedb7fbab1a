"""Embedded reference audio for the API-key check.

A one second, 16 kHz mono, 16-bit PCM WAV of silence. It is small enough
to cost next to nothing against the account's quota, and any valid key
with remaining credit gets a 200 back for it.
"""

from __future__ import annotations

import functools
import io
import wave

SAMPLE_RATE_HZ = 16_000
SAMPLE_DURATION_S = 1.0


@functools.lru_cache(maxsize=1)
def sample_audio_data() -> bytes:
    """Return the WAV-encoded reference sample."""
    frames = int(SAMPLE_RATE_HZ * SAMPLE_DURATION_S)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(SAMPLE_RATE_HZ)
        wav.writeframes(b"\x00\x00" * frames)
    return buf.getvalue()
