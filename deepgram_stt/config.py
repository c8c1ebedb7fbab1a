"""Configuration constants and .env loading.

WHY: Endpoints, timeouts and the API key should be easy to find and
override without touching client code. Keeping them as plain module-level
values means tests and callers can swap them through the environment.

HOW: python-dotenv loads the .env file on import. Defaults are read from
os.environ with a fallback. The load_api_key() function provides a clear
error when the key is missing.

RULES:
- API key is loaded from .env via python-dotenv, never hardcoded
- Batch and live endpoints share the same path, different schemes
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the working directory (where the caller runs from)
load_dotenv()

# ---------------------------------------------------------------------------
# API configuration defaults
# ---------------------------------------------------------------------------

DEEPGRAM_BASE_URL = os.getenv("DEEPGRAM_BASE_URL", "https://api.deepgram.com/v1/listen")
DEEPGRAM_LIVE_URL = os.getenv("DEEPGRAM_LIVE_URL", "wss://api.deepgram.com/v1/listen")
DEEPGRAM_TIMEOUT_S = float(os.getenv("DEEPGRAM_TIMEOUT_S", "300"))

NORMAL_CLOSURE = 1000
"""WebSocket close code sent when a live session shuts down."""


def load_api_key() -> str:
    """Load the Deepgram API key from the environment.

    WHY: The API key is required for every Deepgram call. Loading it
    from the environment (via .env) keeps it out of source code.

    HOW: Reads DEEPGRAM_API_KEY from os.environ (populated by python-dotenv).

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("DEEPGRAM_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "Deepgram API key not configured. "
            "Add DEEPGRAM_API_KEY to your environment or .env file."
        )
    return key
