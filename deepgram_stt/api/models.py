"""Deepgram response wrapper.

WHY: Deepgram answers batch requests and live sessions with differently
shaped JSON. Callers mostly want the transcript string, but sometimes need
the raw text or the full structure (words, confidences, is_final). One
envelope type covers both paths and also carries transport errors from a
live session, so consumers handle every outcome the same way.

HOW: TranscriptResult keeps the raw JSON text and an optional error.
Parsing is lazy: the JSON is decoded and its shape resolved on first
access, then cached. Holding a result never raises, reading .map or
.transcript may.

RULES:
- Batch shape:     results.channels[0].alternatives[0].transcript
- Streaming shape: channel.alternatives[0].transcript
- Shape is selected by presence of the "results" key
- Unknown shapes raise KeyError on .transcript (never sanitized to "")
- Malformed JSON raises json.JSONDecodeError on access, not construction
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from functools import cached_property
from typing import Any


class ResultShape(str, enum.Enum):
    """Known layouts of a Deepgram transcription payload.

    RULES:
    - batch: response of POST /v1/listen
    - streaming: one message of a live session
    - unrecognized: neither key present (e.g. Metadata or error messages)
    """

    BATCH = "batch"
    STREAMING = "streaming"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class TranscriptResult:
    """Result of a Deepgram STT request or one live-session message.

    WHY: Gives callers .json, .map and .transcript without forcing a parse
    at construction, so error-only results and non-transcript messages can
    be passed around safely.

    HOW: Frozen dataclass over (json, error). The parsed map and shape are
    cached_property values computed once on first access.

    RULES:
    - json is the raw text as received ("" for error-only results)
    - error is whatever the transport or API reported, else None
    - transcript is repaired for double-encoded UTF-8 before returning
    """

    json: str
    error: Any | None = None

    @cached_property
    def map(self) -> dict[str, Any]:
        """The JSON text parsed into a dict."""
        return json.loads(self.json)

    @cached_property
    def shape(self) -> ResultShape:
        data = self.map
        if "results" in data:
            return ResultShape.BATCH
        if "channel" in data:
            return ResultShape.STREAMING
        return ResultShape.UNRECOGNIZED

    @property
    def transcript(self) -> str:
        """The first alternative's transcript for the first channel."""
        data = self.map
        shape = self.shape
        if shape is ResultShape.BATCH:
            text = data["results"]["channels"][0]["alternatives"][0]["transcript"]
        elif shape is ResultShape.STREAMING:
            text = data["channel"]["alternatives"][0]["transcript"]
        else:
            raise KeyError("channel")
        return _repair_utf8(text)

    def __str__(self) -> str:
        if self.error is not None or not self.json or self.shape is ResultShape.UNRECOGNIZED:
            transcript = ""
        else:
            transcript = self.transcript
        rendered = 'TranscriptResult -> transcript: "{}"'.format(transcript)
        if self.error is not None:
            rendered += ",\n error: {}".format(self.error)
        return rendered


def _repair_utf8(text: str) -> str:
    """Undo UTF-8 bytes that were decoded as latin-1 along the way.

    "cafÃ©" becomes "café". Text that is already correct fails the
    round-trip and is returned unchanged.
    """
    try:
        return text.encode("latin-1").decode("utf-8")
    except UnicodeError:
        return text
