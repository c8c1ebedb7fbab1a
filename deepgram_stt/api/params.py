"""Query-parameter merging and endpoint URL construction.

WHY: Batch and live requests both address the same /v1/listen endpoint and
take the same feature flags (model, language, punctuate, ...) as query
parameters. Callers set defaults once on the client and override them per
call, so both paths need one merge rule and one URL builder.

HOW: merge_params() layers the override mapping over the defaults with a
plain dict merge. build_url() hands the merged mapping to httpx.URL, which
repeats list values as same-named entries and stringifies scalars.

RULES:
- Override wins per key; neither input is mutated
- No validation against Deepgram's accepted parameter set (server rejects)
- Booleans render as "true"/"false", None as an empty value
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

QueryParams = Mapping[str, Any]


def merge_params(
    defaults: QueryParams | None,
    overrides: QueryParams | None,
) -> dict[str, Any]:
    """Merge default and per-call parameters into a new dict.

    RULES:
    - Keys are the union of both mappings
    - A key present in both takes the value from overrides
    - Returns an empty dict when both are None
    """
    merged: dict[str, Any] = dict(defaults or {})
    merged.update(overrides or {})
    return merged


def build_url(
    base_url: str,
    defaults: QueryParams | None = None,
    overrides: QueryParams | None = None,
) -> str:
    """Build the request URL for base_url with the merged query parameters.

    Works for both the https batch endpoint and the wss live endpoint.
    """
    params = merge_params(defaults, overrides)
    if not params:
        return base_url
    return str(httpx.URL(base_url, params=params))
