"""
Failure classification for language backend errors.

Providers raise whatever their SDK raises. This module is the single place
that looks inside those loosely-typed errors and decides whether a failure
is an explicit retry-after advisory, a plain rate limit, or fatal.

Google's APIs (including the OpenAI-compatible Gemini endpoint) attach a
``google.rpc.RetryInfo`` detail to 429 responses, e.g.::

    {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED",
               "details": [{"@type": "type.googleapis.com/google.rpc.RetryInfo",
                            "retryDelay": "58s"}]}}
"""

from __future__ import annotations

import asyncio
import json
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

RATE_LIMIT_STATUS = 429
_RATE_LIMIT_NAMES = {"RESOURCE_EXHAUSTED", "RATE_LIMIT_EXCEEDED", "TOO_MANY_REQUESTS"}

_RETRY_DELAY_RE = re.compile(r"(?:(\d+)m)?(?:(\d+(?:\.\d+)?)s)?")


class FailureKind(str, Enum):
    RETRY_AFTER = "retry_after"
    RATE_LIMITED = "rate_limited"
    FATAL = "fatal"


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    status: int | None = None
    retry_after_seconds: int | None = None


def parse_retry_delay(text: str) -> int:
    """Parse a retry delay like ``1m30s`` or ``58s`` into whole seconds.

    Minutes and seconds are read independently; a missing part counts as 0,
    so an empty or unrecognised string yields 0.
    """
    match = _RETRY_DELAY_RE.match((text or "").strip())
    if match is None:
        return 0
    minutes, seconds = match.groups()
    total = 0
    if minutes:
        total += int(minutes) * 60
    if seconds:
        total += math.floor(float(seconds))
    return total


def find_retry_delay(payload: Any) -> int | None:
    """Search an error payload for a RetryInfo entry and return its delay."""
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            return None

    if isinstance(payload, dict):
        type_tag = str(payload.get("@type") or payload.get("type") or "")
        delay = payload.get("retryDelay")
        if "RetryInfo" in type_tag and isinstance(delay, str):
            return parse_retry_delay(delay)
        children = payload.values()
    elif isinstance(payload, (list, tuple)):
        children = payload
    else:
        return None

    for child in children:
        if isinstance(child, (dict, list, tuple)):
            found = find_retry_delay(child)
            if found is not None:
                return found
    return None


def _status_of(exc: BaseException) -> int | str | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, (int, str)) and value != "":
            return value
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def _payload_of(exc: BaseException) -> Any:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            return exc.response.json()
        except ValueError:
            return exc.response.text
    for attr in ("details", "body", "error", "response_json"):
        value = getattr(exc, attr, None)
        if value is not None:
            return value
    return None


def _is_rate_limit(status: int | str | None, payload: Any) -> bool:
    if isinstance(status, int):
        return status == RATE_LIMIT_STATUS
    if isinstance(status, str):
        if status.isdigit():
            return int(status) == RATE_LIMIT_STATUS
        return status.upper() in _RATE_LIMIT_NAMES
    if isinstance(payload, dict):
        inner = payload.get("error", payload)
        if isinstance(inner, dict):
            return _is_rate_limit(inner.get("code") or inner.get("status"), None)
    return False


def classify_failure(exc: BaseException) -> Failure:
    """Map a raw backend exception onto one of the three retry decisions."""
    if isinstance(exc, (asyncio.TimeoutError, httpx.TransportError)):
        return Failure(kind=FailureKind.FATAL)

    status = _status_of(exc)
    payload = _payload_of(exc)
    numeric_status = status if isinstance(status, int) else None

    delay = find_retry_delay(payload)
    if delay is not None:
        return Failure(
            kind=FailureKind.RETRY_AFTER,
            status=numeric_status,
            retry_after_seconds=delay,
        )

    if _is_rate_limit(status, payload):
        return Failure(kind=FailureKind.RATE_LIMITED, status=numeric_status)

    return Failure(kind=FailureKind.FATAL, status=numeric_status)
