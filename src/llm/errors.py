# src/llm/errors.py - v1
"""Provider error taxonomy and the single adapter that classifies SDK failures.

Every provider-specific quirk (status attribute names, structured RetryInfo
details, message markers) is handled in ``parse_provider_error``; the rest of
the code only sees ``ProviderError.kind``.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Literal

ErrorKind = Literal["quota_exceeded", "transient", "malformed_output", "fatal"]

TRANSIENT_STATUSES = frozenset({502, 503, 504})
_PREVIEW_CHARS = 160

_RETRY_DELAY_RE = re.compile(
    r"""(?:retry[_ ]?delay["']?\s*[:=]\s*["']?|retry in\s+)(\d+(?:\.\d+)?)\s*s""",
    re.IGNORECASE,
)


class ProviderError(Exception):
    """Normalized failure of one external call."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        http_status: int | None = None,
        retry_delay_ms: int | None = None,
        aborted: bool = False,
    ) -> None:
        self.kind = kind
        self.http_status = http_status
        self.retry_delay_ms = retry_delay_ms
        self.aborted = aborted
        super().__init__(message)

    @property
    def is_retriable(self) -> bool:
        """Only transient failures are retried against the same model."""
        return self.kind == "transient"

    @property
    def preview(self) -> str:
        return str(self)[:_PREVIEW_CHARS]


class LiveCallTimeout(ProviderError):
    """The live gate aborted a call that exceeded its timeout."""

    def __init__(self, timeout_s: float) -> None:
        super().__init__(
            "transient", f"Live call aborted after {timeout_s:g}s", aborted=True
        )
        self.timeout_s = timeout_s


class MalformedOutputError(ProviderError):
    """Generated content failed JSON parsing or schema validation."""

    def __init__(self, message: str) -> None:
        super().__init__("malformed_output", message)


def parse_provider_error(exc: BaseException) -> ProviderError:
    """Classify any exception raised by a generative client.

    Args:
        exc: Exception raised by an adapter or the SDK underneath it.

    Returns:
        ProviderError with kind, HTTP status and retry delay when known.
    """
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return ProviderError("transient", "Live call timed out", aborted=True)

    status = _extract_status(exc)
    message = str(exc) or type(exc).__name__
    upper = message.upper()

    if status == 429 or "RESOURCE_EXHAUSTED" in upper or "QUOTA" in upper:
        return ProviderError(
            "quota_exceeded",
            message,
            http_status=429,
            retry_delay_ms=parse_retry_delay_ms(exc),
        )

    if status in TRANSIENT_STATUSES or "UNAVAILABLE" in upper or "OVERLOADED" in upper:
        return ProviderError("transient", message, http_status=status or 503)

    if isinstance(exc, (json.JSONDecodeError, ValueError)) and status is None:
        return ProviderError("malformed_output", message)

    if isinstance(exc, (ConnectionError, OSError)):
        return ProviderError("transient", message, http_status=status)

    return ProviderError("fatal", message, http_status=status)


def parse_retry_delay_ms(exc: BaseException | dict[str, Any] | str) -> int | None:
    """Extract a provider-suggested retry delay (RetryInfo) in milliseconds."""
    for detail in _iter_details(exc):
        delay = _detail_delay_seconds(detail)
        if delay is not None:
            return int(delay * 1000)

    match = _RETRY_DELAY_RE.search(exc if isinstance(exc, str) else str(exc))
    if match:
        return int(float(match.group(1)) * 1000)
    return None


def _extract_status(exc: BaseException) -> int | None:
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    error = getattr(exc, "error", None)
    if isinstance(error, dict) and isinstance(error.get("code"), int):
        return error["code"]
    return None


def _iter_details(exc: BaseException | dict[str, Any] | str) -> list[Any]:
    if isinstance(exc, str):
        return []
    if isinstance(exc, dict):
        payload = exc.get("error", exc)
        return list(payload.get("details") or []) if isinstance(payload, dict) else []

    details: list[Any] = []
    raw = getattr(exc, "details", None)
    if callable(raw):
        raw = None
    if isinstance(raw, (list, tuple)):
        details.extend(raw)
    error = getattr(exc, "error", None)
    if isinstance(error, dict):
        details.extend(error.get("details") or [])
    return details


def _detail_delay_seconds(detail: Any) -> float | None:
    if isinstance(detail, dict):
        if "RetryInfo" not in str(detail.get("@type", "")):
            return None
        return _parse_duration(detail.get("retryDelay"))

    retry_delay = getattr(detail, "retry_delay", None)
    if retry_delay is None:
        return None
    seconds = getattr(retry_delay, "seconds", None)
    if isinstance(seconds, (int, float)):
        nanos = getattr(retry_delay, "nanos", 0) or 0
        return float(seconds) + nanos / 1e9
    return _parse_duration(retry_delay)


def _parse_duration(value: Any) -> float | None:
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    if isinstance(value, str) and value.strip().endswith("s"):
        try:
            secs = float(value.strip()[:-1])
        except ValueError:
            return None
        return secs if secs > 0 else None
    return None
