# Backend/app/core/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional

# Upstream bodies are echoed back to clients only as a short prefix.
DETAILS_MAX_CHARS = 200


def truncate_details(value: Any, max_chars: int = DETAILS_MAX_CHARS) -> str:
    text = "" if value is None else str(value)
    return text[:max_chars]


class RadarError(Exception):
    """Base exception for the radar API."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = truncate_details(details) if details else None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": False, "error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ConfigError(RadarError):
    """A required setting (e.g. a provider token) is missing."""


class UpstreamError(RadarError):
    """An external collaborator failed; surfaced as 502."""

    status_code = 502


class UpstreamHttpError(UpstreamError):
    def __init__(self, message: str, *, status: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message, details=details)
        self.status = status


class UpstreamTimeoutError(UpstreamError):
    pass


class ParseError(UpstreamError):
    """Upstream answered, but the body could not be understood."""


class FeedParseError(ParseError):
    pass


class WeatherParseError(ParseError):
    pass


class LocationNotFoundError(UpstreamError):
    """Locale lookup returned no identifier for the requested place."""
