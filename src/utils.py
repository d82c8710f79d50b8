# src/utils.py
"""Utility functions for Okkake.

Standalone helper functions for logging, response building and datetime
handling. These have no dependencies on the Worker class.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qs, urlparse

from workers import Response

# =============================================================================
# Type Aliases
# =============================================================================

#: Logging kwargs - intentionally accepts any JSON-serializable values
LogKwargs = Any

# =============================================================================
# Constants
# =============================================================================

# Standardized error message truncation length
ERROR_MESSAGE_MAX_LENGTH = 200

# =============================================================================
# Structured Logging
# =============================================================================

_logger = logging.getLogger("okkake")
if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)
    # Note: propagate defaults to True, needed for test caplog capture


def get_iso_timestamp() -> str:
    """Get current UTC time as ISO string with Z suffix (RFC3339)."""
    return format_rfc3339(datetime.now(UTC))


def log_op(event_type: str, **kwargs: LogKwargs) -> None:
    """Log an operational event as structured JSON.

    Unlike wide events (NovelFetchEvent, etc.), these are simpler operational
    logs for debugging and monitoring internal operations.
    """
    event = {
        "event_type": event_type,
        "timestamp": get_iso_timestamp(),
        **kwargs,
    }
    _logger.info(json.dumps(event, ensure_ascii=False))


def truncate_error(error: str | Exception, max_length: int = ERROR_MESSAGE_MAX_LENGTH) -> str:
    """Truncate error message with indicator if needed."""
    error_str = str(error)
    if len(error_str) <= max_length:
        return error_str
    return error_str[: max_length - 3] + "..."


def log_error(event_type: str, exception: Exception, **kwargs: LogKwargs) -> None:
    """Log an error event with standardized exception formatting.

    Uses logger.error() level for error events, making them easily
    distinguishable from info-level operational logs.
    """
    event = {
        "event_type": event_type,
        "timestamp": get_iso_timestamp(),
        "error_type": type(exception).__name__,
        "error": truncate_error(exception),
        **kwargs,
    }
    _logger.error(json.dumps(event, ensure_ascii=False))


# =============================================================================
# Request Helpers
# =============================================================================


def get_request_path(url_str: str) -> str:
    """Extract the path from a request URL, always starting with '/'."""
    path = urlparse(url_str).path
    if not path.startswith("/"):
        path = "/" + path
    return path


def parse_query_params(url_str: str) -> dict[str, list[str]]:
    """Extract query parameters from a URL string.

    Returns a dict where each key maps to a list of values.
    """
    if "?" not in url_str:
        return {}
    query_string = url_str.split("?", 1)[1].split("#", 1)[0]
    return parse_qs(query_string, keep_blank_values=True)


def get_query_param(url_str: str, name: str) -> str | None:
    """Return the first value of a query parameter, or None if absent."""
    values = parse_query_params(url_str).get(name)
    return values[0] if values else None


# =============================================================================
# Response Builders
# =============================================================================

# Security headers applied to all HTML responses
SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

# Default Content Security Policy
DEFAULT_CSP = (
    "default-src 'self'; "
    "style-src 'self' 'unsafe-inline'; "
    "frame-ancestors 'none'; "
    "base-uri 'self'; "
    "form-action 'self'"
)


def _build_cache_control(max_age: int) -> str:
    """Build Cache-Control header value with stale-while-revalidate."""
    return f"public, max-age={max_age}, stale-while-revalidate=60"


def html_response(content: str, cache_max_age: int = 3600) -> Response:
    """Create an HTML response with caching and security headers."""
    return Response(
        content,
        headers={
            "Content-Type": "text/html; charset=utf-8",
            "Cache-Control": _build_cache_control(cache_max_age),
            "Content-Security-Policy": DEFAULT_CSP,
            **SECURITY_HEADERS,
        },
    )


def json_response(data: dict, status: int = 200) -> Response:
    """Create a JSON response."""
    return Response(
        json.dumps(data, ensure_ascii=False),
        status=status,
        headers={"Content-Type": "application/json"},
    )


def json_error(message: str, status: int = 400) -> Response:
    """Create a JSON error response."""
    return json_response({"error": message}, status=status)


def redirect_response(location: str, status: int = 302) -> Response:
    """Create a redirect response."""
    return Response("", status=status, headers={"Location": location})


def feed_response(content: str, content_type: str, cache_max_age: int = 3600) -> Response:
    """Create a feed response (Atom) with caching headers."""
    return Response(
        content,
        headers={
            "Content-Type": f"{content_type}; charset=utf-8",
            "Cache-Control": _build_cache_control(cache_max_age),
        },
    )


# =============================================================================
# Datetime Helpers
# =============================================================================


def parse_iso_datetime(iso_string: str | None) -> datetime | None:
    """Parse an ISO datetime string to a timezone-aware datetime.

    Handles various ISO formats:
    - With Z suffix: "2026-01-17T12:00:00Z"
    - With offset: "2026-01-17T12:00:00+09:00"
    - Naive (no timezone): "2026-01-17T12:00:00" (assumes UTC)
    """
    if not iso_string:
        return None
    try:
        dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00").replace("z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt
    except (ValueError, AttributeError):
        return None


def format_rfc3339(dt: datetime) -> str:
    """Format a timezone-aware datetime as RFC3339, using Z for UTC."""
    return dt.isoformat().replace("+00:00", "Z")


def truncate_to_minute(dt: datetime) -> datetime:
    """Zero the seconds and sub-second parts of a datetime."""
    return dt.replace(second=0, microsecond=0)
