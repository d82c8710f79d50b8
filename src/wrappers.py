# src/wrappers.py
"""JavaScript/Python Boundary Layer for Cloudflare Workers.

This module provides a clean boundary between JavaScript (Pyodide/JsProxy)
and Python. The D1 binding and outbound fetch are wrapped to automatically
convert JsProxy objects to native Python types.

This ensures that application code NEVER sees JsProxy objects - they are
converted at the boundary layer before reaching business logic.
"""

from typing import Any

import httpx

# =============================================================================
# Pyodide-specific imports (only available in Cloudflare Workers environment)
# =============================================================================

try:
    import js
    from js import fetch as js_fetch
    from pyodide.ffi import JsException, to_js

    HAS_PYODIDE = True
    # Python None -> JS undefined, but D1 needs JS null for SQL NULL
    # Note: js.eval() is disallowed in Workers, so use JSON.parse instead
    JS_NULL = js.JSON.parse("null")
except ImportError:
    # Test environment - these will not be used
    js = None
    js_fetch = None
    to_js = None
    JsException = None
    JS_NULL = None
    HAS_PYODIDE = False


class HttpFetchError(Exception):
    """Outbound request failed before a response was received."""


# =============================================================================
# Python→JavaScript Conversion
# =============================================================================


def _to_js_value(value: Any) -> Any:
    """Convert Python value to JavaScript for Workers bindings.

    For dicts, uses Object.fromEntries to create proper JS objects.
    Returns value unchanged in test environment (not Pyodide).
    """
    if not HAS_PYODIDE or to_js is None:
        return value
    if isinstance(value, dict):
        return to_js(value, dict_converter=js.Object.fromEntries)
    return to_js(value)


# =============================================================================
# JavaScript→Python Conversion
# =============================================================================


def _is_js_undefined(value: Any) -> bool:
    """Check if a value is JavaScript undefined (wrapped as JsProxy in Pyodide)."""
    if value is None:
        return False
    if not HAS_PYODIDE:
        return False
    try:
        if hasattr(value, "typeof") and value.typeof == "undefined":
            return True
        type_name = type(value).__name__
        if type_name in ("JsUndefined", "JsNull"):
            return True
    except (AttributeError, TypeError):
        pass
    return False


def _to_py_safe(value: Any) -> Any:
    """Safely convert a JsProxy value to Python, handling undefined/null.

    Returns None for JavaScript undefined/null or Python None.
    Recursively converts dicts and lists.
    Passes through Python values unchanged.
    """
    if value is None:
        return None

    if _is_js_undefined(value):
        return None

    if isinstance(value, int | float | str | bool):
        return value

    if HAS_PYODIDE and hasattr(value, "to_py"):
        try:
            converted = value.to_py()
            # to_py() might return a dict with JsProxy values, recurse
            return _to_py_safe(converted)
        except (AttributeError, TypeError, ValueError):
            pass

    if isinstance(value, dict):
        return {k: _to_py_safe(v) for k, v in value.items()}

    if isinstance(value, list | tuple):
        return [_to_py_safe(item) for item in value]

    # JsProxy objects in tests (and stray proxies in production)
    if hasattr(value, "to_py"):
        return _to_py_safe(value.to_py())

    return str(value)


def _to_d1_value(value: Any) -> Any:
    """Convert a Python value to a D1-safe value.

    IMPORTANT: In Pyodide, Python None becomes JS undefined when passed
    to JavaScript functions, but D1 requires JS null for SQL NULL values.
    """
    py_value = _to_py_safe(value)

    if py_value is None and HAS_PYODIDE:
        return JS_NULL

    return py_value


# =============================================================================
# Safe Wrapper Classes
# =============================================================================


class SafeD1Statement:
    """Wrapper for D1 prepared statement that auto-converts results to Python."""

    def __init__(self, stmt: Any) -> None:
        self._stmt = stmt

    def bind(self, *args: Any) -> "SafeD1Statement":
        """Bind parameters and return self for chaining.

        All parameters go through _to_d1_value(), which converts None to
        JS null (required by D1).
        """
        self._stmt = self._stmt.bind(*(_to_d1_value(arg) for arg in args))
        return self

    async def first(self) -> dict[str, Any] | None:
        """Execute and return first result as Python dict."""
        result = await self._stmt.first()
        return _to_py_safe(result)

    async def run(self) -> Any:
        """Execute statement (for INSERT/UPDATE/DELETE)."""
        return await self._stmt.run()


class SafeD1:
    """Wrapper for D1 database that auto-converts all results to Python."""

    def __init__(self, db: Any) -> None:
        self._db = db

    def prepare(self, sql: str) -> SafeD1Statement:
        """Prepare a SQL statement with automatic result conversion."""
        return SafeD1Statement(self._db.prepare(sql))


class HttpResponse:
    """Normalized HTTP response for boundary layer."""

    def __init__(self, status_code: int, text: str) -> None:
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


async def safe_http_fetch(
    url: str,
    method: str = "GET",
    headers: dict | None = None,
    timeout_seconds: int = 30,
) -> HttpResponse:
    """Boundary-layer HTTP fetch that works in both Pyodide and test environments.

    Returns a normalized HttpResponse with all JavaScript values converted to
    Python. Transport failures and timeouts raise HttpFetchError in both
    environments.
    """
    headers = headers or {}

    if HAS_PYODIDE:
        # Production: Use native Workers fetch, aborted after timeout_seconds
        fetch_options = _to_js_value(
            {
                "method": method,
                "headers": headers,
                "redirect": "follow",
                "signal": js.AbortSignal.timeout(timeout_seconds * 1000),
            }
        )
        try:
            js_response = await js_fetch(url, fetch_options)
            text = await js_response.text()
        except JsException as e:
            # AbortSignal.timeout rejects with a TimeoutError DOMException
            if "TimeoutError" in str(e) or "aborted" in str(e):
                raise HttpFetchError(f"TimeoutError: no response within {timeout_seconds}s") from e
            raise HttpFetchError(str(e)) from e

        return HttpResponse(int(js_response.status), text)

    # Test environment: Use httpx
    try:
        async with httpx.AsyncClient(follow_redirects=True, timeout=timeout_seconds) as client:
            response = await client.request(method, url, headers=headers)
    except httpx.HTTPError as e:
        raise HttpFetchError(f"{type(e).__name__}: {e}") from e
    return HttpResponse(status_code=response.status_code, text=response.text)


# =============================================================================
# Public API
# =============================================================================

__all__ = [
    # Constants
    "HAS_PYODIDE",
    "JS_NULL",
    # Errors
    "HttpFetchError",
    # Python→JavaScript conversion
    "_to_js_value",
    # JavaScript→Python conversion
    "_is_js_undefined",
    "_to_py_safe",
    "_to_d1_value",
    # Wrapper classes
    "SafeD1Statement",
    "SafeD1",
    "HttpResponse",
    "safe_http_fetch",
]
