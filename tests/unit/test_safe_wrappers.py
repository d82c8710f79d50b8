# tests/unit/test_safe_wrappers.py
"""Unit tests for Safe wrapper classes that handle JS/Python boundary."""

from types import SimpleNamespace

import httpx
import pytest

import wrappers
from tests.mocks.jsproxy import JsProxyDict
from wrappers import (
    HttpFetchError,
    HttpResponse,
    SafeD1,
    SafeD1Statement,
    _to_d1_value,
    _to_py_safe,
    safe_http_fetch,
)

# =============================================================================
# Mock Classes for Testing
# =============================================================================


class MockD1Statement:
    """Mock D1 prepared statement."""

    def __init__(self, first_result=None):
        self._first_result = first_result
        self._bound_args = None

    def bind(self, *args):
        self._bound_args = args
        return self

    async def first(self):
        return self._first_result

    async def run(self):
        return {"success": True}


class MockD1:
    """Mock D1 database."""

    def __init__(self, statement=None):
        self._statement = statement or MockD1Statement()
        self.prepared_sql = None

    def prepare(self, sql):
        self.prepared_sql = sql
        return self._statement


def _mock_transport(monkeypatch, handler):
    """Route httpx.AsyncClient requests through a MockTransport."""
    original = httpx.AsyncClient

    class _Client(original):
        def __init__(self, **kwargs):
            super().__init__(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", _Client)


# =============================================================================
# Conversion
# =============================================================================


class TestToPySafe:
    def test_passes_primitives(self):
        assert _to_py_safe(1) == 1
        assert _to_py_safe("x") == "x"
        assert _to_py_safe(None) is None

    def test_converts_jsproxy(self):
        proxy = JsProxyDict({"ncode": 464784, "error": None})
        assert _to_py_safe(proxy) == {"ncode": 464784, "error": None}

    def test_converts_nested(self):
        assert _to_py_safe({"a": [1, {"b": 2}]}) == {"a": [1, {"b": 2}]}


class TestToD1Value:
    def test_none_stays_none_outside_pyodide(self):
        assert _to_d1_value(None) is None

    def test_strings_pass_through(self):
        assert _to_d1_value("general") == "general"


# =============================================================================
# SafeD1
# =============================================================================


class TestSafeD1:
    def test_prepare_returns_safe_statement(self):
        db = MockD1()
        stmt = SafeD1(db).prepare("SELECT 1")
        assert isinstance(stmt, SafeD1Statement)
        assert db.prepared_sql == "SELECT 1"

    @pytest.mark.asyncio
    async def test_first_converts_jsproxy_row(self):
        row = JsProxyDict({"category": "general", "ncode": 1, "data": None})
        db = MockD1(MockD1Statement(first_result=row))

        result = await SafeD1(db).prepare("SELECT ...").bind("general", 1).first()

        assert result == {"category": "general", "ncode": 1, "data": None}
        assert isinstance(result, dict)

    @pytest.mark.asyncio
    async def test_first_returns_none_for_no_row(self):
        result = await SafeD1(MockD1()).prepare("SELECT ...").first()
        assert result is None

    def test_bind_converts_arguments(self):
        statement = MockD1Statement()
        SafeD1(MockD1(statement)).prepare("INSERT ...").bind("general", 1, None)
        assert statement._bound_args == ("general", 1, None)


# =============================================================================
# HTTP
# =============================================================================


class TestHttpResponse:
    @pytest.mark.parametrize("status,ok", [(200, True), (204, True), (301, False), (503, False)])
    def test_ok(self, status, ok):
        assert HttpResponse(status, "").ok is ok


class TestSafeHttpFetch:
    @pytest.mark.asyncio
    async def test_returns_normalized_response(self, monkeypatch):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user_agent"] = request.headers["user-agent"]
            return httpx.Response(200, text="<html>目次</html>")

        _mock_transport(monkeypatch, handler)

        response = await safe_http_fetch(
            "https://ncode.syosetu.com/n4830bu/", headers={"User-Agent": "TestAgent/1.0"}
        )

        assert response.status_code == 200
        assert response.text == "<html>目次</html>"
        assert seen["user_agent"] == "TestAgent/1.0"

    @pytest.mark.asyncio
    async def test_error_status_is_returned(self, monkeypatch):
        _mock_transport(monkeypatch, lambda request: httpx.Response(404, text="missing"))

        response = await safe_http_fetch("https://ncode.syosetu.com/n0000a/")

        assert response.status_code == 404
        assert not response.ok

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self, monkeypatch):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        _mock_transport(monkeypatch, handler)

        with pytest.raises(HttpFetchError, match="ConnectError"):
            await safe_http_fetch("https://ncode.syosetu.com/n4830bu/")


class FakeJsException(Exception):
    """Stand-in for pyodide.ffi.JsException."""


class FakeJsResponse:
    def __init__(self, status=200, text=""):
        self.status = status
        self._text = text

    async def text(self):
        return self._text


@pytest.fixture
def workers_runtime(monkeypatch):
    """Run safe_http_fetch down its Workers path with a recording js.fetch."""
    calls = []
    runtime = SimpleNamespace(calls=calls, response=FakeJsResponse(200, "ok"), error=None)

    async def fake_fetch(url, options):
        calls.append((url, options))
        if runtime.error is not None:
            raise runtime.error
        return runtime.response

    fake_js = SimpleNamespace(
        AbortSignal=SimpleNamespace(timeout=lambda ms: ("abort-signal", ms)),
    )
    monkeypatch.setattr(wrappers, "HAS_PYODIDE", True)
    monkeypatch.setattr(wrappers, "js", fake_js)
    monkeypatch.setattr(wrappers, "js_fetch", fake_fetch)
    monkeypatch.setattr(wrappers, "JsException", FakeJsException)
    return runtime


class TestSafeHttpFetchWorkers:
    @pytest.mark.asyncio
    async def test_timeout_becomes_abort_signal(self, workers_runtime):
        await safe_http_fetch("https://ncode.syosetu.com/n4830bu/", timeout_seconds=7)

        _, options = workers_runtime.calls[0]
        assert options["signal"] == ("abort-signal", 7000)
        assert options["method"] == "GET"
        assert options["redirect"] == "follow"

    @pytest.mark.asyncio
    async def test_returns_normalized_response(self, workers_runtime):
        workers_runtime.response = FakeJsResponse(404, "missing")

        response = await safe_http_fetch("https://ncode.syosetu.com/n0000a/")

        assert response.status_code == 404
        assert response.text == "missing"

    @pytest.mark.asyncio
    async def test_abort_raises_timeout_error(self, workers_runtime):
        workers_runtime.error = FakeJsException("TimeoutError: The operation was aborted")

        with pytest.raises(HttpFetchError, match="no response within 3s"):
            await safe_http_fetch("https://ncode.syosetu.com/n4830bu/", timeout_seconds=3)

    @pytest.mark.asyncio
    async def test_network_failure_raises(self, workers_runtime):
        workers_runtime.error = FakeJsException("Network connection lost")

        with pytest.raises(HttpFetchError, match="Network connection lost"):
            await safe_http_fetch("https://ncode.syosetu.com/n4830bu/")
