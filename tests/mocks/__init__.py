# tests/mocks/__init__.py
"""
Mock objects for testing Okkake.

These mocks simulate the behavior of production objects, particularly
the Pyodide JsProxy objects that wrap JavaScript values, and stand in for
the novel store and the syosetu fetcher.
"""

from .d1 import MockD1Result, SqliteD1, SqliteD1Statement
from .jsproxy import JsProxyDict, JsProxyMock
from .novels import FakeFetcher, InMemoryNovelStore

__all__ = [
    "FakeFetcher",
    "InMemoryNovelStore",
    "JsProxyDict",
    "JsProxyMock",
    "MockD1Result",
    "SqliteD1",
    "SqliteD1Statement",
]
