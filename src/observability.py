# src/observability.py
"""
Wide event logging for Workers Observability.

One comprehensive event per operation with high cardinality and high
dimensionality, instead of many scattered log lines.

Usage:
    event = NovelFetchEvent(category="general", ncode="n4830bu")
    # ... populate event fields during operation ...
    emit_event(event)
"""

import json
import random
import secrets
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from utils import get_iso_timestamp

# Fraction of fast, successful events kept by tail sampling
SAMPLE_RATE = 0.10


def generate_request_id() -> str:
    """Generate a unique request ID for tracing."""
    return secrets.token_hex(8)


@dataclass
class NovelFetchEvent:
    """
    Canonical log line for novel page fetches.

    Emitted once per fetch attempt made by the freshness engine.
    """

    # Identifiers (high cardinality)
    event_type: str = field(default="novel_fetch", init=False)
    category: str = ""
    ncode: str = ""
    url: str = ""
    request_id: str = ""

    # Timing
    timestamp: str = ""
    wall_time_ms: float = 0

    # Cache context
    previous_record: str = "none"  # "none" | "success" | "error"
    fallback_used: bool = False

    # Results
    episodes_found: int = 0

    # Outcome
    outcome: str = "success"  # "success" | "error"
    error_type: str | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = get_iso_timestamp()
        if not self.request_id:
            self.request_id = generate_request_id()


@dataclass
class PageServeEvent:
    """
    Canonical log line for page serving.

    Emitted for each HTTP request.
    """

    event_type: str = field(default="page_serve", init=False)
    request_id: str = ""
    timestamp: str = ""

    # Request details
    method: str = ""
    path: str = ""
    user_agent: str = ""
    country: str | None = None
    colo: str | None = None

    # Response
    status_code: int = 200
    response_size_bytes: int = 0

    # Timing
    wall_time_ms: float = 0

    # Content type served
    content_type: str = ""  # "html" | "atom" | "health" | "redirect" | "error"
    route: str = ""
    cache_status: str = ""  # "cacheable" | "bypass"
    entries_served: int = 0

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = get_iso_timestamp()
        if not self.request_id:
            self.request_id = generate_request_id()


def should_sample(event: dict[str, Any]) -> bool:
    """
    Tail sampling strategy for high-traffic deployments.

    Always keep:
    - Errors (100%)
    - Slow operations

    Sample:
    - Successful, fast operations (SAMPLE_RATE)
    """
    if event.get("outcome") == "error" or event.get("status_code", 200) >= 500:
        return True

    wall_time_ms = event.get("wall_time_ms", 0)
    event_type = event.get("event_type", "")

    if event_type == "novel_fetch" and wall_time_ms > 10000:  # >10s
        return True
    if event_type == "page_serve" and wall_time_ms > 1000:  # >1s
        return True

    return random.random() < SAMPLE_RATE


def emit_event(event: NovelFetchEvent | PageServeEvent | dict[str, Any]) -> bool:
    """
    Emit an event with tail sampling.

    Returns:
        True if event was emitted, False if dropped by sampling
    """
    event_dict = event if isinstance(event, dict) else asdict(event)

    if should_sample(event_dict):
        print(json.dumps(event_dict, ensure_ascii=False))
        return True
    return False


class Timer:
    """Context manager for timing operations."""

    def __init__(self) -> None:
        self.start_time: float = 0
        self.end_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = time.perf_counter()
        self.elapsed_ms = (self.end_time - self.start_time) * 1000

    def elapsed(self) -> float:
        """Return elapsed time in milliseconds."""
        if self.end_time:
            return self.elapsed_ms
        return (time.perf_counter() - self.start_time) * 1000
