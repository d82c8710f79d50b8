# src/models.py
"""Domain models for Okkake."""

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Protocol, Self, TypedDict

from ncode import Ncode

# =============================================================================
# Constrained string types
# =============================================================================

CacheDecision = Literal["fetch", "refetch", "reuse", "reuse_error", "fallback"]


# =============================================================================
# Errors
# =============================================================================


class NovelFetchError(Exception):
    """A novel page could not be fetched or its content extracted.

    Transport failures, bad HTTP statuses and extraction failures all
    surface as this one class; the message is the cause.
    """


class ExtractError(NovelFetchError):
    """The novel page was fetched but did not contain the expected content."""


# =============================================================================
# Domain Models
# =============================================================================


class Category(Enum):
    """Which syosetu site a novel lives on."""

    GENERAL = "general"
    R18 = "r18"

    @property
    def subdomain(self) -> str:
        return "ncode" if self is Category.GENERAL else "novel18"

    @property
    def route_prefix(self) -> str:
        return "novels" if self is Category.GENERAL else "r18novels"

    @classmethod
    def from_route_prefix(cls, prefix: str) -> Self:
        for category in cls:
            if category.route_prefix == prefix:
                return category
        raise ValueError(f"Unknown route prefix: {prefix}")


@dataclass(frozen=True, slots=True)
class NovelKey:
    """Identifies one novel on one site. Used as the cache key."""

    category: Category
    ncode: Ncode

    @property
    def site_url(self) -> str:
        """Table of contents page on syosetu."""
        return f"https://{self.category.subdomain}.syosetu.com/{self.ncode}/"

    def episode_url(self, page: int) -> str:
        """Page for the 1-based episode number ``page``."""
        return f"{self.site_url}{page}/"

    def feed_path(self) -> str:
        return f"/{self.category.route_prefix}/{self.ncode}/atom.xml"


@dataclass(frozen=True, slots=True)
class NovelData:
    """What we know about a novel from its table of contents page."""

    title: str
    subtitles: tuple[str, ...]
    author: str = ""
    author_url: str | None = None
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["subtitles"] = list(self.subtitles)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            title=data["title"],
            subtitles=tuple(data["subtitles"]),
            author=data.get("author") or "",
            author_url=data.get("author_url"),
            description=data.get("description") or "",
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, data: str) -> Self:
        return cls.from_dict(json.loads(data))


@dataclass(frozen=True, slots=True)
class CachedRecord:
    """Outcome of the last fetch attempt for a novel.

    Exactly one of ``data`` and ``error`` is set.
    """

    fetched_at: datetime
    data: NovelData | None = None
    error: str | None = None

    @property
    def has_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True, slots=True)
class FeedEntry:
    """One replayed episode in the feed. Never persisted."""

    day: int
    episode_index: int
    title: str
    published_at: datetime
    updated_at: datetime
    canonical_id: str
    alternate_url: str


@dataclass(frozen=True, slots=True)
class FeedMetadata:
    """Feed-level fields for the Atom renderer."""

    title: str
    subtitle: str
    id: str
    self_url: str
    alternate_url: str
    updated_at: datetime
    author_name: str
    author_uri: str | None = None
    generator_version: str = "1.0.0"


# =============================================================================
# D1 Row Types
# =============================================================================


class NovelRow(TypedDict):
    """Row from the novels table."""

    category: str
    ncode: int
    data: str | None
    error: str | None
    fetched_at: str


# =============================================================================
# Protocols for Testability
# =============================================================================


class NovelStore(Protocol):
    """Persistent cache of fetch outcomes, one row per novel."""

    async def get(self, key: NovelKey) -> CachedRecord | None: ...

    async def put(
        self,
        key: NovelKey,
        data: NovelData | None,
        error: str | None,
        fetched_at: datetime,
    ) -> None: ...


class NovelFetcher(Protocol):
    """Fetches fresh novel data; raises NovelFetchError on failure."""

    async def fetch(self, key: NovelKey) -> NovelData: ...
