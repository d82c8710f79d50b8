# src/atom.py
"""Atom 1.0 rendering for replay feeds."""

from datetime import datetime
from urllib.parse import urlencode

from models import FeedEntry, FeedMetadata, NovelData, NovelKey
from templates import TEMPLATE_FEED_ATOM, render_template
from utils import format_rfc3339

ATOM_CONTENT_TYPE = "application/atom+xml"


def feed_url(base_url: str, key: NovelKey, start: datetime) -> str:
    """Absolute URL of a replay feed, including its start parameter."""
    query = urlencode({"start": format_rfc3339(start)})
    return f"{base_url}{key.feed_path()}?{query}"


def build_feed_metadata(
    base_url: str,
    key: NovelKey,
    novel: NovelData,
    start: datetime,
    now: datetime,
) -> FeedMetadata:
    """Feed-level fields for a replay of ``novel`` that began at ``start``."""
    url = feed_url(base_url, key, start)
    return FeedMetadata(
        title=f"【再】{novel.title}",
        subtitle=f"『{novel.title}』の既存話を再配信します。",
        id=url,
        self_url=url,
        alternate_url=key.site_url,
        updated_at=now,
        author_name=novel.author or "Unknown",
        author_uri=novel.author_url,
    )


def render_atom_feed(metadata: FeedMetadata, entries: list[FeedEntry], site: dict[str, str]) -> str:
    """Generate Atom 1.0 feed XML."""
    return render_template(TEMPLATE_FEED_ATOM, feed=metadata, entries=entries, site=site)
