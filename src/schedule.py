# src/schedule.py
"""Replay schedule: which episodes a feed exposes right now.

Episode ``day`` (0-based) is published at ``start + day days``. The feed
shows the most recent ``window_size`` published days, newest first. Once
the replay runs past the known episodes, titles stay on the last known
episode while links keep moving forward one page per day.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Self
from urllib.parse import urlencode

from models import FeedEntry, NovelKey
from utils import format_rfc3339

REPLAY_WINDOW_SIZE = 100

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True, slots=True)
class ReplayWindow:
    """Half-open range of days ``[min_index, max_index)`` currently on the feed."""

    min_index: int
    max_index: int

    @classmethod
    def between(cls, start: datetime, now: datetime, window_size: int = REPLAY_WINDOW_SIZE) -> Self:
        elapsed_days = (now - start) // _ONE_DAY
        max_index = max(elapsed_days + 1, 0)
        min_index = max(max_index - window_size, 0)
        return cls(min_index=min_index, max_index=max_index)

    def __len__(self) -> int:
        return max(self.max_index - self.min_index, 0)

    def days(self) -> range:
        """Days in the window, most recent first."""
        return range(self.max_index - 1, self.min_index - 1, -1)


def placeholder_title(day: int) -> str:
    return f"第{day + 1}話"


def build_schedule(
    key: NovelKey,
    start: datetime,
    now: datetime,
    subtitles: Sequence[str] | None = None,
    window_size: int = REPLAY_WINDOW_SIZE,
) -> list[FeedEntry]:
    """Build the feed entries for a replay that began at ``start``.

    Args:
        key: Novel being replayed
        start: When day 0 was published
        now: Current time
        subtitles: Known episode subtitles, indexed from 0, or None
        window_size: Maximum number of entries

    Returns:
        Entries ordered newest first; empty if ``now`` is before ``start``.
    """
    window = ReplayWindow.between(start, now, window_size)
    start_query = urlencode({"start": format_rfc3339(start)})

    entries = []
    for day in window.days():
        if subtitles:
            episode_index = min(day, len(subtitles) - 1)
            title = subtitles[episode_index] or placeholder_title(episode_index)
        else:
            episode_index = day
            title = placeholder_title(day)

        published_at = start + day * _ONE_DAY
        alternate_url = key.episode_url(day + 1)
        entries.append(
            FeedEntry(
                day=day,
                episode_index=episode_index,
                title=title,
                published_at=published_at,
                updated_at=published_at,
                canonical_id=f"{alternate_url}?{start_query}",
                alternate_url=alternate_url,
            )
        )
    return entries
