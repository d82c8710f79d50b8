# src/freshness.py
"""Cache freshness decisions for novel metadata.

Novel pages are scraped at most about once a day. Each request reads the
last fetch outcome from the store and decides whether it can be reused:

- successful records are refetched once older than a random point between
  12h and 24h ago
- error records are refetched once older than a random point between 1h and
  2h ago

The random point is drawn per decision so that many readers of the same
stale record do not all refetch at once. When a refetch fails but the
previous success is less than 24h old, the old data is served and the store
is left alone.

Usage:
    engine = FreshnessEngine(D1NovelStore(db), fetcher)
    novel = await engine.get_novel(key, now)
"""

import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from models import (
    CacheDecision,
    CachedRecord,
    NovelData,
    NovelFetcher,
    NovelFetchError,
    NovelKey,
    NovelRow,
    NovelStore,
)
from observability import NovelFetchEvent, Timer, emit_event
from utils import log_error, log_op, parse_iso_datetime, truncate_error

# Stored error text is capped like other persisted error messages
STORED_ERROR_MAX_LENGTH = 500


@dataclass(frozen=True, slots=True)
class FreshnessPolicy:
    """Refetch windows, measured back from now."""

    force_refresh: timedelta = timedelta(hours=24)
    random_refresh: timedelta = timedelta(hours=12)
    force_refresh_error: timedelta = timedelta(hours=2)
    random_refresh_error: timedelta = timedelta(hours=1)


DEFAULT_POLICY = FreshnessPolicy()


def refetch_threshold(
    now: datetime,
    has_error: bool,
    u: float,
    policy: FreshnessPolicy = DEFAULT_POLICY,
) -> datetime:
    """Point in time before which a record must be refetched.

    ``u`` in [0, 1) picks a point between the forced and the random bound.
    """
    if has_error:
        force = now - policy.force_refresh_error
        rand = now - policy.random_refresh_error
    else:
        force = now - policy.force_refresh
        rand = now - policy.random_refresh
    return force + (rand - force) * u


def should_refetch(
    record: CachedRecord | None,
    now: datetime,
    u: float,
    policy: FreshnessPolicy = DEFAULT_POLICY,
) -> bool:
    if record is None:
        return True
    return record.fetched_at < refetch_threshold(now, record.has_error, u, policy)


def can_fall_back(
    record: CachedRecord | None,
    now: datetime,
    policy: FreshnessPolicy = DEFAULT_POLICY,
) -> bool:
    """Whether a failed refetch may be masked by the previous record."""
    if record is None or record.has_error or record.data is None:
        return False
    return record.fetched_at >= now - policy.force_refresh


class FreshnessEngine:
    """Read-through cache in front of a NovelFetcher.

    Attributes:
        store: Persistent record of the last fetch outcome per novel
        fetcher: Source of fresh novel data
        policy: Refetch windows
        rng: Source of uniform floats in [0, 1), drawn once per decision
    """

    def __init__(
        self,
        store: NovelStore,
        fetcher: NovelFetcher,
        policy: FreshnessPolicy = DEFAULT_POLICY,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.policy = policy
        self.rng = rng

    async def get_novel(self, key: NovelKey, now: datetime) -> NovelData:
        """Return current data for a novel, fetching only when needed.

        Raises:
            NovelFetchError: if the cached record is an error that is still
                fresh, or if a needed fetch fails with no usable fallback.
        """
        record = await self.store.get(key)

        if not should_refetch(record, now, self.rng(), self.policy):
            if record.has_error:
                self._log_decision(key, "reuse_error", record)
                raise NovelFetchError(record.error)
            self._log_decision(key, "reuse", record)
            return record.data

        self._log_decision(key, "fetch" if record is None else "refetch", record)
        event = NovelFetchEvent(
            category=key.category.value,
            ncode=str(key.ncode),
            url=key.site_url,
            previous_record=_record_state(record),
        )
        try:
            with Timer() as timer:
                data = await self.fetcher.fetch(key)
        except NovelFetchError as e:
            event.wall_time_ms = timer.elapsed_ms
            event.outcome = "error"
            event.error_type = type(e).__name__
            event.error_message = truncate_error(e)

            if can_fall_back(record, now, self.policy):
                event.fallback_used = True
                emit_event(event)
                self._log_decision(key, "fallback", record, error=truncate_error(e))
                return record.data

            emit_event(event)
            log_error("novel_fetch_failed", e, ncode=str(key.ncode))
            await self.store.put(key, None, truncate_error(e, STORED_ERROR_MAX_LENGTH), now)
            raise

        event.wall_time_ms = timer.elapsed_ms
        event.episodes_found = len(data.subtitles)
        emit_event(event)
        await self.store.put(key, data, None, now)
        return data

    def _log_decision(
        self,
        key: NovelKey,
        decision: CacheDecision,
        record: CachedRecord | None,
        **extra: str,
    ) -> None:
        log_op(
            "novel_cache_decision",
            category=key.category.value,
            ncode=str(key.ncode),
            decision=decision,
            fetched_at=record.fetched_at.isoformat() if record else None,
            **extra,
        )


def _record_state(record: CachedRecord | None) -> str:
    if record is None:
        return "none"
    return "error" if record.has_error else "success"


# =============================================================================
# D1 Store
# =============================================================================


class D1NovelStore:
    """NovelStore backed by the D1 ``novels`` table.

    One row per (category, ncode); writes are upserts, last writer wins.
    """

    def __init__(self, db) -> None:
        self.db = db

    async def get(self, key: NovelKey) -> CachedRecord | None:
        row: NovelRow | None = (
            await self.db.prepare("""
            SELECT category, ncode, data, error, fetched_at
            FROM novels
            WHERE category = ? AND ncode = ?
        """)
            .bind(key.category.value, key.ncode.value)
            .first()
        )
        if not row:
            return None
        return _record_from_row(key, row)

    async def put(
        self,
        key: NovelKey,
        data: NovelData | None,
        error: str | None,
        fetched_at: datetime,
    ) -> None:
        await (
            self.db.prepare("""
            INSERT INTO novels (category, ncode, data, error, fetched_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (category, ncode) DO UPDATE SET
                data = excluded.data,
                error = excluded.error,
                fetched_at = excluded.fetched_at
        """)
            .bind(
                key.category.value,
                key.ncode.value,
                data.to_json() if data is not None else None,
                error,
                fetched_at.isoformat(),
            )
            .run()
        )


def _record_from_row(key: NovelKey, row: NovelRow) -> CachedRecord | None:
    fetched_at = parse_iso_datetime(row.get("fetched_at"))
    if fetched_at is None:
        log_op("novel_row_invalid", ncode=str(key.ncode), reason="fetched_at")
        return None

    if row.get("error") is not None:
        return CachedRecord(fetched_at=fetched_at, error=row["error"])

    try:
        data = NovelData.from_json(row["data"])
    except (TypeError, KeyError, ValueError) as e:
        # Unreadable payload: retry on the short error schedule
        log_error("novel_row_invalid", e, ncode=str(key.ncode))
        return CachedRecord(fetched_at=fetched_at, error=f"stored data unreadable: {e}")
    return CachedRecord(fetched_at=fetched_at, data=data)
