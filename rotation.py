"""
Rotation key resolution for the regional news cache.

Each region has one active cache bucket at a time. The bucket's key carries
an anchor date that only moves forward in whole rotation periods, so every
request inside a window resolves to the same key and the upstream provider
is asked at most once per window (modulo concurrent misses, where the last
write wins).
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from data_models import ActiveKey, NewsData, RotationMeta
from exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'Global'
KEY_PREFIX = 'daily_news_'
META_PREFIX = 'news_meta_'

_REGION_DISALLOWED = re.compile(r'[^A-Za-z0-9_-]')


def sanitize_region(region: Optional[str]) -> str:
    """Strip everything outside [A-Za-z0-9_-]; an empty result means Global"""
    cleaned = _REGION_DISALLOWED.sub('', (region or '').strip())
    return cleaned or DEFAULT_REGION


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def whole_days_between(start: date, end: date) -> int:
    return (end - start).days


def cache_key(region: str, day: date, prefix: str = KEY_PREFIX) -> str:
    return f"{prefix}{region}_{day.isoformat()}"


def meta_key(region: str, prefix: str = META_PREFIX) -> str:
    return f"{prefix}{region}"


def region_key_pattern(region: str, prefix: str = KEY_PREFIX):
    return re.compile(rf"^{re.escape(prefix + region)}_\d{{4}}-\d{{2}}-\d{{2}}$")


def compute_active_key(region: str, today: date, meta: Optional[RotationMeta] = None,
                       period_days: int = 7, key_prefix: str = KEY_PREFIX) -> ActiveKey:
    """Work out which bucket is active for ``region`` on ``today``.

    Without stored meta the bucket is anchored at today. Otherwise the
    anchor advances by whole multiples of ``period_days`` and stays flat in
    between, e.g. with a 7 day period days 0-6 share one key and days 7-13
    the next. A today at or before the anchor keeps the anchor.
    """
    if period_days < 1:
        raise ValueError("period_days must be at least 1")

    if meta is None:
        return ActiveKey(key=cache_key(region, today, key_prefix), date=today, is_new_period=True)

    anchor = meta.active_date
    elapsed = whole_days_between(anchor, today)
    if elapsed < 0:
        logger.warning(f"Rotation anchor {anchor} for {region} is ahead of today ({today}), keeping it")
    if elapsed <= 0:
        return ActiveKey(key=cache_key(region, anchor, key_prefix), date=anchor, is_new_period=False)

    periods_elapsed = elapsed // period_days
    candidate = anchor + timedelta(days=periods_elapsed * period_days)
    return ActiveKey(key=cache_key(region, candidate, key_prefix), date=candidate, is_new_period=candidate != anchor)


@dataclass(frozen=True)
class NewsResult:
    news: NewsData
    region: str
    active: ActiveKey
    from_cache: bool


class RotatingNewsResolver:
    """Cache-or-fetch for the regional daily news.

    ``store`` may be None, in which case every call goes upstream. Store
    reads that fail count as a miss and store writes that fail are logged;
    only upstream failures propagate to the caller.
    """

    def __init__(self, store, fetch_news: Callable[[str], NewsData], period_days: int = 7,
                 background=None, clock: Callable[[], date] = utc_today,
                 key_prefix: str = KEY_PREFIX, meta_prefix: str = META_PREFIX):
        self.store = store
        self.fetch_news = fetch_news
        self.period_days = period_days
        self.background = background
        self.clock = clock
        self.key_prefix = key_prefix
        self.meta_prefix = meta_prefix

    def _read(self, key: str):
        if self.store is None:
            return None
        try:
            return self.store.get(key)
        except StoreUnavailableError as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
        except Exception:
            logger.exception(f"Unexpected cache read error for {key}, treating as miss")
        return None

    def _read_meta(self, region: str) -> Optional[RotationMeta]:
        raw = self._read(meta_key(region, self.meta_prefix))
        if not raw:
            return None
        try:
            return RotationMeta.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed rotation meta for {region}: {e}")
            return None

    def _read_news(self, key: str) -> Optional[NewsData]:
        raw = self._read(key)
        if not raw:
            return None
        try:
            return NewsData.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed cache entry {key}: {e}")
            return None

    def resolve(self, region: str, today: date = None) -> ActiveKey:
        return self._resolve(sanitize_region(region), today)

    def _resolve(self, region: str, today: date = None) -> ActiveKey:
        today = today or self.clock()
        return compute_active_key(region, today, self._read_meta(region), self.period_days, self.key_prefix)

    def peek(self, region: str, today: date = None) -> Optional[NewsData]:
        """Return the cached news for the active bucket without going upstream"""
        active = self.resolve(region, today)
        return self._read_news(active.key)

    def get_news(self, region: str, today: date = None) -> NewsResult:
        region = sanitize_region(region)
        active = self._resolve(region, today)

        cached = self._read_news(active.key)
        if cached is not None:
            logger.info(f"Source: cache (key: {active.key})")
            return NewsResult(news=cached, region=region, active=active, from_cache=True)

        logger.info(f"Source: cache miss for {active.key}, fetching")
        fresh = self.fetch_news(region)

        if self.store is not None:
            if self.background is not None:
                self.background.submit(self.persist, region, active, fresh, description=f"persist {active.key}")
            else:
                self.persist(region, active, fresh)

        return NewsResult(news=fresh, region=region, active=active, from_cache=False)

    def persist(self, region: str, active: ActiveKey, news: NewsData) -> None:
        """Write the fresh bucket and its meta, dropping stale buckets of the region in the same batch"""
        try:
            existing = self.store.list_all()
        except StoreUnavailableError as e:
            logger.warning(f"Could not list cache keys for cleanup in {region}: {e}")
            existing = {}
        except Exception:
            logger.exception(f"Unexpected error listing cache keys for cleanup in {region}")
            existing = {}

        pattern = region_key_pattern(region, self.key_prefix)
        stale_keys = [k for k in existing if pattern.match(k) and k != active.key]
        if stale_keys:
            logger.info(f"Found {len(stale_keys)} stale keys to delete for region {region}: {stale_keys}")

        meta = RotationMeta(active_key=active.key, active_date=active.date)
        items = [{'operation': 'delete', 'key': k} for k in stale_keys]
        items.append({'operation': 'upsert', 'key': active.key, 'value': news.to_dict()})
        items.append({'operation': 'upsert', 'key': meta_key(region, self.meta_prefix), 'value': meta.to_dict()})

        try:
            self.store.batch_update(items)
        except StoreUnavailableError as e:
            logger.error(f"Cache write failed for {active.key}: {e}")
            return
        except Exception:
            logger.exception(f"Unexpected cache write error for {active.key}")
            return
        logger.info(f"Cleaned {len(stale_keys)} stale keys and updated cache for {active.key}")
