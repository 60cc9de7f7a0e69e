"""
Key-value store backends for the news cache.

Every backend exposes the same minimal interface: ``get``, ``list_all`` and
``batch_update``. A batch item is a dict with an ``operation`` of
``"upsert"`` or ``"delete"``, a ``key`` and, for upserts, a ``value``.
Transport failures surface as ``StoreUnavailableError``.
"""
import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse, urlunparse

import redis
import requests
from cachetools import TTLCache

import config
from exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Base class for cache backends"""

    name = 'base'

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def list_all(self) -> Dict[str, Any]:
        raise NotImplementedError

    def batch_update(self, items: List[Dict[str, Any]]) -> None:
        raise NotImplementedError


class InMemoryStore(KeyValueStore):
    """Process-local store backed by a TTL cache.

    Entries are best-effort: they vanish after ``ttl`` seconds, when the
    cache overflows ``maxsize``, or when the process restarts.
    """

    name = 'memory'

    def __init__(self, maxsize: int = config.MAX_CACHE_SIZE, ttl: float = config.CACHE_TTL, timer=None):
        kwargs = {'timer': timer} if timer is not None else {}
        self.cache = TTLCache(maxsize=maxsize, ttl=ttl, **kwargs)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self.cache.get(key)

    def list_all(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self.cache.items())

    def batch_update(self, items: List[Dict[str, Any]]) -> None:
        with self._lock:
            for item in items:
                if item['operation'] == 'delete':
                    self.cache.pop(item['key'], None)
                else:
                    self.cache[item['key']] = item['value']

    def clear(self) -> None:
        with self._lock:
            self.cache.clear()


class FileStore(KeyValueStore):
    """All entries kept in a single JSON document on disk"""

    name = 'file'

    def __init__(self, path: str = config.CACHE_FILE_PATH):
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            raise StoreUnavailableError(f"Could not read cache file {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        tmp_path = f"{self.path}.tmp"
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreUnavailableError(f"Could not write cache file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._load().get(key)

    def list_all(self) -> Dict[str, Any]:
        with self._lock:
            return self._load()

    def batch_update(self, items: List[Dict[str, Any]]) -> None:
        with self._lock:
            data = self._load()
            for item in items:
                if item['operation'] == 'delete':
                    data.pop(item['key'], None)
                else:
                    data[item['key']] = item['value']
            self._save(data)

    def clear(self) -> None:
        with self._lock:
            self._save({})


class EdgeConfigStore(KeyValueStore):
    """Vercel Edge Config: reads through the connection string, writes through the REST API"""

    name = 'edge'

    def __init__(self, connection_string: str, edge_config_id: str = None, api_token: str = None,
                 api_base_url: str = config.VERCEL_API_BASE_URL, timeout: float = config.REQUEST_TIMEOUT,
                 session: requests.Session = None):
        parsed = urlparse(connection_string)
        self.read_token = parse_qs(parsed.query).get('token', [None])[0]
        self.read_base_url = urlunparse(parsed._replace(query='', fragment='')).rstrip('/')
        self.edge_config_id = edge_config_id or self.read_base_url.rsplit('/', 1)[-1]
        self.api_token = api_token
        self.api_base_url = api_base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def can_write(self) -> bool:
        return bool(self.edge_config_id and self.api_token)

    def _items_url(self) -> str:
        return f"{self.api_base_url}/edge-config/{self.edge_config_id}/items"

    def _api_headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.api_token}',
            'Content-Type': 'application/json',
        }

    def get(self, key: str) -> Optional[Any]:
        try:
            response = self.session.get(
                f"{self.read_base_url}/item/{key}",
                params={'token': self.read_token},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StoreUnavailableError(f"Edge Config read failed: {e}") from e

        if response.status_code == 404:
            return None
        if not response.ok:
            raise StoreUnavailableError(f"Edge Config read failed (status: {response.status_code})")
        try:
            return response.json()
        except ValueError as e:
            raise StoreUnavailableError(f"Edge Config returned invalid JSON for {key}") from e

    def list_all(self) -> Dict[str, Any]:
        if not self.can_write:
            raise StoreUnavailableError("Missing EDGE_CONFIG_ID or VERCEL_API_TOKEN")
        try:
            response = self.session.get(self._items_url(), headers=self._api_headers(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise StoreUnavailableError(f"Edge Config list failed: {e}") from e

        if not response.ok:
            raise StoreUnavailableError(f"Edge Config list failed (status: {response.status_code}): {response.text}")

        try:
            items = response.json() or {}
        except ValueError as e:
            raise StoreUnavailableError("Edge Config returned invalid JSON for the item list") from e
        # The management API answers with a list of item records
        if isinstance(items, list):
            return {item['key']: item.get('value') for item in items if 'key' in item}
        return items

    def batch_update(self, items: List[Dict[str, Any]]) -> None:
        if not self.can_write:
            logger.warning("Edge Config: missing EDGE_CONFIG_ID or VERCEL_API_TOKEN, skipping cache update")
            return
        try:
            response = self.session.patch(
                self._items_url(),
                headers=self._api_headers(),
                json={'items': items},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise StoreUnavailableError(f"Edge Config write failed: {e}") from e

        if not response.ok:
            raise StoreUnavailableError(f"Edge Config write failed (status: {response.status_code}): {response.text}")


class RedisStore(KeyValueStore):
    """JSON values in Redis, optionally namespaced under a key prefix"""

    name = 'redis'

    def __init__(self, client: redis.Redis, prefix: str = '', ttl: int = config.CACHE_TTL):
        self.client = client
        self.prefix = prefix
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, prefix: str = '', ttl: int = config.CACHE_TTL) -> 'RedisStore':
        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix, ttl=ttl)

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(self.prefix + key)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis read failed: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StoreUnavailableError(f"Redis value for {key} is not JSON") from e

    def list_all(self) -> Dict[str, Any]:
        try:
            keys = list(self.client.scan_iter(match=f"{self.prefix}*"))
            values = self.client.mget(keys) if keys else []
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis list failed: {e}") from e

        result = {}
        for key, raw in zip(keys, values):
            if raw is None:
                continue
            try:
                result[key[len(self.prefix):]] = json.loads(raw)
            except ValueError:
                # foreign keys sharing the db
                logger.debug(f"Skipping non-JSON Redis key {key}")
        return result

    def batch_update(self, items: List[Dict[str, Any]]) -> None:
        try:
            pipe = self.client.pipeline()
            for item in items:
                if item['operation'] == 'delete':
                    pipe.delete(self.prefix + item['key'])
                else:
                    pipe.set(self.prefix + item['key'], json.dumps(item['value']), ex=self.ttl)
            pipe.execute()
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Redis write failed: {e}") from e


def create_store(backend: str = config.CACHE_BACKEND) -> Optional[KeyValueStore]:
    """Build the configured store, or None when it cannot be configured (no-cache mode)"""
    if backend == 'memory':
        return InMemoryStore()
    if backend == 'file':
        return FileStore(config.CACHE_FILE_PATH)
    if backend == 'edge':
        if not config.EDGE_CONFIG:
            logger.warning("Edge Config client not initialized (missing EDGE_CONFIG), caching disabled")
            return None
        return EdgeConfigStore(config.EDGE_CONFIG, config.EDGE_CONFIG_ID, config.VERCEL_API_TOKEN)
    if backend == 'redis':
        if not config.REDIS_URL:
            logger.warning("Redis not configured (missing REDIS_URL), caching disabled")
            return None
        return RedisStore.from_url(config.REDIS_URL, prefix=config.REDIS_KEY_PREFIX)
    if backend != 'none':
        logger.warning(f"Unknown cache backend '{backend}', caching disabled")
    return None
