"""Unit tests for the key-value store backends."""

import json
from unittest.mock import MagicMock, Mock

import pytest
import redis
import requests

import cache_stores
from cache_stores import EdgeConfigStore, FileStore, InMemoryStore, RedisStore, create_store
from exceptions import StoreUnavailableError

UPSERT_AND_DELETE = [
    {'operation': 'upsert', 'key': 'a', 'value': {'n': 1}},
    {'operation': 'upsert', 'key': 'b', 'value': {'n': 2}},
    {'operation': 'delete', 'key': 'a'},
]


def _response(status_code=200, payload=None, text=''):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    response.text = text
    return response


class TestInMemoryStore:

    def test_batch_update(self):
        store = InMemoryStore(maxsize=10, ttl=60)
        store.batch_update(UPSERT_AND_DELETE)
        assert store.get('a') is None
        assert store.get('b') == {'n': 2}
        assert store.list_all() == {'b': {'n': 2}}

    def test_entries_expire(self):
        now = [0]
        store = InMemoryStore(maxsize=10, ttl=60, timer=lambda: now[0])
        store.batch_update([{'operation': 'upsert', 'key': 'k', 'value': 1}])
        assert store.get('k') == 1
        now[0] = 61
        assert store.get('k') is None

    def test_clear(self):
        store = InMemoryStore(maxsize=10, ttl=60)
        store.batch_update(UPSERT_AND_DELETE)
        store.clear()
        assert store.list_all() == {}


class TestFileStore:

    def test_missing_file_is_empty(self, tmp_path):
        store = FileStore(str(tmp_path / 'missing.json'))
        assert store.get('a') is None
        assert store.list_all() == {}

    def test_batch_update_persists(self, tmp_path):
        path = tmp_path / 'nested' / 'cache.json'
        FileStore(str(path)).batch_update(UPSERT_AND_DELETE)

        assert json.loads(path.read_text()) == {'b': {'n': 2}}
        assert FileStore(str(path)).get('b') == {'n': 2}

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / 'cache.json'
        path.write_text('{not json')
        with pytest.raises(StoreUnavailableError):
            FileStore(str(path)).get('a')

    def test_clear(self, tmp_path):
        store = FileStore(str(tmp_path / 'cache.json'))
        store.batch_update(UPSERT_AND_DELETE)
        store.clear()
        assert store.list_all() == {}


class TestEdgeConfigStore:

    CONNECTION = 'https://edge-config.vercel.com/ecfg_abc123?token=read-token'

    @pytest.fixture
    def session(self):
        return Mock(spec=requests.Session)

    @pytest.fixture
    def store(self, session):
        return EdgeConfigStore(self.CONNECTION, api_token='api-token', session=session)

    def test_parses_connection_string(self, store):
        assert store.read_base_url == 'https://edge-config.vercel.com/ecfg_abc123'
        assert store.read_token == 'read-token'
        assert store.edge_config_id == 'ecfg_abc123'

    def test_get_item(self, store, session):
        session.get.return_value = _response(payload={'newsText': 'hi'})
        assert store.get('daily_news_Global_2025-01-01') == {'newsText': 'hi'}
        url = session.get.call_args[0][0]
        assert url == 'https://edge-config.vercel.com/ecfg_abc123/item/daily_news_Global_2025-01-01'
        assert session.get.call_args[1]['params'] == {'token': 'read-token'}

    def test_get_missing_item(self, store, session):
        session.get.return_value = _response(status_code=404)
        assert store.get('nope') is None

    def test_get_invalid_json(self, store, session):
        response = _response()
        response.json.side_effect = ValueError('Expecting value')
        session.get.return_value = response
        with pytest.raises(StoreUnavailableError):
            store.get('k')

    def test_get_network_error(self, store, session):
        session.get.side_effect = requests.exceptions.ConnectionError('down')
        with pytest.raises(StoreUnavailableError):
            store.get('k')

    def test_list_all_from_item_records(self, store, session):
        session.get.return_value = _response(payload=[
            {'key': 'a', 'value': 1, 'edgeConfigId': 'ecfg_abc123'},
            {'key': 'b', 'value': {'x': 2}},
        ])
        assert store.list_all() == {'a': 1, 'b': {'x': 2}}
        assert session.get.call_args[1]['headers']['Authorization'] == 'Bearer api-token'

    def test_list_all_failure(self, store, session):
        session.get.return_value = _response(status_code=500, text='oops')
        with pytest.raises(StoreUnavailableError):
            store.list_all()

    def test_batch_update_patches_items(self, store, session):
        session.patch.return_value = _response()
        store.batch_update(UPSERT_AND_DELETE)
        url = session.patch.call_args[0][0]
        assert url == 'https://api.vercel.com/v1/edge-config/ecfg_abc123/items'
        assert session.patch.call_args[1]['json'] == {'items': UPSERT_AND_DELETE}

    def test_batch_update_failure(self, store, session):
        session.patch.return_value = _response(status_code=403, text='forbidden')
        with pytest.raises(StoreUnavailableError):
            store.batch_update(UPSERT_AND_DELETE)

    def test_write_without_token_is_skipped(self, session):
        store = EdgeConfigStore(self.CONNECTION, session=session)
        store.batch_update(UPSERT_AND_DELETE)
        session.patch.assert_not_called()
        with pytest.raises(StoreUnavailableError):
            store.list_all()


class TestRedisStore:

    @pytest.fixture
    def client(self):
        return MagicMock(spec=redis.Redis)

    def test_get_decodes_json(self, client):
        client.get.return_value = '{"newsText": "hi"}'
        store = RedisStore(client, prefix='app:')
        assert store.get('k') == {'newsText': 'hi'}
        client.get.assert_called_once_with('app:k')

    def test_get_missing(self, client):
        client.get.return_value = None
        assert RedisStore(client).get('k') is None

    def test_get_non_json_value(self, client):
        client.get.return_value = 'plain-string-not-json'
        with pytest.raises(StoreUnavailableError):
            RedisStore(client).get('k')

    def test_list_all_skips_foreign_values(self, client):
        client.scan_iter.return_value = iter(['session:abc', 'daily_news_Global_2025-01-01'])
        client.mget.return_value = ['plain-string-not-json', '{"newsText": "hi"}']
        assert RedisStore(client).list_all() == {'daily_news_Global_2025-01-01': {'newsText': 'hi'}}

    def test_list_all_strips_prefix(self, client):
        client.scan_iter.return_value = iter(['app:a', 'app:b'])
        client.mget.return_value = ['1', None]
        assert RedisStore(client, prefix='app:').list_all() == {'a': 1}

    def test_batch_update_uses_pipeline(self, client):
        pipe = client.pipeline.return_value
        RedisStore(client, prefix='app:', ttl=30).batch_update(UPSERT_AND_DELETE)
        pipe.set.assert_any_call('app:a', '{"n": 1}', ex=30)
        pipe.delete.assert_called_once_with('app:a')
        pipe.execute.assert_called_once()

    def test_errors_become_store_unavailable(self, client):
        client.get.side_effect = redis.ConnectionError('refused')
        with pytest.raises(StoreUnavailableError):
            RedisStore(client).get('k')


class TestCreateStore:

    def test_memory(self):
        assert isinstance(create_store('memory'), InMemoryStore)

    def test_file(self, monkeypatch, tmp_path):
        monkeypatch.setattr(cache_stores.config, 'CACHE_FILE_PATH', str(tmp_path / 'c.json'))
        store = create_store('file')
        assert isinstance(store, FileStore)
        assert store.path == str(tmp_path / 'c.json')

    def test_edge_without_connection_string(self, monkeypatch):
        monkeypatch.setattr(cache_stores.config, 'EDGE_CONFIG', None)
        assert create_store('edge') is None

    def test_edge(self, monkeypatch):
        monkeypatch.setattr(cache_stores.config, 'EDGE_CONFIG', TestEdgeConfigStore.CONNECTION)
        assert isinstance(create_store('edge'), EdgeConfigStore)

    def test_redis_without_url(self, monkeypatch):
        monkeypatch.setattr(cache_stores.config, 'REDIS_URL', None)
        assert create_store('redis') is None

    @pytest.mark.parametrize("backend", ['none', 'bogus'])
    def test_disabled(self, backend):
        assert create_store(backend) is None
