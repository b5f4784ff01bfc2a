"""
Unit tests for the order view cache (Redis replaced by an in-memory double).
"""

from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from farmstore.services.cache_service import CacheService


class InMemoryRedis:
    def __init__(self):
        self.data = {}
    
    def get(self, key):
        return self.data.get(key)
    
    def setex(self, key, ttl, value):
        self.data[key] = value
    
    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


@pytest.fixture
def cache():
    service = CacheService()
    service._prefix = 'test'
    service.client = InMemoryRedis()
    return service


class TestOrderViewCache:
    
    def test_miss_then_hit(self, cache):
        loader = MagicMock(return_value=[{'id': 1}])
        
        assert cache.get_or_load(7, 'history', loader) == [{'id': 1}]
        assert cache.get_or_load(7, 'history', loader) == [{'id': 1}]
        assert loader.call_count == 1
        assert 'test:orders:user:7:g0:history' in cache.client.data
    
    def test_invalidate_forces_reload(self, cache):
        loader = MagicMock(side_effect=[['old'], ['new']])
        cache.get_or_load(7, 'history', loader)
        
        cache.invalidate_user(7)
        
        assert cache.get_or_load(7, 'history', loader) == ['new']
    
    def test_users_do_not_share_entries(self, cache):
        cache.get_or_load(1, 'history', lambda: ['mine'])
        cache.invalidate_user(2)
        
        assert cache.get_or_load(1, 'history', lambda: ['reloaded']) == ['mine']
        assert cache.get_or_load(2, 'history', lambda: ['theirs']) == ['theirs']
    
    def test_disabled_cache_always_loads(self):
        service = CacheService()
        loader = MagicMock(return_value=[])
        
        service.get_or_load(1, 'history', loader)
        service.get_or_load(1, 'history', loader)
        service.invalidate_user(1)
        
        assert not service.enabled
        assert loader.call_count == 2
    
    def test_redis_errors_degrade_to_loader(self, cache):
        cache.client = MagicMock()
        cache.client.get.side_effect = RedisConnectionError('gone')
        cache.client.incr.side_effect = RedisConnectionError('gone')
        
        assert cache.get_or_load(1, 'history', lambda: ['fresh']) == ['fresh']
        cache.invalidate_user(1)
