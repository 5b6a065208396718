from unittest.mock import AsyncMock

from learning.platform.adapters.cache_redis import RedisCache


async def test_set_uses_setex_with_the_ttl():
    redis = AsyncMock()
    await RedisCache(redis).set("m1", '{"score": 5}', 18000)
    redis.setex.assert_awaited_once_with("m1", 18000, '{"score": 5}')


async def test_get_returns_the_stored_string_or_none():
    redis = AsyncMock()
    redis.get.side_effect = ['{"score": 5}', None]
    cache = RedisCache(redis)

    assert await cache.get("m1") == '{"score": 5}'
    assert await cache.get("m2") is None
