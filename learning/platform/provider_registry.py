from redis.asyncio import Redis, from_url as redis_from_url
from learning.core.config import Settings
from learning.platform.ports.object_storage import ObjectStoragePort
from learning.platform.adapters.storage_local import LocalFilesystemStorage
from learning.platform.adapters.storage_s3 import S3Storage
from learning.platform.ports.event_bus import EventBusPort
from learning.platform.adapters.bus_noop import NoopEventBus
from learning.platform.adapters.bus_redis import RedisEventBus
from learning.platform.adapters.bus_http import HttpEventBus
from learning.platform.ports.cache import CachePort
from learning.platform.adapters.cache_redis import RedisCache

class ProviderRegistry:
    """Builds the external clients once at startup and hands them to the services."""

    def __init__(self, settings: Settings, *, event_bus: EventBusPort | None = None, cache: CachePort | None = None):
        self.settings = settings
        self._object_storage: dict[str, ObjectStoragePort] = {}
        self._event_bus: EventBusPort | None = event_bus
        self._cache: CachePort | None = cache
        self._redis: Redis | None = None

    def redis(self) -> Redis:
        if self._redis is None:
            if not self.settings.REDIS_URL:
                raise RuntimeError("REDIS_URL not configured")
            self._redis = redis_from_url(self.settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        return self._redis

    def object_storage(self, bucket: str) -> ObjectStoragePort:
        if bucket not in self._object_storage:
            if self.settings.OBJECT_STORAGE_PROVIDER == "s3":
                self._object_storage[bucket] = S3Storage(self.settings, bucket)
            else:
                self._object_storage[bucket] = LocalFilesystemStorage(self.settings.LOCAL_STORAGE_ROOT, bucket)
        return self._object_storage[bucket]

    def classes_storage(self) -> ObjectStoragePort:
        return self.object_storage(self.settings.CLASSES_BUCKET)

    def materials_storage(self) -> ObjectStoragePort:
        return self.object_storage(self.settings.MATERIALS_BUCKET)

    def event_bus(self) -> EventBusPort:
        if self._event_bus is None:
            prov = self.settings.EVENT_BUS_PROVIDER
            if prov == "redis":
                self._event_bus = RedisEventBus(self.redis(), self.settings.REDIS_STREAM_PREFIX, self.settings.REDIS_STREAM_MAXLEN)
            elif prov == "http":
                if not self.settings.MESSAGES_API_URL:
                    raise RuntimeError("MESSAGES_API_URL not configured")
                self._event_bus = HttpEventBus(self.settings.MESSAGES_API_URL, self.settings.API_KEY)
            else:
                self._event_bus = NoopEventBus()
        return self._event_bus

    def cache(self) -> CachePort | None:
        # Without Redis every review lookup is a miss, which the review flow tolerates.
        if self._cache is None and self.settings.REDIS_URL:
            self._cache = RedisCache(self.redis())
        return self._cache

    async def close(self):
        if self._event_bus is not None:
            await self._event_bus.close()
        if self._redis is not None:
            await self._redis.aclose()
