"""Cache-first review lookup.

A miss never waits for the reviews service: it asks for the review over the
bus and answers ``None``. The response message fills the cache later, so the
next read within the TTL sees the value. Concurrent misses may each send a
request.
"""
import json
import logging
from typing import Any

from learning.modules.messaging.relay import REVIEWS_SERVICE, NotificationRelay
from learning.platform.ports.cache import CachePort

log = logging.getLogger(__name__)

REQUEST_REVIEWS = "requestMaterialReviews"
DEFAULT_TTL_SECONDS = 5 * 60 * 60


class ReviewService:
    def __init__(self, cache: CachePort | None, relay: NotificationRelay, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.cache = cache
        self.relay = relay
        self.ttl_seconds = ttl_seconds

    async def get_review(self, material_id: str) -> Any:
        cached = await self._cached(material_id)
        if cached is not None:
            return _decode(cached)
        await self.relay.publish(REVIEWS_SERVICE, REQUEST_REVIEWS, {"materialId": material_id})
        return None

    async def store_review(self, material_id: str, review: Any) -> None:
        if self.cache is None:
            log.warning("No cache configured; dropping review for %s", material_id)
            return
        try:
            await self.cache.set(material_id, json.dumps(review, default=str), self.ttl_seconds)
        except Exception:
            log.warning("Could not cache review for %s", material_id, exc_info=True)

    async def _cached(self, material_id: str) -> str | None:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(material_id)
        except Exception:
            log.warning("Cache lookup failed for %s; treating as a miss", material_id, exc_info=True)
            return None


def _decode(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw
