import json
import logging
from redis.asyncio import Redis
from learning.platform.ports.event_bus import EventBusPort

log = logging.getLogger("bus.redis")

def stream_name(prefix: str, destination: str) -> str:
    return f"{prefix}.{destination}"

class RedisEventBus(EventBusPort):
    """Publishes envelopes onto one Redis stream per destination service."""

    def __init__(self, redis: Redis, prefix: str, maxlen: int = 10000):
        self.redis = redis
        self.prefix = prefix
        self.maxlen = maxlen

    async def publish(self, destination: str, operation_id: str, message: dict) -> None:
        stream = stream_name(self.prefix, destination)
        payload = {
            "operationId": operation_id,
            "message": json.dumps(message, default=str),
        }
        await self.redis.xadd(stream, payload, maxlen=self.maxlen, approximate=True)
        log.debug(f"[REDIS BUS] XADD stream={stream} operation={operation_id}")

    async def close(self) -> None:
        # the connection is shared with the cache and closed by the registry
        return None
