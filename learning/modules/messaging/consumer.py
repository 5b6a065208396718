import asyncio
import json
import logging
import socket
from typing import Any, Awaitable, Callable

from redis.asyncio import Redis
from redis.exceptions import ResponseError

from learning.platform.adapters.bus_redis import stream_name

log = logging.getLogger("bus.consumer")

Dispatch = Callable[[str, Any], Awaitable[bool]]


def decode_envelope(fields: dict) -> tuple[str, Any]:
    """(operationId, message) from a stream entry; the message is usually a JSON string."""
    operation_id = fields.get("operationId", "")
    message = fields.get("message")
    if isinstance(message, str) and message:
        try:
            message = json.loads(message)
        except ValueError:
            pass
    return operation_id, message


class RedisStreamConsumer:
    """Reads this service's stream through a consumer group.

    Every entry is acknowledged once handled, including entries whose handler
    failed: those are logged and dropped, never redelivered.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        prefix: str,
        queue: str,
        group: str,
        dispatch: Dispatch,
        consumer_name: str | None = None,
        block_ms: int = 5000,
        batch_size: int = 10,
    ):
        self.redis = redis
        self.stream = stream_name(prefix, queue)
        self.group = group
        self.dispatch = dispatch
        self.consumer_name = consumer_name or socket.gethostname()
        self.block_ms = block_ms
        self.batch_size = batch_size

    async def ensure_group(self):
        try:
            await self.redis.xgroup_create(self.stream, self.group, id="0", mkstream=True)
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    async def handle(self, entry_id: str, fields: dict):
        try:
            operation_id, message = decode_envelope(fields)
            log.info("Received %s (%s)", operation_id, entry_id)
            await self.dispatch(operation_id, message)
        except Exception:
            log.exception("Dropping message %s from %s", entry_id, self.stream)
        finally:
            await self.redis.xack(self.stream, self.group, entry_id)

    async def poll_once(self) -> int:
        batches = await self.redis.xreadgroup(
            self.group, self.consumer_name, {self.stream: ">"}, count=self.batch_size, block=self.block_ms
        )
        handled = 0
        for _, entries in batches or []:
            for entry_id, fields in entries:
                await self.handle(entry_id, fields)
                handled += 1
        return handled

    async def run(self, poll_interval_seconds: float = 1.0):
        ready = False
        try:
            while True:
                try:
                    if not ready:
                        await self.ensure_group()
                        ready = True
                        log.info("Consumer started on stream=%s group=%s", self.stream, self.group)
                    await self.poll_once()
                except Exception:
                    log.exception("Consumer iteration failed")
                    await asyncio.sleep(poll_interval_seconds)
                await asyncio.sleep(0)  # yield
        except asyncio.CancelledError:
            log.info("Consumer cancelled; shutting down")
            raise
