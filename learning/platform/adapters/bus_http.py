import json
import logging
import httpx
from learning.platform.ports.event_bus import EventBusPort

log = logging.getLogger("bus.http")

class HttpEventBus(EventBusPort):
    """Hands envelopes to the communication service's REST endpoint, which relays them to the broker."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def publish(self, destination: str, operation_id: str, message: dict) -> None:
        resp = await self.client.post(
            f"{self.base_url}/{destination}",
            json={"operationId": operation_id, "message": json.dumps(message, default=str)},
            headers={"x-api-key": self.api_key},
        )
        resp.raise_for_status()
        log.debug(f"[HTTP BUS] POST destination={destination} operation={operation_id} status={resp.status_code}")

    async def close(self) -> None:
        await self.client.aclose()
