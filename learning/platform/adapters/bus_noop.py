import json
import logging
from learning.platform.ports.event_bus import EventBusPort

log = logging.getLogger("bus.noop")

class NoopEventBus(EventBusPort):
    async def publish(self, destination: str, operation_id: str, message: dict) -> None:
        log.info(f"[NOOP BUS] destination={destination} operation={operation_id} message={json.dumps(message, default=str)}")

    async def close(self) -> None:
        return None
