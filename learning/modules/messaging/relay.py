import logging
from learning.platform.ports.event_bus import EventBusPort

log = logging.getLogger(__name__)

COURSES_SERVICE = "courses-microservice"
REVIEWS_SERVICE = "reviews-microservice"
USERS_SERVICE = "users-microservice"


class NotificationRelay:
    """Fire-and-forget publishing of operation-tagged messages.

    Failures are logged and dropped; they are not retried and never reach the
    caller, whose request has already been served.
    """

    def __init__(self, bus: EventBusPort):
        self.bus = bus

    async def publish(self, destination: str, operation_id: str, message: dict) -> bool:
        try:
            await self.bus.publish(destination, operation_id, message)
        except Exception:
            log.exception("Dropping %s for %s", operation_id, destination)
            return False
        return True
