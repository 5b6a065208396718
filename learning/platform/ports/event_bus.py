from typing import Protocol, runtime_checkable

@runtime_checkable
class EventBusPort(Protocol):
    async def publish(self, destination: str, operation_id: str, message: dict) -> None: ...

    async def close(self) -> None: ...
