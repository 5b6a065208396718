from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable

@dataclass(frozen=True)
class StoredObject:
    key: str
    size: int

@runtime_checkable
class ObjectStoragePort(Protocol):
    bucket: str

    def list_objects(self, prefix: str = "") -> list[StoredObject]: ...

    def put_stream(self, key: str, stream: BinaryIO, content_type: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def presign_download(self, key: str, expires_seconds: int = 900) -> str: ...
