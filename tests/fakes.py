import io
import uuid
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from learning.modules.uploads.coordinator import IncomingFile
from learning.platform.ports.object_storage import StoredObject

MB = 1024 * 1024


def make_file(size: int = 10, name: str = "notes.pdf", content_type: str = "application/pdf") -> IncomingFile:
    return IncomingFile(filename=name, content_type=content_type, size=size, stream=io.BytesIO(b"x" * min(size, 1024)))


class InMemoryStorage:
    def __init__(self, bucket: str = "test-bucket"):
        self.bucket = bucket
        self.objects: dict[str, int] = {}
        self.fail_list = False
        self.fail_put = False
        self.fail_sign = False
        self.deleted: list[str] = []

    def list_objects(self, prefix: str = "") -> list[StoredObject]:
        if self.fail_list:
            raise ConnectionError("listing unavailable")
        return [StoredObject(key=k, size=v) for k, v in self.objects.items() if k.startswith(prefix)]

    def put_stream(self, key, stream, content_type) -> None:
        if self.fail_put:
            raise ConnectionError("write failed")
        self.objects[key] = len(stream.read())

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)
        self.deleted.append(key)

    def presign_download(self, key: str, expires_seconds: int = 900) -> str:
        if self.fail_sign:
            raise RuntimeError("no signing credentials")
        return f"https://signed.example/{self.bucket}/{key}?expires={expires_seconds}"


@dataclass
class Record:
    title: str = ""
    file: str = ""
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    extra: dict = field(default_factory=dict)


class FakeRecordStore:
    """Keeps records in a dict and remembers every storage key it persisted."""

    def __init__(self):
        self.records: dict[uuid.UUID, Record] = {}
        self.saved_keys: list[str] = []
        self.fail_create = False
        self.fail_save = False

    async def create(self, **fields) -> Record:
        if self.fail_create:
            raise SQLAlchemyError("insert failed")
        record = Record(title=fields.pop("title", ""), file=fields.pop("file"), extra=fields)
        self.records[record.id] = record
        self.saved_keys.append(record.file)
        return record

    async def save(self, record: Record) -> Record:
        if self.fail_save:
            raise SQLAlchemyError("update failed")
        self.records[record.id] = record
        self.saved_keys.append(record.file)
        return record

    async def delete(self, record: Record) -> None:
        self.records.pop(record.id, None)


class InMemoryCache:
    def __init__(self, clock=lambda: 0.0):
        self.clock = clock
        self.entries: dict[str, tuple[str, float]] = {}
        self.fail = False

    async def get(self, key: str) -> str | None:
        if self.fail:
            raise ConnectionError("cache down")
        entry = self.entries.get(key)
        if entry is None or entry[1] <= self.clock():
            return None
        return entry[0]

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if self.fail:
            raise ConnectionError("cache down")
        self.entries[key] = (value, self.clock() + ttl_seconds)


class RecordingBus:
    def __init__(self):
        self.sent: list[tuple[str, str, dict]] = []
        self.fail = False

    async def publish(self, destination: str, operation_id: str, message: dict) -> None:
        if self.fail:
            raise ConnectionError("broker unreachable")
        self.sent.append((destination, operation_id, message))

    async def close(self) -> None:
        return None

    def operations(self) -> list[str]:
        return [op for _, op, _ in self.sent]
