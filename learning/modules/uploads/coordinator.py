"""Two-phase upload of a record and its file.

The record is saved first with a placeholder key, the file is written to the
bucket, and only then is the record pointed at the real key. If the write
fails the provisional record is deleted again. Replacing a file never removes
the previous blob before the new one is stored and the record updated.

Quota is evaluated against a live bucket listing without any reservation, so
two concurrent uploads from the same owner can both pass on the same used space.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, BinaryIO, Iterable, Protocol, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from learning.core.errors import (
    PersistenceError,
    QuotaExceededError,
    StorageWriteError,
    UnsupportedMediaError,
    ValidationError,
)
from learning.modules.uploads.keys import PLACEHOLDER_KEY, blob_key, blob_name, is_placeholder
from learning.modules.uploads.quota import QuotaPolicy, ResourceKind, Tier
from learning.platform.ports.object_storage import ObjectStoragePort

log = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    size: int
    stream: BinaryIO


class RecordStore(Protocol[R]):
    async def create(self, **fields: Any) -> R: ...

    async def save(self, record: R) -> R: ...

    async def delete(self, record: R) -> None: ...


class UploadCoordinator:
    def __init__(
        self,
        store: RecordStore,
        storage: ObjectStoragePort,
        quota: QuotaPolicy,
        kind: ResourceKind,
        *,
        allowed_content_types: Iterable[str] = (),
        required_fields: Iterable[str] = (),
    ):
        self.store = store
        self.storage = storage
        self.quota = quota
        self.kind = kind
        self.allowed_content_types = set(allowed_content_types)
        self.required_fields = tuple(required_fields)

    # ---- checks that run before anything is mutated ----
    def check_required(self, fields: dict, upload: IncomingFile | None):
        missing = [name for name in self.required_fields if fields.get(name) in (None, "")]
        if upload is None:
            missing.append("file")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    def check_content_type(self, content_type: str):
        if self.allowed_content_types and content_type not in self.allowed_content_types:
            allowed = ", ".join(sorted(self.allowed_content_types))
            raise UnsupportedMediaError(f"Invalid file type. Allowed types: {allowed}")

    async def check_quota(self, owner: str, tier: "Tier | str | None", size: int):
        decision = await self.quota.evaluate(owner, tier, size, self.kind)
        if not decision.accepted:
            raise QuotaExceededError(decision.reason or "Upload rejected")

    # ---- orchestration ----
    async def create_with_file(self, fields: dict, upload: IncomingFile | None, owner: str, tier: "Tier | str | None"):
        self.check_required(fields, upload)
        self.check_content_type(upload.content_type)
        await self.check_quota(owner, tier, upload.size)

        try:
            record = await self.store.create(**fields, file=PLACEHOLDER_KEY)
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not save the record") from exc
        record_id = record.id

        key = blob_key(owner, upload.filename)
        try:
            await self._write(key, upload)
        except Exception as exc:
            log.warning("Upload of %s failed; removing provisional %s %s", key, self.kind.value, record_id)
            await self._discard(record, record_id)
            raise StorageWriteError("Error uploading file.") from exc

        record.file = key
        try:
            return await self.store.save(record)
        except SQLAlchemyError as exc:
            log.error("Stored %s/%s but could not finalize %s %s; blob needs manual reconciliation",
                      self.storage.bucket, key, self.kind.value, record_id)
            raise PersistenceError("Could not save the record") from exc

    async def replace_file(self, record, fields: dict, upload: IncomingFile, owner: str, tier: "Tier | str | None"):
        self.check_content_type(upload.content_type)
        await self.check_quota(owner, tier, upload.size)

        old_key = record.file
        record_id = record.id
        key = blob_key(owner, upload.filename)
        try:
            await self._write(key, upload)
        except Exception as exc:
            log.warning("Upload of %s failed; %s %s keeps %s", key, self.kind.value, record_id, old_key)
            raise StorageWriteError("Error uploading file.") from exc

        for name, value in fields.items():
            setattr(record, name, value)
        record.file = key
        try:
            record = await self.store.save(record)
        except SQLAlchemyError as exc:
            log.error("Stored %s/%s but could not update %s %s; blob needs manual reconciliation",
                      self.storage.bucket, key, self.kind.value, record_id)
            raise PersistenceError("Could not save the record") from exc

        await self.delete_blob(old_key)
        return record

    async def delete_with_file(self, record):
        key = record.file
        try:
            await self.store.delete(record)
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not delete the record") from exc
        await self.delete_blob(key)

    async def delete_blob(self, stored: str | None):
        if is_placeholder(stored):
            return
        try:
            await asyncio.to_thread(self.storage.delete, blob_name(stored))
        except Exception:
            log.warning("Could not delete %s/%s", self.storage.bucket, stored, exc_info=True)

    async def _write(self, key: str, upload: IncomingFile):
        await asyncio.to_thread(self.storage.put_stream, key, upload.stream, upload.content_type)

    async def _discard(self, record, record_id):
        try:
            await self.store.delete(record)
        except SQLAlchemyError:
            log.exception("Could not remove provisional %s %s", self.kind.value, record_id)
