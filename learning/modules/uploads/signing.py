import asyncio
import logging

from learning.platform.ports.object_storage import ObjectStoragePort
from learning.modules.uploads.keys import blob_name

log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 12 * 60 * 60


class SignedAccessResolver:
    def __init__(self, storage: ObjectStoragePort, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.storage = storage
        self.ttl_seconds = ttl_seconds

    async def resolve_read_url(self, storage_key: str) -> str:
        """Time-limited read URL for a stored key; the raw key if signing fails."""
        try:
            return await asyncio.to_thread(self.storage.presign_download, blob_name(storage_key), self.ttl_seconds)
        except Exception:
            log.warning("Could not sign %s in bucket %s; returning it unsigned", storage_key, self.storage.bucket, exc_info=True)
            return storage_key
