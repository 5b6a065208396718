import os
import shutil
from typing import BinaryIO
from urllib.parse import quote
from learning.platform.ports.object_storage import ObjectStoragePort, StoredObject

class LocalFilesystemStorage(ObjectStoragePort):
    def __init__(self, root: str, bucket: str):
        self.bucket = bucket
        self.root = os.path.join(os.path.abspath(root), bucket)
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = key.strip("/").replace("..", "")
        return os.path.join(self.root, safe)

    def list_objects(self, prefix: str = "") -> list[StoredObject]:
        out: list[StoredObject] = []
        for dirpath, _, filenames in os.walk(self.root):
            for name in filenames:
                path = os.path.join(dirpath, name)
                key = os.path.relpath(path, self.root).replace(os.sep, "/")
                if key.startswith(prefix):
                    out.append(StoredObject(key=key, size=os.path.getsize(path)))
        return out

    def put_stream(self, key: str, stream: BinaryIO, content_type: str) -> None:
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        try:
            with open(path, "wb") as f:
                shutil.copyfileobj(stream, f)
        except Exception:
            if os.path.exists(path):
                os.remove(path)
            raise

    def delete(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)

    def presign_download(self, key: str, expires_seconds: int = 900) -> str:
        # local dev only; the ttl is ignored
        path = self._path(key)
        if not os.path.exists(path):
            raise FileNotFoundError(key)
        return f"file://{quote(path)}"
