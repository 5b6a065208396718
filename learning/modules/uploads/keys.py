import os
import re
import uuid

PLACEHOLDER_KEY = "dummy"

_URL_TAIL = re.compile(r"/([^/?#]+)[^/]*$")


def blob_key(owner: str, filename: str | None) -> str:
    base = os.path.basename((filename or "").replace("\\", "/")) or "file"
    return f"{owner}-{uuid.uuid4()}-{base}"


def blob_name(stored: str) -> str:
    """Object name for a stored key; older records kept a full public URL."""
    if "/" not in stored:
        return stored
    match = _URL_TAIL.search(stored)
    return match.group(1) if match else stored


def is_placeholder(stored: str | None) -> bool:
    return not stored or stored == PLACEHOLDER_KEY
