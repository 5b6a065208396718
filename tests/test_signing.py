from learning.modules.uploads.keys import blob_key, blob_name
from learning.modules.uploads.signing import DEFAULT_TTL_SECONDS, SignedAccessResolver


async def test_signed_url_uses_twelve_hour_expiry(storage):
    url = await SignedAccessResolver(storage).resolve_read_url("alice-1-notes.pdf")
    assert url.startswith("https://signed.example/test-bucket/alice-1-notes.pdf")
    assert url.endswith(f"expires={DEFAULT_TTL_SECONDS}")
    assert DEFAULT_TTL_SECONDS == 43200


async def test_signing_failure_returns_raw_key(storage):
    storage.fail_sign = True
    url = await SignedAccessResolver(storage).resolve_read_url("alice-1-notes.pdf")
    assert url == "alice-1-notes.pdf"


async def test_legacy_public_url_is_signed_by_object_name(storage):
    url = await SignedAccessResolver(storage).resolve_read_url(
        "https://storage.googleapis.com/materials-bucket/alice-1-notes.pdf"
    )
    assert url.startswith("https://signed.example/test-bucket/alice-1-notes.pdf?")


def test_blob_key_is_prefixed_by_owner_and_drops_directories():
    key = blob_key("alice", "../../etc/lesson 1.mp4")
    owner, rest = key.split("-", 1)
    assert owner == "alice"
    assert key.endswith("-lesson 1.mp4")
    assert "/" not in key


def test_blob_name():
    assert blob_name("alice-1-a.pdf") == "alice-1-a.pdf"
    assert blob_name("https://host/bucket/alice-1-a.pdf?x=1") == "alice-1-a.pdf"
