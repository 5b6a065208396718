import httpx
import pytest
from jose import jwt

from learning.core.errors import AuthenticationError
from learning.core.security import IdentityClient, Principal, issue_token


async def test_local_token_round_trip(settings):
    identity = IdentityClient(settings)
    token = issue_token(settings, {"username": "alice", "plan": "PRO"})

    principal = await identity.verify(token)

    assert principal.username == "alice"
    assert principal.plan == "PRO"
    fresh = await identity.regenerate(principal)
    assert jwt.decode(fresh, settings.JWT_SECRET, algorithms=["HS256"])["payload"]["username"] == "alice"


async def test_flat_claims_are_accepted(settings):
    token = jwt.encode({"username": "bob", "plan": "FREE"}, settings.JWT_SECRET, algorithm="HS256")
    principal = await IdentityClient(settings).verify(token)
    assert principal == Principal(username="bob", plan="FREE", claims={"username": "bob", "plan": "FREE"})


@pytest.mark.parametrize("token", ["", "garbage"])
async def test_invalid_tokens_are_rejected(settings, token):
    with pytest.raises(AuthenticationError):
        await IdentityClient(settings).verify(token)


async def test_token_without_username_is_rejected(settings):
    token = issue_token(settings, {"plan": "PRO"})
    with pytest.raises(AuthenticationError):
        await IdentityClient(settings).verify(token)


async def test_remote_identity_service(settings):
    def handler(request: httpx.Request):
        if request.url.path == "/verify":
            return httpx.Response(200, json={"payload": {"username": "carol", "plan": "ADVANCED"}})
        return httpx.Response(200, json={"token": "regenerated"})

    remote = settings.model_copy(update={
        "IDENTITY_VERIFY_URL": "https://identity.example/verify",
        "IDENTITY_GENERATE_URL": "https://identity.example/generate",
    })
    identity = IdentityClient(remote, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    principal = await identity.verify("opaque")
    assert principal.username == "carol"
    assert await identity.regenerate(principal) == "regenerated"


async def test_unreachable_identity_service_is_an_authentication_failure(settings):
    def handler(request: httpx.Request):
        raise httpx.ConnectError("refused", request=request)

    remote = settings.model_copy(update={"IDENTITY_VERIFY_URL": "https://identity.example/verify"})
    identity = IdentityClient(remote, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    with pytest.raises(AuthenticationError):
        await identity.verify("opaque")


@pytest.mark.parametrize("body", [b"<html>gateway</html>", b'["not", "claims"]'])
async def test_unreadable_identity_response_is_an_authentication_failure(settings, body):
    def handler(request: httpx.Request):
        return httpx.Response(200, content=body, headers={"content-type": "text/html"})

    remote = settings.model_copy(update={"IDENTITY_VERIFY_URL": "https://identity.example/verify"})
    identity = IdentityClient(remote, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    with pytest.raises(AuthenticationError):
        await identity.verify("opaque")
