import logging
from datetime import datetime, timedelta, timezone
from typing import Any
import httpx
from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel
from learning.core.config import Settings
from learning.core.errors import AuthenticationError

log = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)

class Principal(BaseModel):
    username: str
    plan: str | None = None
    claims: dict[str, Any] = {}

def _principal_from_claims(data: dict) -> Principal:
    # tokens carry the user either flat or nested under "payload"
    claims = data.get("payload", data) if isinstance(data, dict) else {}
    if not isinstance(claims, dict):
        raise AuthenticationError()
    username = claims.get("username")
    if not username:
        raise AuthenticationError()
    return Principal(username=str(username), plan=claims.get("plan"), claims=claims)

class IdentityClient:
    """Verifies bearer tokens and issues a fresh token for every authenticated request.

    Delegates to the identity service when its URLs are configured; otherwise
    signs and verifies HS256 tokens locally.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self.remote = bool(settings.IDENTITY_VERIFY_URL)
        self.client = client or (httpx.AsyncClient(timeout=settings.IDENTITY_TIMEOUT_SECONDS) if self.remote else None)

    async def verify(self, token: str) -> Principal:
        if not token:
            raise AuthenticationError()
        if self.remote:
            return await self._verify_remote(token)
        try:
            data = jwt.decode(token, self.settings.JWT_SECRET, algorithms=[self.settings.JWT_ALG])
        except JWTError as e:
            raise AuthenticationError(f"Invalid token: {e}")
        return _principal_from_claims(data)

    async def _verify_remote(self, token: str) -> Principal:
        try:
            resp = await self.client.post(self.settings.IDENTITY_VERIFY_URL, json={"token": token})
        except httpx.HTTPError as e:
            log.error(f"Identity service unreachable: {e}")
            raise AuthenticationError("Unauthenticated: identity service unavailable")
        if resp.status_code != 200:
            raise AuthenticationError()
        try:
            data = resp.json()
        except ValueError:
            log.error("Identity service returned a non-JSON body")
            raise AuthenticationError()
        if not isinstance(data, dict):
            raise AuthenticationError()
        return _principal_from_claims(data)

    async def regenerate(self, principal: Principal) -> str | None:
        if self.remote and self.settings.IDENTITY_GENERATE_URL:
            try:
                resp = await self.client.post(self.settings.IDENTITY_GENERATE_URL, json=principal.claims)
                resp.raise_for_status()
                return resp.json().get("token")
            except (httpx.HTTPError, ValueError) as e:
                log.warning(f"Could not regenerate token for {principal.username}: {e}")
                return None
        if self.remote:
            return None
        return issue_token(self.settings, principal.claims)

    async def close(self):
        if self.client is not None:
            await self.client.aclose()

def issue_token(settings: Settings, claims: dict) -> str:
    now = datetime.now(timezone.utc)
    body = {
        "payload": claims,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.TOKEN_TTL_MINUTES)).timestamp()),
    }
    return jwt.encode(body, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def get_identity(request: Request) -> IdentityClient:
    return request.app.state.identity

async def get_principal(
    response: Response,
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    identity: IdentityClient = Depends(get_identity),
) -> Principal:
    if creds is None:
        raise AuthenticationError()
    principal = await identity.verify(creds.credentials)
    token = await identity.regenerate(principal)
    if token:
        response.headers["Authorization"] = f"Bearer {token}"
    return principal
