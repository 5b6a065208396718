from datetime import datetime, timedelta, timezone
from typing import Sequence

from learning.modules.uploads.quota import Tier
from learning.modules.users.models import MaterializedUser
from learning.modules.users.repository import MaterializedUserRepository

def _now() -> datetime:
    return datetime.now(timezone.utc)

class MaterializedUserService:
    """Read cache of profiles owned by the users service, refreshed by bulk responses."""

    def __init__(self, repo: MaterializedUserRepository, ttl_hours: int = 24, clock=_now):
        self.repo = repo
        self.ttl = timedelta(hours=ttl_hours)
        self.clock = clock

    async def fresh_profiles(self, usernames: list[str]) -> Sequence[MaterializedUser]:
        return await self.repo.list_fresh(usernames, self.clock() - self.ttl)

    async def usernames_to_request(self, usernames: list[str]) -> list[str]:
        """Usernames with no profile stored in the last day."""
        fresh = {user.username for user in await self.fresh_profiles(usernames)}
        return [u for u in dict.fromkeys(usernames) if u not in fresh]

    async def upsert_profiles(self, users: list[dict]) -> int:
        count = 0
        for user in users:
            username = user.get("username")
            if not username:
                continue
            tier = Tier.parse(user.get("plan")) or Tier.BASIC
            await self.repo.upsert(
                username,
                stamped_at=self.clock(),
                email=user.get("email"),
                first_name=user.get("firstName"),
                last_name=user.get("lastName"),
                profile_picture=user.get("profilePicture"),
                plan=tier.value,
            )
            count += 1
        return count
