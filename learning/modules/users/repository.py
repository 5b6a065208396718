from datetime import datetime
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from learning.modules.users.models import MaterializedUser

class MaterializedUserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, username: str) -> MaterializedUser | None:
        res = await self.session.execute(select(MaterializedUser).where(MaterializedUser.username == username))
        return res.scalar_one_or_none()

    async def list_fresh(self, usernames: list[str], since: datetime) -> Sequence[MaterializedUser]:
        if not usernames:
            return []
        q = select(MaterializedUser).where(
            MaterializedUser.username.in_(usernames),
            MaterializedUser.insert_date > since,
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def upsert(self, username: str, *, stamped_at: datetime, **fields) -> MaterializedUser:
        obj = await self.get(username)
        if obj is None:
            obj = MaterializedUser(username=username)
            self.session.add(obj)
        for k, v in fields.items():
            setattr(obj, k, v)
        obj.insert_date = stamped_at
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return obj
