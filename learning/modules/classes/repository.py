import uuid
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from learning.modules.classes.models import Class
from learning.modules.uploads.keys import PLACEHOLDER_KEY

class ClassRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self):
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def create(self, **data) -> Class:
        obj = Class(**data)
        self.session.add(obj)
        await self._commit()
        return obj

    async def save(self, obj: Class) -> Class:
        self.session.add(obj)
        await self._commit()
        return obj

    async def delete(self, obj: Class) -> None:
        await self.session.delete(obj)
        await self._commit()

    async def get(self, class_id: uuid.UUID, *, include_pending: bool = False) -> Class | None:
        obj = await self.session.get(Class, class_id)
        if obj is not None and obj.file == PLACEHOLDER_KEY and not include_pending:
            return None
        return obj

    async def list_by_course(self, course_id: str, *, include_pending: bool = False) -> Sequence[Class]:
        q = select(Class).where(Class.course_id == course_id).order_by(Class.order.asc())
        if not include_pending:
            q = q.where(Class.file != PLACEHOLDER_KEY)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_by_creator(self, creator: str) -> Sequence[Class]:
        res = await self.session.execute(select(Class).where(Class.creator == creator))
        return res.scalars().all()
