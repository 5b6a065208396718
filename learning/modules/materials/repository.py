import uuid
from typing import Sequence
from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from learning.modules.materials.models import Material, MaterialPurchaser, MaterialCourse
from learning.modules.uploads.keys import PLACEHOLDER_KEY

class MaterialRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self):
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def create(self, **data) -> Material:
        obj = Material(**data)
        self.session.add(obj)
        await self._commit()
        return obj

    async def save(self, obj: Material) -> Material:
        self.session.add(obj)
        await self._commit()
        return obj

    async def delete(self, obj: Material) -> None:
        await self.session.execute(delete(MaterialPurchaser).where(MaterialPurchaser.material_id == obj.id))
        await self.session.execute(delete(MaterialCourse).where(MaterialCourse.material_id == obj.id))
        await self.session.delete(obj)
        await self._commit()

    async def get(self, material_id: uuid.UUID, *, include_pending: bool = False) -> Material | None:
        obj = await self.session.get(Material, material_id)
        if obj is not None and obj.file == PLACEHOLDER_KEY and not include_pending:
            return None
        return obj

    async def list_all(self) -> Sequence[Material]:
        q = select(Material).where(Material.file != PLACEHOLDER_KEY).order_by(Material.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_by_author(self, author: str, *, include_pending: bool = False) -> Sequence[Material]:
        q = select(Material).where(Material.author == author).order_by(Material.created_at.asc())
        if not include_pending:
            q = q.where(Material.file != PLACEHOLDER_KEY)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_by_course(self, course_id: str) -> Sequence[Material]:
        # records still waiting for their file stay hidden
        q = (
            select(Material)
            .join(MaterialCourse, MaterialCourse.material_id == Material.id)
            .where(MaterialCourse.course_id == course_id, Material.file != PLACEHOLDER_KEY)
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    # ---- purchasers ----
    async def purchasers(self, material_id: uuid.UUID) -> list[str]:
        q = select(MaterialPurchaser.username).where(MaterialPurchaser.material_id == material_id).order_by(MaterialPurchaser.username)
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def has_purchaser(self, material_id: uuid.UUID, username: str) -> bool:
        q = select(MaterialPurchaser).where(
            MaterialPurchaser.material_id == material_id,
            MaterialPurchaser.username == username,
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none() is not None

    async def add_purchaser(self, material_id: uuid.UUID, username: str) -> bool:
        """Returns False when the username was already a purchaser."""
        if await self.has_purchaser(material_id, username):
            return False
        self.session.add(MaterialPurchaser(material_id=material_id, username=username))
        await self._commit()
        return True

    async def set_purchasers(self, material_id: uuid.UUID, usernames: list[str]) -> None:
        await self.session.execute(delete(MaterialPurchaser).where(MaterialPurchaser.material_id == material_id))
        for username in dict.fromkeys(usernames):
            self.session.add(MaterialPurchaser(material_id=material_id, username=username))
        await self._commit()

    async def remove_purchaser_everywhere(self, username: str) -> int:
        res = await self.session.execute(delete(MaterialPurchaser).where(MaterialPurchaser.username == username))
        await self._commit()
        return res.rowcount or 0

    # ---- course associations ----
    async def courses(self, material_id: uuid.UUID) -> list[str]:
        q = select(MaterialCourse.course_id).where(MaterialCourse.material_id == material_id).order_by(MaterialCourse.course_id)
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def associate_course(self, material_id: uuid.UUID, course_id: str) -> bool:
        q = select(MaterialCourse).where(MaterialCourse.material_id == material_id, MaterialCourse.course_id == course_id)
        if (await self.session.execute(q)).scalar_one_or_none() is not None:
            return False
        self.session.add(MaterialCourse(material_id=material_id, course_id=course_id))
        await self._commit()
        return True

    async def disassociate_course(self, material_id: uuid.UUID, course_id: str) -> bool:
        res = await self.session.execute(
            delete(MaterialCourse).where(MaterialCourse.material_id == material_id, MaterialCourse.course_id == course_id)
        )
        await self._commit()
        return bool(res.rowcount)

    async def remove_course_everywhere(self, course_id: str) -> int:
        res = await self.session.execute(delete(MaterialCourse).where(MaterialCourse.course_id == course_id))
        await self._commit()
        return res.rowcount or 0
