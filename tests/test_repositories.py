from decimal import Decimal

from learning.modules.classes.repository import ClassRepository
from learning.modules.materials.repository import MaterialRepository
from learning.modules.uploads.keys import PLACEHOLDER_KEY


def material_fields(file, author="alice"):
    return dict(title="Notes", description="d", price=Decimal("0"), currency="EUR", type="book", file=file, author=author)


def class_fields(file, order=1):
    return dict(title=f"Lesson {order}", description="d", order=order, file=file, course_id="c1", creator="alice")


async def test_pending_classes_are_hidden_until_finalized(session):
    repo = ClassRepository(session)
    done = await repo.create(**class_fields("alice-1-a.mp4"))
    pending = await repo.create(**class_fields(PLACEHOLDER_KEY, order=2))

    assert [c.id for c in await repo.list_by_course("c1")] == [done.id]
    assert await repo.get(pending.id) is None
    assert (await repo.get(pending.id, include_pending=True)).id == pending.id
    assert len(await repo.list_by_course("c1", include_pending=True)) == 2

    pending.file = "alice-2-b.mp4"
    await repo.save(pending)
    assert [c.id for c in await repo.list_by_course("c1")] == [done.id, pending.id]


async def test_pending_materials_are_hidden_from_every_listing(session):
    repo = MaterialRepository(session)
    done = await repo.create(**material_fields("alice-1-a.pdf"))
    pending = await repo.create(**material_fields(PLACEHOLDER_KEY))
    await repo.associate_course(done.id, "c1")
    await repo.associate_course(pending.id, "c1")

    assert [m.id for m in await repo.list_all()] == [done.id]
    assert [m.id for m in await repo.list_by_author("alice")] == [done.id]
    assert [m.id for m in await repo.list_by_course("c1")] == [done.id]
    assert await repo.get(pending.id) is None
    assert len(await repo.list_by_author("alice", include_pending=True)) == 2
