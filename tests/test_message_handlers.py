from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from learning.modules.classes.repository import ClassRepository
from learning.modules.materials.repository import MaterialRepository
from learning.modules.messaging.handlers import RESPONSE_CLASSES_AND_MATERIALS, MessageHandlers
from learning.modules.messaging.relay import COURSES_SERVICE, NotificationRelay
from learning.modules.reviews.service import ReviewService
from learning.modules.uploads.coordinator import UploadCoordinator
from learning.modules.uploads.quota import QuotaPolicy, ResourceKind
from learning.modules.users.repository import MaterializedUserRepository
from learning.modules.users.service import MaterializedUserService

from fakes import InMemoryCache, InMemoryStorage


class Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def class_storage():
    return InMemoryStorage("classes-bucket")


@pytest.fixture
def material_storage():
    return InMemoryStorage("materials-bucket")


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def handlers(session, bus, cache, clock, class_storage, material_storage):
    classes = ClassRepository(session)
    materials = MaterialRepository(session)
    relay = NotificationRelay(bus)
    return MessageHandlers(
        classes,
        materials,
        UploadCoordinator(classes, class_storage, QuotaPolicy(class_storage), ResourceKind.CLASS),
        UploadCoordinator(materials, material_storage, QuotaPolicy(material_storage), ResourceKind.MATERIAL),
        ReviewService(cache, relay),
        MaterializedUserService(MaterializedUserRepository(session), clock=clock),
        relay,
    )


async def make_material(handlers, author="alice", title="Notes", storage=None):
    material = await handlers.materials.create(
        title=title, description="d", price=Decimal("9.99"), currency="EUR", type="book",
        file=f"{author}-1-{title}.pdf", author=author,
    )
    if storage is not None:
        storage.objects[material.file] = 10
    return material


async def make_class(handlers, creator="alice", course_id="c1", order=1, storage=None):
    class_ = await handlers.classes.create(
        title=f"Lesson {order}", description="d", order=order,
        file=f"{creator}-{order}-lesson.mp4", course_id=course_id, creator=creator,
    )
    if storage is not None:
        storage.objects[class_.file] = 10
    return class_


async def test_purchaser_add_is_idempotent(handlers):
    material = await make_material(handlers)
    message = {"username": "bob", "materialId": str(material.id)}

    assert await handlers.dispatch("publishNewMaterialAccess", message)
    assert await handlers.dispatch("publishNewMaterialAccess", message)

    assert await handlers.materials.purchasers(material.id) == ["bob"]


async def test_purchase_of_unknown_material_is_ignored(handlers):
    await handlers.dispatch("publishNewMaterialAccess", {"username": "bob", "materialId": "not-a-uuid"})


async def test_review_response_populates_cache(handlers, cache):
    await handlers.dispatch("responseMaterialReviews", {"materialId": "m1", "review": {"score": 5}})
    assert await handlers.reviews.get_review("m1") == {"score": 5}


async def test_message_content_may_arrive_as_json_string(handlers, cache):
    await handlers.dispatch("responseMaterialReviews", '{"materialId": "m2", "review": 3}')
    assert await handlers.reviews.get_review("m2") == 3


async def test_unknown_operation_is_ignored(handlers, bus):
    assert await handlers.dispatch("somethingElse", {}) is False
    assert bus.sent == []


async def test_user_deletion_cascade(handlers, class_storage, material_storage):
    owned = await make_material(handlers, author="bob", title="BobsBook", storage=material_storage)
    bought = await make_material(handlers, author="alice", title="AlicesBook", storage=material_storage)
    await handlers.materials.add_purchaser(bought.id, "bob")
    await handlers.materials.add_purchaser(bought.id, "carol")
    bob_class = await make_class(handlers, creator="bob", storage=class_storage)
    alice_class = await make_class(handlers, creator="alice", order=2, storage=class_storage)

    await handlers.dispatch("notificationUserDeletion", {"username": "bob"})

    assert await handlers.materials.get(owned.id) is None
    assert await handlers.materials.purchasers(bought.id) == ["carol"]
    assert await handlers.classes.get(bob_class.id) is None
    assert await handlers.classes.get(alice_class.id) is not None
    assert owned.file not in material_storage.objects
    assert bob_class.file not in class_storage.objects
    assert alice_class.file in class_storage.objects


async def test_course_deletion_cascade(handlers):
    material = await make_material(handlers)
    await handlers.materials.associate_course(material.id, "c1")
    await handlers.materials.associate_course(material.id, "c2")
    await make_class(handlers, course_id="c1")
    other = await make_class(handlers, course_id="c2", order=2)

    await handlers.dispatch("notificationDeleteCourse", {"courseId": "c1"})

    assert await handlers.materials.get(material.id) is not None
    assert await handlers.materials.courses(material.id) == ["c2"]
    assert await handlers.classes.list_by_course("c1") == []
    assert [c.id for c in await handlers.classes.list_by_course("c2")] == [other.id]


async def test_request_for_course_content_answers_courses_service(handlers, bus):
    material = await make_material(handlers)
    await handlers.materials.associate_course(material.id, "c1")
    first = await make_class(handlers, course_id="c1", order=1)
    await make_class(handlers, course_id="c9", order=1)

    await handlers.dispatch("requestAppClassesAndMaterials", {"courseId": "c1"})

    destination, operation, message = bus.sent[-1]
    assert (destination, operation) == (COURSES_SERVICE, RESPONSE_CLASSES_AND_MATERIALS)
    assert message["courseId"] == "c1"
    assert [c["id"] for c in message["classes"]] == [str(first.id)]
    assert [m["id"] for m in message["materials"]] == [str(material.id)]
    assert message["materials"][0]["courses"] == ["c1"]


async def test_users_response_upserts_and_stamps(handlers, clock):
    users = handlers.users
    await handlers.dispatch("responseAppUsers", {"users": [
        {"username": "bob", "email": "bob@example.com", "firstName": "Bob", "plan": "premium"},
        {"username": "carol", "email": "carol@example.com", "plan": "pro"},
    ]})

    stored = await users.repo.get("bob")
    assert stored.first_name == "Bob"
    assert stored.plan == "ADVANCED"
    assert await users.usernames_to_request(["bob", "carol", "dave"]) == ["dave"]

    clock.now += timedelta(hours=25)
    assert await users.usernames_to_request(["bob", "carol"]) == ["bob", "carol"]

    await handlers.dispatch("responseAppUsers", {"users": [{"username": "bob", "email": "new@example.com", "plan": "BASIC"}]})
    assert (await users.repo.get("bob")).email == "new@example.com"
    assert await users.usernames_to_request(["bob", "carol"]) == ["carol"]


async def test_cascades_also_remove_records_still_waiting_for_a_file(handlers):
    pending_material = await handlers.materials.create(
        title="Draft", description="d", price=Decimal("1"), currency="EUR", type="book",
        file="dummy", author="dave",
    )
    pending_class = await handlers.classes.create(
        title="Draft", description="d", order=1, file="dummy", course_id="c9", creator="erin",
    )

    await handlers.dispatch("notificationUserDeletion", {"username": "dave"})
    await handlers.dispatch("notificationDeleteCourse", {"courseId": "c9"})

    assert await handlers.materials.get(pending_material.id, include_pending=True) is None
    assert await handlers.classes.get(pending_class.id, include_pending=True) is None
