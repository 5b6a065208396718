"""Handlers for operation-tagged messages addressed to this service."""
import json
import logging
import uuid
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from learning.core.config import Settings
from learning.modules.classes.repository import ClassRepository
from learning.modules.classes.schemas import ClassOut
from learning.modules.materials.repository import MaterialRepository
from learning.modules.materials.schemas import MaterialOut
from learning.modules.messaging.relay import COURSES_SERVICE, NotificationRelay
from learning.modules.reviews.service import ReviewService
from learning.modules.uploads.coordinator import UploadCoordinator
from learning.modules.uploads.quota import QuotaPolicy, ResourceKind
from learning.modules.users.repository import MaterializedUserRepository
from learning.modules.users.service import MaterializedUserService
from learning.platform.provider_registry import ProviderRegistry

log = logging.getLogger(__name__)

RESPONSE_CLASSES_AND_MATERIALS = "responseAppClassesAndMaterials"


def _as_uuid(value: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class MessageHandlers:
    def __init__(
        self,
        classes: ClassRepository,
        materials: MaterialRepository,
        class_files: UploadCoordinator,
        material_files: UploadCoordinator,
        reviews: ReviewService,
        users: MaterializedUserService,
        relay: NotificationRelay,
    ):
        self.classes = classes
        self.materials = materials
        self.class_files = class_files
        self.material_files = material_files
        self.reviews = reviews
        self.users = users
        self.relay = relay
        self.table: dict[str, Callable[[dict], Awaitable[None]]] = {
            "requestAppClassesAndMaterials": self.request_classes_and_materials,
            "publishNewMaterialAccess": self.new_material_access,
            "responseMaterialReviews": self.material_reviews,
            "notificationUserDeletion": self.user_deleted,
            "notificationDeleteCourse": self.course_deleted,
            "responseAppUsers": self.users_response,
        }

    async def dispatch(self, operation_id: str, message: Any) -> bool:
        handler = self.table.get(operation_id)
        if handler is None:
            log.warning("Ignoring message with unknown operation %s", operation_id)
            return False
        if isinstance(message, str):
            message = json.loads(message) if message else {}
        await handler(message or {})
        return True

    async def request_classes_and_materials(self, message: dict):
        course_id = str(message["courseId"])
        classes = [ClassOut.model_validate(c).model_dump(mode="json") for c in await self.classes.list_by_course(course_id)]
        materials = []
        for m in await self.materials.list_by_course(course_id):
            out = MaterialOut.model_validate(m).model_copy(update={
                "purchasers": await self.materials.purchasers(m.id),
                "courses": await self.materials.courses(m.id),
            })
            materials.append(out.model_dump(mode="json"))
        await self.relay.publish(COURSES_SERVICE, RESPONSE_CLASSES_AND_MATERIALS, {
            "courseId": course_id,
            "classes": classes,
            "materials": materials,
        })

    async def new_material_access(self, message: dict):
        username = message["username"]
        material_id = _as_uuid(message["materialId"])
        if material_id is None or await self.materials.get(material_id) is None:
            log.warning("Purchase notice for unknown material %s", message["materialId"])
            return
        if not await self.materials.add_purchaser(material_id, username):
            log.debug("%s already purchased %s", username, material_id)

    async def material_reviews(self, message: dict):
        await self.reviews.store_review(str(message["materialId"]), message.get("review"))

    async def user_deleted(self, message: dict):
        username = message["username"]
        removed = await self.materials.remove_purchaser_everywhere(username)
        owned_materials = await self.materials.list_by_author(username, include_pending=True)
        for material in owned_materials:
            await self.material_files.delete_with_file(material)
        owned_classes = await self.classes.list_by_creator(username)
        for class_ in owned_classes:
            await self.class_files.delete_with_file(class_)
        log.info("User %s removed: %d purchases, %d materials, %d classes",
                 username, removed, len(owned_materials), len(owned_classes))

    async def course_deleted(self, message: dict):
        course_id = str(message["courseId"])
        unlinked = await self.materials.remove_course_everywhere(course_id)
        classes = await self.classes.list_by_course(course_id, include_pending=True)
        for class_ in classes:
            await self.class_files.delete_with_file(class_)
        log.info("Course %s removed: %d materials unlinked, %d classes deleted", course_id, unlinked, len(classes))

    async def users_response(self, message: dict):
        count = await self.users.upsert_profiles(message.get("users") or [])
        log.debug("Refreshed %d materialized users", count)


def build_message_handlers(session: AsyncSession, registry: ProviderRegistry, settings: Settings) -> MessageHandlers:
    relay = NotificationRelay(registry.event_bus())
    classes = ClassRepository(session)
    materials = MaterialRepository(session)
    class_storage = registry.classes_storage()
    material_storage = registry.materials_storage()
    return MessageHandlers(
        classes,
        materials,
        UploadCoordinator(classes, class_storage, QuotaPolicy(class_storage), ResourceKind.CLASS),
        UploadCoordinator(materials, material_storage, QuotaPolicy(material_storage), ResourceKind.MATERIAL),
        ReviewService(registry.cache(), relay, settings.REVIEW_CACHE_TTL_SECONDS),
        MaterializedUserService(MaterializedUserRepository(session), settings.MATERIALIZED_USER_TTL_HOURS),
        relay,
    )
