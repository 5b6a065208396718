import uuid
import logging
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learning.core.config import Settings
from learning.core.errors import AuthorizationError, NotFoundError, PersistenceError, ValidationError, describe_schema_error
from learning.core.security import Principal
from learning.modules.classes.models import Class
from learning.modules.classes.repository import ClassRepository
from learning.modules.classes.schemas import ClassCreate, ClassOut, ClassUpdate
from learning.modules.messaging.relay import COURSES_SERVICE, NotificationRelay
from learning.modules.uploads.coordinator import IncomingFile, UploadCoordinator
from learning.modules.uploads.quota import QuotaPolicy, ResourceKind
from learning.modules.uploads.signing import SignedAccessResolver
from learning.platform.provider_registry import ProviderRegistry

log = logging.getLogger(__name__)

NEW_CLASS = "notificationNewClass"
DELETE_CLASS = "notificationDeleteClass"

ERROR_CLASS_NOT_FOUND = "Class not found"

class ClassService:
    def __init__(self, repo: ClassRepository, files: UploadCoordinator, signer: SignedAccessResolver, relay: NotificationRelay):
        self.repo = repo
        self.files = files
        self.signer = signer
        self.relay = relay

    async def _signed(self, obj: Class) -> ClassOut:
        out = ClassOut.model_validate(obj)
        return out.model_copy(update={"file": await self.signer.resolve_read_url(obj.file)})

    async def _owned(self, class_id: uuid.UUID, principal: Principal) -> Class:
        obj = await self.repo.get(class_id)
        if obj is None:
            raise NotFoundError(ERROR_CLASS_NOT_FOUND)
        if obj.creator != principal.username:
            raise AuthorizationError("Unauthorized: You are not the creator of this class")
        return obj

    async def get(self, class_id: uuid.UUID) -> ClassOut:
        obj = await self.repo.get(class_id)
        if obj is None:
            raise NotFoundError(ERROR_CLASS_NOT_FOUND)
        return await self._signed(obj)

    async def list_by_course(self, course_id: str) -> list[ClassOut]:
        return [await self._signed(obj) for obj in await self.repo.list_by_course(course_id)]

    async def create(self, course_id: str, fields: dict, upload: IncomingFile | None, principal: Principal) -> Class:
        self.files.check_required(fields, upload)
        try:
            payload = ClassCreate(**fields)
        except SchemaError as e:
            raise ValidationError(describe_schema_error(e))
        obj = await self.files.create_with_file(
            {**payload.model_dump(), "course_id": course_id, "creator": principal.username},
            upload,
            principal.username,
            principal.plan,
        )
        log.info("Class %s created in course %s", obj.id, course_id)
        await self.relay.publish(COURSES_SERVICE, NEW_CLASS, {"courseId": course_id, "classId": str(obj.id)})
        return obj

    async def update(self, class_id: uuid.UUID, fields: dict, upload: IncomingFile | None, principal: Principal) -> Class:
        obj = await self._owned(class_id, principal)
        try:
            changes = ClassUpdate(**fields).model_dump(exclude_none=True)
        except SchemaError as e:
            raise ValidationError(describe_schema_error(e))
        if not changes and upload is None:
            raise ValidationError("No fields to update provided")
        if upload is not None:
            return await self.files.replace_file(obj, changes, upload, principal.username, principal.plan)
        for k, v in changes.items():
            setattr(obj, k, v)
        try:
            return await self.repo.save(obj)
        except SQLAlchemyError as e:
            raise PersistenceError("Could not save the class") from e

    async def delete(self, class_id: uuid.UUID, principal: Principal) -> None:
        obj = await self._owned(class_id, principal)
        await self.files.delete_with_file(obj)
        log.info("Class %s deleted by %s", class_id, principal.username)
        await self.relay.publish(COURSES_SERVICE, DELETE_CLASS, {"classId": str(class_id)})

def build_class_service(session: AsyncSession, registry: ProviderRegistry, settings: Settings) -> ClassService:
    storage = registry.classes_storage()
    repo = ClassRepository(session)
    files = UploadCoordinator(
        repo,
        storage,
        QuotaPolicy(storage),
        ResourceKind.CLASS,
        allowed_content_types=settings.VIDEO_CONTENT_TYPES,
        required_fields=("title", "description", "order"),
    )
    return ClassService(repo, files, SignedAccessResolver(storage, settings.SIGNED_URL_TTL_SECONDS), NotificationRelay(registry.event_bus()))
