import uuid
import logging
from decimal import Decimal
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learning.core.config import Settings
from learning.core.errors import AuthorizationError, NotFoundError, PersistenceError, ValidationError, describe_schema_error
from learning.core.security import Principal
from learning.modules.materials.models import Material
from learning.modules.materials.repository import MaterialRepository
from learning.modules.materials.schemas import (
    MaterialCreate, MaterialDetailOut, MaterialOut, MaterialPurchasersOut, MaterialUpdate, PurchaserProfile
)
from learning.modules.messaging.relay import COURSES_SERVICE, USERS_SERVICE, NotificationRelay
from learning.modules.reviews.service import ReviewService
from learning.modules.uploads.coordinator import IncomingFile, UploadCoordinator
from learning.modules.uploads.quota import QuotaPolicy, ResourceKind
from learning.modules.uploads.signing import SignedAccessResolver
from learning.modules.users.repository import MaterializedUserRepository
from learning.modules.users.service import MaterializedUserService
from learning.platform.provider_registry import ProviderRegistry

log = logging.getLogger(__name__)

DELETE_MATERIAL = "notificationDeleteMaterial"
ASSOCIATE_MATERIAL = "notificationAssociateMaterial"
DISASSOCIATE_MATERIAL = "notificationDisassociateMaterial"
REQUEST_USERS = "requestAppUsers"

ERROR_MATERIAL_NOT_FOUND = "Material not found"
ERROR_NOT_AUTHOR = "Unauthorized: You are not the author of this material"

class MaterialService:
    def __init__(
        self,
        repo: MaterialRepository,
        files: UploadCoordinator,
        signer: SignedAccessResolver,
        relay: NotificationRelay,
        reviews: ReviewService,
        users: MaterializedUserService,
    ):
        self.repo = repo
        self.files = files
        self.signer = signer
        self.relay = relay
        self.reviews = reviews
        self.users = users

    async def _out(self, obj: Material, *, signed: bool = False) -> MaterialOut:
        out = MaterialOut.model_validate(obj)
        update = {
            "purchasers": await self.repo.purchasers(obj.id),
            "courses": await self.repo.courses(obj.id),
        }
        if signed:
            update["file"] = await self.signer.resolve_read_url(obj.file)
        return out.model_copy(update=update)

    async def _get(self, material_id: uuid.UUID) -> Material:
        obj = await self.repo.get(material_id)
        if obj is None:
            raise NotFoundError(ERROR_MATERIAL_NOT_FOUND)
        return obj

    async def _owned(self, material_id: uuid.UUID, principal: Principal) -> Material:
        obj = await self._get(material_id)
        if obj.author != principal.username:
            raise AuthorizationError(ERROR_NOT_AUTHOR)
        return obj

    # ---- reads ----
    async def list_all(self) -> list[MaterialOut]:
        return [await self._out(obj) for obj in await self.repo.list_all()]

    async def list_mine(self, principal: Principal) -> list[MaterialOut]:
        return [await self._out(obj, signed=True) for obj in await self.repo.list_by_author(principal.username)]

    async def get(self, material_id: uuid.UUID, principal: Principal) -> MaterialDetailOut:
        obj = await self._get(material_id)
        out = await self._out(obj, signed=True)
        can_read = (
            obj.author == principal.username
            or Decimal(obj.price) == 0
            or principal.username in out.purchasers
        )
        if not can_read:
            raise AuthorizationError(
                "Unauthorized: You are not the author of this material or you have not purchased it"
            )
        review = await self.reviews.get_review(str(obj.id))
        return MaterialDetailOut(**out.model_dump(), review=review)

    async def purchasers(self, material_id: uuid.UUID, principal: Principal) -> MaterialPurchasersOut:
        obj = await self._owned(material_id, principal)
        usernames = await self.repo.purchasers(obj.id)
        missing = await self.users.usernames_to_request(usernames)
        if missing:
            await self.relay.publish(USERS_SERVICE, REQUEST_USERS, {"usernames": missing})
        profiles = await self.users.fresh_profiles(usernames)
        return MaterialPurchasersOut(
            purchasers=usernames,
            users=[PurchaserProfile.model_validate(p) for p in profiles],
        )

    # ---- writes ----
    async def create(self, fields: dict, upload: IncomingFile | None, principal: Principal) -> MaterialOut:
        self.files.check_required(fields, upload)
        try:
            payload = MaterialCreate(**fields)
        except SchemaError as e:
            raise ValidationError(describe_schema_error(e))
        obj = await self.files.create_with_file(
            {**payload.model_dump(), "author": principal.username},
            upload,
            principal.username,
            principal.plan,
        )
        log.info("Material %s created by %s", obj.id, principal.username)
        return await self._out(obj)

    async def update(
        self,
        material_id: uuid.UUID,
        fields: dict,
        upload: IncomingFile | None,
        principal: Principal,
        purchasers: list[str] | None = None,
    ) -> MaterialOut:
        obj = await self._owned(material_id, principal)
        try:
            changes = MaterialUpdate(**fields).model_dump(exclude_none=True)
        except SchemaError as e:
            raise ValidationError(describe_schema_error(e))
        if not changes and upload is None and not purchasers:
            raise ValidationError("No fields to update provided")

        if upload is not None:
            obj = await self.files.replace_file(obj, changes, upload, principal.username, principal.plan)
        elif changes:
            for k, v in changes.items():
                setattr(obj, k, v)
            try:
                obj = await self.repo.save(obj)
            except SQLAlchemyError as e:
                raise PersistenceError("Could not save the material") from e
        if purchasers:
            try:
                await self.repo.set_purchasers(obj.id, purchasers)
            except SQLAlchemyError as e:
                raise PersistenceError("Could not save the material purchasers") from e
        return await self._out(obj)

    async def delete(self, material_id: uuid.UUID, principal: Principal) -> None:
        obj = await self._owned(material_id, principal)
        await self.files.delete_with_file(obj)
        log.info("Material %s deleted by %s", material_id, principal.username)
        await self.relay.publish(COURSES_SERVICE, DELETE_MATERIAL, {"materialId": str(material_id)})

    async def associate(self, material_id: uuid.UUID, course_id: str, principal: Principal) -> None:
        obj = await self._owned(material_id, principal)
        await self.repo.associate_course(obj.id, course_id)
        await self.relay.publish(COURSES_SERVICE, ASSOCIATE_MATERIAL, {"courseId": course_id, "materialId": str(material_id)})

    async def disassociate(self, material_id: uuid.UUID, course_id: str, principal: Principal) -> None:
        obj = await self._owned(material_id, principal)
        await self.repo.disassociate_course(obj.id, course_id)
        await self.relay.publish(COURSES_SERVICE, DISASSOCIATE_MATERIAL, {"courseId": course_id, "materialId": str(material_id)})

def build_material_service(session: AsyncSession, registry: ProviderRegistry, settings: Settings) -> MaterialService:
    storage = registry.materials_storage()
    repo = MaterialRepository(session)
    relay = NotificationRelay(registry.event_bus())
    files = UploadCoordinator(
        repo,
        storage,
        QuotaPolicy(storage),
        ResourceKind.MATERIAL,
        allowed_content_types=settings.DOCUMENT_CONTENT_TYPES,
        required_fields=("title", "description", "price", "currency", "type"),
    )
    return MaterialService(
        repo,
        files,
        SignedAccessResolver(storage, settings.SIGNED_URL_TTL_SECONDS),
        relay,
        ReviewService(registry.cache(), relay, settings.REVIEW_CACHE_TTL_SECONDS),
        MaterializedUserService(MaterializedUserRepository(session), settings.MATERIALIZED_USER_TTL_HOURS),
    )
