import uuid
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from learning.api.deps import get_registry, get_session, get_settings, incoming_file
from learning.core.config import Settings
from learning.core.security import Principal, get_principal
from learning.modules.classes.schemas import ClassOut
from learning.modules.classes.service import ClassService, build_class_service
from learning.platform.provider_registry import ProviderRegistry

router = APIRouter()

def svc(
    session: AsyncSession = Depends(get_session),
    registry: ProviderRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> ClassService:
    return build_class_service(session, registry, settings)

@router.get("/check")
async def check():
    return {"message": "The classes service is working properly!"}

@router.get("/course/{course_id}", response_model=list[ClassOut])
async def list_course_classes(
    course_id: str,
    principal: Principal = Depends(get_principal),
    service: ClassService = Depends(svc),
):
    return await service.list_by_course(course_id)

@router.get("/{class_id}", response_model=ClassOut)
async def get_class(
    class_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: ClassService = Depends(svc),
):
    return await service.get(class_id)

@router.post("/course/{course_id}", status_code=201, response_model=ClassOut)
async def create_class(
    course_id: str,
    title: str | None = Form(None),
    description: str | None = Form(None),
    order: str | None = Form(None),
    file: UploadFile | None = File(None),
    principal: Principal = Depends(get_principal),
    service: ClassService = Depends(svc),
    settings: Settings = Depends(get_settings),
):
    upload = incoming_file(file, settings.MAX_VIDEO_UPLOAD_BYTES)
    fields = {"title": title, "description": description, "order": order}
    return await service.create(course_id, fields, upload, principal)

@router.put("/{class_id}", response_model=ClassOut)
async def update_class(
    class_id: uuid.UUID,
    title: str | None = Form(None),
    description: str | None = Form(None),
    order: str | None = Form(None),
    file: UploadFile | None = File(None),
    principal: Principal = Depends(get_principal),
    service: ClassService = Depends(svc),
    settings: Settings = Depends(get_settings),
):
    upload = incoming_file(file, settings.MAX_VIDEO_UPLOAD_BYTES)
    fields = {"title": title, "description": description, "order": order}
    return await service.update(class_id, fields, upload, principal)

@router.delete("/{class_id}", status_code=204)
async def delete_class(
    class_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: ClassService = Depends(svc),
):
    await service.delete(class_id, principal)
