import uuid
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from learning.api.deps import get_registry, get_session, get_settings, incoming_file
from learning.core.config import Settings
from learning.core.security import Principal, get_principal
from learning.modules.materials.schemas import MaterialDetailOut, MaterialOut, MaterialPurchasersOut
from learning.modules.materials.service import MaterialService, build_material_service
from learning.platform.provider_registry import ProviderRegistry

router = APIRouter()

def svc(
    session: AsyncSession = Depends(get_session),
    registry: ProviderRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> MaterialService:
    return build_material_service(session, registry, settings)

@router.get("/check")
async def check():
    return {"message": "The materials service is working properly!"}

@router.get("", response_model=list[MaterialOut])
async def list_materials(principal: Principal = Depends(get_principal), service: MaterialService = Depends(svc)):
    return await service.list_all()

@router.get("/me", response_model=list[MaterialOut])
async def my_materials(principal: Principal = Depends(get_principal), service: MaterialService = Depends(svc)):
    return await service.list_mine(principal)

@router.get("/{material_id}", response_model=MaterialDetailOut)
async def get_material(
    material_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: MaterialService = Depends(svc),
):
    return await service.get(material_id, principal)

@router.get("/{material_id}/users", response_model=MaterialPurchasersOut)
async def material_purchasers(
    material_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: MaterialService = Depends(svc),
):
    return await service.purchasers(material_id, principal)

@router.post("", status_code=201, response_model=MaterialOut)
async def create_material(
    title: str | None = Form(None),
    description: str | None = Form(None),
    price: str | None = Form(None),
    currency: str | None = Form(None),
    type: str | None = Form(None),
    file: UploadFile | None = File(None),
    principal: Principal = Depends(get_principal),
    service: MaterialService = Depends(svc),
    settings: Settings = Depends(get_settings),
):
    upload = incoming_file(file, settings.MAX_DOCUMENT_UPLOAD_BYTES)
    fields = {"title": title, "description": description, "price": price, "currency": currency, "type": type}
    return await service.create(fields, upload, principal)

@router.post("/{material_id}/course/{course_id}/associate", status_code=204)
async def associate_material(
    material_id: uuid.UUID,
    course_id: str,
    principal: Principal = Depends(get_principal),
    service: MaterialService = Depends(svc),
):
    await service.associate(material_id, course_id, principal)

@router.post("/{material_id}/course/{course_id}/disassociate", status_code=204)
async def disassociate_material(
    material_id: uuid.UUID,
    course_id: str,
    principal: Principal = Depends(get_principal),
    service: MaterialService = Depends(svc),
):
    await service.disassociate(material_id, course_id, principal)

@router.put("/{material_id}", response_model=MaterialOut)
async def update_material(
    material_id: uuid.UUID,
    title: str | None = Form(None),
    description: str | None = Form(None),
    price: str | None = Form(None),
    currency: str | None = Form(None),
    type: str | None = Form(None),
    purchasers: list[str] | None = Form(None),
    file: UploadFile | None = File(None),
    principal: Principal = Depends(get_principal),
    service: MaterialService = Depends(svc),
    settings: Settings = Depends(get_settings),
):
    upload = incoming_file(file, settings.MAX_DOCUMENT_UPLOAD_BYTES)
    fields = {"title": title, "description": description, "price": price, "currency": currency, "type": type}
    return await service.update(material_id, fields, upload, principal, purchasers=purchasers)

@router.delete("/{material_id}", status_code=204)
async def delete_material(
    material_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: MaterialService = Depends(svc),
):
    await service.delete(material_id, principal)
