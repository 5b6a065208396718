from fastapi import APIRouter
from learning.modules.classes.router import router as classes_router
from learning.modules.materials.router import router as materials_router

api_router = APIRouter()
api_router.include_router(classes_router, prefix="/classes", tags=["classes"])
api_router.include_router(materials_router, prefix="/materials", tags=["materials"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
