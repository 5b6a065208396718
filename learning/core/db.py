from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from .config import Settings
from .base import Base

def build_engine(settings: Settings) -> AsyncEngine:
    if settings.POSTGRES_DSN.startswith("sqlite"):
        return create_async_engine(settings.POSTGRES_DSN)
    return create_async_engine(settings.POSTGRES_DSN, pool_pre_ping=True)

def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def init_models(engine: AsyncEngine, settings: Settings):
    ## In dev-only "create_all" mode the app owns the schema; otherwise, migrations own it.
    if settings.DB_MANAGE == "create_all":
        # register every mapped table on Base.metadata
        import learning.modules.classes.models  # noqa: F401
        import learning.modules.materials.models  # noqa: F401
        import learning.modules.users.models  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
