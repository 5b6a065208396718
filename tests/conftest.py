import pytest

from learning.core.config import Settings
from learning.core.db import build_engine, build_sessionmaker, init_models

from fakes import InMemoryStorage, FakeRecordStore, RecordingBus


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        ENV="dev",
        POSTGRES_DSN=f"sqlite+aiosqlite:///{tmp_path / 'learning.db'}",
        DB_MANAGE="create_all",
        JWT_SECRET="test-secret",
        LOCAL_STORAGE_ROOT=str(tmp_path / "media"),
        REDIS_URL=None,
        EVENT_BUS_PROVIDER="noop",
    )


@pytest.fixture
async def session(settings):
    engine = build_engine(settings)
    await init_models(engine, settings)
    async with build_sessionmaker(engine)() as s:
        yield s
    await engine.dispose()
