import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from thumbs.db import database
from thumbs.db.models import PhotoRecord
from thumbs.db.repository import PhotoRepository
from thumbs.service.errors import PersistenceError


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = database.create_engine(f"sqlite+aiosqlite:///{tmp_path / 'photos.db'}")
    await database.connect(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def repository(engine):
    return PhotoRepository(database.create_session_factory(engine))


async def count_records(engine) -> int:
    async with engine.connect() as conn:
        return (await conn.execute(select(func.count()).select_from(PhotoRecord))).scalar_one()


@pytest.mark.asyncio
async def test_save_creates_record(repository, engine):
    await repository.save("photo123.jpg", ["photo123_100.jpg", "photo123_400.jpg"])

    record = await repository.get("photo123.jpg")
    assert record.thumbnails == ["photo123_100.jpg", "photo123_400.jpg"]
    assert await count_records(engine) == 1


@pytest.mark.asyncio
async def test_replay_overwrites_instead_of_duplicating(repository, engine):
    await repository.save("photo123.jpg", ["photo123_100.jpg"])
    await repository.save("photo123.jpg", ["photo123_100.jpg", "photo123_400.jpg"])

    record = await repository.get("photo123.jpg")
    assert record.thumbnails == ["photo123_100.jpg", "photo123_400.jpg"]
    assert record.updated_time >= record.created_time
    assert await count_records(engine) == 1


@pytest.mark.asyncio
async def test_get_missing_returns_none(repository):
    assert await repository.get("nope.jpg") is None


@pytest.mark.asyncio
async def test_database_errors_become_persistence_errors():
    broken = database.create_engine("sqlite+aiosqlite:////nonexistent-dir/x/photos.db")
    repository = PhotoRepository(database.create_session_factory(broken))

    with pytest.raises(PersistenceError):
        await repository.save("photo123.jpg", [])

    await broken.dispose()


@pytest.mark.asyncio
async def test_replay_keeps_original_created_time(repository):
    await repository.save("photo123.jpg", ["photo123_100.jpg"])
    created = (await repository.get("photo123.jpg")).created_time

    await asyncio.sleep(0.01)
    await repository.save("photo123.jpg", ["photo123_100.jpg", "photo123_400.jpg"])

    record = await repository.get("photo123.jpg")
    assert record.created_time == created
    assert record.updated_time > created


@pytest.mark.asyncio
async def test_concurrent_saves_of_same_photo_leave_one_row(repository, engine):
    await asyncio.gather(
        repository.save("photo123.jpg", ["photo123_100.jpg"]),
        repository.save("photo123.jpg", ["photo123_100.jpg", "photo123_400.jpg"]),
    )

    assert await count_records(engine) == 1
    record = await repository.get("photo123.jpg")
    assert record.thumbnails in (
        ["photo123_100.jpg"],
        ["photo123_100.jpg", "photo123_400.jpg"],
    )
