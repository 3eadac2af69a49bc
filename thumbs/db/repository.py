from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from thumbs.db.models import PhotoRecord
from thumbs.service.errors import PersistenceError

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PhotoRepository:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def save(self, filename: str, thumbnails: list[str]) -> None:
        """Writes the record for ``filename``, replacing an existing one.

        A single ``INSERT .. ON CONFLICT DO UPDATE`` keyed on the filename, so
        concurrent replays of the same photo converge on one row and keep its
        original ``created_time``.
        """
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                dialect = session.get_bind().dialect.name
                insert = _UPSERT_DIALECTS.get(dialect)
                if insert is None:
                    await session.merge(
                        PhotoRecord(
                            filename=filename,
                            thumbnails=list(thumbnails),
                            created_time=now,
                            updated_time=now,
                        )
                    )
                else:
                    stmt = insert(PhotoRecord).values(
                        filename=filename,
                        thumbnails=list(thumbnails),
                        created_time=now,
                        updated_time=now,
                    )
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[PhotoRecord.filename],
                        set_={
                            "thumbnails": stmt.excluded.thumbnails,
                            "updated_time": stmt.excluded.updated_time,
                        },
                    )
                    await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"saving photo record {filename} failed: {e}") from e

    async def get(self, filename: str) -> Optional[PhotoRecord]:
        async with self.session_factory() as session:
            return await session.get(PhotoRecord, filename)
