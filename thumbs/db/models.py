from datetime import datetime

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PhotoRecord(Base):
    __tablename__ = "photo_record"

    filename: Mapped[str] = mapped_column(String(1024), primary_key=True)
    thumbnails: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"PhotoRecord(filename={self.filename!r}, thumbnails={self.thumbnails!r}, "
            f"updated_time={self.updated_time!r})"
        )
