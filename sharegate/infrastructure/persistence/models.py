"""UploadEntry ORM model. Metadata row of one uploaded blob."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sharegate.domain.entities.entry import EntryRecord
from sharegate.infrastructure.persistence.database import Base
from sharegate.shared.utils.datetime import ensure_utc


class UploadEntry(Base):
    """Upload entry. Table: upload_entry. Blob bytes are stored outside the database."""

    __tablename__ = "upload_entry"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    author: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    filename: Mapped[str] = mapped_column(String, nullable=False, default="")
    content_type: Mapped[str] = mapped_column(String, nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    etag: Mapped[str | None] = mapped_column(String, nullable=True)
    last_modified: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_upload_entry_pending", "published", "upload_date"),
    )

    @classmethod
    def from_record(cls, record: EntryRecord) -> "UploadEntry":
        return cls(
            id=record.id,
            author=record.author,
            filename=record.filename,
            content_type=record.content_type,
            size=record.size,
            etag=record.etag,
            last_modified=record.last_modified,
            upload_date=record.upload_date,
            published=record.published,
        )

    def to_record(self) -> EntryRecord:
        last_modified = ensure_utc(self.last_modified)
        upload_date = ensure_utc(self.upload_date)
        assert last_modified is not None and upload_date is not None
        return EntryRecord(
            id=self.id,
            author=self.author,
            filename=self.filename,
            content_type=self.content_type,
            size=self.size,
            etag=self.etag,
            last_modified=last_modified,
            upload_date=upload_date,
            published=self.published,
        )
