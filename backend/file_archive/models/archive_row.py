"""ArchiveRow model - archive metadata (actual bytes live in the blob store)."""
from datetime import datetime
from sqlalchemy import String, BigInteger, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from file_archive.models.base import Base


class ArchiveRow(Base):
    __tablename__ = "archives"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    blob_key: Mapped[str] = mapped_column(String(1000), nullable=False, unique=True)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    uploader: Mapped[str] = mapped_column(String(200), nullable=False)
