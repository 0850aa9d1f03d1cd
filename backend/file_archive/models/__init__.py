"""Import all models so SQLAlchemy metadata knows about them."""
from file_archive.models.base import Base
from file_archive.models.archive_row import ArchiveRow

__all__ = ["Base", "ArchiveRow"]
