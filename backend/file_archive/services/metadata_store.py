"""Metadata store abstraction. SQL via async SQLAlchemy, or DynamoDB via boto3.

Both backends are plain key-value stores keyed by archive id: put, get,
full scan, delete. No querying happens here; the catalog filters in memory.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import delete as sql_delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from file_archive.database import build_engine, build_session_factory
from file_archive.errors import MetadataDeleteError, MetadataReadError, MetadataWriteError
from file_archive.models import ArchiveRow, Base
from file_archive.schemas.archive import ArchiveRecord


class MetadataStore(ABC):
    """Abstract base class for metadata store backends."""

    async def startup(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    @abstractmethod
    async def put(self, record: ArchiveRecord) -> None:
        pass

    @abstractmethod
    async def get(self, archive_id: str) -> Optional[ArchiveRecord]:
        pass

    @abstractmethod
    async def scan(self) -> list[ArchiveRecord]:
        """Return every record, in no particular order."""

    @abstractmethod
    async def delete(self, archive_id: str) -> None:
        """Delete a record. Deleting a missing id is not an error."""


class SqlMetadataStore(MetadataStore):
    """Records as rows in the `archives` table."""

    def __init__(self, database_url: str = "", engine: Optional[AsyncEngine] = None):
        self.engine = engine or build_engine(database_url)
        self.async_session = build_session_factory(self.engine)

    async def startup(self) -> None:
        """Create tables on startup."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def shutdown(self) -> None:
        await self.engine.dispose()

    async def put(self, record: ArchiveRecord) -> None:
        try:
            async with self.async_session() as db:
                db.add(ArchiveRow(**record.model_dump()))
                await db.commit()
        except SQLAlchemyError as e:
            raise MetadataWriteError(f"Failed to save archive {record.id}: {e}") from e

    async def get(self, archive_id: str) -> Optional[ArchiveRecord]:
        try:
            async with self.async_session() as db:
                row = await db.get(ArchiveRow, archive_id)
        except SQLAlchemyError as e:
            raise MetadataReadError(f"Failed to read archive {archive_id}: {e}") from e
        return ArchiveRecord.model_validate(row) if row else None

    async def scan(self) -> list[ArchiveRecord]:
        try:
            async with self.async_session() as db:
                result = await db.execute(select(ArchiveRow))
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise MetadataReadError(f"Failed to scan archives: {e}") from e
        return [ArchiveRecord.model_validate(row) for row in rows]

    async def delete(self, archive_id: str) -> None:
        try:
            async with self.async_session() as db:
                await db.execute(sql_delete(ArchiveRow).where(ArchiveRow.id == archive_id))
                await db.commit()
        except SQLAlchemyError as e:
            raise MetadataDeleteError(f"Failed to delete archive {archive_id}: {e}") from e


class DynamoMetadataStore(MetadataStore):
    """Records as items in a DynamoDB table whose partition key is `id`.

    Items are stored with camelCase attribute names, the same shape the API
    returns. boto3 is sync, so every call runs in a worker thread.
    """

    def __init__(
        self,
        table_name: str,
        region: str = "",
        access_key_id: str = "",
        secret_access_key: str = "",
        table=None,
    ):
        self.table_name = table_name
        if table is None:
            dynamodb = boto3.resource(
                "dynamodb",
                region_name=region or None,
                aws_access_key_id=access_key_id or None,
                aws_secret_access_key=secret_access_key or None,
            )
            table = dynamodb.Table(table_name)
        self._table = table

    @staticmethod
    def _to_record(item: dict) -> ArchiveRecord:
        data = dict(item)
        # Items written before the blobKey rename carry s3Key instead
        if "blobKey" not in data and "s3Key" in data:
            data["blobKey"] = data["s3Key"]
        data["size"] = int(data.get("size", 0))
        return ArchiveRecord.model_validate(data)

    async def put(self, record: ArchiveRecord) -> None:
        item = record.model_dump(mode="json", by_alias=True)
        try:
            await asyncio.to_thread(self._table.put_item, Item=item)
        except (BotoCoreError, ClientError) as e:
            raise MetadataWriteError(f"Failed to save archive {record.id} to {self.table_name}: {e}") from e

    async def get(self, archive_id: str) -> Optional[ArchiveRecord]:
        try:
            response = await asyncio.to_thread(self._table.get_item, Key={"id": archive_id})
        except (BotoCoreError, ClientError) as e:
            raise MetadataReadError(f"Failed to read archive {archive_id}: {e}") from e
        item = response.get("Item")
        return self._to_record(item) if item else None

    async def scan(self) -> list[ArchiveRecord]:
        items: list[dict] = []
        kwargs: dict = {}
        try:
            while True:
                response = await asyncio.to_thread(self._table.scan, **kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise MetadataReadError(f"Failed to scan {self.table_name}: {e}") from e
        return [self._to_record(item) for item in items]

    async def delete(self, archive_id: str) -> None:
        try:
            await asyncio.to_thread(self._table.delete_item, Key={"id": archive_id})
        except (BotoCoreError, ClientError) as e:
            raise MetadataDeleteError(f"Failed to delete archive {archive_id}: {e}") from e
