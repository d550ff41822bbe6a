import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from dms_data_client.exceptions import DatabaseError, ConflictError
from dms_data_client.db import FileORM
from dms_data_client.db.base import get_session

logger = logging.getLogger(__name__)


class FileRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, file_id: UUID) -> Optional[FileORM]:
        async for session in get_session(self._session_factory):
            return await session.get(FileORM, file_id)

    async def find_by_name(self, workspace_id: UUID, file_name: str) -> Optional[FileORM]:
        """Файл с таким именем в воркспейсе (не более одного)."""
        stmt = select(FileORM).where(FileORM.workspace_id == workspace_id, FileORM.file_name == file_name)
        async for session in get_session(self._session_factory):
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def list_all(self, limit: int | None = None, offset: int = 0) -> List[FileORM]:
        stmt = select(FileORM).order_by(FileORM.created_at, FileORM.file_name).offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        async for session in get_session(self._session_factory):
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def create(self, **values) -> FileORM:
        """Новая строка всегда стартует с version = 1."""
        orm = FileORM(**values, version=1)
        async for session in get_session(self._session_factory):
            try:
                session.add(orm)
                await session.commit()
                await session.refresh(orm)
                return orm
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(
                    f"File '{values.get('file_name')}' already exists in workspace {values.get('workspace_id')}."
                ) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to save file metadata: {e}") from e

    async def update_with_new_version(self, file_id: UUID, **values) -> Optional[FileORM]:
        """
        Обновляет строку на месте и сдвигает версию на единицу.
        Инкремент делает сама БД одним UPDATE (coalesce(version, 0) + 1), поэтому
        две параллельные перезаливки дают две разные версии.
        """
        stmt = (
            update(FileORM)
            .where(FileORM.file_id == file_id)
            .values(**values, version=func.coalesce(FileORM.version, 0) + 1)
            .returning(FileORM)
            .execution_options(synchronize_session=False)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                updated = result.scalar_one_or_none()
                await session.commit()
                return updated
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(
                    f"File '{values.get('file_name')}' already exists in workspace {values.get('workspace_id')}."
                ) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to update file {file_id}: {e}") from e

    async def delete(self, file_id: UUID) -> Optional[FileORM]:
        """Права на файл уходят каскадом."""
        stmt = (
            delete(FileORM)
            .where(FileORM.file_id == file_id)
            .returning(FileORM)
            .execution_options(synchronize_session=False)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                deleted = result.scalar_one_or_none()
                await session.commit()
                return deleted
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to delete file {file_id}: {e}") from e
