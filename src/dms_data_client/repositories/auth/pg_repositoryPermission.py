# dms_data_client/repositories/auth/pg_repositoryPermission.py

import logging
from uuid import UUID
from typing import List, Optional
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from dms_data_client.db import FilePermissionORM, CAPABILITY_FIELDS
from dms_data_client.db.base import get_session
from dms_data_client.exceptions import DatabaseError, ConflictError
from dms_data_client.models.permission import Capabilities, PermissionGrant

logger = logging.getLogger(__name__)

class PermissionRepository:
    """
    Репозиторий построчных прав на файлы: одна строка на пару (file, user),
    пять независимых флагов.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_all(self) -> List[FilePermissionORM]:
        async for session in get_session(self._session_factory):
            result = await session.execute(select(FilePermissionORM).order_by(FilePermissionORM.granted_at))
            return list(result.scalars().all())

    async def get(self, permission_id: UUID) -> Optional[FilePermissionORM]:
        async for session in get_session(self._session_factory):
            return await session.get(FilePermissionORM, permission_id)

    async def find(self, file_id: UUID, user_id: UUID) -> Optional[FilePermissionORM]:
        """Строка прав пользователя на конкретный файл (не более одной)."""
        stmt = select(FilePermissionORM).where(
            FilePermissionORM.file_id == file_id,
            FilePermissionORM.user_id == user_id,
        )
        async for session in get_session(self._session_factory):
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def create(self, grant: PermissionGrant) -> FilePermissionORM:
        permission = FilePermissionORM(
            file_id=grant.file_id,
            user_id=grant.user_id,
            workspace_id=grant.workspace_id,
            granted_by_id=grant.granted_by_id,
            **grant.model_dump(include=set(CAPABILITY_FIELDS)),
        )
        async for session in get_session(self._session_factory):
            try:
                session.add(permission)
                await session.commit()
                await session.refresh(permission)
                logger.info(f"Granted permission {permission.permission_id} on file {grant.file_id} to user {grant.user_id}")
                return permission
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(
                    f"Permission for file {grant.file_id} and user {grant.user_id} already exists."
                ) from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to grant permission for file {grant.file_id} to user {grant.user_id}: {e}")
                raise DatabaseError(f"Failed to grant permission: {e}") from e

    async def replace_capabilities(
        self,
        permission_id: UUID,
        capabilities: Capabilities,
        granted_by_id: UUID,
    ) -> Optional[FilePermissionORM]:
        """Перезаписывает все пять флагов и грантора. None, если строки нет."""
        stmt = (
            update(FilePermissionORM)
            .where(FilePermissionORM.permission_id == permission_id)
            .values(granted_by_id=granted_by_id, **capabilities.model_dump(include=set(CAPABILITY_FIELDS)))
            .returning(FilePermissionORM)
            .execution_options(synchronize_session=False)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                updated = result.scalar_one_or_none()
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"Failed to update permission {permission_id}: {e.orig}") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to update permission {permission_id}: {e}")
                raise DatabaseError(f"Failed to update permission: {e}") from e
            if updated:
                logger.info(f"Updated permission {permission_id}")
            return updated

    async def delete(self, permission_id: UUID) -> Optional[FilePermissionORM]:
        stmt = (
            delete(FilePermissionORM)
            .where(FilePermissionORM.permission_id == permission_id)
            .returning(FilePermissionORM)
            .execution_options(synchronize_session=False)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                deleted = result.scalar_one_or_none()
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to revoke permission {permission_id}: {e}")
                raise DatabaseError(f"Failed to revoke permission: {e}") from e
            if deleted:
                logger.info(f"Revoked permission {permission_id}")
            return deleted

    @staticmethod
    async def apply_manager_cascade(session: AsyncSession, user_id: UUID, is_manager: bool) -> int:
        """
        Выставляет все пять флагов в is_manager на КАЖДОЙ строке пользователя,
        во всех воркспейсах. Один UPDATE, без чтения перед записью.
        """
        stmt = (
            update(FilePermissionORM)
            .where(FilePermissionORM.user_id == user_id)
            .values(**{name: is_manager for name in CAPABILITY_FIELDS})
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount

    async def cascade_manager_status(self, user_id: UUID, is_manager: bool) -> int:
        async for session in get_session(self._session_factory):
            try:
                count = await self.apply_manager_cascade(session, user_id, is_manager)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to cascade manager status for user {user_id}: {e}")
                raise DatabaseError(f"Failed to cascade manager status: {e}") from e
            logger.info(f"Set all capabilities to {is_manager} on {count} permission(s) of user {user_id}")
            return count
