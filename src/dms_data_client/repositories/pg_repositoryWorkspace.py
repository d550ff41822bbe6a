# Файл: dms_data_client/repositories/pg_repositoryWorkspace.py

import logging
from uuid import UUID
from typing import Optional, List
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from dms_data_client.db import WorkspaceORM, WorkspaceMemberORM, MemberRole
from dms_data_client.db.base import get_session
from dms_data_client.exceptions import DatabaseError, ConflictError

logger = logging.getLogger(__name__)

class WorkspaceRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_workspace(self, name: str, description: Optional[str], manager_id: UUID) -> WorkspaceORM:
        workspace = WorkspaceORM(name=name, description=description, workspace_manager_id=manager_id)
        async for session in get_session(self._session_factory):
            try:
                session.add(workspace)
                await session.commit()
                await session.refresh(workspace)
                logger.info(f"Created workspace '{workspace.name}' with id {workspace.workspace_id}")
                return workspace
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to create workspace: {e}") from e

    async def get_workspace(self, workspace_id: UUID) -> Optional[WorkspaceORM]:
        async for session in get_session(self._session_factory):
            return await session.get(WorkspaceORM, workspace_id)

    async def list_workspaces(self) -> List[WorkspaceORM]:
        async for session in get_session(self._session_factory):
            result = await session.execute(select(WorkspaceORM).order_by(WorkspaceORM.created_at, WorkspaceORM.name))
            return list(result.scalars().all())

    async def delete_workspace(self, workspace_id: UUID) -> Optional[WorkspaceORM]:
        """Файлы, права на них и членства удаляются каскадом на стороне БД."""
        stmt = (
            delete(WorkspaceORM)
            .where(WorkspaceORM.workspace_id == workspace_id)
            .returning(WorkspaceORM)
            .execution_options(synchronize_session=False)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                deleted = result.scalar_one_or_none()
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"Workspace {workspace_id} is still referenced and cannot be deleted.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to delete workspace {workspace_id}: {e}") from e
            if deleted:
                logger.info(f"Deleted workspace {workspace_id}")
            return deleted

    async def add_member(self, workspace_id: UUID, user_id: UUID, role: MemberRole = MemberRole.member) -> WorkspaceMemberORM:
        """Добавляет пользователя в воркспейс. Повторное членство -> ConflictError."""
        member = WorkspaceMemberORM(workspace_id=workspace_id, user_id=user_id, role=role)
        async for session in get_session(self._session_factory):
            try:
                session.add(member)
                await session.commit()
                await session.refresh(member)
                logger.info(f"Added user {user_id} to workspace {workspace_id} as '{role.value}'")
                return member
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"User {user_id} is already a member of workspace {workspace_id}.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to add user to workspace: {e}") from e

    async def remove_member(self, workspace_id: UUID, user_id: UUID) -> Optional[WorkspaceMemberORM]:
        stmt = (
            delete(WorkspaceMemberORM)
            .where(
                WorkspaceMemberORM.workspace_id == workspace_id,
                WorkspaceMemberORM.user_id == user_id,
            )
            .returning(WorkspaceMemberORM)
            .execution_options(synchronize_session=False)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                removed = result.scalar_one_or_none()
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to remove user from workspace: {e}") from e
            if removed:
                logger.info(f"Removed user {user_id} from workspace {workspace_id}")
            else:
                logger.warning(f"User {user_id} was not in workspace {workspace_id}")
            return removed

    async def list_members(self, workspace_id: UUID) -> List[WorkspaceMemberORM]:
        stmt = (
            select(WorkspaceMemberORM)
            .where(WorkspaceMemberORM.workspace_id == workspace_id)
            .order_by(WorkspaceMemberORM.joined_at)
        )
        async for session in get_session(self._session_factory):
            result = await session.execute(stmt)
            return list(result.scalars().all())
