import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from dms_data_client.db import AuditLogORM, ActionType, TargetEntityType
from dms_data_client.db.base import get_session
from dms_data_client.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class AuditRepository:
    """Журнал действий: только добавление и чтение."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(
        self,
        action_type: ActionType,
        user_id: Optional[UUID] = None,
        target_entity_type: Optional[TargetEntityType] = None,
        target_entity_id: Optional[Any] = None,
        workspace_id: Optional[UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLogORM:
        entry = AuditLogORM(
            action_type=action_type,
            user_id=user_id,
            target_entity_type=target_entity_type,
            target_entity_id=str(target_entity_id) if target_entity_id is not None else None,
            workspace_id=workspace_id,
            details=details,
        )
        async for session in get_session(self._session_factory):
            try:
                session.add(entry)
                await session.commit()
                await session.refresh(entry)
                return entry
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to write audit log: {e}") from e

    async def list_entries(self, workspace_id: Optional[UUID] = None, limit: int = 100) -> List[AuditLogORM]:
        stmt = select(AuditLogORM).order_by(AuditLogORM.created_at.desc()).limit(limit)
        if workspace_id:
            stmt = stmt.where(AuditLogORM.workspace_id == workspace_id)
        async for session in get_session(self._session_factory):
            result = await session.execute(stmt)
            return list(result.scalars().all())
