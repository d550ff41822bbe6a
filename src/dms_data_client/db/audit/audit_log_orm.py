import enum
from uuid import UUID, uuid4
from typing import Optional

from sqlalchemy import String, Text, ForeignKey, JSON, Uuid
from sqlalchemy import Enum as PgEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from dms_data_client.db.base import Base, CreatedAt


class ActionType(str, enum.Enum):
    FILE_UPLOAD = "FILE_UPLOAD"
    FILE_VIEW = "FILE_VIEW"
    FILE_EDIT = "FILE_EDIT"
    FILE_DELETE = "FILE_DELETE"
    PERMISSION_GRANT = "PERMISSION_GRANT"
    PERMISSION_REVOKE = "PERMISSION_REVOKE"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    WORKSPACE_CREATE = "WORKSPACE_CREATE"
    WORKSPACE_UPDATE = "WORKSPACE_UPDATE"
    WORKSPACE_DELETE = "WORKSPACE_DELETE"


class TargetEntityType(str, enum.Enum):
    FILE = "FILE"
    USER = "USER"
    WORKSPACE = "WORKSPACE"
    PERMISSION = "PERMISSION"


class AuditLogORM(Base):
    __tablename__ = "audit_logs"

    log_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="SET NULL", onupdate="CASCADE"), nullable=True
    )
    action_type: Mapped[ActionType] = mapped_column(PgEnum(ActionType, name="action_type"), nullable=False)
    target_entity_type: Mapped[Optional[TargetEntityType]] = mapped_column(
        PgEnum(TargetEntityType, name="target_entity_type"), nullable=True
    )
    target_entity_id: Mapped[Optional[str]] = mapped_column(String(255))
    workspace_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("workspaces.workspace_id", ondelete="SET NULL", onupdate="CASCADE"), nullable=True,
        index=True,
    )
    details: Mapped[Optional[dict]] = mapped_column(JSON().with_variant(JSONB(), "postgresql"))
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))
    user_agent: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[CreatedAt]
