from __future__ import annotations
import enum
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, UniqueConstraint, DateTime, Uuid, func
from sqlalchemy import Enum as PgEnum
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base


class MemberRole(str, enum.Enum):
    member = "member"
    editor = "editor"
    viewer = "viewer"


class WorkspaceMemberORM(Base):
    __tablename__ = "workspace_members"

    workspace_member_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE", onupdate="CASCADE"), nullable=False
    )
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("workspaces.workspace_id", ondelete="CASCADE", onupdate="CASCADE"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    role: Mapped[MemberRole] = mapped_column(
        PgEnum(MemberRole, name="user_role"),
        default=MemberRole.member,
        server_default=MemberRole.member.value,
        nullable=False,
    )

    __table_args__ = (UniqueConstraint("user_id", "workspace_id", name="uq_workspace_members_user_workspace"),)
