from __future__ import annotations
from uuid import UUID, uuid4
from typing import Optional

from sqlalchemy import String, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, CreatedAt, UpdatedAt


class WorkspaceORM(Base):
    __tablename__ = "workspaces"

    workspace_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    # Имя не обязано быть уникальным
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    workspace_manager_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.user_id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]
