# dms_data_client/db/files/file_permissions.py
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column

from dms_data_client.db.base import Base

CAPABILITY_FIELDS = ("can_view", "can_edit", "can_delete", "can_share", "can_download")


class FilePermissionORM(Base):
    __tablename__ = "file_permissions"

    permission_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    file_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("files.file_id", ondelete="CASCADE", onupdate="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE", onupdate="CASCADE"), nullable=False, index=True
    )
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("workspaces.workspace_id", ondelete="CASCADE", onupdate="CASCADE"), nullable=False
    )

    can_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    can_delete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    can_share: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    can_download: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    # Выдавший права менеджер: пока он числится грантором, удалить его нельзя
    granted_by_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="RESTRICT", onupdate="CASCADE"), nullable=False
    )
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("file_id", "user_id", name="uq_file_permissions_file_user"),)
