from uuid import UUID, uuid4
from typing import Optional

from sqlalchemy import String, Text, BigInteger, Integer, ForeignKey, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from dms_data_client.db.base import Base, CreatedAt, UpdatedAt


class FileORM(Base):
    __tablename__ = "files"

    file_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("workspaces.workspace_id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    uploader_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.user_id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
    )

    file_name: Mapped[str] = mapped_column(String(1024), nullable=False)
    # Локатор из хранилища (URL объекта), для ядра это непрозрачная строка
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_type: Mapped[Optional[str]] = mapped_column(String(100))
    file_size_bytes: Mapped[Optional[int]] = mapped_column(BigInteger)
    # 1 при первой загрузке, +1 на каждую повторную загрузку того же file_id
    version: Mapped[Optional[int]] = mapped_column(Integer, default=1, server_default=text("1"))
    description: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    __table_args__ = (
        UniqueConstraint("workspace_id", "file_name", name="uq_files_workspace_file_name"),
    )
