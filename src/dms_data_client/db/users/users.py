from __future__ import annotations
from uuid import UUID, uuid4
from typing import Optional

from sqlalchemy import String, Boolean, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, CreatedAt, UpdatedAt


class UserORM(Base):
    __tablename__ = "users"

    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Только менеджеры выдают права, создают воркспейсы и управляют участниками.
    # Смена флага каскадно меняет все строки file_permissions пользователя.
    is_manager: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]
