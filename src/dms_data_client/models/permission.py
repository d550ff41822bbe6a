# Файл: dms_data_client/models/permission.py

from __future__ import annotations
from uuid import UUID
from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from dms_data_client.db.files.file_permissions import CAPABILITY_FIELDS


class Capabilities(BaseModel):
    """Пять независимых флагов. Все, что не передано явно, считается False."""
    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_share: bool = False
    can_download: bool = False

    @classmethod
    def all(cls, value: bool) -> "Capabilities":
        return cls(**{name: value for name in CAPABILITY_FIELDS})


class PermissionGrant(Capabilities):
    file_id: UUID
    user_id: UUID
    workspace_id: UUID
    granted_by_id: UUID


class PermissionUpdate(Capabilities):
    # Без permission_id обновлять нечего: такой запрос отвечает NotFound
    permission_id: Optional[UUID] = None
    granted_by_id: UUID


class PermissionInDB(Capabilities):
    permission_id: UUID
    file_id: UUID
    user_id: UUID
    workspace_id: UUID
    granted_by_id: UUID
    granted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
