# Файл: dms_data_client/models/workspace.py

from __future__ import annotations
from uuid import UUID
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from dms_data_client.db.workspaces.workspace_members import MemberRole


class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class WorkspaceInDB(WorkspaceCreate):
    workspace_id: UUID
    workspace_manager_id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# Тело запроса на добавление/удаление участника
class MemberChange(BaseModel):
    workspace_id: UUID
    user_id: UUID
    granted_by_id: UUID
    role: MemberRole = MemberRole.member


class WorkspaceMemberInDB(BaseModel):
    workspace_member_id: UUID
    workspace_id: UUID
    user_id: UUID
    role: MemberRole
    joined_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
