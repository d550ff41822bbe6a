from __future__ import annotations
from uuid import UUID
from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel

from dms_data_client.db.audit.audit_log_orm import ActionType, TargetEntityType


class AuditLogInDB(BaseModel):
    log_id: UUID
    user_id: Optional[UUID] = None
    action_type: ActionType
    target_entity_type: Optional[TargetEntityType] = None
    target_entity_id: Optional[str] = None
    workspace_id: Optional[UUID] = None
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
