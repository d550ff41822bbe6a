# dms_data_client/db/__init__.py

from .base import Base

from .users.users import UserORM
from .workspaces.workspaces import WorkspaceORM
from .workspaces.workspace_members import WorkspaceMemberORM, MemberRole

# таблицы, которые от них зависят
from .files.file_orm import FileORM
from .files.file_permissions import FilePermissionORM, CAPABILITY_FIELDS
from .audit.audit_log_orm import AuditLogORM, ActionType, TargetEntityType


__all__ = [
    "Base",
    "UserORM",
    "WorkspaceORM",
    "WorkspaceMemberORM",
    "MemberRole",
    "FileORM",
    "FilePermissionORM",
    "CAPABILITY_FIELDS",
    "AuditLogORM",
    "ActionType",
    "TargetEntityType",
]
