from .user import UserCreate, UserInDB
from .workspace import WorkspaceCreate, WorkspaceInDB, MemberChange, WorkspaceMemberInDB
from .file import FileInDB, StoredObject
from .permission import Capabilities, PermissionGrant, PermissionUpdate, PermissionInDB
from .audit import AuditLogInDB

__all__ = [
    "UserCreate", "UserInDB",
    "WorkspaceCreate", "WorkspaceInDB", "MemberChange", "WorkspaceMemberInDB",
    "FileInDB", "StoredObject",
    "Capabilities", "PermissionGrant", "PermissionUpdate", "PermissionInDB",
    "AuditLogInDB",
]
