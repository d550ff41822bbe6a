from .minio_repository import MinioRepository, StorageBackend
from .pg_repositoryFile import FileRepository
from .pg_repositoryWorkspace import WorkspaceRepository
from .pg_repositoryAudit import AuditRepository
from .auth.pg_repositoryUser import UserRepository
from .auth.pg_repositoryPermission import PermissionRepository

__all__ = [
    "MinioRepository",
    "StorageBackend",
    "FileRepository",
    "WorkspaceRepository",
    "AuditRepository",
    "UserRepository",
    "PermissionRepository",
]
