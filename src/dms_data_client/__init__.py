# Файл: src/dms_data_client/__init__.py

from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from .client import DataClient
from .config import get_settings, DataClientConfig, PostgresConfig, MinioConfig, BadwordsConfig
from .repositories.pg_repositoryFile import FileRepository
from .repositories.pg_repositoryWorkspace import WorkspaceRepository
from .repositories.pg_repositoryAudit import AuditRepository
from .repositories.minio_repository import MinioRepository
from .repositories.auth.pg_repositoryUser import UserRepository
from .repositories.auth.pg_repositoryPermission import PermissionRepository
from .utils.badwords import BadWordFilter, load_badwords

from .exceptions import *


def create_engine_for(config: PostgresConfig):
    """Async-движок по настройкам; параметры пула только для PostgreSQL."""
    if not config.is_postgres():
        return create_async_engine(config.get_pg_dsn())
    return create_async_engine(
            config.get_pg_dsn(),
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=config.pool_pre_ping,
            connect_args={
                "server_settings": {
                    "application_name": config.application_name
                }
            }
        )


def create_data_client(config: Optional[DataClientConfig] = None) -> DataClient:
    """
    Фабричная функция для создания и конфигурации DataClient.

    :param config: Единый объект с настройками.
                   Если не предоставлен, используются переменные окружения.
    :return: Сконфигурированный экземпляр DataClient.
    """
    if config is None:
        config = get_settings().to_client_config()

    engine = create_engine_for(config.postgres)
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    return DataClient(
        session_factory=session_factory,
        user_repo=UserRepository(session_factory),
        workspace_repo=WorkspaceRepository(session_factory),
        file_repo=FileRepository(session_factory),
        permission_repo=PermissionRepository(session_factory),
        audit_repo=AuditRepository(session_factory),
        storage=MinioRepository(config.minio),
        badwords=load_badwords(config.badwords.path),
        badwords_language=config.badwords.language,
        engine=engine,
    )

__all__ = [
    "DataClient", "create_data_client", "create_engine_for",
    "DataClientConfig", "PostgresConfig", "MinioConfig", "BadwordsConfig",
    "BadWordFilter", "load_badwords",
    "DataClientError", "DatabaseError", "StorageError", "MinioError",
    "NotFoundError", "NotAuthorizedError", "ForbiddenError", "ConflictError",
]
