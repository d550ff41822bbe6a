import logging
from uuid import UUID
from typing import Optional, List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from dms_data_client.repositories import (UserRepository,
                                          WorkspaceRepository,
                                          FileRepository,
                                          PermissionRepository,
                                          AuditRepository,
                                          StorageBackend,
                                          )
from dms_data_client.db import UserORM, MemberRole, ActionType, TargetEntityType
from dms_data_client.db.uow import AsyncUnitOfWork
from dms_data_client.models import (UserCreate, UserInDB,
                                    WorkspaceInDB, WorkspaceMemberInDB,
                                    FileInDB, StoredObject,
                                    Capabilities, PermissionGrant, PermissionInDB,
                                    AuditLogInDB)
from dms_data_client.exceptions import (DataClientError, DatabaseError, StorageError, ConflictError,
                                        NotFoundError, NotAuthorizedError, ForbiddenError)
from dms_data_client.utils.badwords import BadWordFilter, is_text_content_type, load_badwords

logger = logging.getLogger(__name__)


class DataClient:
    """
    Единая точка доступа для бизнес-логики: права на файлы, жизненный цикл файлов,
    воркспейсы и участники.

    Личность вызывающего (acting_user_id / granted_by_id) приходит параметром и
    не проверяется: проверка учетных данных лежит на внешнем слое.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        user_repo: UserRepository | None = None,
        workspace_repo: WorkspaceRepository | None = None,
        file_repo: FileRepository | None = None,
        permission_repo: PermissionRepository | None = None,
        audit_repo: AuditRepository | None = None,
        storage: StorageBackend | None = None,
        badwords: BadWordFilter | None = None,
        badwords_language: str = "en",
        engine: AsyncEngine | None = None,
    ):
        self._session_factory = session_factory
        self._engine = engine
        self.user_repo = user_repo
        self.workspace_repo = workspace_repo
        self.file_repo = file_repo
        self.permission_repo = permission_repo
        self.audit_repo = audit_repo
        self.storage = storage
        self.badwords = badwords if badwords is not None else load_badwords()
        self.badwords_language = badwords_language

    async def aclose(self):
        if self._engine is not None:
            await self._engine.dispose()

    async def check_connections(self) -> dict[str, str]:
        """
        Проверяет доступность внешних сервисов (PostgreSQL, MinIO).
        Возвращает словарь со статусами.
        """
        statuses = {}

        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
            statuses["postgres"] = "ok"
        except SQLAlchemyError as e:
            statuses["postgres"] = f"failed: {e}"

        try:
            await self.storage.check_connection()
            statuses["minio"] = "ok"
        except StorageError as e:
            statuses["minio"] = f"failed: {e}"

        return statuses

    # ――― authorization helpers ――― #

    async def _require_user(self, user_id: UUID) -> UserORM:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _require_manager(self, user_id: UUID) -> UserORM:
        """Единственное правило авторизации: актор существует и is_manager = true."""
        user = await self._require_user(user_id)
        if not user.is_manager:
            logger.warning(f"User {user_id} attempted a manager-only operation")
            raise NotAuthorizedError("User is not a manager")
        return user

    async def _audit(self, action_type: ActionType, **fields):
        # Журнал не должен ронять основную операцию
        if not self.audit_repo:
            return
        try:
            await self.audit_repo.record(action_type, **fields)
        except DataClientError as e:
            logger.error(f"Audit write for {action_type.value} failed: {e}")

######################## PERMISSION

    async def list_permissions(self) -> List[PermissionInDB]:
        """Все строки прав, без фильтра по вызывающему (как и было в API)."""
        orms = await self.permission_repo.list_all()
        return [PermissionInDB.model_validate(o) for o in orms]

    async def grant_permission(
        self,
        file_id: UUID,
        user_id: UUID,
        workspace_id: UUID,
        capabilities: Capabilities | None,
        granted_by_id: UUID,
    ) -> PermissionInDB:
        """
        Создает строку прав. Проверка менеджера идет первой, до любых других проверок.
        Не переданные флаги считаются False.
        """
        await self._require_manager(granted_by_id)
        if await self.workspace_repo.get_workspace(workspace_id) is None:
            raise NotFoundError("Workspace not found")
        file = await self.file_repo.get(file_id)
        # Строка прав живет в воркспейсе своего файла, иначе каскад удаления их разведет
        if file is None or file.workspace_id != workspace_id:
            raise NotFoundError("File not found")
        await self._require_user(user_id)

        grant = PermissionGrant(
            file_id=file_id,
            user_id=user_id,
            workspace_id=workspace_id,
            granted_by_id=granted_by_id,
            **(capabilities or Capabilities()).model_dump(),
        )
        orm = await self.permission_repo.create(grant)
        await self._audit(
            ActionType.PERMISSION_GRANT,
            user_id=granted_by_id,
            target_entity_type=TargetEntityType.PERMISSION,
            target_entity_id=orm.permission_id,
            workspace_id=workspace_id,
            details={"file_id": str(file_id), "user_id": str(user_id), **grant.model_dump(include=set(Capabilities.model_fields))},
        )
        return PermissionInDB.model_validate(orm)

    async def update_permission(
        self,
        permission_id: UUID | None,
        capabilities: Capabilities | None,
        granted_by_id: UUID,
    ) -> PermissionInDB:
        """Перезаписывает все пять флагов. Нет permission_id или строки -> NotFound."""
        await self._require_manager(granted_by_id)
        if permission_id is None:
            raise NotFoundError("Permission not found")
        capabilities = capabilities or Capabilities()
        orm = await self.permission_repo.replace_capabilities(permission_id, capabilities, granted_by_id)
        if orm is None:
            raise NotFoundError("Permission not found")
        await self._audit(
            ActionType.PERMISSION_GRANT,
            user_id=granted_by_id,
            target_entity_type=TargetEntityType.PERMISSION,
            target_entity_id=permission_id,
            workspace_id=orm.workspace_id,
            details={"update": True, **capabilities.model_dump()},
        )
        return PermissionInDB.model_validate(orm)

    async def revoke_permission(self, permission_id: UUID, acting_user_id: UUID) -> PermissionInDB:
        """Отзыв проверяет менеджерство того, кто отзывает, а не того, кто выдавал."""
        await self._require_manager(acting_user_id)
        orm = await self.permission_repo.delete(permission_id)
        if orm is None:
            raise NotFoundError("Permission not found")
        await self._audit(
            ActionType.PERMISSION_REVOKE,
            user_id=acting_user_id,
            target_entity_type=TargetEntityType.PERMISSION,
            target_entity_id=permission_id,
            workspace_id=orm.workspace_id,
            details={"file_id": str(orm.file_id), "user_id": str(orm.user_id)},
        )
        return PermissionInDB.model_validate(orm)

    async def cascade_manager_promotion(self, user_id: UUID) -> int:
        """Все пять флагов -> True на всех правах пользователя во ВСЕХ воркспейсах."""
        return await self.permission_repo.cascade_manager_status(user_id, True)

    async def cascade_manager_demotion(self, user_id: UUID) -> int:
        """Все пять флагов -> False на всех правах пользователя во всех воркспейсах."""
        return await self.permission_repo.cascade_manager_status(user_id, False)

######################## MEMBERS

    async def list_users(self) -> List[UserInDB]:
        return [UserInDB.model_validate(o) for o in await self.user_repo.list_users()]

    async def get_user(self, user_id: UUID) -> UserInDB:
        return UserInDB.model_validate(await self._require_user(user_id))

    async def create_user(self, data: UserCreate) -> UserInDB:
        orm = await self.user_repo.create_user(data)
        if orm.is_manager:
            await self.cascade_manager_promotion(orm.user_id)
        return UserInDB.model_validate(orm)

    async def delete_user(self, user_id: UUID) -> UserInDB:
        orm = await self.user_repo.delete_user(user_id)
        if orm is None:
            raise NotFoundError("Member not found")
        return UserInDB.model_validate(orm)

    async def promote_user(self, user_id: UUID) -> UserInDB:
        return await self._set_manager(user_id, True)

    async def demote_user(self, user_id: UUID) -> UserInDB:
        return await self._set_manager(user_id, False)

    async def _set_manager(self, user_id: UUID, is_manager: bool) -> UserInDB:
        """Флаг и каскад по правам меняются в одной транзакции."""
        try:
            async with AsyncUnitOfWork(self._session_factory) as uow:
                await uow.advisory_lock(f"user-manager:{user_id}")
                orm = await UserRepository.set_manager_flag(uow.session, user_id, is_manager)
                if orm is None:
                    raise NotFoundError("Member not found")
                count = await PermissionRepository.apply_manager_cascade(uow.session, user_id, is_manager)
        except SQLAlchemyError as e:
            logger.error(f"Failed to change manager status of user {user_id}: {e}")
            raise DatabaseError(f"Failed to change manager status: {e}") from e
        logger.info(f"User {user_id} is_manager={is_manager}; cascaded to {count} permission(s)")
        return UserInDB.model_validate(orm)

######################## WORKSPACE

    async def create_workspace(self, acting_user_id: UUID, name: str, description: Optional[str] = None) -> WorkspaceInDB:
        """Создавать воркспейсы могут только менеджеры; создатель становится его менеджером."""
        await self._require_manager(acting_user_id)
        orm = await self.workspace_repo.create_workspace(name, description, acting_user_id)
        await self._audit(
            ActionType.WORKSPACE_CREATE,
            user_id=acting_user_id,
            target_entity_type=TargetEntityType.WORKSPACE,
            target_entity_id=orm.workspace_id,
            workspace_id=orm.workspace_id,
            details={"name": name},
        )
        return WorkspaceInDB.model_validate(orm)

    async def list_workspaces(self) -> List[WorkspaceInDB]:
        return [WorkspaceInDB.model_validate(o) for o in await self.workspace_repo.list_workspaces()]

    async def get_workspace(self, workspace_id: UUID) -> WorkspaceInDB:
        orm = await self.workspace_repo.get_workspace(workspace_id)
        if orm is None:
            raise NotFoundError("Workspace not found")
        return WorkspaceInDB.model_validate(orm)

    async def delete_workspace(self, workspace_id: UUID, acting_user_id: UUID) -> WorkspaceInDB:
        """Удаление каскадом уносит файлы, права и членства."""
        await self._require_manager(acting_user_id)
        orm = await self.workspace_repo.delete_workspace(workspace_id)
        if orm is None:
            raise NotFoundError("Workspace not found")
        await self._audit(
            ActionType.WORKSPACE_DELETE,
            user_id=acting_user_id,
            target_entity_type=TargetEntityType.WORKSPACE,
            target_entity_id=workspace_id,
            details={"name": orm.name},
        )
        return WorkspaceInDB.model_validate(orm)

    async def add_member(
        self,
        workspace_id: UUID,
        user_id: UUID,
        granted_by_id: UUID,
        role: MemberRole = MemberRole.member,
    ) -> WorkspaceMemberInDB:
        await self._require_manager(granted_by_id)
        if await self.workspace_repo.get_workspace(workspace_id) is None:
            raise NotFoundError("Workspace not found")
        await self._require_user(user_id)
        orm = await self.workspace_repo.add_member(workspace_id, user_id, role)
        return WorkspaceMemberInDB.model_validate(orm)

    async def remove_member(self, workspace_id: UUID, user_id: UUID, granted_by_id: UUID) -> WorkspaceMemberInDB:
        await self._require_manager(granted_by_id)
        orm = await self.workspace_repo.remove_member(workspace_id, user_id)
        if orm is None:
            raise NotFoundError("Workspace member not found")
        return WorkspaceMemberInDB.model_validate(orm)

    async def list_workspace_members(self, workspace_id: UUID) -> List[WorkspaceMemberInDB]:
        if await self.workspace_repo.get_workspace(workspace_id) is None:
            raise NotFoundError("Workspace not found")
        return [WorkspaceMemberInDB.model_validate(o) for o in await self.workspace_repo.list_members(workspace_id)]

######################## FILES

    def sanitize_content(self, content: bytes, content_type: Optional[str]) -> bytes:
        """
        Для текстовых MIME-типов прогоняет содержимое через фильтр лексики.
        Бинарные типы и не-UTF-8 байты проходят без изменений.
        """
        if not is_text_content_type(content_type):
            return content
        try:
            decoded = content.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning(f"Content declared as '{content_type}' is not valid UTF-8; storing unfiltered")
            return content
        return self.badwords.filter_text(decoded, self.badwords_language).encode("utf-8")

    async def upload_file(
        self,
        user_id: UUID,
        workspace_id: UUID,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        existing_file_id: Optional[UUID] = None,
    ) -> FileInDB:
        """
        Загружает файл в хранилище и записывает метаданные.

        - Без existing_file_id создается новая строка с version = 1.
        - С existing_file_id строка обновляется на месте, version += 1.

        Запись в БД идет последней. Если она не удалась, только что записанная
        версия блоба удаляется (только по id версии).
        """
        await self._require_user(user_id)
        if existing_file_id is not None and await self.file_repo.get(existing_file_id) is None:
            raise NotFoundError("File not found")
        if await self.workspace_repo.get_workspace(workspace_id) is None:
            raise NotFoundError("Workspace not found")
        # Проверка имени до записи блоба: без версионирования запись перетерла бы чужой файл
        same_name = await self.file_repo.find_by_name(workspace_id, filename)
        if same_name is not None and same_name.file_id != existing_file_id:
            raise ConflictError(f"File '{filename}' already exists in workspace {workspace_id}.")

        content_type = content_type or "application/octet-stream"
        data = self.sanitize_content(content, content_type)
        logger.info(f"Uploading '{filename}' ({len(data)} bytes, {content_type}) to workspace {workspace_id}")
        stored = await self.storage.put_object(filename, data, content_type)

        values = dict(
            file_name=filename,
            file_path=stored.locator,
            file_type=content_type,
            file_size_bytes=len(data),
            uploader_id=user_id,
            workspace_id=workspace_id,
        )
        try:
            if existing_file_id is not None:
                orm = await self.file_repo.update_with_new_version(existing_file_id, **values)
                if orm is None:
                    raise NotFoundError("File not found")
            else:
                orm = await self.file_repo.create(**values)
        except DataClientError:
            await self._discard_blob(stored)
            raise

        action = ActionType.FILE_EDIT if existing_file_id is not None else ActionType.FILE_UPLOAD
        logger.info(f"Stored file {orm.file_id} '{orm.file_name}' at version {orm.version}")
        await self._audit(
            action,
            user_id=user_id,
            target_entity_type=TargetEntityType.FILE,
            target_entity_id=orm.file_id,
            workspace_id=workspace_id,
            details={"file_name": filename, "version": orm.version, "blob_version_id": stored.version_id},
        )
        return FileInDB.model_validate(orm)

    async def _discard_blob(self, stored: StoredObject):
        # Без id версии удаление снесло бы и предыдущее содержимое
        if stored.version_id is None:
            logger.warning(f"Metadata write failed; blob '{stored.name}' left in place (no version id)")
            return
        try:
            await self.storage.remove_object(stored.name, stored.version_id)
            logger.info(f"Metadata write failed; removed blob '{stored.name}' version {stored.version_id}")
        except StorageError as e:
            logger.error(f"Failed to remove orphaned blob '{stored.name}' version {stored.version_id}: {e}")

    async def list_files(self, limit: int | None = None, offset: int = 0) -> List[FileInDB]:
        """Все файлы, без фильтра по воркспейсу и правам."""
        return [FileInDB.model_validate(o) for o in await self.file_repo.list_all(limit, offset)]

    async def get_file(self, file_id: UUID) -> FileInDB:
        orm = await self.file_repo.get(file_id)
        if orm is None:
            raise NotFoundError("File not found")
        return FileInDB.model_validate(orm)

    async def get_file_locator(self, file_id: UUID, user_id: UUID) -> str:
        """
        Возвращает локатор файла (не байты). Нужна строка прав с can_view = true
        именно на этот файл.
        """
        await self._require_user(user_id)
        permission = await self.permission_repo.find(file_id, user_id)
        if permission is None or not permission.can_view:
            logger.warning(f"User {user_id} has no view permission on file {file_id}")
            raise ForbiddenError("User does not have permission to view this file")
        orm = await self.file_repo.get(file_id)
        if orm is None:
            raise NotFoundError("File not found")
        await self._audit(
            ActionType.FILE_VIEW,
            user_id=user_id,
            target_entity_type=TargetEntityType.FILE,
            target_entity_id=file_id,
            workspace_id=orm.workspace_id,
        )
        return orm.file_path

    async def list_versions(self, file_id: UUID) -> List[str]:
        orm = await self.file_repo.get(file_id)
        if orm is None:
            raise NotFoundError("File not found")
        versions = await self.storage.list_versions(orm.file_name)
        if not versions:
            raise NotFoundError("Blob not found or no versions available")
        return versions

    async def get_version_locator(self, file_id: UUID, version_id: str) -> str:
        orm = await self.file_repo.get(file_id)
        if orm is None:
            raise NotFoundError("File not found")
        if not await self.storage.object_exists(orm.file_name, version_id):
            raise NotFoundError("Blob not found or version not available")
        return self.storage.url_for(orm.file_name, version_id)

    async def delete_file(self, file_id: UUID) -> FileInDB:
        """Удаляет строку файла (права уходят каскадом). История версий в хранилище остается."""
        orm = await self.file_repo.delete(file_id)
        if orm is None:
            raise NotFoundError("File not found")
        logger.info(f"Deleted file {file_id} '{orm.file_name}'")
        await self._audit(
            ActionType.FILE_DELETE,
            target_entity_type=TargetEntityType.FILE,
            target_entity_id=file_id,
            workspace_id=orm.workspace_id,
            details={"file_name": orm.file_name, "version": orm.version},
        )
        return FileInDB.model_validate(orm)

######################## AUDIT

    async def list_audit_logs(self, workspace_id: UUID | None = None, limit: int = 100) -> List[AuditLogInDB]:
        if not self.audit_repo:
            raise NotImplementedError("AuditRepository is not configured.")
        return [AuditLogInDB.model_validate(o) for o in await self.audit_repo.list_entries(workspace_id, limit)]
