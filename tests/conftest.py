import pytest
import pytest_asyncio
from uuid import uuid4
from urllib.parse import quote

from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

# Импортируем Base для создания таблиц
from dms_data_client.db.base import Base
from dms_data_client import DataClient
from dms_data_client.exceptions import StorageError
from dms_data_client.models.file import StoredObject
from dms_data_client.models.user import UserCreate
from dms_data_client.repositories import (UserRepository,
                                          WorkspaceRepository,
                                          FileRepository,
                                          PermissionRepository,
                                          AuditRepository)


class InMemoryStorage:
    """
    Версионируемое хранилище в памяти с тем же интерфейсом, что и MinioRepository.
    Каждая запись объекта создает новую версию.
    """

    bucket = "test-bucket"

    def __init__(self):
        self.objects: dict[str, list[tuple[str, bytes, str]]] = {}
        self.fail_puts = False

    def url_for(self, object_name: str, version_id: str | None = None) -> str:
        url = f"memory://{self.bucket}/{quote(object_name)}"
        if version_id:
            url += f"?versionId={version_id}"
        return url

    async def put_object(self, object_name, data, content_type=None) -> StoredObject:
        if self.fail_puts:
            raise StorageError("storage is down")
        version_id = uuid4().hex
        self.objects.setdefault(object_name, []).append((version_id, data, content_type))
        return StoredObject(name=object_name, version_id=version_id, locator=self.url_for(object_name))

    async def get_object(self, object_name, version_id=None) -> bytes:
        for vid, data, _ in reversed(self.objects.get(object_name, [])):
            if version_id is None or vid == version_id:
                return data
        raise StorageError(f"NoSuchKey: {object_name}")

    async def object_exists(self, object_name, version_id=None) -> bool:
        versions = self.objects.get(object_name, [])
        if version_id is None:
            return bool(versions)
        return any(vid == version_id for vid, _, _ in versions)

    async def list_versions(self, object_name) -> list[str]:
        return [vid for vid, _, _ in self.objects.get(object_name, [])]

    async def remove_object(self, object_name, version_id=None):
        if version_id is None:
            self.objects.pop(object_name, None)
            return
        self.objects[object_name] = [v for v in self.objects.get(object_name, []) if v[0] != version_id]

    async def check_connection(self):
        return None


class UnversionedStorage(InMemoryStorage):
    """Бакет без версионирования: запись заменяет объект целиком, id версии нет."""

    async def put_object(self, object_name, data, content_type=None) -> StoredObject:
        if self.fail_puts:
            raise StorageError("storage is down")
        self.objects[object_name] = [("null", data, content_type)]
        return StoredObject(name=object_name, version_id=None, locator=self.url_for(object_name))


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_tables(db_path):
    """Синхронно создает схему в файле SQLite (удобно для CLI и HTTP тестов)."""
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    engine.dispose()


def build_client(db_path, storage) -> DataClient:
    """Собирает DataClient поверх файла SQLite. Соединения открываются лениво."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    return DataClient(
        session_factory=session_factory,
        user_repo=UserRepository(session_factory),
        workspace_repo=WorkspaceRepository(session_factory),
        file_repo=FileRepository(session_factory),
        permission_repo=PermissionRepository(session_factory),
        audit_repo=AuditRepository(session_factory),
        storage=storage,
        engine=engine,
    )


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "dms.db"
    create_tables(path)
    return path


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest_asyncio.fixture(scope="function")
async def data_client(db_path, storage) -> DataClient:
    """
    Собирает DataClient на чистой БД для каждого теста.
    После теста пул соединений закрывается.
    """
    client = build_client(db_path, storage)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def manager(data_client):
    return await data_client.create_user(
        UserCreate(username="manager", email="manager@example.com", password="secret", is_manager=True)
    )


@pytest_asyncio.fixture
async def member(data_client):
    return await data_client.create_user(
        UserCreate(username="member", email="member@example.com", password="secret")
    )


@pytest_asyncio.fixture
async def workspace(data_client, manager):
    return await data_client.create_workspace(manager.user_id, "Reports", "Quarterly reports")


@pytest.fixture
def client_factory(db_path, storage):
    """Фабрика клиентов на общей БД, для кода, который сам управляет event loop (CLI, HTTP)."""
    return lambda: build_client(db_path, storage)


@pytest.fixture
def unversioned() -> UnversionedStorage:
    return UnversionedStorage()
