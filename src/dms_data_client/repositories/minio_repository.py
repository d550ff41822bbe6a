import logging
from io import BytesIO
from typing import Optional, Protocol
from urllib.parse import quote

from minio import Minio
from minio.error import S3Error
from minio.versioningconfig import VersioningConfig, ENABLED
from dms_data_client.exceptions import StorageError
from dms_data_client.models.file import StoredObject
from dms_data_client.utils.minio_async import run_io_bound
from dms_data_client.config import MinioConfig
import urllib3

logger = logging.getLogger(__name__)
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

# Коды S3, которые означают "нет такого объекта/версии", а не сбой
_MISSING_CODES = {"NoSuchKey", "NoSuchVersion", "NoSuchObject", "ResourceNotFound", "InvalidArgument"}


class StorageBackend(Protocol):
    """То, что ядро ожидает от хранилища блобов."""

    async def put_object(self, object_name: str, data: bytes, content_type: str | None = None) -> StoredObject: ...
    async def get_object(self, object_name: str, version_id: str | None = None) -> bytes: ...
    async def object_exists(self, object_name: str, version_id: str | None = None) -> bool: ...
    async def list_versions(self, object_name: str) -> list[str]: ...
    def url_for(self, object_name: str, version_id: str | None = None) -> str: ...
    async def remove_object(self, object_name: str, version_id: str | None = None): ...
    async def check_connection(self): ...


class MinioRepository:
    def __init__(self, settings: MinioConfig):
        http_client = None
        if settings.secure:
            http_client = urllib3.PoolManager(
                cert_reqs='CERT_NONE',
            )
        self._client = Minio(
            endpoint=settings.endpoint,
            access_key=settings.accesskey,
            secret_key=settings.secretkey,
            secure=settings.secure,
            http_client=http_client
        )
        self._bucket = settings.bucket
        self._versioning = settings.versioning
        scheme = "https" if settings.secure else "http"
        self._base_url = (settings.public_base_url or f"{scheme}://{settings.endpoint}").rstrip("/")

    @property
    def bucket(self) -> str:
        return self._bucket

    async def _ensure_bucket(self):
        exists = await run_io_bound(self._client.bucket_exists, bucket_name=self._bucket)
        if not exists:
            await run_io_bound(self._client.make_bucket, bucket_name=self._bucket)
            logger.info(f"Created bucket '{self._bucket}'")
        if self._versioning:
            config = await run_io_bound(self._client.get_bucket_versioning, bucket_name=self._bucket)
            if config.status != ENABLED:
                await run_io_bound(
                    self._client.set_bucket_versioning,
                    bucket_name=self._bucket,
                    config=VersioningConfig(ENABLED),
                )
                logger.info(f"Enabled object versioning on bucket '{self._bucket}'")

    async def check_connection(self):
        """Проверяет соединение с MinIO, наличие бакета и включенное версионирование."""
        logger.debug(f"Checking MinIO connection and bucket '{self._bucket}' existence...")
        try:
            await self._ensure_bucket()
            logger.debug("MinIO connection and bucket presence confirmed.")
        except S3Error as e:
            logger.error(f"MinIO connection failed: {e}")
            raise StorageError(str(e)) from e

    def url_for(self, object_name: str, version_id: str | None = None) -> str:
        """Локатор объекта (или конкретной версии). Для ядра это непрозрачная строка."""
        url = f"{self._base_url}/{self._bucket}/{quote(object_name)}"
        if version_id:
            url += f"?versionId={quote(version_id, safe='')}"
        return url

    async def put_object(self, object_name: str, data: bytes, content_type: str | None = None) -> StoredObject:
        try:
            result = await run_io_bound(
                self._client.put_object,
                bucket_name=self._bucket,
                object_name=object_name,
                data=BytesIO(data),
                length=len(data),
                content_type=content_type or "application/octet-stream",
            )
        except S3Error as e:
            raise StorageError(str(e)) from e
        return StoredObject(name=object_name, version_id=result.version_id, locator=self.url_for(object_name))

    async def get_object(self, object_name: str, version_id: str | None = None) -> bytes:
        try:
            resp = await run_io_bound(
                self._client.get_object, bucket_name=self._bucket, object_name=object_name, version_id=version_id
            )
            data = resp.read()
            resp.close()
            resp.release_conn()
            return data
        except S3Error as e:
            raise StorageError(str(e)) from e

    async def object_exists(self, object_name: str, version_id: str | None = None) -> bool:
        try:
            await run_io_bound(
                self._client.stat_object, bucket_name=self._bucket, object_name=object_name, version_id=version_id
            )
            return True
        except S3Error as e:
            if e.code in _MISSING_CODES:
                return False
            raise StorageError(str(e)) from e

    async def list_versions(self, object_name: str) -> list[str]:
        """
        Возвращает id всех версий объекта с точно таким именем, от старых к новым.
        Маркеры удаления пропускаются.
        """
        def _collect():
            found = [
                obj
                for obj in self._client.list_objects(
                    bucket_name=self._bucket, prefix=object_name, include_version=True
                )
                if obj.object_name == object_name and not obj.is_delete_marker
            ]
            found.sort(key=lambda o: o.last_modified)
            return [obj.version_id for obj in found if obj.version_id]

        try:
            return await run_io_bound(_collect)
        except S3Error as e:
            raise StorageError(str(e)) from e

    async def remove_object(self, object_name: str, version_id: str | None = None):
        try:
            await run_io_bound(
                self._client.remove_object, bucket_name=self._bucket, object_name=object_name, version_id=version_id
            )
        except S3Error as e:
            raise StorageError(str(e)) from e

