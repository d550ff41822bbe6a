# Файл: src/dms_data_client/config.py

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

# --- 1. Настройки PostgreSQL ---
class PostgresConfig(BaseModel):
    user: str = "postgres"
    password: str = "postgres"
    host: str = "localhost"
    port: int = 5432
    db: str = "dms"
    # Полный DSN имеет приоритет над отдельными полями (удобно для тестов и sqlite)
    dsn: Optional[str] = None

    pool_size: int = 5
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    application_name: str = "dms_data_client"

    def get_pg_dsn(self) -> str:
        """Собирает DSN для SQLAlchemy из полей этого объекта."""
        if self.dsn:
            return self.dsn
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"

    def is_postgres(self) -> bool:
        return self.get_pg_dsn().startswith("postgresql")

# --- 2. Настройки MinIO (хранилище блобов с версионированием) ---
class MinioConfig(BaseModel):
    endpoint: str = "localhost:9000"
    accesskey: str = "minioadmin"
    secretkey: str = "minioadmin"
    bucket: str = "documents"
    secure: bool = False
    versioning: bool = True
    # Если задан, локаторы строятся от этого адреса вместо endpoint
    public_base_url: Optional[str] = None

# --- 3. Фильтр нецензурной лексики для текстовых загрузок ---
class BadwordsConfig(BaseModel):
    language: str = "en"
    path: Optional[str] = None


class DataClientConfig(BaseModel):
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    minio: MinioConfig = Field(default_factory=MinioConfig)
    badwords: BadwordsConfig = Field(default_factory=BadwordsConfig)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter='_',
        env_nested_max_split=1,
        extra='ignore'
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    minio: MinioConfig = Field(default_factory=MinioConfig)
    badwords: BadwordsConfig = Field(default_factory=BadwordsConfig)

    def to_client_config(self) -> DataClientConfig:
        return DataClientConfig(postgres=self.postgres, minio=self.minio, badwords=self.badwords)


_cached_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """
    Возвращает синглтон-экземпляр настроек, создавая его при первом вызове.
    Это предотвращает ошибки валидации при импорте.
    """
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = Settings()
    return _cached_settings
