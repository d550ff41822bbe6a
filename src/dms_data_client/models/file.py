from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class FileInDB(BaseModel):
    file_id: UUID
    workspace_id: UUID
    uploader_id: UUID
    file_name: str
    file_path: str
    file_type: Optional[str] = None
    file_size_bytes: Optional[int] = None
    version: Optional[int] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StoredObject(BaseModel):
    """Результат записи в хранилище: имя объекта, id версии и локатор."""
    name: str
    version_id: Optional[str] = None
    locator: str
