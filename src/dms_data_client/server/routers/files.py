# src/dms_data_client/server/routers/files.py
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import PlainTextResponse

from dms_data_client.models.file import FileInDB
from ..auth import ClientDep, ResolverDep

router = APIRouter(tags=["files"])


@router.post("/upload/{user_id}/{workspace_id}", response_model=FileInDB)
async def upload_file(
    user_id: UUID,
    workspace_id: UUID,
    request: Request,
    data_client: ClientDep,
    resolver: ResolverDep,
    x_filename: str = Header("uploaded_file", alias="x-filename"),
    content_type: str = Header("application/octet-stream"),
    existing_file_id: Optional[UUID] = Query(None),
):
    """
    Загружает файл сырым телом запроса. Имя берется из заголовка `x-filename`.
    С `existing_file_id` загрузка становится новой версией существующего файла.
    """
    actor = await resolver.resolve(user_id, request)
    content = await request.body()
    return await data_client.upload_file(
        user_id=actor,
        workspace_id=workspace_id,
        filename=x_filename,
        content=content,
        content_type=content_type,
        existing_file_id=existing_file_id,
    )


@router.get("/files", response_model=List[FileInDB])
async def list_files(data_client: ClientDep):
    return await data_client.list_files()


# Маршруты версий объявлены раньше /file/{file_id}/{user_id}, иначе "versions" уйдет в user_id
@router.get("/file/{file_id}/versions", response_model=List[str])
async def list_versions(file_id: UUID, data_client: ClientDep):
    return await data_client.list_versions(file_id)


@router.get("/file/{file_id}/version/{version_id}", response_class=PlainTextResponse)
async def get_version_locator(file_id: UUID, version_id: str, data_client: ClientDep):
    return await data_client.get_version_locator(file_id, version_id)


@router.get("/file/{file_id}/{user_id}", response_class=PlainTextResponse)
async def get_file_locator(file_id: UUID, user_id: UUID, request: Request, data_client: ClientDep, resolver: ResolverDep):
    actor = await resolver.resolve(user_id, request)
    return await data_client.get_file_locator(file_id, actor)


@router.delete("/file/{file_id}", response_model=FileInDB)
async def delete_file(file_id: UUID, data_client: ClientDep):
    return await data_client.delete_file(file_id)
