from typing import List
from uuid import UUID

from fastapi import APIRouter, Query, Request

from dms_data_client.models.permission import Capabilities, PermissionGrant, PermissionUpdate, PermissionInDB
from ..auth import ClientDep, ResolverDep

router = APIRouter(prefix="/permissions", tags=["permissions"])


def _capabilities(body: Capabilities) -> Capabilities:
    return Capabilities.model_validate(body.model_dump(include=set(Capabilities.model_fields)))


@router.get("", response_model=List[PermissionInDB])
async def list_permissions(data_client: ClientDep):
    return await data_client.list_permissions()


@router.post("", response_model=PermissionInDB)
async def grant_permission(body: PermissionGrant, request: Request, data_client: ClientDep, resolver: ResolverDep):
    grantor = await resolver.resolve(body.granted_by_id, request)
    return await data_client.grant_permission(
        file_id=body.file_id,
        user_id=body.user_id,
        workspace_id=body.workspace_id,
        capabilities=_capabilities(body),
        granted_by_id=grantor,
    )


@router.put("", response_model=PermissionInDB)
async def update_permission(body: PermissionUpdate, request: Request, data_client: ClientDep, resolver: ResolverDep):
    grantor = await resolver.resolve(body.granted_by_id, request)
    return await data_client.update_permission(body.permission_id, _capabilities(body), grantor)


@router.delete("/{permission_id}", response_model=PermissionInDB)
async def revoke_permission(
    permission_id: UUID,
    request: Request,
    data_client: ClientDep,
    resolver: ResolverDep,
    acting_user_id: UUID = Query(...),
):
    actor = await resolver.resolve(acting_user_id, request)
    return await data_client.revoke_permission(permission_id, actor)
