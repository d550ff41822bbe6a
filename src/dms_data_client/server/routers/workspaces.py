from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request

from dms_data_client.models.audit import AuditLogInDB
from dms_data_client.models.workspace import WorkspaceCreate, WorkspaceInDB, MemberChange, WorkspaceMemberInDB
from ..auth import ClientDep, ResolverDep

router = APIRouter(tags=["workspaces"])


@router.get("/workspaces", response_model=List[WorkspaceInDB])
async def list_workspaces(data_client: ClientDep):
    return await data_client.list_workspaces()


# /workspaces/member объявлен раньше /workspaces/{...}
@router.post("/workspaces/member", response_model=WorkspaceMemberInDB)
async def add_member(body: MemberChange, request: Request, data_client: ClientDep, resolver: ResolverDep):
    grantor = await resolver.resolve(body.granted_by_id, request)
    return await data_client.add_member(body.workspace_id, body.user_id, grantor, body.role)


@router.delete("/workspaces/member", response_model=WorkspaceMemberInDB)
async def remove_member(body: MemberChange, request: Request, data_client: ClientDep, resolver: ResolverDep):
    grantor = await resolver.resolve(body.granted_by_id, request)
    return await data_client.remove_member(body.workspace_id, body.user_id, grantor)


@router.get("/workspaces/{workspace_id}", response_model=WorkspaceInDB)
async def get_workspace(workspace_id: UUID, data_client: ClientDep):
    return await data_client.get_workspace(workspace_id)


@router.get("/workspaces/{workspace_id}/members", response_model=List[WorkspaceMemberInDB])
async def list_members(workspace_id: UUID, data_client: ClientDep):
    return await data_client.list_workspace_members(workspace_id)


@router.post("/workspaces/{user_id}", response_model=WorkspaceInDB)
async def create_workspace(user_id: UUID, body: WorkspaceCreate, request: Request, data_client: ClientDep, resolver: ResolverDep):
    actor = await resolver.resolve(user_id, request)
    return await data_client.create_workspace(actor, body.name, body.description)


@router.delete("/workspaces/{workspace_id}", response_model=WorkspaceInDB)
async def delete_workspace(
    workspace_id: UUID,
    request: Request,
    data_client: ClientDep,
    resolver: ResolverDep,
    acting_user_id: UUID = Query(...),
):
    actor = await resolver.resolve(acting_user_id, request)
    return await data_client.delete_workspace(workspace_id, actor)


@router.get("/audit-logs", response_model=List[AuditLogInDB], tags=["audit"])
async def list_audit_logs(
    data_client: ClientDep,
    workspace_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
):
    return await data_client.list_audit_logs(workspace_id, limit)
