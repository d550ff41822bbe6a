from typing import List
from uuid import UUID

from fastapi import APIRouter

from dms_data_client.models.user import UserCreate, UserInDB
from ..auth import ClientDep

router = APIRouter(prefix="/members", tags=["members"])


@router.get("", response_model=List[UserInDB])
async def list_members(data_client: ClientDep):
    return await data_client.list_users()


@router.get("/{user_id}", response_model=UserInDB)
async def get_member(user_id: UUID, data_client: ClientDep):
    return await data_client.get_user(user_id)


@router.post("", response_model=UserInDB)
async def create_member(body: UserCreate, data_client: ClientDep):
    return await data_client.create_user(body)


@router.delete("/{user_id}", response_model=UserInDB)
async def delete_member(user_id: UUID, data_client: ClientDep):
    return await data_client.delete_user(user_id)


@router.post("/manager/{user_id}", response_model=UserInDB)
async def promote_member(user_id: UUID, data_client: ClientDep):
    """Делает пользователя менеджером: все его права на файлы становятся полными."""
    return await data_client.promote_user(user_id)


@router.delete("/manager/{user_id}", response_model=UserInDB)
async def demote_member(user_id: UUID, data_client: ClientDep):
    """Снимает менеджерство: все флаги на его правах сбрасываются."""
    return await data_client.demote_user(user_id)
