import pytest
from uuid import uuid4

from dms_data_client.client import DataClient
from dms_data_client.exceptions import NotAuthorizedError, NotFoundError, ConflictError
from dms_data_client.models.permission import Capabilities
from dms_data_client.models.user import UserCreate

pytestmark = pytest.mark.asyncio

CAPS = ("can_view", "can_edit", "can_delete", "can_share", "can_download")


async def _upload(data_client, user_id, workspace_id, name="report.pdf"):
    return await data_client.upload_file(user_id, workspace_id, name, b"%PDF-1.4", "application/pdf")


async def test_grant_defaults_unspecified_flags_to_false(data_client: DataClient, manager, member, workspace):
    file = await _upload(data_client, manager.user_id, workspace.workspace_id)

    perm = await data_client.grant_permission(
        file.file_id, member.user_id, workspace.workspace_id, Capabilities(can_view=True), manager.user_id
    )

    assert perm.can_view is True
    assert not any(getattr(perm, name) for name in CAPS if name != "can_view")
    assert perm.granted_by_id == manager.user_id
    assert [p.permission_id for p in await data_client.list_permissions()] == [perm.permission_id]


async def test_non_manager_cannot_grant(data_client: DataClient, manager, member, workspace):
    """Не-менеджер получает NotAuthorized, строка не создается."""
    file = await _upload(data_client, manager.user_id, workspace.workspace_id)

    with pytest.raises(NotAuthorizedError):
        await data_client.grant_permission(
            file.file_id, member.user_id, workspace.workspace_id, Capabilities.all(True), member.user_id
        )
    assert await data_client.list_permissions() == []


async def test_manager_gate_runs_before_other_checks(data_client: DataClient, member):
    # Файла, воркспейса и получателя нет, но ответ все равно NotAuthorized
    with pytest.raises(NotAuthorizedError):
        await data_client.grant_permission(uuid4(), uuid4(), uuid4(), None, member.user_id)


async def test_unknown_grantor_is_not_found(data_client: DataClient):
    with pytest.raises(NotFoundError):
        await data_client.grant_permission(uuid4(), uuid4(), uuid4(), None, uuid4())


async def test_duplicate_grant_is_conflict(data_client: DataClient, manager, member, workspace):
    file = await _upload(data_client, manager.user_id, workspace.workspace_id)
    await data_client.grant_permission(file.file_id, member.user_id, workspace.workspace_id, None, manager.user_id)

    with pytest.raises(ConflictError):
        await data_client.grant_permission(
            file.file_id, member.user_id, workspace.workspace_id, Capabilities.all(True), manager.user_id
        )
    assert len(await data_client.list_permissions()) == 1


async def test_update_replaces_all_flags(data_client: DataClient, manager, member, workspace):
    file = await _upload(data_client, manager.user_id, workspace.workspace_id)
    perm = await data_client.grant_permission(
        file.file_id, member.user_id, workspace.workspace_id, Capabilities.all(True), manager.user_id
    )

    updated = await data_client.update_permission(perm.permission_id, Capabilities(can_edit=True), manager.user_id)

    assert updated.permission_id == perm.permission_id
    assert updated.can_edit is True
    assert updated.can_view is False
    assert updated.can_download is False


async def test_update_requires_manager_and_existing_row(data_client: DataClient, manager, member):
    with pytest.raises(NotAuthorizedError):
        await data_client.update_permission(uuid4(), Capabilities(), member.user_id)
    with pytest.raises(NotFoundError):
        await data_client.update_permission(None, Capabilities(), manager.user_id)
    with pytest.raises(NotFoundError):
        await data_client.update_permission(uuid4(), Capabilities(), manager.user_id)


async def test_revoke_checks_acting_user_not_grantor(data_client: DataClient, manager, member, workspace):
    file = await _upload(data_client, manager.user_id, workspace.workspace_id)
    perm = await data_client.grant_permission(file.file_id, member.user_id, workspace.workspace_id, None, manager.user_id)
    other_manager = await data_client.create_user(
        UserCreate(username="boss", email="boss@example.com", password="secret", is_manager=True)
    )

    with pytest.raises(NotAuthorizedError):
        await data_client.revoke_permission(perm.permission_id, member.user_id)

    revoked = await data_client.revoke_permission(perm.permission_id, other_manager.user_id)
    assert revoked.permission_id == perm.permission_id
    assert await data_client.list_permissions() == []

    with pytest.raises(NotFoundError):
        await data_client.revoke_permission(perm.permission_id, manager.user_id)


async def test_promotion_and_demotion_cascade_across_workspaces(data_client: DataClient, manager, member, workspace):
    """Смена is_manager меняет все пять флагов на всех правах пользователя, во всех воркспейсах."""
    second = await data_client.create_workspace(manager.user_id, "Archive")
    file_a = await _upload(data_client, manager.user_id, workspace.workspace_id, "a.pdf")
    file_b = await _upload(data_client, manager.user_id, second.workspace_id, "b.pdf")
    await data_client.grant_permission(
        file_a.file_id, member.user_id, workspace.workspace_id, Capabilities(can_view=True), manager.user_id
    )
    await data_client.grant_permission(
        file_b.file_id, member.user_id, second.workspace_id, Capabilities(can_share=True), manager.user_id
    )

    promoted = await data_client.promote_user(member.user_id)
    assert promoted.is_manager is True
    perms = await data_client.list_permissions()
    assert len(perms) == 2
    assert all(getattr(p, name) for p in perms for name in CAPS)

    demoted = await data_client.demote_user(member.user_id)
    assert demoted.is_manager is False
    perms = await data_client.list_permissions()
    assert not any(getattr(p, name) for p in perms for name in CAPS)


async def test_cascade_leaves_other_users_untouched(data_client: DataClient, manager, member, workspace):
    file = await _upload(data_client, manager.user_id, workspace.workspace_id)
    bystander = await data_client.create_user(UserCreate(username="eve", email="eve@example.com", password="x"))
    await data_client.grant_permission(file.file_id, member.user_id, workspace.workspace_id, None, manager.user_id)
    await data_client.grant_permission(
        file.file_id, bystander.user_id, workspace.workspace_id, Capabilities(can_view=True), manager.user_id
    )

    assert await data_client.cascade_manager_promotion(member.user_id) == 1

    by_user = {p.user_id: p for p in await data_client.list_permissions()}
    assert all(getattr(by_user[member.user_id], name) for name in CAPS)
    assert by_user[bystander.user_id].can_view is True
    assert by_user[bystander.user_id].can_edit is False


async def test_promote_unknown_user_is_not_found(data_client: DataClient):
    with pytest.raises(NotFoundError):
        await data_client.promote_user(uuid4())


async def test_grant_in_unknown_workspace_is_not_found(data_client: DataClient, manager, member, workspace):
    file = await _upload(data_client, manager.user_id, workspace.workspace_id)

    with pytest.raises(NotFoundError, match="Workspace not found"):
        await data_client.grant_permission(
            file.file_id, member.user_id, uuid4(), Capabilities(can_view=True), manager.user_id
        )
    assert await data_client.list_permissions() == []


async def test_grant_must_use_the_files_workspace(data_client: DataClient, manager, member, workspace):
    """Строка прав всегда лежит в воркспейсе своего файла."""
    other = await data_client.create_workspace(manager.user_id, "Other")
    file = await _upload(data_client, manager.user_id, workspace.workspace_id)

    with pytest.raises(NotFoundError, match="File not found"):
        await data_client.grant_permission(
            file.file_id, member.user_id, other.workspace_id, Capabilities(can_view=True), manager.user_id
        )
    assert await data_client.list_permissions() == []
