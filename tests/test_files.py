import pytest
from uuid import uuid4

from dms_data_client.client import DataClient
from dms_data_client.db import ActionType
from dms_data_client.exceptions import NotFoundError, ForbiddenError, ConflictError, StorageError, DatabaseError
from dms_data_client.models.permission import Capabilities

pytestmark = pytest.mark.asyncio


async def test_upload_then_reupload_bumps_version(data_client: DataClient, storage, manager, workspace):
    """
    Первая загрузка дает version = 1, повторная загрузка того же file_id
    сдвигает версию ровно на единицу и не меняет идентификатор.
    """
    first = await data_client.upload_file(manager.user_id, workspace.workspace_id, "report.pdf", b"v1", "application/pdf")

    assert first.version == 1
    assert first.file_name == "report.pdf"
    assert first.file_size_bytes == 2
    assert first.file_path == storage.url_for("report.pdf")

    second = await data_client.upload_file(
        manager.user_id, workspace.workspace_id, "report.pdf", b"v2!", "application/pdf", existing_file_id=first.file_id
    )
    third = await data_client.upload_file(
        manager.user_id, workspace.workspace_id, "report.pdf", b"v3", "application/pdf", existing_file_id=first.file_id
    )

    assert second.file_id == first.file_id
    assert second.version == 2
    assert second.file_size_bytes == 3
    assert third.version == 3
    assert [f.file_id for f in await data_client.list_files()] == [first.file_id]
    assert len(await data_client.list_versions(first.file_id)) == 3


async def test_upload_requires_existing_user(data_client: DataClient, storage, workspace):
    with pytest.raises(NotFoundError):
        await data_client.upload_file(uuid4(), workspace.workspace_id, "a.txt", b"hello", "text/plain")
    assert storage.objects == {}


async def test_reupload_of_missing_file_is_not_found(data_client: DataClient, storage, manager, workspace):
    with pytest.raises(NotFoundError):
        await data_client.upload_file(
            manager.user_id, workspace.workspace_id, "a.txt", b"x", "text/plain", existing_file_id=uuid4()
        )
    assert storage.objects == {}


async def test_upload_to_missing_workspace_is_not_found(data_client: DataClient, manager):
    with pytest.raises(NotFoundError):
        await data_client.upload_file(manager.user_id, uuid4(), "a.txt", b"x", "text/plain")


async def test_text_upload_is_filtered(data_client: DataClient, storage, manager, workspace):
    await data_client.upload_file(
        manager.user_id, workspace.workspace_id, "notes.txt", b"What a Crap day, damn!", "text/plain; charset=utf-8"
    )

    _, data, content_type = storage.objects["notes.txt"][-1]
    assert data == b"what a c*****p day d*****n"
    assert content_type == "text/plain; charset=utf-8"


async def test_binary_upload_is_not_filtered(data_client: DataClient, storage, manager, workspace):
    payload = b"crap damn \x00\xff"
    await data_client.upload_file(manager.user_id, workspace.workspace_id, "blob.bin", payload, "application/octet-stream")

    assert storage.objects["blob.bin"][-1][1] == payload


async def test_duplicate_name_in_workspace_is_conflict_before_blob_write(data_client: DataClient, storage, manager, workspace):
    """Дубликат имени отклоняется до записи в хранилище."""
    await data_client.upload_file(manager.user_id, workspace.workspace_id, "dup.pdf", b"one", "application/pdf")

    with pytest.raises(ConflictError):
        await data_client.upload_file(manager.user_id, workspace.workspace_id, "dup.pdf", b"two", "application/pdf")

    assert [data for _, data, _ in storage.objects["dup.pdf"]] == [b"one"]
    assert len(await data_client.list_files()) == 1


async def test_same_name_in_other_workspace_is_allowed(data_client: DataClient, manager, workspace):
    other = await data_client.create_workspace(manager.user_id, "Other")
    await data_client.upload_file(manager.user_id, workspace.workspace_id, "same.pdf", b"1", "application/pdf")
    await data_client.upload_file(manager.user_id, other.workspace_id, "same.pdf", b"2", "application/pdf")

    assert len(await data_client.list_files()) == 2


async def test_storage_failure_writes_no_metadata(data_client: DataClient, storage, manager, workspace):
    storage.fail_puts = True
    with pytest.raises(StorageError):
        await data_client.upload_file(manager.user_id, workspace.workspace_id, "a.pdf", b"x", "application/pdf")
    assert await data_client.list_files() == []


async def test_locator_requires_view_permission(data_client: DataClient, manager, member, workspace):
    file = await data_client.upload_file(manager.user_id, workspace.workspace_id, "r.pdf", b"x", "application/pdf")

    with pytest.raises(ForbiddenError):
        await data_client.get_file_locator(file.file_id, member.user_id)

    perm = await data_client.grant_permission(
        file.file_id, member.user_id, workspace.workspace_id, Capabilities(can_download=True), manager.user_id
    )
    with pytest.raises(ForbiddenError):
        await data_client.get_file_locator(file.file_id, member.user_id)

    await data_client.update_permission(perm.permission_id, Capabilities(can_view=True), manager.user_id)
    assert await data_client.get_file_locator(file.file_id, member.user_id) == file.file_path


async def test_locator_for_unknown_user_is_not_found(data_client: DataClient, manager, workspace):
    file = await data_client.upload_file(manager.user_id, workspace.workspace_id, "r.pdf", b"x", "application/pdf")
    with pytest.raises(NotFoundError):
        await data_client.get_file_locator(file.file_id, uuid4())


async def test_permission_on_other_file_does_not_grant_view(data_client: DataClient, manager, member, workspace):
    visible = await data_client.upload_file(manager.user_id, workspace.workspace_id, "a.pdf", b"a", "application/pdf")
    hidden = await data_client.upload_file(manager.user_id, workspace.workspace_id, "b.pdf", b"b", "application/pdf")
    await data_client.grant_permission(
        visible.file_id, member.user_id, workspace.workspace_id, Capabilities(can_view=True), manager.user_id
    )

    with pytest.raises(ForbiddenError):
        await data_client.get_file_locator(hidden.file_id, member.user_id)


async def test_version_locator(data_client: DataClient, storage, manager, workspace):
    file = await data_client.upload_file(manager.user_id, workspace.workspace_id, "v.pdf", b"1", "application/pdf")
    await data_client.upload_file(
        manager.user_id, workspace.workspace_id, "v.pdf", b"2", "application/pdf", existing_file_id=file.file_id
    )
    first_version, _ = await data_client.list_versions(file.file_id)

    locator = await data_client.get_version_locator(file.file_id, first_version)

    assert locator == storage.url_for("v.pdf", first_version)
    with pytest.raises(NotFoundError):
        await data_client.get_version_locator(file.file_id, "no-such-version")
    with pytest.raises(NotFoundError):
        await data_client.get_version_locator(uuid4(), first_version)


async def test_versions_missing_blob_is_not_found(data_client: DataClient, storage, manager, workspace):
    file = await data_client.upload_file(manager.user_id, workspace.workspace_id, "gone.pdf", b"1", "application/pdf")
    await storage.remove_object("gone.pdf")

    with pytest.raises(NotFoundError):
        await data_client.list_versions(file.file_id)
    with pytest.raises(NotFoundError):
        await data_client.list_versions(uuid4())


async def test_delete_file_cascades_permissions(data_client: DataClient, storage, manager, member, workspace):
    file = await data_client.upload_file(manager.user_id, workspace.workspace_id, "d.pdf", b"1", "application/pdf")
    await data_client.grant_permission(file.file_id, member.user_id, workspace.workspace_id, None, manager.user_id)

    deleted = await data_client.delete_file(file.file_id)

    assert deleted.file_id == file.file_id
    assert await data_client.list_files() == []
    assert await data_client.list_permissions() == []
    # История версий в хранилище не трогается
    assert "d.pdf" in storage.objects
    with pytest.raises(NotFoundError):
        await data_client.get_file(file.file_id)
    with pytest.raises(NotFoundError):
        await data_client.delete_file(file.file_id)


async def test_upload_and_view_are_audited(data_client: DataClient, manager, member, workspace):
    file = await data_client.upload_file(manager.user_id, workspace.workspace_id, "a.pdf", b"1", "application/pdf")
    await data_client.upload_file(
        manager.user_id, workspace.workspace_id, "a.pdf", b"2", "application/pdf", existing_file_id=file.file_id
    )
    await data_client.grant_permission(
        file.file_id, member.user_id, workspace.workspace_id, Capabilities(can_view=True), manager.user_id
    )
    await data_client.get_file_locator(file.file_id, member.user_id)

    actions = {entry.action_type for entry in await data_client.list_audit_logs(workspace.workspace_id)}

    assert {ActionType.WORKSPACE_CREATE, ActionType.FILE_UPLOAD, ActionType.FILE_EDIT,
            ActionType.PERMISSION_GRANT, ActionType.FILE_VIEW} <= actions


async def test_audit_failure_does_not_fail_upload(data_client: DataClient, manager, workspace):
    class BrokenAudit:
        async def record(self, *args, **kwargs):
            raise DatabaseError("audit table is locked")

    data_client.audit_repo = BrokenAudit()

    file = await data_client.upload_file(manager.user_id, workspace.workspace_id, "a.pdf", b"1", "application/pdf")

    assert file.version == 1


async def test_duplicate_upload_keeps_other_file_without_versioning(data_client: DataClient, unversioned, manager, workspace):
    data_client.storage = unversioned
    await data_client.upload_file(manager.user_id, workspace.workspace_id, "dup.pdf", b"one", "application/pdf")

    with pytest.raises(ConflictError):
        await data_client.upload_file(manager.user_id, workspace.workspace_id, "dup.pdf", b"two", "application/pdf")

    assert [data for _, data, _ in unversioned.objects["dup.pdf"]] == [b"one"]


async def test_rename_onto_existing_name_is_conflict(data_client: DataClient, storage, manager, workspace):
    await data_client.upload_file(manager.user_id, workspace.workspace_id, "a.pdf", b"a", "application/pdf")
    b = await data_client.upload_file(manager.user_id, workspace.workspace_id, "b.pdf", b"b", "application/pdf")

    with pytest.raises(ConflictError):
        await data_client.upload_file(
            manager.user_id, workspace.workspace_id, "a.pdf", b"b2", "application/pdf", existing_file_id=b.file_id
        )

    assert [data for _, data, _ in storage.objects["a.pdf"]] == [b"a"]
    assert (await data_client.get_file(b.file_id)).version == 1


async def test_metadata_failure_removes_written_version(data_client: DataClient, storage, manager, workspace, monkeypatch):
    """Если запись метаданных не удалась, удаляется только что записанная версия."""
    file = await data_client.upload_file(manager.user_id, workspace.workspace_id, "m.pdf", b"v1", "application/pdf")

    async def _fail(*args, **kwargs):
        raise DatabaseError("connection lost")

    monkeypatch.setattr(data_client.file_repo, "update_with_new_version", _fail)

    with pytest.raises(DatabaseError):
        await data_client.upload_file(
            manager.user_id, workspace.workspace_id, "m.pdf", b"v2", "application/pdf", existing_file_id=file.file_id
        )

    assert [data for _, data, _ in storage.objects["m.pdf"]] == [b"v1"]


async def test_metadata_failure_never_removes_unversioned_blob(data_client: DataClient, unversioned, manager, workspace, monkeypatch):
    data_client.storage = unversioned

    async def _fail(**values):
        raise DatabaseError("connection lost")

    monkeypatch.setattr(data_client.file_repo, "create", _fail)

    with pytest.raises(DatabaseError):
        await data_client.upload_file(manager.user_id, workspace.workspace_id, "n.pdf", b"x", "application/pdf")

    # Без id версии блоб остается сиротой, но ничего чужого не удаляется
    assert "n.pdf" in unversioned.objects
