import pytest
from fastapi import status
from leavedesk.core.config import settings
from leavedesk.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from leavedesk.models.file import File
from leavedesk.services.attachments import AttachmentManager, IncomingFile


def _pdf(name="doctor-note.pdf", data=b"%PDF-1.4 test"):
    return IncomingFile(filename=name, content_type="application/pdf", data=data)


# --- Service ---

def test_upload_stores_unattached_file(db_session, storage, employee_user):
    [record] = AttachmentManager(db_session, storage).upload([_pdf()], uploader=employee_user)

    assert record.leave_id is None
    assert record.uploaded_by == employee_user.id
    assert record.size == len(b"%PDF-1.4 test")
    assert record.url == f"/uploads/{record.storage_key}"
    assert record.storage_key.startswith("leave_")
    assert record.storage_key.endswith("_doctor-note.pdf")
    assert storage.exists(record.storage_key)


def test_upload_rejects_unsupported_type(db_session, storage, employee_user):
    manager = AttachmentManager(db_session, storage)
    with pytest.raises(ValidationError):
        manager.upload([IncomingFile("run.sh", "application/x-sh", b"echo hi")], uploader=employee_user)
    assert db_session.query(File).count() == 0


def test_upload_rejects_oversized_file(db_session, storage, employee_user):
    too_big = b"0" * (settings.storage.max_upload_bytes + 1)
    with pytest.raises(ValidationError):
        AttachmentManager(db_session, storage).upload([_pdf(data=too_big)], uploader=employee_user)


def test_upload_rejects_too_many_files(db_session, storage, employee_user):
    files = [_pdf(f"note-{i}.pdf") for i in range(settings.storage.max_files_per_upload + 1)]
    with pytest.raises(ValidationError):
        AttachmentManager(db_session, storage).upload(files, uploader=employee_user)


def test_upload_requires_a_file(db_session, storage, employee_user):
    with pytest.raises(ValidationError):
        AttachmentManager(db_session, storage).upload([], uploader=employee_user)


def test_stored_name_is_sanitized(storage):
    key, url = storage.save(b"data", "../../etc/pass wd.txt")
    assert "/" not in key
    assert key.endswith("_pass_wd.txt")
    assert storage.exists(key)


def test_remove_file_by_uploader(db_session, storage, employee_user):
    manager = AttachmentManager(db_session, storage)
    [record] = manager.upload([_pdf()], uploader=employee_user)
    file_id, key = record.id, record.storage_key

    manager.remove_file(file_id, employee_user)

    assert db_session.query(File).filter(File.id == file_id).first() is None
    assert not storage.exists(key)


def test_remove_file_by_someone_else_is_denied(db_session, storage, employee_user, make_user):
    manager = AttachmentManager(db_session, storage)
    [record] = manager.upload([_pdf()], uploader=employee_user)
    colleague = make_user("colin@acme.com")

    with pytest.raises(AccessDeniedError):
        manager.remove_file(record.id, colleague)


def test_manager_can_remove_any_file(db_session, storage, employee_user, manager_user):
    manager = AttachmentManager(db_session, storage)
    [record] = manager.upload([_pdf()], uploader=employee_user)
    manager.remove_file(record.id, manager_user)
    assert db_session.query(File).count() == 0


def test_remove_missing_file(db_session, storage, employee_user):
    with pytest.raises(NotFoundError):
        AttachmentManager(db_session, storage).remove_file(12345, employee_user)


def test_list_unattached_scopes_to_uploader(db_session, storage, employee_user, admin_user, make_user):
    manager = AttachmentManager(db_session, storage)
    colleague = make_user("colin@acme.com")
    manager.upload([_pdf("mine.pdf")], uploader=employee_user)
    manager.upload([_pdf("theirs.pdf")], uploader=colleague)

    assert [f.name for f in manager.list_unattached(employee_user)] == ["mine.pdf"]
    assert {f.name for f in manager.list_unattached(admin_user)} == {"mine.pdf", "theirs.pdf"}


def test_purge_tolerates_missing_bytes(db_session, storage):
    AttachmentManager(db_session, storage).purge_stored(["leave_0_deadbeef_gone.pdf"])


# --- API ---

def test_upload_endpoint(client, employee_user, auth_headers):
    response = client.post(
        "/api/leaves/upload",
        headers=auth_headers(employee_user),
        files=[
            ("files", ("note.pdf", b"%PDF-1.4 a", "application/pdf")),
            ("files", ("scan.png", b"\x89PNG b", "image/png")),
        ],
    )
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert [f["name"] for f in body] == ["note.pdf", "scan.png"]
    assert all(f["leave_id"] is None for f in body)


def test_upload_endpoint_rejects_bad_type(client, employee_user, auth_headers):
    response = client.post(
        "/api/leaves/upload",
        headers=auth_headers(employee_user),
        files=[("files", ("tool.exe", b"MZ", "application/x-msdownload"))],
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_upload_requires_auth(client):
    response = client.post(
        "/api/leaves/upload",
        files=[("files", ("note.pdf", b"%PDF", "application/pdf"))],
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_temporary_files_and_delete_endpoints(client, employee_user, auth_headers):
    headers = auth_headers(employee_user)
    uploaded = client.post(
        "/api/leaves/upload",
        headers=headers,
        files=[("files", ("note.pdf", b"%PDF-1.4 a", "application/pdf"))],
    ).json()[0]

    listed = client.get("/api/leaves/temporary-files", headers=headers).json()
    assert [f["id"] for f in listed] == [uploaded["id"]]

    response = client.delete(f"/api/leaves/file/{uploaded['id']}", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert client.get("/api/leaves/temporary-files", headers=headers).json() == []


def test_uploaded_bytes_are_served(client, employee_user, auth_headers, storage):
    uploaded = client.post(
        "/api/leaves/upload",
        headers=auth_headers(employee_user),
        files=[("files", ("hello.txt", b"hello there", "text/plain"))],
    ).json()[0]
    assert storage.exists(uploaded["url"].rsplit("/", 1)[-1])


def test_upload_endpoint_reads_only_past_the_limit(client, employee_user, auth_headers, monkeypatch):
    monkeypatch.setattr(settings.storage, "max_upload_bytes", 8)
    response = client.post(
        "/api/leaves/upload",
        headers=auth_headers(employee_user),
        files=[("files", ("big.txt", b"x" * 4096, "text/plain"))],
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    error = response.json()["errors"][0]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]["size"] == 9
