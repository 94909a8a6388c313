import pytest
from datetime import date, timedelta
from fastapi import status
from leavedesk.models.notification import Notification


def _future(days):
    return (date.today() + timedelta(days=days)).isoformat()


def _create_leave(client, headers, start=10, end=14, leave_type="AnnualLeave", **extra):
    payload = {
        "leave_type": leave_type,
        "start_date": _future(start),
        "end_date": _future(end),
        "reason": "Family visit",
    }
    payload.update(extra)
    return client.post("/api/leaves/", json=payload, headers=headers)


def test_create_leave(client, employee_user, auth_headers):
    response = _create_leave(client, auth_headers(employee_user))
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["status"] == "pending"
    assert body["days"] == 5
    assert body["user"]["email"] == employee_user.email
    assert body["attachments"] == []


def test_create_leave_unknown_type_is_422(client, employee_user, auth_headers):
    response = _create_leave(client, auth_headers(employee_user), leave_type="Sabbatical")
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "leave_type"


def test_create_leave_in_past_is_400(client, employee_user, auth_headers):
    response = _create_leave(client, auth_headers(employee_user), start=-3, end=-1)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_overlap_is_409(client, employee_user, auth_headers):
    headers = auth_headers(employee_user)
    first = _create_leave(client, headers, start=10, end=15).json()

    response = _create_leave(client, headers, start=14, end=20)
    assert response.status_code == status.HTTP_409_CONFLICT
    error = response.json()["errors"][0]
    assert error["code"] == "LEAVE_OVERLAP"
    assert error["details"]["conflicting_leave_id"] == first["id"]


def test_insufficient_balance_is_400(client, make_user, auth_headers):
    owner = make_user("erin@acme.com", balances={"Other": 1})
    response = _create_leave(client, auth_headers(owner), start=10, end=11, leave_type="Other")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["code"] == "INSUFFICIENT_BALANCE"


def test_create_with_uploaded_files(client, employee_user, auth_headers):
    headers = auth_headers(employee_user)
    uploaded = client.post(
        "/api/leaves/upload",
        headers=headers,
        files=[("files", ("note.pdf", b"%PDF-1.4", "application/pdf"))],
    ).json()

    response = _create_leave(client, headers, file_ids=[uploaded[0]["id"]])
    assert response.status_code == status.HTTP_201_CREATED
    assert [f["id"] for f in response.json()["attachments"]] == [uploaded[0]["id"]]
    assert client.get("/api/leaves/temporary-files", headers=headers).json() == []


def test_full_approval_flow(client, make_user, manager_user, auth_headers):
    owner = make_user("erin@acme.com", balances={"AnnualLeave": 10})
    leave = _create_leave(client, auth_headers(owner), start=10, end=14).json()

    response = client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(manager_user))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "Leave approved and 5 days deducted from AnnualLeave balance"
    assert body["leave"]["status"] == "approved"
    assert body["leave"]["actioned_by_user"]["id"] == manager_user.id

    me = client.get("/api/auth/me", headers=auth_headers(owner)).json()
    assert me["leave_balances"]["AnnualLeave"] == 5

    again = client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(manager_user))
    assert again.status_code == status.HTTP_409_CONFLICT
    assert again.json()["errors"][0]["code"] == "INVALID_TRANSITION"

    response = client.delete(f"/api/leaves/{leave['id']}", headers=auth_headers(manager_user))
    assert response.status_code == status.HTTP_200_OK
    me = client.get("/api/auth/me", headers=auth_headers(owner)).json()
    assert me["leave_balances"]["AnnualLeave"] == 10
    assert client.get(f"/api/leaves/{leave['id']}", headers=auth_headers(manager_user)).status_code == 404


def test_employee_cannot_approve(client, employee_user, auth_headers, make_user):
    owner = make_user("colin@acme.com")
    leave = _create_leave(client, auth_headers(owner)).json()
    response = client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_reject_flow(client, employee_user, manager_user, auth_headers):
    leave = _create_leave(client, auth_headers(employee_user)).json()

    blank = client.put(
        f"/api/leaves/{leave['id']}/reject",
        json={"rejection_reason": " "},
        headers=auth_headers(manager_user),
    )
    assert blank.status_code == status.HTTP_400_BAD_REQUEST

    response = client.put(
        f"/api/leaves/{leave['id']}/reject",
        json={"rejection_reason": "Quarter-end freeze"},
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["leave"]["rejection_reason"] == "Quarter-end freeze"


def test_cancel_flow(client, employee_user, auth_headers):
    headers = auth_headers(employee_user)
    leave = _create_leave(client, headers).json()
    response = client.put(f"/api/leaves/{leave['id']}/cancel", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["leave"]["status"] == "cancelled"

    again = client.put(f"/api/leaves/{leave['id']}/cancel", headers=headers)
    assert again.status_code == status.HTTP_409_CONFLICT


def test_update_leave(client, employee_user, auth_headers):
    headers = auth_headers(employee_user)
    leave = _create_leave(client, headers, start=10, end=11).json()

    response = client.put(
        f"/api/leaves/{leave['id']}",
        json={"end_date": _future(13), "reason": "Longer trip"},
        headers=headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["days"] == 4
    assert response.json()["reason"] == "Longer trip"


def test_my_leaves_and_manager_listing(client, employee_user, manager_user, auth_headers, make_user):
    colleague = make_user("colin@acme.com")
    mine = _create_leave(client, auth_headers(employee_user)).json()
    _create_leave(client, auth_headers(colleague)).json()

    my = client.get("/api/leaves/my", headers=auth_headers(employee_user)).json()
    assert [leave["id"] for leave in my] == [mine["id"]]

    assert client.get("/api/leaves/", headers=auth_headers(employee_user)).status_code == status.HTTP_403_FORBIDDEN
    everything = client.get("/api/leaves/", headers=auth_headers(manager_user)).json()
    assert len(everything) == 2

    filtered = client.get(
        f"/api/leaves/?user_id={employee_user.id}&status=pending", headers=auth_headers(manager_user)
    ).json()
    assert [leave["id"] for leave in filtered] == [mine["id"]]


def test_other_employee_cannot_view_leave(client, employee_user, auth_headers, make_user):
    colleague = make_user("colin@acme.com")
    leave = _create_leave(client, auth_headers(colleague)).json()
    response = client.get(f"/api/leaves/{leave['id']}", headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_delete_keeps_notifications_without_leave(client, employee_user, manager_user, auth_headers, db_session):
    leave = _create_leave(client, auth_headers(employee_user)).json()
    client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(manager_user))

    client.delete(f"/api/leaves/{leave['id']}", headers=auth_headers(manager_user))

    notifications = db_session.query(Notification).all()
    assert len(notifications) == 2
    assert all(n.leave_id is None for n in notifications)
