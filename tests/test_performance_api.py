import pytest
from datetime import timedelta
from fastapi import status

from hris.services.auth import create_access_token


def _create_ipcr(client, user, cycle, auth_header):
    response = client.post(
        "/api/performance/ipcr/forms",
        headers=auth_header(user),
        json={"cycle_id": cycle.id},
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["data"]["id"]

def _save_items(client, user, form_id, auth_header):
    return client.put(
        f"/api/performance/ipcr/forms/{form_id}/items",
        headers=auth_header(user),
        json={"items": [
            {"category": "Core Function", "sort_order": 1, "description": "Tax maps updated"},
            {"category": "Support Function", "sort_order": 1, "description": "Attended trainings"},
        ]},
    )


def test_ipcr_flow_over_http(client, staff, chief, head, cycle, auth_header):
    form_id = _create_ipcr(client, staff, cycle, auth_header)
    assert _save_items(client, staff, form_id, auth_header).json()["data"]["created"] == 2

    response = client.post(f"/api/performance/ipcr/forms/{form_id}/submit", headers=auth_header(staff))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "submitted"

    pending = client.get("/api/performance/approvals", headers=auth_header(chief)).json()["data"]
    assert [f["id"] for f in pending] == [form_id]

    response = client.post(f"/api/performance/ipcr/forms/{form_id}/review", headers=auth_header(chief), json={"comments": "ok"})
    assert response.json()["data"]["status"] == "reviewed"

    detail = client.get(f"/api/performance/ipcr/forms/{form_id}", headers=auth_header(head)).json()["data"]
    ratings = [
        {"item_id": item["id"], "rating_quantity": 5, "rating_efficiency": 4, "rating_timeliness": 4}
        for item in detail["items"]
    ]
    response = client.post(
        f"/api/performance/ipcr/forms/{form_id}/finalize",
        headers=auth_header(head),
        json={"ratings": ratings, "remarks": "Good"},
    )
    body = response.json()
    assert response.status_code == 200, body
    assert body["success"] is True
    assert body["data"]["status"] == "finalized"
    assert body["data"]["adjectival_rating"] == "Very Satisfactory"

def test_duplicate_is_conflict_with_existing_id(client, staff, cycle, auth_header):
    form_id = _create_ipcr(client, staff, cycle, auth_header)
    response = client.post("/api/performance/ipcr/forms", headers=auth_header(staff), json={"cycle_id": cycle.id})
    assert response.status_code == status.HTTP_409_CONFLICT
    error = response.json()["error"]
    assert error["code"] == "DUPLICATE_FORM"
    assert error["details"]["existing_id"] == form_id

def test_invalid_transition_is_conflict(client, staff, cycle, auth_header):
    form_id = _create_ipcr(client, staff, cycle, auth_header)
    response = client.post(f"/api/performance/ipcr/forms/{form_id}/review", headers=auth_header(staff), json={})
    # staff is neither chief nor HR: the guard runs before the status check
    assert response.status_code == status.HTTP_403_FORBIDDEN

    _save_items(client, staff, form_id, auth_header)
    client.post(f"/api/performance/ipcr/forms/{form_id}/submit", headers=auth_header(staff))
    response = client.post(f"/api/performance/ipcr/forms/{form_id}/submit", headers=auth_header(staff))
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"]["code"] == "INVALID_STATE"

def test_validation_error_is_422(client, staff, cycle, auth_header):
    form_id = _create_ipcr(client, staff, cycle, auth_header)
    response = client.post(f"/api/performance/ipcr/forms/{form_id}/submit", headers=auth_header(staff))
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

def test_unknown_form_is_404(client, staff, cycle, auth_header):
    response = client.get("/api/performance/ipcr/forms/999", headers=auth_header(staff))
    assert response.status_code == status.HTTP_404_NOT_FOUND

def test_unknown_kind_is_rejected(client, staff, auth_header):
    response = client.get("/api/performance/spcr/forms", headers=auth_header(staff))
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

def test_status_filter(client, staff, cycle, auth_header):
    _create_ipcr(client, staff, cycle, auth_header)
    drafts = client.get("/api/performance/ipcr/forms?status=draft", headers=auth_header(staff)).json()["data"]
    assert len(drafts) == 1
    everything = client.get("/api/performance/ipcr/forms?status=all", headers=auth_header(staff)).json()["data"]
    assert len(everything) == 1
    response = client.get("/api/performance/ipcr/forms?status=archived", headers=auth_header(staff))
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

def test_opcr_list_forbidden_for_staff(client, staff, auth_header):
    response = client.get("/api/performance/opcr/forms", headers=auth_header(staff))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"]["code"] == "FORBIDDEN"

def test_missing_token_is_401(client):
    response = client.get("/api/performance/ipcr/forms")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

def test_expired_token_is_401(client, staff):
    token = create_access_token({"sub": str(staff.id)}, expires_delta=timedelta(minutes=-5))
    response = client.get("/api/performance/ipcr/forms", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["errors"][0]["msg"] == "TOKEN_EXPIRED"

def test_inactive_user_is_403(client, staff, db_session, auth_header):
    headers = auth_header(staff)
    staff.is_active = False
    db_session.commit()
    response = client.get("/api/performance/ipcr/forms", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN

def test_cycle_endpoints(client, head, staff, cycle, auth_header):
    response = client.get("/api/cycles/active", headers=auth_header(staff))
    assert response.json()["data"]["id"] == cycle.id

    response = client.post(
        "/api/cycles",
        headers=auth_header(head),
        json={"name": "Jul-Dec 2026", "period_start": "2026-07-01", "period_end": "2026-12-31"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    new_id = response.json()["data"]["id"]

    response = client.post(f"/api/cycles/{new_id}/activate", headers=auth_header(head))
    assert response.json()["data"]["is_active"] is True
    assert client.get("/api/cycles/active", headers=auth_header(staff)).json()["data"]["id"] == new_id

    response = client.post(f"/api/cycles/{cycle.id}/activate", headers=auth_header(staff))
    assert response.status_code == status.HTTP_403_FORBIDDEN
