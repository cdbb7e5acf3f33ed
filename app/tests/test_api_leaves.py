"""
HTTP tests for the leave and admin endpoints
"""
from decimal import Decimal

import pytest
from fastapi import status

from app.models.leave import LeaveRequest


APPLY_PAYLOAD = {
    "leave_type": "earned",
    "start_date": "2030-03-04",
    "end_date": "2030-03-08",
    "reason": "Family trip",
}


@pytest.fixture
def applied(client, employee, employee_balances, auth_headers):
    response = client.post("/api/v1/leaves/apply", json=APPLY_PAYLOAD, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_apply_returns_pending_request(applied, employee, manager):
    assert applied["status"] == "pending"
    assert applied["employee_id"] == employee.id
    assert applied["approved_by"] == manager.id
    assert Decimal(applied["days_count"]) == Decimal("5")


def test_apply_requires_authentication(client):
    response = client.post("/api/v1/leaves/apply", json=APPLY_PAYLOAD)
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_apply_rejects_bad_token(client):
    response = client.post(
        "/api/v1/leaves/apply", json=APPLY_PAYLOAD, headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_apply_insufficient_balance_is_409(client, employee, seed_balances, auth_headers):
    seed_balances(employee.id, earned="2")
    response = client.post("/api/v1/leaves/apply", json=APPLY_PAYLOAD, headers=auth_headers(employee))

    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["error_type"] == "insufficient-balance"
    assert body["data"] == {"available": 2.0, "requested": 5.0}


def test_apply_weekend_only_is_400(client, employee, employee_balances, auth_headers):
    payload = dict(APPLY_PAYLOAD, start_date="2030-03-09", end_date="2030-03-10")
    response = client.post("/api/v1/leaves/apply", json=payload, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error_type"] == "no-working-days"


def test_admin_account_cannot_apply_for_itself(client, admin_headers):
    response = client.post("/api/v1/leaves/apply", json=APPLY_PAYLOAD, headers=admin_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_my_leaves_and_status_filter(client, applied, employee, auth_headers):
    headers = auth_headers(employee)
    response = client.get("/api/v1/leaves/my", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["total"] == 1

    response = client.get("/api/v1/leaves/my", params={"status": "approved"}, headers=headers)
    assert response.json() == {"items": [], "total": 0}


def test_manager_flow_approve_and_balance(client, applied, employee, manager, auth_headers, notifier):
    manager_headers = auth_headers(manager)

    pending = client.get("/api/v1/leaves/pending", headers=manager_headers).json()
    assert [item["id"] for item in pending["items"]] == [applied["id"]]

    response = client.post(
        f"/api/v1/leaves/{applied['id']}/approve", json={"comment": "Enjoy"}, headers=manager_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "approved"
    assert response.json()["approval_comment"] == "Enjoy"
    assert notifier.decisions[-1]["decision"] == "approved"

    balances = client.get(
        "/api/v1/leaves/balance/me", params={"year": 2030}, headers=auth_headers(employee)
    ).json()
    by_type = {row["leave_type"]: row for row in balances["balances"]}
    assert Decimal(by_type["earned"]["used_days"]) == Decimal("5")
    assert Decimal(by_type["earned"]["available_days"]) == Decimal("7")

    # Approving twice is a conflict
    response = client.post(f"/api/v1/leaves/{applied['id']}/approve", json={}, headers=manager_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error_type"] == "invalid-state-transition"


def test_outside_manager_is_forbidden(client, applied, employee, other_manager, auth_headers):
    headers = auth_headers(other_manager)
    response = client.post(f"/api/v1/leaves/{applied['id']}/approve", json={}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error_type"] == "forbidden"

    response = client.get(f"/api/v1/leaves/balance/{employee.id}", params={"year": 2030}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_manager_views_team_balance(client, employee, manager, employee_balances, auth_headers):
    response = client.get(
        f"/api/v1/leaves/balance/{employee.id}", params={"year": 2030}, headers=auth_headers(manager)
    )
    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()["balances"]) == 3


def test_reject_requires_reason(client, applied, manager, auth_headers):
    response = client.post(
        f"/api/v1/leaves/{applied['id']}/reject", json={"rejection_reason": ""}, headers=auth_headers(manager)
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.post(
        f"/api/v1/leaves/{applied['id']}/reject",
        json={"rejection_reason": "Release week"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "rejected"


def test_owner_updates_then_cancels(client, applied, employee, auth_headers):
    headers = auth_headers(employee)
    response = client.patch(
        f"/api/v1/leaves/{applied['id']}", json={"end_date": "2030-03-06"}, headers=headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert Decimal(response.json()["days_count"]) == Decimal("3")

    response = client.post(f"/api/v1/leaves/{applied['id']}/cancel", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "cancelled"


def test_calendar_is_scoped(client, applied, employee, other_manager, hr_employee, auth_headers):
    params = {"month": 3, "year": 2030}
    own = client.get("/api/v1/leaves/calendar", params=params, headers=auth_headers(employee)).json()
    assert [item["id"] for item in own["items"]] == [applied["id"]]

    everyone = client.get("/api/v1/leaves/calendar", params=params, headers=auth_headers(hr_employee)).json()
    assert everyone["total"] == 1

    outsider = client.get("/api/v1/leaves/calendar", params=params, headers=auth_headers(other_manager)).json()
    assert outsider["total"] == 0


def test_delete_requires_hr(client, applied, employee, hr_employee, auth_headers, calendar_sync):
    response = client.delete(f"/api/v1/leaves/{applied['id']}", headers=auth_headers(employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.delete(f"/api/v1/leaves/{applied['id']}", headers=auth_headers(hr_employee))
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert calendar_sync.removed == [applied["id"]]

    response = client.get(f"/api/v1/leaves/{applied['id']}", headers=auth_headers(hr_employee))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_transactions_endpoint(client, applied, employee, hr_employee, auth_headers):
    response = client.get(
        f"/api/v1/leaves/balance/{employee.id}/transactions", params={"year": 2030}, headers=auth_headers(hr_employee)
    )
    assert response.status_code == status.HTTP_200_OK
    assert {row["action"] for row in response.json()} == {"ALLOCATION"}


def test_admin_settings_toggle(client, hr_employee, auth_headers, admin_headers):
    response = client.put("/api/v1/admin/settings/auto-approve", json={"enabled": True}, headers=auth_headers(hr_employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.put("/api/v1/admin/settings/auto-approve", json={"enabled": True}, headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK

    response = client.get("/api/v1/admin/settings/auto-approve", headers=auth_headers(hr_employee))
    assert response.json() == {"enabled": True}


def test_admin_trigger_with_flag_off(client, admin_headers):
    response = client.post("/api/v1/admin/leaves/auto-approve/trigger", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["enabled"] is False


def test_admin_apply_for_employee_approved(client, employee, employee_balances, admin_headers, notifier):
    payload = dict(APPLY_PAYLOAD, status="approved")
    response = client.post(f"/api/v1/admin/leaves/apply-for/{employee.id}", json=payload, headers=admin_headers)

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["status"] == "approved"
    assert body["approved_by"] is None
    assert body["approval_comment"] == "Applied and approved by admin"
    assert notifier.decisions[-1]["approver_name"] == "root"


def test_admin_balances_lifecycle(client, employee, admin_headers):
    response = client.post(
        f"/api/v1/admin/balances/{employee.id}/initialize",
        json={"year": 2030, "earned": "10"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    by_type = {row["leave_type"]: row for row in response.json()["balances"]}
    assert Decimal(by_type["earned"]["total_allocated"]) == Decimal("10")
    assert Decimal(by_type["sick"]["total_allocated"]) == Decimal("8")

    response = client.put(
        f"/api/v1/admin/balances/{employee.id}/allocation",
        json={"year": 2030, "leave_type": "earned", "total_allocated": "14"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert Decimal(response.json()["available_days"]) == Decimal("14")

    response = client.post("/api/v1/admin/balances/year-end-reset", json={"year": 2030}, headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["reset_count"] == 3

    listed = client.get("/api/v1/admin/balances", params={"year": 2031}, headers=admin_headers).json()
    earned = [row for row in listed if row["leave_type"] == "earned"][0]
    assert Decimal(earned["carry_forward"]) == Decimal("5")


def test_admin_removes_employee_leave_data(client, applied, employee, admin_headers):
    response = client.delete(f"/api/v1/admin/employees/{employee.id}/leave-data", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"employee_id": employee.id, "leave_requests_removed": 1, "balances_removed": 3}


def test_update_with_null_field_is_400(client, applied, employee, auth_headers):
    response = client.patch(
        f"/api/v1/leaves/{applied['id']}", json={"start_date": None}, headers=auth_headers(employee)
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error_type"] == "validation-error"
    assert body["data"] == {"fields": ["start_date"]}


def test_admin_apply_for_without_authority_creates_nothing(client, db, hr_employee, seed_balances, auth_headers):
    seed_balances(hr_employee.id)
    payload = dict(APPLY_PAYLOAD, status="approved")
    response = client.post(
        f"/api/v1/admin/leaves/apply-for/{hr_employee.id}", json=payload, headers=auth_headers(hr_employee)
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error_type"] == "forbidden"
    assert db.query(LeaveRequest).filter(LeaveRequest.employee_id == hr_employee.id).count() == 0


def test_leave_stats(client, applied, employee, manager, hr_employee, auth_headers):
    client.post(f"/api/v1/leaves/{applied['id']}/approve", json={}, headers=auth_headers(manager))
    payload = dict(APPLY_PAYLOAD, leave_type="sick", start_date="2030-04-01", end_date="2030-04-01")
    client.post("/api/v1/leaves/apply", json=payload, headers=auth_headers(employee))

    response = client.get("/api/v1/admin/leaves/stats", params={"year": 2030}, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.get("/api/v1/admin/leaves/stats", params={"year": 2030}, headers=auth_headers(hr_employee))
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["total"] == 2
    assert body["approved"] == 1
    assert body["pending"] == 1
    assert body["rejected"] == 0
    assert body["by_type"] == {"sick": 1, "casual": 0, "earned": 1, "compensation": 0}
    assert body["by_month"]["3"] == 1
    assert body["by_month"]["4"] == 1
    assert sum(body["by_month"].values()) == 2

    empty = client.get("/api/v1/admin/leaves/stats", params={"year": 2031}, headers=auth_headers(hr_employee))
    assert empty.json()["total"] == 0


def test_admin_cleanup_cancelled(client, applied, employee, auth_headers, admin_headers):
    client.post(f"/api/v1/leaves/{applied['id']}/cancel", headers=auth_headers(employee))

    response = client.post(
        "/api/v1/admin/leaves/cleanup-cancelled", json={"before": "2030-03-01"}, headers=admin_headers
    )
    assert response.json() == {"before": "2030-03-01", "removed_count": 0}

    response = client.post(
        "/api/v1/admin/leaves/cleanup-cancelled", json={"before": "2030-04-01"}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["removed_count"] == 1
    response = client.get(f"/api/v1/leaves/{applied['id']}", headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
