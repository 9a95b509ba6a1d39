from datetime import date

import pytest

from payroll_api.models.attendance import AttendanceRecord
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.salary_profile import SalaryProfile
from payroll_api.models.payroll.slip import PayrollSlip
from payroll_api.services.schedule_defaults import seed_default_schedules


@pytest.fixture
def staff(session):
    seed_default_schedules(date(2024, 4, 1))
    out = []
    for code in ("E1", "E2"):
        e = Employee(code=code, first_name=code)
        session.add(e); session.commit()
        session.add(SalaryProfile(employee_id=e.id, effective_from=date(2024, 4, 1), basic=20000,
                                  hra=6000, esi_enabled=False, lwf_enabled=False))
        for day in range(1, 27):
            session.add(AttendanceRecord(employee_id=e.id, attendance_date=date(2025, 1, day), status="P"))
        session.commit()
        out.append(e)
    return out


def test_requires_token(client):
    r = client.get("/api/v1/payroll/slips")
    assert r.status_code == 401


def test_forbidden_without_permission(client, token, staff):
    r = client.post("/api/v1/payroll/generate", json={"employee_id": staff[0].id, "month": "2025-01"},
                    headers=token(roles=["employee"], perms=["payroll.read"]))
    assert r.status_code == 403


def test_wildcard_permission(client, token, staff):
    r = client.post("/api/v1/payroll/generate", json={"employee_id": staff[0].id, "month": "2025-01"},
                    headers=token(roles=["finance"], perms=["payroll.*"]))
    assert r.status_code == 201


def test_generate_single_then_duplicate(client, token, staff):
    h = token()
    r = client.post("/api/v1/payroll/generate", json={"employee_id": staff[0].id, "month": "2025-01"}, headers=h)
    assert r.status_code == 201
    body = r.get_json()
    assert body["success"] is True
    data = body["data"]
    assert data["month"] == "2025-01"
    assert data["gross"] == 26000
    # PF 12% 3120 + PT 200 + mlwf dropped + insurance 500 + PA 200 + mediclaim 300 + TDS 0
    assert data["total_deductions"] == 4320
    assert data["net_pay"] == 21680
    assert data["payment_status"] == "pending"

    r = client.post("/api/v1/payroll/generate", json={"employee_id": staff[0].id, "month": "2025-01"}, headers=h)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "ALREADY_EXISTS"


def test_preview(client, token, staff):
    r = client.post("/api/v1/payroll/generate",
                    json={"employee_id": staff[0].id, "month": "2025-01", "preview": True}, headers=token())
    assert r.status_code == 200
    body = r.get_json()
    assert body["meta"]["preview"] is True
    assert body["data"]["gross_salary"] == 26000
    assert PayrollSlip.query.count() == 0


def test_batch_all(client, token, staff, session):
    lonely = Employee(code="E3", first_name="E3")
    session.add(lonely); session.commit()

    r = client.post("/api/v1/payroll/generate", json={"month": "2025-01", "all": True}, headers=token())
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert (data["total"], data["created"], data["failed"]) == (3, 2, 1)
    failed = [x for x in data["results"] if x["status"] == "failed"]
    assert failed[0]["employee_id"] == lonely.id
    assert failed[0]["code"] == "PROFILE_MISSING"


def test_batch_by_ids(client, token, staff):
    r = client.post("/api/v1/payroll/generate",
                    json={"month": "2025-01", "employee_ids": [staff[1].id]}, headers=token())
    assert r.status_code == 200
    assert r.get_json()["data"]["created"] == 1


def test_generate_validation(client, token, staff):
    h = token()
    r = client.post("/api/v1/payroll/generate", json={"employee_id": staff[0].id}, headers=h)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"

    r = client.post("/api/v1/payroll/generate", json={"employee_id": staff[0].id, "month": "Jan"}, headers=h)
    assert r.status_code == 422


def test_list_and_update_slips(client, token, staff):
    h = token()
    client.post("/api/v1/payroll/generate", json={"month": "2025-01", "all": True}, headers=h)

    r = client.get("/api/v1/payroll/slips?month=2025-01&payment_status=pending", headers=h)
    body = r.get_json()
    assert r.status_code == 200
    assert body["meta"]["total"] == 2
    slip_id = body["data"][0]["id"]
    assert "breakdown" not in body["data"][0]

    r = client.put("/api/v1/payroll/slips", json={
        "id": slip_id, "payment_status": "paid", "payment_date": "2025-02-03", "payment_reference": "UTR9",
    }, headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"]["payment_status"] == "paid"

    r = client.put("/api/v1/payroll/slips", json={"id": slip_id, "net_pay": 1}, headers=h)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "IMMUTABLE_FIELD"

    r = client.get(f"/api/v1/payroll/slips?employee_id={staff[0].id}&payment_status=paid", headers=h)
    assert [s["id"] for s in r.get_json()["data"]] == [slip_id]

    r = client.get(f"/api/v1/payroll/slips/{slip_id}", headers=h)
    assert r.get_json()["data"]["breakdown"]["earnings"]["hra"] == 6000

    r = client.put("/api/v1/payroll/slips", json={"id": 999, "remarks": "x"}, headers=h)
    assert r.status_code == 404


def test_current_schedule(client, token, staff):
    r = client.get("/api/v1/payroll/schedules/current?date=2025-01-15&gross=15000", headers=token())
    data = r.get_json()["data"]
    assert r.status_code == 200
    assert data["pt"]["amount"] == 200
    assert data["pf_employee"]["amount"] == 1800

    r = client.get("/api/v1/payroll/schedules/current?date=2025-01-15&gross=4000", headers=token())
    assert r.get_json()["data"]["pt"]["amount"] == 0


def test_schedule_slab_overlap_rejected(client, token, staff):
    h = token()
    r = client.post("/api/v1/payroll/schedules", json={
        "component_type": "pt", "value_type": "fixed", "value": 300,
        "min_salary": 9000, "max_salary": 12000, "effective_from": "2025-01-01",
    }, headers=h)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "SCHEDULE_OVERLAP"

    r = client.post("/api/v1/payroll/schedules", json={
        "component_type": "gratuity", "value_type": "percentage", "value": 4.81,
        "effective_from": "2025-01-01",
    }, headers=h)
    assert r.status_code == 201
    new_id = r.get_json()["data"]["id"]

    r = client.put(f"/api/v1/payroll/schedules/{new_id}", json={"effective_to": "2025-12-31"}, headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"]["effective_to"] == "2025-12-31"

    r = client.get("/api/v1/payroll/schedules?component_type=gratuity", headers=h)
    assert [x["id"] for x in r.get_json()["data"]] == [new_id]


def test_non_finite_numbers_rejected(client, token, staff):
    h = token()
    r = client.post("/api/v1/payroll/schedules", json={
        "component_type": "gratuity", "value_type": "percentage", "value": "NaN",
        "effective_from": "2025-01-01",
    }, headers=h)
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"

    r = client.get("/api/v1/payroll/schedules/current?date=2025-01-15&gross=Infinity", headers=h)
    assert r.status_code == 422

    r = client.post("/api/v1/payroll/salary-profiles", json={
        "employee_id": staff[0].id, "effective_from": "2025-03-01", "basic": "nan",
    }, headers=h)
    assert r.status_code == 422


def test_salary_profiles_and_attendance_summary(client, token, staff):
    h = token()
    emp = staff[0]
    r = client.post("/api/v1/payroll/salary-profiles", json={
        "employee_id": emp.id, "effective_from": "2025-02-01", "basic": 24000, "hra": 8000,
        "standard_working_days": 24,
    }, headers=h)
    assert r.status_code == 201
    assert r.get_json()["data"]["da_year"] == 2025

    r = client.get(f"/api/v1/payroll/salary-profiles?employee_id={emp.id}", headers=h)
    rows = r.get_json()["data"]
    assert [p["effective_from"] for p in rows] == ["2025-02-01", "2024-04-01"]

    r = client.get(f"/api/v1/payroll/attendance-summary?employee_id={emp.id}&month=2025-01", headers=h)
    data = r.get_json()["data"]
    assert data["payable_days"] == 26
    assert data["pay_ratio"] == 1.0
