"""HTTP surface — routers, status codes and RFC 7807 error bodies.

Dates are derived from the real local clock because the endpoints do not
accept a "now" override.
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from decimal import Decimal

from httpx import AsyncClient

from leave_ledger.common.clock import local_today

APPROVER = str(uuid.uuid4())
PROBLEM_JSON = "application/problem+json"


def _monday_after(days: int) -> date:
    day = local_today() + timedelta(days=days)
    return day + timedelta(days=(7 - day.weekday()) % 7)


async def _register(client: AsyncClient, email: str = "asha.menon@example.com") -> dict:
    resp = await client.post(
        "/api/v1/employees",
        json={
            "name": "Asha Menon",
            "email": email,
            "joining_date": "2020-01-06",
            "department": "Engineering",
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _apply(client: AsyncClient, employee_id: str, **body):
    payload = {"leave_type": "casual", "reason": "Family function out of town"}
    payload.update(body)
    return await client.post(f"/api/v1/leave/apply/{employee_id}", json=payload)


async def _balances(client: AsyncClient, employee_id: str) -> dict[str, Decimal]:
    resp = await client.get(f"/api/v1/leave/balances/{employee_id}")
    assert resp.status_code == 200
    return {k: Decimal(v) for k, v in resp.json()["balances"].items()}


class TestHealth:

    async def test_health(self, client: AsyncClient):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


class TestEmployeesApi:

    async def test_register_and_fetch(self, client: AsyncClient):
        emp = await _register(client)
        assert Decimal(emp["sick_balance"]) == Decimal("12")

        resp = await client.get(f"/api/v1/employees/{emp['id']}")
        assert resp.status_code == 200
        assert resp.json()["email"] == "asha.menon@example.com"

    async def test_duplicate_email_is_409(self, client: AsyncClient):
        await _register(client)
        resp = await client.post(
            "/api/v1/employees",
            json={"name": "Other", "email": "asha.menon@example.com", "joining_date": "2021-01-01"},
        )
        assert resp.status_code == 409
        assert resp.headers["content-type"].startswith(PROBLEM_JSON)

    async def test_bad_email_is_422(self, client: AsyncClient):
        resp = await client.post(
            "/api/v1/employees",
            json={"name": "Other", "email": "not-an-email", "joining_date": "2021-01-01"},
        )
        assert resp.status_code == 422
        assert "email" in resp.json()["errors"]

    async def test_unknown_employee_is_404(self, client: AsyncClient):
        resp = await client.get(f"/api/v1/employees/{uuid.uuid4()}")
        assert resp.status_code == 404
        body = resp.json()
        assert body["status"] == 404
        assert body["type"].endswith("/not-found")

    async def test_deactivate(self, client: AsyncClient):
        emp = await _register(client)
        resp = await client.post(f"/api/v1/employees/{emp['id']}/deactivate")
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        listing = await client.get("/api/v1/employees")
        assert listing.json() == []


class TestLeaveFlow:

    async def test_apply_approve_cancel_round_trip(self, client: AsyncClient):
        emp = await _register(client)
        before = await _balances(client, emp["id"])
        start = _monday_after(14)
        end = start + timedelta(days=4)

        resp = await _apply(client, emp["id"], start_date=start.isoformat(), end_date=end.isoformat())
        assert resp.status_code == 201, resp.text
        leave = resp.json()
        assert leave["status"] == "pending"
        assert Decimal(leave["working_days"]) == Decimal("5")

        resp = await client.put(
            f"/api/v1/leave/{leave['id']}/status",
            json={"action": "approve", "actor_id": APPROVER},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"
        assert (await _balances(client, emp["id"]))["casual"] == Decimal("3")

        resp = await client.put(
            f"/api/v1/leave/{leave['id']}/status",
            json={"action": "approve", "actor_id": APPROVER},
        )
        assert resp.status_code == 409
        assert resp.json()["type"].endswith("/invalid-state")

        resp = await client.put(
            f"/api/v1/leave/{leave['id']}/cancel",
            json={"actor_id": emp["id"], "reason": "Trip postponed"},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert await _balances(client, emp["id"]) == before

    async def test_weekend_start_is_422_with_rule(self, client: AsyncClient):
        emp = await _register(client)
        saturday = _monday_after(14) - timedelta(days=2)
        resp = await _apply(
            client, emp["id"], leave_type="sick",
            start_date=saturday.isoformat(), end_date=saturday.isoformat(),
        )
        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith(PROBLEM_JSON)
        assert "non_working_start" in resp.json()["errors"]

    async def test_reject(self, client: AsyncClient):
        emp = await _register(client)
        start = _monday_after(14)
        leave = (await _apply(client, emp["id"], start_date=start.isoformat(), end_date=start.isoformat())).json()
        resp = await client.put(
            f"/api/v1/leave/{leave['id']}/status",
            json={"action": "reject", "actor_id": APPROVER, "reason": "Release week"},
        )
        assert resp.status_code == 200
        assert resp.json()["rejection_reason"] == "Release week"

    async def test_list_requests(self, client: AsyncClient):
        emp = await _register(client)
        start = _monday_after(14)
        for offset in (0, 1, 2):
            day = (start + timedelta(days=offset)).isoformat()
            await _apply(client, emp["id"], start_date=day, end_date=day)

        resp = await client.get(
            "/api/v1/leave/requests",
            params={"employee_id": emp["id"], "page_size": 2, "sort": "start_date"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["total"] == 3
        assert body["meta"]["has_next"] is True
        assert body["data"][0]["start_date"] == start.isoformat()

    async def test_comp_off_and_lop_status(self, client: AsyncClient):
        emp = await _register(client)
        resp = await client.post(
            f"/api/v1/leave/comp-off/{emp['id']}",
            json={"days": "1.5", "reason": "Weekend deploy", "actor_id": APPROVER},
        )
        assert resp.status_code == 200
        assert Decimal(resp.json()["balances"]["compOff"]) == Decimal("1.5")

        resp = await client.post(
            f"/api/v1/leave/comp-off/{emp['id']}",
            json={"days": "6", "reason": "Too much"},
        )
        assert resp.status_code == 422

        resp = await client.get(f"/api/v1/leave/lop-status/{emp['id']}")
        assert resp.status_code == 200
        status = resp.json()
        assert Decimal(status["yearly_lop"]) == Decimal("0")
        assert status["exceeds_monthly_limit"] is False
        assert status["history"] == []


class TestHolidaysApi:

    async def test_add_list_remove(self, client: AsyncClient):
        resp = await client.post("/api/v1/holidays", json={"date": "2030-01-26", "name": "Republic Day"})
        assert resp.status_code == 201
        holiday = resp.json()

        dup = await client.post("/api/v1/holidays", json={"date": "2030-01-26", "name": "Again"})
        assert dup.status_code == 409

        listing = await client.get("/api/v1/holidays", params={"year": 2030})
        assert [h["name"] for h in listing.json()] == ["Republic Day"]

        assert (await client.delete(f"/api/v1/holidays/{holiday['id']}")).status_code == 204
        assert (await client.delete(f"/api/v1/holidays/{holiday['id']}")).status_code == 404


class TestPolicyApi:

    async def test_get_and_update(self, client: AsyncClient):
        resp = await client.get("/api/v1/policy")
        assert resp.status_code == 200
        settings = resp.json()["system_settings"]
        assert Decimal(settings["max_lop_days_yearly"]) == Decimal("10")

        settings["max_lop_days_yearly"] = "12"
        resp = await client.put("/api/v1/policy", json={"system_settings": settings})
        assert resp.status_code == 200

        resp = await client.get("/api/v1/policy")
        assert Decimal(resp.json()["system_settings"]["max_lop_days_yearly"]) == Decimal("12")


class TestAccrualApi:

    async def test_run_once_per_month(self, client: AsyncClient):
        await _register(client)
        resp = await client.post("/api/v1/accrual/run", json={"as_of": "2025-03-15"})
        assert resp.status_code == 201
        assert resp.json()["employees_processed"] == 1

        again = await client.post("/api/v1/accrual/run", json={"as_of": "2025-03-31"})
        assert again.status_code == 409

        info = await client.get("/api/v1/accrual/info")
        assert info.status_code == 200
        assert info.json()["last_run"]["run_month"] == "2025-03-01"
