"""Leave API endpoints: auth, status codes, RFC 7807 bodies, JSON shapes."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.audit import AuditTrail
from backoffice.common.constants import ApprovalStatus, LeaveStatus, UserRole
from backoffice.leave.models import LeaveAllocation, LeaveRequest
from tests.conftest import (
    auth_headers_for,
    create_access_token,
    seed_allocation,
    seed_customer,
    seed_employee,
    seed_leave,
)

BASE = "/api/v1/leave"


def _apply_body(employee_id: uuid.UUID, **overrides) -> dict:
    body = {
        "employee_id": str(employee_id),
        "leave_type": "Sick Leave",
        "reason": "Dentist appointment",
        "leave_start_date": "2026-04-06",
        "leave_end_date": "2026-04-07",
    }
    body.update(overrides)
    return body


class TestHealthAndAuth:

    async def test_health(self, client: AsyncClient):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    async def test_missing_token(self, client: AsyncClient):
        resp = await client.get(f"{BASE}/reportees")
        assert resp.status_code == 401

    async def test_expired_token(self, client: AsyncClient, db: AsyncSession):
        emp = await seed_employee(db)
        await db.commit()

        token = create_access_token(emp.id, expired=True)
        resp = await client.get(
            f"{BASE}/balance/{emp.id}", headers={"Authorization": f"Bearer {token}"},
        )

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has expired."

    async def test_refresh_token_rejected(self, client: AsyncClient, db: AsyncSession):
        emp = await seed_employee(db)
        await db.commit()

        token = create_access_token(emp.id, token_type="refresh")
        resp = await client.get(
            f"{BASE}/balance/{emp.id}", headers={"Authorization": f"Bearer {token}"},
        )

        assert resp.status_code == 401

    async def test_inactive_employee_rejected(self, client: AsyncClient, db: AsyncSession):
        emp = await seed_employee(db, is_active=False)
        await db.commit()

        resp = await client.get(f"{BASE}/balance/{emp.id}", headers=auth_headers_for(emp.id))

        assert resp.status_code == 401


class TestApplyEndpoint:

    async def test_apply_returns_201(self, client: AsyncClient, db: AsyncSession):
        manager = await seed_employee(db, role=UserRole.manager)
        emp = await seed_employee(db, reporting_manager_id=manager.id)
        await db.commit()

        resp = await client.post(
            f"{BASE}/apply", json=_apply_body(emp.id), headers=auth_headers_for(emp.id),
        )

        assert resp.status_code == 201
        data = resp.json()
        assert uuid.UUID(data["leave_id"])
        assert 100000 <= data["request_number"] <= 999999

    async def test_schema_error_is_problem_json(self, client: AsyncClient, db: AsyncSession):
        emp = await seed_employee(db)
        await db.commit()

        resp = await client.post(
            f"{BASE}/apply",
            json=_apply_body(emp.id, leave_start_date="2026-04-09"),
            headers=auth_headers_for(emp.id),
        )

        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["title"] == "Validation Error"

    async def test_business_error_lists_field(self, client: AsyncClient, db: AsyncSession):
        emp = await seed_employee(db)
        await db.commit()

        resp = await client.post(
            f"{BASE}/apply", json=_apply_body(emp.id), headers=auth_headers_for(emp.id),
        )

        assert resp.status_code == 422
        assert "employee_id" in resp.json()["errors"]

    async def test_apply_for_colleague_forbidden(self, client: AsyncClient, db: AsyncSession):
        manager = await seed_employee(db, role=UserRole.manager)
        emp = await seed_employee(db, reporting_manager_id=manager.id)
        other = await seed_employee(db, reporting_manager_id=manager.id)
        await db.commit()

        resp = await client.post(
            f"{BASE}/apply", json=_apply_body(other.id), headers=auth_headers_for(emp.id),
        )

        assert resp.status_code == 403
        body = resp.json()
        assert body["status"] == 403
        assert body["instance"] == f"{BASE}/apply"


class TestStatusEndpoint:

    async def test_manager_approves(self, client: AsyncClient, db: AsyncSession):
        manager = await seed_employee(db, role=UserRole.manager)
        emp = await seed_employee(db, reporting_manager_id=manager.id)
        leave = await seed_leave(db, emp, approvers=(manager,))
        await db.commit()

        resp = await client.put(
            f"{BASE}/{leave.id}/status",
            json={"approval_status": "APPROVED", "comment": "Enjoy"},
            headers=auth_headers_for(manager.id, UserRole.manager),
        )

        assert resp.status_code == 200
        assert resp.json() == {"message": "Leave approved successfully."}

        listing = await client.get(
            f"{BASE}/employee/{emp.id}", params={"year": 2026},
            headers=auth_headers_for(emp.id),
        )
        item = listing.json()["data"][0]
        assert item["status"] == LeaveStatus.approved.value
        assert item["approvers"][0]["comment"] == "Enjoy"

    async def test_customer_rejects(self, client: AsyncClient, db: AsyncSession):
        manager = await seed_employee(db, role=UserRole.manager)
        emp = await seed_employee(db, reporting_manager_id=manager.id)
        customer = await seed_customer(db, emp)
        await db.commit()

        applied = await client.post(
            f"{BASE}/apply", json=_apply_body(emp.id), headers=auth_headers_for(emp.id),
        )
        leave_id = applied.json()["leave_id"]

        resp = await client.put(
            f"{BASE}/{leave_id}/status",
            json={"approval_status": "REJECTED"},
            headers=auth_headers_for(customer.id, UserRole.customer),
        )

        assert resp.status_code == 200
        assert resp.json()["message"] == "Leave rejected successfully."

    async def test_employee_cannot_decide(self, client: AsyncClient, db: AsyncSession):
        manager = await seed_employee(db, role=UserRole.manager)
        emp = await seed_employee(db, reporting_manager_id=manager.id)
        leave = await seed_leave(db, emp, approvers=(manager,))
        await db.commit()

        resp = await client.put(
            f"{BASE}/{leave.id}/status",
            json={"approval_status": "APPROVED"},
            headers=auth_headers_for(emp.id),
        )

        assert resp.status_code == 403

    async def test_invalid_decision_value(self, client: AsyncClient, db: AsyncSession):
        manager = await seed_employee(db, role=UserRole.manager)
        await db.commit()

        resp = await client.put(
            f"{BASE}/{uuid.uuid4()}/status",
            json={"approval_status": "PENDING"},
            headers=auth_headers_for(manager.id, UserRole.manager),
        )

        assert resp.status_code == 422
        assert "approval_status" in resp.json()["errors"]

    async def test_ledger_failure_rolls_back_decision(
        self, client: AsyncClient, db: AsyncSession, monkeypatch,
    ):
        manager = await seed_employee(db, role=UserRole.manager)
        emp = await seed_employee(db, reporting_manager_id=manager.id)
        leave = await seed_leave(db, emp, approvers=(manager,))
        await db.commit()
        leave_id = leave.id

        async def _ledger_down(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        monkeypatch.setattr("backoffice.leave.allocation.get_allocation_row", _ledger_down)

        resp = await client.put(
            f"{BASE}/{leave_id}/status",
            json={"approval_status": "APPROVED", "comment": "Fine by me"},
            headers=auth_headers_for(manager.id, UserRole.manager),
        )

        assert resp.status_code == 500
        assert resp.headers["content-type"] == "application/problem+json"
        body = resp.json()
        assert body["title"] == "Internal Server Error"
        assert "disk I/O error" not in resp.text
        assert "SELECT" not in resp.text

        db.expunge_all()
        stored = (
            await db.execute(select(LeaveRequest).where(LeaveRequest.id == leave_id))
        ).scalars().one()
        assert stored.status == LeaveStatus.requested
        assert list(stored.approvers) == [manager.id]
        for entry in stored.approvers.values():
            assert entry.approval_status == ApprovalStatus.requested
            assert entry.comment is None

        audit = (
            await db.execute(select(AuditTrail).where(AuditTrail.entity_id == leave_id))
        ).scalars().all()
        assert audit == []
        assert (await db.execute(select(LeaveAllocation))).scalars().all() == []


class TestBalanceAndAllocationEndpoints:

    async def test_balance_reports_unlimited_sentinel(self, client: AsyncClient, db: AsyncSession):
        emp = await seed_employee(db, date_of_joining=date(2024, 1, 2))
        await seed_leave(
            db, emp, leave_type="Work From Home", status=LeaveStatus.approved,
            start_date=date(2026, 2, 2), end_date=date(2026, 2, 4),
        )
        await db.commit()

        resp = await client.get(
            f"{BASE}/balance/{emp.id}", params={"year": 2026}, headers=auth_headers_for(emp.id),
        )

        assert resp.status_code == 200
        by_type = {item["leave_type"]: item for item in resp.json()}
        wfh = by_type["Work From Home"]
        assert wfh["is_unlimited"] is True
        assert Decimal(str(wfh["leave_balance"])) == Decimal("999")
        assert Decimal(str(wfh["leaves_applied"])) == Decimal("3")
        assert Decimal(str(by_type["Sick Leave"]["leave_balance"])) == Decimal("8")

    async def test_allocation_listing_and_hr_update(self, client: AsyncClient, db: AsyncSession):
        hr = await seed_employee(db, role=UserRole.hr)
        emp = await seed_employee(db)
        row = await seed_allocation(db, emp, leave_type="Sick Leave", allocated="8")
        await db.commit()

        listed = await client.get(
            f"{BASE}/allocation/{emp.id}", params={"year": 2026},
            headers=auth_headers_for(emp.id),
        )
        assert [item["id"] for item in listed.json()] == [str(row.id)]

        resp = await client.put(
            f"{BASE}/allocation",
            json={"allocations": [
                {"id": str(row.id), "leaves_allocated": 9, "leaves_carry_forwarded": 1},
            ]},
            headers=auth_headers_for(hr.id, UserRole.hr),
        )

        assert resp.status_code == 200
        assert resp.json()["count"] == 1

    async def test_allocation_update_forbidden_for_employee(
        self, client: AsyncClient, db: AsyncSession,
    ):
        emp = await seed_employee(db)
        row = await seed_allocation(db, emp, leave_type="Sick Leave", allocated="8")
        await db.commit()

        resp = await client.put(
            f"{BASE}/allocation",
            json={"allocations": [
                {"id": str(row.id), "leaves_allocated": 30, "leaves_carry_forwarded": 0},
            ]},
            headers=auth_headers_for(emp.id),
        )

        assert resp.status_code == 403
        assert resp.headers["content-type"].startswith("application/problem+json")


class TestListingEndpoints:

    async def test_reportees_for_manager(self, client: AsyncClient, db: AsyncSession):
        manager = await seed_employee(db, role=UserRole.manager)
        emp = await seed_employee(db, reporting_manager_id=manager.id)
        leave = await seed_leave(db, emp, approvers=(manager,))
        await db.commit()

        resp = await client.get(
            f"{BASE}/reportees", params={"year": 2026, "page_size": 5},
            headers=auth_headers_for(manager.id, UserRole.manager),
        )

        assert resp.status_code == 200
        payload = resp.json()
        assert [item["id"] for item in payload["data"]] == [str(leave.id)]
        assert payload["data"][0]["employee"]["id"] == str(emp.id)
        assert payload["meta"]["page_size"] == 5

    async def test_reportees_forbidden_for_employee(self, client: AsyncClient, db: AsyncSession):
        emp = await seed_employee(db)
        await db.commit()

        resp = await client.get(f"{BASE}/reportees", headers=auth_headers_for(emp.id))

        assert resp.status_code == 403

    @pytest.mark.parametrize("page_size", [0, 101])
    async def test_page_size_bounds(self, client: AsyncClient, db: AsyncSession, page_size):
        emp = await seed_employee(db)
        await db.commit()

        resp = await client.get(
            f"{BASE}/employee/{emp.id}", params={"page_size": page_size},
            headers=auth_headers_for(emp.id),
        )

        assert resp.status_code == 422
