"""
Bus Pass Backend — HTTP API Tests
=================================

What:  End-to-end behaviour through the real FastAPI app: routing, identity
       headers, envelopes, status codes, and the full Weekly pass lifecycle.
How:   httpx.AsyncClient over ASGITransport; database and storage come from
       the conftest overrides.
"""

import json
from decimal import Decimal

import pytest

API = "/api/v1"


def auth_headers(user) -> dict:
    """Headers the gateway forwards for an authenticated user."""
    return {"X-User-Id": str(user.id), "X-User-Role": user.role.value}


async def _apply(client, passenger, pass_type_id, pdf):
    return await client.post(
        f"{API}/passenger/applications",
        headers=auth_headers(passenger),
        data={"pass_type_id": str(pass_type_id), "document_type": "ID_CARD"},
        files={"document": ("id.pdf", pdf, "application/pdf")},
    )


class TestHealthAndEnvelope:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_missing_identity_is_401(self, test_client):
        response = await test_client.get(f"{API}/passenger/passes")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["statusCode"] == 401
        assert body["error"] == "unauthorized"
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_wrong_role_is_403(self, test_client, users):
        response = await test_client.get(
            f"{API}/admin/statistics", headers=auth_headers(users.passenger)
        )
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client, users):
        response = await test_client.get(
            f"{API}/passenger/pass-types",
            headers={**auth_headers(users.passenger), "X-Request-ID": "trace-42"},
        )
        assert response.headers["X-Request-ID"] == "trace-42"

    @pytest.mark.asyncio
    async def test_bad_body_is_422(self, test_client, users):
        response = await test_client.post(
            f"{API}/passenger/payments",
            headers=auth_headers(users.passenger),
            json={"application_id": "not-a-uuid", "payment_method": "CASH"},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "request_validation_error"
        assert body["details"]["errors"]

    @pytest.mark.asyncio
    async def test_unknown_route_uses_envelope(self, test_client):
        response = await test_client.get(f"{API}/nowhere")
        assert response.status_code == 404
        assert response.json()["error"] == "http_error"


class TestPassLifecycle:

    @pytest.mark.asyncio
    async def test_weekly_pass_end_to_end(
        self, test_client, users, pass_types, sample_pdf_bytes
    ):
        passenger = auth_headers(users.passenger)
        admin = auth_headers(users.admin)
        conductor = auth_headers(users.conductor)

        # Browse and apply
        listed = await test_client.get(f"{API}/passenger/pass-types", headers=passenger)
        assert {p["name"] for p in listed.json()["data"]} == {"Weekly", "Monthly", "Quarterly"}

        applied = await _apply(test_client, users.passenger, pass_types.weekly.id, sample_pdf_bytes)
        assert applied.status_code == 201
        application = applied.json()["data"]
        assert application["status"] == "PENDING"
        assert application["payment_status"] == "PENDING"
        document_url = application["document"]["document_path"]
        assert document_url.startswith(f"{API}/files/documents/")

        # One pending application at a time
        again = await _apply(test_client, users.passenger, pass_types.monthly.id, sample_pdf_bytes)
        assert again.status_code == 409

        # The uploaded document is served back to the owner
        served = await test_client.get(document_url, headers=passenger)
        assert served.status_code == 200
        assert served.content == sample_pdf_bytes

        # Deciding before payment is refused
        early = await test_client.put(
            f"{API}/admin/applications/{application['id']}/decision",
            headers=admin,
            json={"status": "APPROVED"},
        )
        assert early.status_code == 409

        paid = await test_client.post(
            f"{API}/passenger/payments",
            headers=passenger,
            json={"application_id": application["id"], "payment_method": "UPI"},
        )
        assert paid.status_code == 201
        assert Decimal(paid.json()["data"]["amount"]) == Decimal("175")

        decided = await test_client.put(
            f"{API}/admin/applications/{application['id']}/decision",
            headers=admin,
            json={"status": "APPROVED", "remarks": "Documents verified"},
        )
        assert decided.status_code == 200
        bus_pass = decided.json()["data"]["bus_pass"]
        assert len(bus_pass["pass_number"]) == 10

        # Passenger sees the pass with its QR code
        detail = await test_client.get(
            f"{API}/passenger/passes/{bus_pass['id']}", headers=passenger
        )
        assert detail.status_code == 200
        assert detail.json()["data"]["qr_code"].startswith("data:image/png;base64,")

        # Weekly allows three scans a day
        for _ in range(3):
            scanned = await test_client.post(
                f"{API}/conductor/verify-pass",
                headers=conductor,
                json={"pass_number": bus_pass["pass_number"].lower()},
            )
            assert scanned.status_code == 200
            assert scanned.json()["data"]["is_valid"] is True
            assert scanned.json()["message"] == "Pass verified"

        fourth = await test_client.post(
            f"{API}/conductor/verify-pass",
            headers=conductor,
            json={"pass_number": bus_pass["pass_number"]},
        )
        assert fourth.status_code == 409
        assert fourth.json()["message"] == "Daily scan limit exceeded for this pass"

        dashboard = await test_client.get(f"{API}/conductor/dashboard", headers=conductor)
        assert dashboard.json()["data"]["stats"]["total_scans"] == 3

        history = await test_client.get(f"{API}/conductor/verifications", headers=conductor)
        assert history.json()["data"]["pagination"]["total"] == 3

    @pytest.mark.asyncio
    async def test_rejected_upload_leaves_no_application(
        self, test_client, users, pass_types
    ):
        response = await test_client.post(
            f"{API}/passenger/applications",
            headers=auth_headers(users.passenger),
            data={"pass_type_id": str(pass_types.weekly.id), "document_type": "ID_CARD"},
            files={"document": ("id.exe", b"MZ", "application/octet-stream")},
        )
        assert response.status_code == 400

        passes = await test_client.get(
            f"{API}/passenger/passes", headers=auth_headers(users.passenger)
        )
        assert passes.json()["data"] == []

    @pytest.mark.asyncio
    async def test_verify_qr_over_http(self, test_client, users, pass_types, issue_pass):
        bus_pass = await issue_pass(pass_types.monthly)
        qr_text = json.dumps({
            "passId": str(bus_pass.id),
            "passNumber": bus_pass.pass_number,
            "userId": str(users.passenger.id),
            "validFrom": bus_pass.valid_from.isoformat(),
            "validTo": bus_pass.valid_until.isoformat(),
        })

        response = await test_client.post(
            f"{API}/conductor/verify-qr",
            headers=auth_headers(users.conductor),
            json={"qr_data": qr_text},
        )
        assert response.status_code == 200
        assert response.json()["data"]["scan_method"] == "QR"


    @pytest.mark.asyncio
    async def test_typed_pass_number_always_recorded_as_manual(
        self, test_client, users, pass_types, issue_pass
    ):
        bus_pass = await issue_pass(pass_types.weekly)
        conductor = auth_headers(users.conductor)

        response = await test_client.post(
            f"{API}/conductor/verify-pass",
            headers=conductor,
            json={"pass_number": bus_pass.pass_number, "scan_method": "QR"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["scan_method"] == "MANUAL"

        dashboard = await test_client.get(f"{API}/conductor/dashboard", headers=conductor)
        stats = dashboard.json()["data"]["stats"]
        assert stats["qr_scans"] == 0
        assert stats["manual_scans"] == 1


class TestAdminEndpoints:

    @pytest.mark.asyncio
    async def test_pass_type_management(self, test_client, users, pass_types):
        admin = auth_headers(users.admin)

        created = await test_client.post(
            f"{API}/admin/pass-types",
            headers=admin,
            json={"name": "Student", "price": "99.50", "duration_days": 30, "per_day_limit": 4},
        )
        assert created.status_code == 201
        student_id = created.json()["data"]["id"]

        duplicate = await test_client.post(
            f"{API}/admin/pass-types",
            headers=admin,
            json={"name": "weekly", "price": "10", "duration_days": 7, "per_day_limit": 1},
        )
        assert duplicate.status_code == 409

        updated = await test_client.put(
            f"{API}/admin/pass-types/{student_id}",
            headers=admin,
            json={"is_active": False},
        )
        assert updated.json()["data"]["is_active"] is False

        listed = await test_client.get(f"{API}/admin/pass-types", headers=admin)
        assert len(listed.json()["data"]) == 5

    @pytest.mark.asyncio
    async def test_statistics_and_users(self, test_client, users, pass_types, issue_pass):
        await issue_pass(pass_types.weekly)
        admin = auth_headers(users.admin)

        stats = await test_client.get(f"{API}/admin/statistics", headers=admin)
        assert stats.status_code == 200
        data = stats.json()["data"]
        assert data["applications"]["approved"] == 1
        assert data["passes"]["active"] == 1

        conductors = await test_client.get(
            f"{API}/admin/users", headers=admin, params={"role": "CONDUCTOR"}
        )
        assert [u["email"] for u in conductors.json()["data"]] == ["conductor@test.local"]

    @pytest.mark.asyncio
    async def test_application_listing_validates_paging(self, test_client, users):
        response = await test_client.get(
            f"{API}/admin/applications", headers=auth_headers(users.admin), params={"page": 0}
        )
        assert response.status_code == 400
