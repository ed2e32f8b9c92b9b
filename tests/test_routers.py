import logging

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from conftest import FakeRevenueProvider, make_reservation, seed_cache
from revshare.config import settings
from revshare.database.session import get_db
from revshare.deps import get_revenue_provider
from revshare.main import create_app
from revshare.schemas.smoobu import SmoobuApartment


def make_token(user_id: str, role: str = "user", **claims) -> str:
    payload = {"sub": user_id, "role": role}
    payload.update(claims)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


ADMIN_HEADERS = {"Authorization": f"Bearer {make_token('admin-1', 'admin')}"}
OWNER_HEADERS = {"Authorization": f"Bearer {make_token('owner-a')}"}


@pytest.fixture
def provider():
    return FakeRevenueProvider(
        [
            make_reservation(1, "2024-01-15", 6000, apartment_id=101),
            make_reservation(2, "2024-02-15", 4000, apartment_id=101),
        ]
    )


@pytest.fixture
def client(seeded_db, provider):
    """테스트 클라이언트 픽스처 (테스트 DB 세션, 가짜 provider 주입)"""
    app = create_app()

    def override_get_db():
        yield seeded_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_revenue_provider] = lambda: provider
    return TestClient(app)


def create_q1_settlement(client):
    return client.post(
        "/api/v1/admin/settlements",
        json={"unit_id": 1, "year": 2024, "quarter": 1, "notes": "Q1 close"},
        headers=ADMIN_HEADERS,
    )


class TestAuth:
    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token(self, client):
        response = client.get("/api/v1/admin/revenue/2024")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "AUTH_001"

    def test_invalid_token(self, client):
        response = client.get("/api/v1/admin/revenue/2024", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_expired_token(self, client):
        token = make_token("admin-1", "admin", exp=1)

        response = client.get("/api/v1/admin/revenue/2024", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_owner_cannot_use_admin_routes(self, client):
        response = client.get("/api/v1/admin/revenue/2024", headers=OWNER_HEADERS)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_002"


class TestRevenueRoutes:
    def test_refresh_and_overview(self, client, provider):
        response = client.post("/api/v1/admin/revenue/refresh/2024", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        refresh = response.json()["data"]["refresh"]
        assert refresh["success"] is True
        assert refresh["booking_count"] == 2

        overview = client.get("/api/v1/admin/revenue/2024", headers=ADMIN_HEADERS).json()["data"]["revenue"]
        assert overview["year_total"] == "10000.00"
        assert overview["currency"] == "PHP"

    def test_refresh_failure_returns_provider_error(self, client, provider):
        provider.error = "Smoobu API error (503): Service Unavailable"

        response = client.post("/api/v1/admin/revenue/refresh/2024", headers=ADMIN_HEADERS)

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "PROVIDER_001"
        assert error["details"]["year"] == 2024
        assert error["details"]["retryable"] is True

    def test_out_of_range_year(self, client):
        response = client.post("/api/v1/admin/revenue/refresh/1999", headers=ADMIN_HEADERS)

        assert response.status_code == 422


class TestSettlementRoutes:
    def test_create_settlement(self, client, seeded_db):
        seed_cache(seeded_db, 2024, 1, {1: "6000.00", 2: "4000.00"})

        response = create_q1_settlement(client)

        assert response.status_code == 201
        settlement = response.json()["data"]["settlement"]
        assert settlement["net_pool"] == "7360.00"
        assert settlement["created_by_user_id"] == "admin-1"
        assert sorted(p["amount"] for p in settlement["payouts"]) == ["2944.00", "4416.00"]

    def test_duplicate_settlement(self, client):
        create_q1_settlement(client)

        response = create_q1_settlement(client)

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "SETTLEMENT_001"
        assert error["details"] == {"unit_id": 1, "year": 2024, "quarter": 1}

    @pytest.mark.parametrize(
        "payload",
        [
            {"unit_id": 1, "year": 2024, "quarter": 5},
            {"unit_id": 1, "year": 1999, "quarter": 1},
            {"unit_id": 1, "year": 2024, "quarter": 1, "additional_expense": "-10.00"},
            {"unit_id": 1, "year": 2024, "quarter": 1, "additional_expense": "10.001"},
        ],
    )
    def test_validation_errors(self, client, payload):
        response = client.post("/api/v1/admin/settlements", json=payload, headers=ADMIN_HEADERS)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_payout_lifecycle(self, client):
        settlement = create_q1_settlement(client).json()["data"]["settlement"]
        payout_id = settlement["payouts"][0]["id"]

        paid = client.post(
            f"/api/v1/admin/payouts/{payout_id}/mark-paid", json={"notes": "BDO ref 1"}, headers=ADMIN_HEADERS
        )
        assert paid.status_code == 200
        assert paid.json()["data"]["payout"]["is_paid"] is True

        again = client.post(f"/api/v1/admin/payouts/{payout_id}/mark-paid", headers=ADMIN_HEADERS)
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "PAYOUT_001"

        blocked = client.delete(f"/api/v1/admin/settlements/{settlement['id']}", headers=ADMIN_HEADERS)
        assert blocked.status_code == 409
        assert blocked.json()["error"]["code"] == "SETTLEMENT_002"

        bulk = client.post(f"/api/v1/admin/settlements/{settlement['id']}/mark-all-paid", headers=ADMIN_HEADERS)
        assert bulk.status_code == 200
        assert bulk.json()["data"]["result"]["updated_count"] == 1

        bulk_again = client.post(f"/api/v1/admin/settlements/{settlement['id']}/mark-all-paid", headers=ADMIN_HEADERS)
        assert bulk_again.json()["data"]["result"]["updated_count"] == 0

    def test_get_list_and_delete(self, client):
        settlement_id = create_q1_settlement(client).json()["data"]["settlement"]["id"]

        fetched = client.get(f"/api/v1/admin/settlements/{settlement_id}", headers=ADMIN_HEADERS)
        assert fetched.json()["data"]["settlement"]["quarter"] == 1

        listed = client.get("/api/v1/admin/units/1/settlements/2024", headers=ADMIN_HEADERS).json()
        assert listed["meta"]["count"] == 1

        deleted = client.delete(f"/api/v1/admin/settlements/{settlement_id}", headers=ADMIN_HEADERS)
        assert deleted.status_code == 200
        assert deleted.json()["data"]["deleted"]["deleted_payouts"] == 2

        missing = client.get(f"/api/v1/admin/settlements/{settlement_id}", headers=ADMIN_HEADERS)
        assert missing.status_code == 404


class TestEarningsRoutes:
    def test_unit_earnings_and_projection(self, client, seeded_db):
        seed_cache(seeded_db, 2024, 1, {1: "6000.00", 2: "4000.00"})

        earnings = client.get("/api/v1/admin/units/1/earnings/2024", headers=ADMIN_HEADERS).json()["data"]["earnings"]
        assert len(earnings["quarters"]) == 4
        assert earnings["quarters"][0]["is_settled"] is False
        assert earnings["quarters"][0]["net_pool"] == "7360.00"

        projection = client.get(
            "/api/v1/admin/units/1/earnings/2024/1/projection", headers=ADMIN_HEADERS
        ).json()["data"]["projection"]
        assert projection["is_settled"] is False
        assert projection["net_pool"] == "7360.00"

    def test_my_earnings(self, client, seeded_db):
        seed_cache(seeded_db, 2024, 1, {1: "6000.00", 2: "4000.00"})
        create_q1_settlement(client)

        response = client.get("/api/v1/earnings/me/2024", headers=OWNER_HEADERS)

        assert response.status_code == 200
        earnings = response.json()["data"]["earnings"]
        assert earnings["user_id"] == "owner-a"
        casa = next(u for u in earnings["units"] if u["unit_id"] == 1)
        assert casa["quarters"][0]["status"] == "PENDING"
        assert casa["quarters"][0]["owner_share"] == "4416.00"
        assert casa["quarters"][1]["status"] == "ESTIMATE"

    def test_unknown_unit(self, client):
        response = client.get("/api/v1/admin/units/404/earnings/2024", headers=ADMIN_HEADERS)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND_001"


class TestSmoobuRoutes:
    def test_apartments_with_link_status(self, client, provider):
        provider.apartments = [
            SmoobuApartment.model_validate({"id": 102, "name": "Villa Verde", "currency": "PHP"}),
            SmoobuApartment.model_validate({"id": 999, "name": "Beach House"}),
            SmoobuApartment.model_validate({"id": 101, "name": "Casa Azul", "currency": "PHP"}),
        ]

        response = client.get("/api/v1/admin/smoobu/apartments", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["meta"]["count"] == 3
        links = {a["apartment_id"]: a for a in body["data"]["apartments"]}
        assert [a["name"] for a in body["data"]["apartments"]] == ["Beach House", "Casa Azul", "Villa Verde"]
        assert links[101]["linked_unit_id"] == 1
        assert links[102]["linked_unit_name"] == "Villa Verde"
        assert links[999]["linked_unit_id"] is None

    def test_apartments_provider_failure(self, client, provider):
        provider.error = "Smoobu API error (401): Unauthorized"

        response = client.get("/api/v1/admin/smoobu/apartments", headers=ADMIN_HEADERS)

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "PROVIDER_001"
        assert error["details"]["year"] is None
        assert "Unauthorized" in error["details"]["reason"]

    def test_connection_ok(self, client):
        response = client.post("/api/v1/admin/smoobu/test-connection", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        connection = response.json()["data"]["connection"]
        assert connection["connected"] is True
        assert connection["error"] is None

    def test_connection_failure_is_reported_not_raised(self, client, provider):
        provider.error = "Smoobu request timed out"

        response = client.post("/api/v1/admin/smoobu/test-connection", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        connection = response.json()["data"]["connection"]
        assert connection["connected"] is False
        assert connection["error"]

    def test_owner_cannot_list_apartments(self, client):
        response = client.get("/api/v1/admin/smoobu/apartments", headers=OWNER_HEADERS)

        assert response.status_code == 403


@pytest.fixture
def app_logs(client, caplog):
    """propagate=False인 revshare 로거에 caplog 핸들러를 직접 연결 (create_app의 로깅 설정 이후)"""
    loggers = [logging.getLogger("revshare.errors"), logging.getLogger("revshare.audit")]
    caplog.set_level(logging.INFO)
    for app_logger in loggers:
        app_logger.addHandler(caplog.handler)
    yield caplog
    for app_logger in loggers:
        app_logger.removeHandler(caplog.handler)


class TestRequestLogging:
    def test_request_id_is_echoed(self, client):
        response = client.get("/api/v1/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        response = client.get("/api/v1/health")

        assert response.headers["X-Request-ID"]

    def test_domain_error_logged_with_context(self, client, app_logs):
        create_q1_settlement(client)

        response = create_q1_settlement(client)

        assert response.status_code == 409
        messages = [r.getMessage() for r in app_logs.records if r.name == "revshare.errors"]
        assert any(
            "SETTLEMENT_001" in m and "unit_id=1" in m and "quarter=1" in m for m in messages
        )

    def test_settlement_mutation_is_audited(self, client, app_logs):
        response = create_q1_settlement(client)

        assert response.status_code == 201
        audit = [r.getMessage() for r in app_logs.records if r.name == "revshare.audit"]
        assert len(audit) == 1
        assert "POST /api/v1/admin/settlements" in audit[0]
