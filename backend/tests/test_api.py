"""
Tests for the HTTP surface: scan, sessions, checkout and orders.
"""

from contextlib import contextmanager
from urllib.parse import parse_qs, urlparse

import pytest

from shared.config.settings import settings
from shared.utils.exceptions import ServiceUnavailableError


class TestQrScan:
    def test_scan_redirects_to_frontend(self, client, seed_table, monkeypatch):
        monkeypatch.setattr(settings, "frontend_origin", "https://menu.example.com/")

        response = client.get(
            f"/qr/qr-table-1?tenant_id={seed_table.tenant_id}",
            follow_redirects=False,
        )

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert f"{location.scheme}://{location.netloc}" == "https://menu.example.com"
        query = parse_qs(location.query)
        assert query["table"] == ["1"]
        assert query["qr"] == ["qr-table-1"]
        assert query["businessId"] == [str(seed_table.tenant_id)]
        assert query["sessionId"][0].isdigit()

    def test_scan_as_json(self, client, seed_table):
        response = client.get(f"/qr/qr-table-1?tenant_id={seed_table.tenant_id}&json=1")

        assert response.status_code == 200
        data = response.json()
        assert data["created"] is True
        assert data["table"]["label"] == "1"
        assert data["table"]["last_scan_at"] is not None
        assert data["session"]["status"] == "active"
        assert data["colors"] == {"eat_later": "yellow", "pay_first": "ash"}
        assert "sessionId=" in data["redirect"]

    def test_rescan_reuses_session(self, client, seed_table):
        url = f"/qr/qr-table-1?tenant_id={seed_table.tenant_id}&json=true"
        first = client.get(url).json()
        second = client.get(url).json()

        assert second["created"] is False
        assert second["session"]["id"] == first["session"]["id"]

    def test_unknown_code(self, client, seed_tenant):
        response = client.get(f"/qr/missing?tenant_id={seed_tenant.id}&json=1")

        assert response.status_code == 404
        assert "detail" in response.json()

    def test_default_tenant(self, client, seed_table, monkeypatch):
        monkeypatch.setattr(settings, "default_tenant_id", seed_table.tenant_id)

        response = client.get("/qr/qr-table-1?json=1")

        assert response.status_code == 200

    def test_missing_tenant(self, client, seed_table, monkeypatch):
        monkeypatch.setattr(settings, "default_tenant_id", None)

        response = client.get("/qr/qr-table-1?json=1")

        assert response.status_code == 400


class TestEnsureSession:
    def test_by_label_creates_table_and_session(self, client, seed_tenant):
        response = client.post(
            "/api/qr/ensure-session",
            json={"tenant_id": seed_tenant.id, "table_label": "Terrace-2"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["created"] is True
        assert data["table"]["label"] == "Terrace-2"
        assert data["table"]["current_session_id"] == data["session"]["id"]

    def test_by_code_is_idempotent(self, client, seed_table):
        body = {"tenant_id": seed_table.tenant_id, "code_id": "qr-table-1"}
        first = client.post("/api/qr/ensure-session", json=body).json()
        second = client.post("/api/qr/ensure-session", json=body).json()

        assert second["created"] is False
        assert second["session"]["id"] == first["session"]["id"]

    def test_blank_code_falls_back_to_label(self, client, seed_tenant):
        response = client.post(
            "/api/qr/ensure-session",
            json={"tenant_id": seed_tenant.id, "code_id": "  ", "table_label": "7"},
        )

        assert response.status_code == 200
        assert response.json()["table"]["label"] == "7"

    def test_requires_identifier(self, client, seed_tenant):
        response = client.post("/api/qr/ensure-session", json={"tenant_id": seed_tenant.id})

        assert response.status_code == 400

    def test_rejects_both_identifiers(self, client, seed_table):
        response = client.post(
            "/api/qr/ensure-session",
            json={"tenant_id": seed_table.tenant_id, "code_id": "qr-table-1", "table_label": "1"},
        )

        assert response.status_code == 400


class TestSessionLifecycle:
    def test_start_and_close(self, client, seed_tenant):
        started = client.post(
            "/api/sessions/start",
            json={"tenant_id": seed_tenant.id, "table_label": "5"},
        ).json()
        session_id = started["session"]["id"]

        closed = client.post(
            "/api/sessions/close",
            json={"tenant_id": seed_tenant.id, "session_id": session_id, "table_label": "5"},
        )

        assert closed.status_code == 200
        assert closed.json() == {
            "session_id": session_id,
            "status": "completed",
            "already_closed": False,
            "pointer_cleared": True,
        }

        again = client.post(
            "/api/sessions/close",
            json={"tenant_id": seed_tenant.id, "session_id": session_id},
        ).json()
        assert again["already_closed"] is True

    def test_close_invalid_status(self, client, seed_tenant):
        started = client.post(
            "/api/sessions/start",
            json={"tenant_id": seed_tenant.id, "table_label": "5"},
        ).json()

        response = client.post(
            "/api/sessions/close",
            json={
                "tenant_id": seed_tenant.id,
                "session_id": started["session"]["id"],
                "status": "finished",
            },
        )

        assert response.status_code == 400

    def test_close_other_tenant_forbidden(self, client, seed_tenant, other_tenant):
        started = client.post(
            "/api/sessions/start",
            json={"tenant_id": seed_tenant.id, "table_label": "5"},
        ).json()

        response = client.post(
            "/api/sessions/close",
            json={"tenant_id": other_tenant.id, "session_id": started["session"]["id"]},
        )

        assert response.status_code == 403

    def test_overview(self, client, seed_tenant):
        client.post("/api/sessions/start", json={"tenant_id": seed_tenant.id, "table_label": "2"})
        client.post("/api/qr/ensure-session", json={"tenant_id": seed_tenant.id, "table_label": "1"})

        response = client.get(f"/api/sessions/overview?tenant_id={seed_tenant.id}&mode=PAY_FIRST")

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "pay_first"
        assert [t["table_label"] for t in data["tables"]] == ["1", "2"]
        assert all(t["color"] == "ash" for t in data["tables"])

    def test_overview_unknown_mode(self, client, seed_tenant):
        response = client.get(f"/api/sessions/overview?tenant_id={seed_tenant.id}&mode=whenever")

        assert response.status_code == 400

    def test_table_detail(self, client, seed_tenant):
        client.post(
            "/api/checkout",
            json={
                "tenant_id": seed_tenant.id,
                "table_label": "3",
                "items": [{"name": "Te", "unit_price_cents": 300}],
            },
        )

        response = client.get(f"/api/sessions/table?tenant_id={seed_tenant.id}&table_label=3")

        assert response.status_code == 200
        data = response.json()
        assert data["session"]["status"] == "active"
        assert len(data["orders"]) == 1
        assert data["orders"][0]["items"][0]["item_name"] == "Te"

    def test_table_detail_unknown_table(self, client, seed_tenant):
        response = client.get(f"/api/sessions/table?tenant_id={seed_tenant.id}&table_label=77")

        assert response.status_code == 404


class TestCheckout:
    def test_checkout_by_label(self, client, seed_tenant, seed_menu_items):
        empanada = seed_menu_items[0]

        response = client.post(
            "/api/checkout",
            json={
                "tenant_id": seed_tenant.id,
                "table_label": "4",
                "items": [
                    {"menu_item_id": empanada.id, "quantity": 2},
                    {"menu_item_id": 9999},
                ],
                "payment": {"method": "online"},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["mock"] is False
        assert data["order"]["total_amount_cents"] == 1000
        assert data["order"]["payment_status"] == "paid"
        assert data["session"]["payment_status"] == "paid"
        assert data["item_warnings"] == [
            {"index": 1, "menu_item_id": 9999, "reason": "menu item not found"}
        ]
        assert data["colors"] == {"eat_later": "green", "pay_first": "yellow"}

    def test_checkout_with_session_id(self, client, seed_table):
        bound = client.get(f"/qr/qr-table-1?tenant_id={seed_table.tenant_id}&json=1").json()

        response = client.post(
            "/api/checkout",
            json={
                "tenant_id": seed_table.tenant_id,
                "session_id": bound["session"]["id"],
                "items": [{"name": "Te", "unit_price_cents": 300}],
            },
        )

        assert response.status_code == 200
        assert response.json()["order"]["dining_session_id"] == bound["session"]["id"]

    def test_checkout_with_closed_session_is_forbidden(self, client, seed_table):
        bound = client.get(f"/qr/qr-table-1?tenant_id={seed_table.tenant_id}&json=1").json()
        client.post(
            "/api/sessions/close",
            json={"tenant_id": seed_table.tenant_id, "session_id": bound["session"]["id"]},
        )

        response = client.post(
            "/api/checkout",
            json={
                "tenant_id": seed_table.tenant_id,
                "code_id": "qr-table-1",
                "session_id": bound["session"]["id"],
                "items": [{"name": "Te", "unit_price_cents": 300}],
            },
        )

        assert response.status_code == 403

    def test_checkout_requires_items(self, client, seed_tenant):
        response = client.post(
            "/api/checkout",
            json={"tenant_id": seed_tenant.id, "table_label": "4", "items": []},
        )

        assert response.status_code == 400

    def test_checkout_requires_target(self, client, seed_tenant):
        response = client.post(
            "/api/checkout",
            json={"tenant_id": seed_tenant.id, "items": [{"name": "Te", "unit_price_cents": 300}]},
        )

        assert response.status_code == 400

    def test_checkout_negative_prep_time(self, client, seed_tenant):
        response = client.post(
            "/api/checkout",
            json={
                "tenant_id": seed_tenant.id,
                "table_label": "4",
                "prep_time_minutes": -1,
                "items": [{"name": "Te", "unit_price_cents": 300}],
            },
        )

        assert response.status_code == 422

    def test_database_outage_without_mock(self, client, seed_tenant, monkeypatch):
        monkeypatch.setattr(settings, "allow_db_mock", False)
        monkeypatch.setattr(
            "rest_api.services.domain.dining_service.tenant_transaction",
            _unavailable_transaction,
        )

        response = client.post(
            "/api/checkout",
            json={
                "tenant_id": seed_tenant.id,
                "table_label": "4",
                "items": [{"name": "Te", "unit_price_cents": 300}],
            },
        )

        assert response.status_code == 503
        assert response.headers["retry-after"] == "5"

    def test_database_outage_with_mock(self, client, seed_tenant, monkeypatch):
        monkeypatch.setattr(settings, "allow_db_mock", True)
        monkeypatch.setattr(
            "rest_api.services.domain.dining_service.tenant_transaction",
            _unavailable_transaction,
        )

        response = client.post(
            "/api/checkout",
            json={
                "tenant_id": seed_tenant.id,
                "table_label": "4",
                "items": [{"name": "Te", "unit_price_cents": 300}],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["mock"] is True
        assert data["order"] is None


@contextmanager
def _unavailable_transaction(db, tenant_id):
    """Stands in for tenant_transaction while the database is down."""
    raise ServiceUnavailableError("database", retry_after=5)
    yield db


class TestOrdersApi:
    @pytest.fixture
    def placed(self, client, seed_tenant):
        response = client.post(
            "/api/checkout",
            json={
                "tenant_id": seed_tenant.id,
                "table_label": "4",
                "items": [{"name": "Te", "quantity": 2, "unit_price_cents": 300}],
            },
        )
        return response.json()

    def test_list_orders(self, client, seed_tenant, placed):
        response = client.get(f"/api/orders?tenant_id={seed_tenant.id}")

        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [placed["order"]["id"]]

    def test_kitchen_queue(self, client, seed_tenant, placed):
        response = client.get(f"/api/orders/kitchen?tenant_id={seed_tenant.id}")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["table_label"] == "4"
        assert data[0]["items"][0]["quantity"] == 2

    def test_order_status(self, client, seed_tenant, placed):
        order_id = placed["order"]["id"]

        response = client.patch(
            f"/api/orders/{order_id}/status",
            json={"tenant_id": seed_tenant.id, "status": "READY"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "READY"
        assert response.json()["actual_ready_at"] is not None

    def test_order_status_invalid(self, client, seed_tenant, placed):
        response = client.patch(
            f"/api/orders/{placed['order']['id']}/status",
            json={"tenant_id": seed_tenant.id, "status": "cooked"},
        )

        assert response.status_code == 400

    def test_order_status_unknown_order(self, client, seed_tenant):
        response = client.patch(
            "/api/orders/31337/status",
            json={"tenant_id": seed_tenant.id, "status": "READY"},
        )

        assert response.status_code == 404

    def test_item_status(self, client, seed_tenant, placed):
        item_id = placed["order"]["items"][0]["id"]

        response = client.patch(
            f"/api/orders/items/{item_id}/status",
            json={"tenant_id": seed_tenant.id, "status": "COMPLETED"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"

    def test_payment_status_turns_table_green(self, client, seed_tenant, placed):
        response = client.patch(
            f"/api/orders/{placed['order']['id']}/payment",
            json={"tenant_id": seed_tenant.id, "payment_status": "paid"},
        )

        assert response.status_code == 200
        overview = client.get(f"/api/sessions/overview?tenant_id={seed_tenant.id}").json()
        assert overview["tables"][0]["color"] == "green"

    def test_mark_paid_without_backend(self, client, seed_tenant, placed, monkeypatch):
        monkeypatch.setattr(settings, "payment_gateway_url", "")

        response = client.post(
            f"/api/orders/{placed['order']['id']}/mark-paid",
            json={"tenant_id": seed_tenant.id},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["confirmation"] == "local_fallback"
        assert data["order"]["payment_status"] == "paid"

    def test_mark_paid_local_override(self, client, seed_tenant, placed):
        response = client.post(
            f"/api/orders/{placed['order']['id']}/mark-paid",
            json={"tenant_id": seed_tenant.id, "local_override": True},
        )

        assert response.status_code == 200
        assert response.json()["confirmation"] == "local_override"

    def test_other_tenant_cannot_touch_order(self, client, placed, other_tenant):
        response = client.patch(
            f"/api/orders/{placed['order']['id']}/payment",
            json={"tenant_id": other_tenant.id, "payment_status": "paid"},
        )

        assert response.status_code == 403


class TestRequestCorrelation:
    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    def test_request_id_generated(self, client):
        response = client.get("/api/health")

        assert response.headers["X-Request-ID"]


    def test_oversized_request_id_replaced(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "x" * 100})

        assert response.headers["X-Request-ID"] != "x" * 100
        assert len(response.headers["X-Request-ID"]) == 32

    def test_security_headers_set(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "server" not in response.headers
