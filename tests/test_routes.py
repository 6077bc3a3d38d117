"""
Route tests using the Flask test client.

Background services are not started (TestingConfig); the catalog is
loaded from a mocked client and the per-request API client is patched.
"""

from unittest.mock import MagicMock

import pytest

from app import create_app
from services.catalog_service import CatalogService


# Fixtures

@pytest.fixture
def mock_client():
    client = MagicMock()
    client.__enter__.return_value = client
    client.list_products_brief.return_value = [
        {"id": 7, "name": "Nitrile Gloves", "price": "12.50", "barcode": "629100", "slug": "gloves"},
        {"id": 9, "name": "Face Masks", "price": "0.50", "barcode": "629200", "slug": "masks"},
    ]
    client.get_current_user.return_value = {"fullName": "Sara Rep", "email": "sara@example.com", "UserType": "rep"}
    client.list_doctors.return_value = [{"id": 3, "name": "Dr. Hana", "phone": "0999", "address": "Main St"}]
    client.create_order.return_value = {"id": 501}
    client.list_orders.return_value = [
        {"id": 1, "status": "pending", "total": "10", "userType": "rep", "doctor": {"id": 3, "name": "Dr. Hana"}},
    ]
    return client


@pytest.fixture
def app(mock_client, monkeypatch):
    monkeypatch.setattr("routes.common.OrderAPIClient", lambda *args, **kwargs: mock_client)

    app = create_app("config.TestingConfig")
    catalog = CatalogService(lambda: mock_client)
    catalog.force_refresh()
    app.config["CATALOG_SERVICE"] = catalog
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def draft_id(client):
    response = client.post("/drafts")
    assert response.status_code == 201
    return response.get_json()["draft_id"]


class TestDraftRoutes:

    def test_scan_merges_lines(self, client, draft_id):
        client.post(f"/drafts/{draft_id}/scan", json={"code": "629100"})
        response = client.post(f"/drafts/{draft_id}/scan", json={"code": " gloves "})

        data = response.get_json()
        assert response.status_code == 200
        assert data["line"]["quantity"] == 2
        assert len(data["draft"]["lines"]) == 1
        assert data["draft"]["totals"]["subtotal"] == "25.00"

    def test_numeric_code_is_scanned(self, client, draft_id):
        response = client.post(f"/drafts/{draft_id}/scan", json={"code": 629100})

        assert response.status_code == 200
        assert response.get_json()["line"]["product_id"] == 7

    @pytest.mark.parametrize("field,code", [
        ("unit_price", "invalid_price"),
        ("total", "invalid_total"),
        ("quantity", "invalid_quantity"),
    ])
    def test_oversized_line_edit_rejected(self, client, draft_id, field, code):
        client.post(f"/drafts/{draft_id}/scan", json={"code": "629100"})

        response = client.patch(f"/drafts/{draft_id}/lines/0", json={field: "1e30"})

        assert response.status_code == 400
        assert response.get_json()["code"] == code
        after = client.get(f"/drafts/{draft_id}")
        assert after.status_code == 200
        line = after.get_json()["lines"][0]
        assert line["unit_price"] == "12.50"
        assert line["quantity"] == 1
        assert client.post(f"/drafts/{draft_id}/scan", json={"code": "629100"}).status_code == 200

    @pytest.mark.parametrize("field", ["discount", "paid"])
    def test_oversized_amount_rejected(self, client, draft_id, field):
        response = client.patch(f"/drafts/{draft_id}", json={field: "1e30"})

        assert response.status_code == 400
        assert response.get_json()["code"] == f"invalid_{field}"
        after = client.get(f"/drafts/{draft_id}").get_json()
        assert after["discount"] == "0"
        assert after["paid"] == "0"

    def test_new_draft_discards_replaced_one(self, app, client, draft_id):
        response = client.post("/drafts")

        assert response.status_code == 201
        assert client.get(f"/drafts/{draft_id}").status_code == 404
        assert len(app.config["DRAFT_STORE"]) == 1

    def test_empty_scan_ignored(self, client, draft_id):
        response = client.post(f"/drafts/{draft_id}/scan", json={"code": "   "})

        assert response.status_code == 200
        assert response.get_json()["ignored"] is True

    def test_unknown_code_is_404(self, client, draft_id):
        response = client.post(f"/drafts/{draft_id}/scan", json={"code": "nope"})

        assert response.status_code == 404
        assert response.get_json()["code"] == "product_not_found"

    def test_scan_while_catalog_loading_is_409(self, app, client, draft_id, mock_client):
        app.config["CATALOG_SERVICE"] = CatalogService(lambda: mock_client)

        response = client.post(f"/drafts/{draft_id}/scan", json={"code": "629100"})

        assert response.status_code == 409
        assert response.get_json()["code"] == "catalog_loading"

    def test_worked_example_totals(self, client, draft_id):
        client.post(f"/drafts/{draft_id}/products", json={"product_id": 7})
        client.post(f"/drafts/{draft_id}/products", json={"product_id": 7})
        client.post(f"/drafts/{draft_id}/products", json={"product_id": 9})
        response = client.patch(f"/drafts/{draft_id}", json={"discount": "3", "paid": "15"})

        totals = response.get_json()["totals"]
        assert totals["subtotal"] == "25.50"
        assert totals["total_after_discount"] == "22.50"
        assert totals["remaining"] == "7.50"
        assert totals["status"] == "half-paid"

    def test_quantity_below_one_not_applied(self, client, draft_id):
        client.post(f"/drafts/{draft_id}/products", json={"product_id": 7})

        response = client.patch(f"/drafts/{draft_id}/lines/0", json={"quantity": 0})

        data = response.get_json()
        assert data["changed"] is False
        assert data["draft"]["lines"][0]["quantity"] == 1

    def test_line_total_edit(self, client, draft_id):
        client.post(f"/drafts/{draft_id}/products", json={"product_id": 7})
        client.patch(f"/drafts/{draft_id}/lines/0", json={"quantity": 3})

        response = client.patch(f"/drafts/{draft_id}/lines/0", json={"total": "30"})

        line = response.get_json()["draft"]["lines"][0]
        assert line["unit_price"] == "10"
        assert line["line_total"] == "30"

    def test_notes_sanitized(self, client, draft_id):
        client.post(f"/drafts/{draft_id}/products", json={"product_id": 7})

        response = client.patch(f"/drafts/{draft_id}/lines/0", json={"notes": "<b>size L</b>"})

        assert response.get_json()["draft"]["lines"][0]["notes"] == "size L"

    def test_bad_line_index_is_400(self, client, draft_id):
        response = client.delete(f"/drafts/{draft_id}/lines/3")

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_line"

    def test_unknown_draft_is_404(self, client):
        response = client.get("/drafts/does-not-exist")

        assert response.status_code == 404
        assert response.get_json()["code"] == "draft_not_found"

    def test_cancel(self, client, draft_id):
        assert client.delete(f"/drafts/{draft_id}").status_code == 200
        assert client.get(f"/drafts/{draft_id}").status_code == 404


class TestSubmitRoute:

    def test_validation_error(self, client, draft_id):
        response = client.post(f"/drafts/{draft_id}/submit")

        assert response.status_code == 400
        assert response.get_json()["error"] == "at least one product required"

    def test_submit_success(self, client, draft_id, mock_client):
        client.post(f"/drafts/{draft_id}/products", json={"product_id": 7})
        client.patch(f"/drafts/{draft_id}", json={"doctor_id": 3})

        response = client.post(f"/drafts/{draft_id}/submit")

        assert response.status_code == 201
        assert response.get_json()["order_id"] == 501
        assert client.get(f"/drafts/{draft_id}").status_code == 404
        fields = dict(mock_client.create_order.call_args[0][0])
        assert fields["RepName"] == "Sara Rep"


class TestOrderRoutes:

    def test_list_defaults_to_today(self, client, mock_client):
        response = client.get("/orders?status=paid")

        assert response.status_code == 200
        filters = mock_client.list_orders.call_args[0][0]
        assert filters["status"] == "1"
        assert filters["date"]
        assert response.get_json()["orders"][0]["doctor_name"] == "Dr. Hana"

    def test_request_client_closed(self, client, mock_client):
        mock_client.__exit__.reset_mock()

        client.get("/orders")

        mock_client.__exit__.assert_called_once()

    def test_bad_status_filter(self, client):
        response = client.get("/orders?status=lost")
        assert response.status_code == 400

    def test_detail_totals(self, client, mock_client):
        mock_client.get_order.return_value = {
            "id": 42,
            "discount": 3,
            "totalPaid": 15,
            "cartProducts": [
                {"productId": 7, "quantity": 2, "productPrice": "12.50", "product": {"name": "Gloves"}},
                {"productId": 9, "quantity": 1, "productPrice": "0.50", "product": {"name": "Masks"}},
            ],
        }

        data = client.get("/orders/42").get_json()

        assert data["totals"]["remaining"] == "7.50"
        assert len(data["lines"]) == 2


class TestApiRoutes:

    def test_notifications_empty(self, client):
        data = client.get("/api/notifications?since=0").get_json()

        assert data["popup"] is None
        assert data["orders_changed"] is False

    def test_health_reports_stopped_services(self, client):
        response = client.get("/health")

        assert response.status_code == 503
        assert response.get_json()["checks"]["order_watcher"] == "not_running"

    def test_open_session_loads_user(self, client):
        response = client.post("/api/session", json={"token": "abc"})

        assert response.get_json()["user"]["full_name"] == "Sara Rep"

    def test_oversized_body_is_413(self, client):
        body = b'{"token": "' + b"a" * (2 * 1024 * 1024) + b'"}'

        response = client.post("/api/session", data=body, content_type="application/json")

        assert response.status_code == 413
        assert response.get_json()["code"] == "too_large"

    def test_unknown_route_is_json_404(self, client):
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.get_json()["code"] == "not_found"
