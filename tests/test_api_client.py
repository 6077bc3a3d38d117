"""
Unit tests for the order API client.

The requests session is a MagicMock; no network traffic.
"""

import logging
from unittest.mock import MagicMock

import pytest
import requests

from core.api_client import OrderAPIClient
from core.exceptions import APIError, APITimeoutError, AuthenticationError


# Fixtures

@pytest.fixture
def logger():
    """Create a test logger."""
    return logging.getLogger("test")


def _response(status_code=200, body=None, content=b"x"):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    session.request.return_value = _response(body={"data": []})
    return session


@pytest.fixture
def client(session, logger):
    return OrderAPIClient("http://api.test/api/", token="tok", timeout_seconds=3, session=session, logger=logger)


class TestRequests:

    def test_bearer_token_and_timeout(self, client, session):
        client.list_orders()

        _, kwargs = session.request.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["timeout"] == 3
        assert session.request.call_args[0][:2] == ("GET", "http://api.test/api/orders")

    def test_list_orders_maps_filters(self, client, session):
        session.request.return_value = _response(body={"data": [{"id": 1}]})

        orders = client.list_orders({"doctor_id": 3, "status": "1", "date": "2025-12-03", "user_id": None})

        assert orders == [{"id": 1}]
        _, kwargs = session.request.call_args
        assert kwargs["params"] == {"doctorId": 3, "status": "1", "date": "2025-12-03"}

    def test_unknown_filter_rejected(self, client):
        with pytest.raises(ValueError):
            client.list_orders({"colour": "red"})

    def test_get_order_merges_envelope(self, client, session):
        session.request.return_value = _response(body={
            "order": {"id": 42, "discount": 3},
            "cartProducts": [{"productId": 7}],
            "total": 25.5,
        })

        order = client.get_order(42)

        assert order["id"] == 42
        assert order["cartProducts"] == [{"productId": 7}]
        assert order["total"] == 25.5

    def test_create_order_posts_form(self, client, session):
        session.request.return_value = _response(body={"data": {"id": 77}})

        created = client.create_order([("doctorId", "3"), ("products[0][id]", "7")])

        assert created == {"id": 77}
        args, kwargs = session.request.call_args
        assert args[0] == "POST"
        assert kwargs["data"] == [("doctorId", "3"), ("products[0][id]", "7")]

    def test_update_order_adds_put_override(self, client, session):
        session.request.return_value = _response(body={"message": "ok"})

        client.update_order(42, [("discount", "3")])

        args, kwargs = session.request.call_args
        assert args[1] == "http://api.test/api/orders/42/update"
        assert kwargs["data"][-1] == ("_method", "PUT")

    def test_context_manager_closes_session(self, client, session):
        with client as api:
            api.list_orders()

        assert api is client
        session.close.assert_called_once()

    def test_session_closed_when_request_fails(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(APIError):
            with client:
                client.list_orders()

        session.close.assert_called_once()

    def test_products_brief_accepts_bare_list(self, client, session):
        session.request.return_value = _response(body=[{"id": 1}])
        assert client.list_products_brief() == [{"id": 1}]


class TestErrors:

    def test_timeout(self, client, session):
        session.request.side_effect = requests.Timeout("slow")

        with pytest.raises(APITimeoutError):
            client.list_orders()

    def test_connection_error(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(APIError):
            client.list_orders()

    def test_401_clears_token(self, client, session):
        session.request.return_value = _response(401, body={"message": "Unauthenticated."})

        with pytest.raises(AuthenticationError) as exc_info:
            client.get_current_user()

        assert client.token is None
        assert exc_info.value.server_message == "Unauthenticated."

    def test_server_message_surfaced(self, client, session):
        session.request.return_value = _response(422, body={"message": "Doctor is inactive"})

        with pytest.raises(APIError) as exc_info:
            client.create_order([])

        assert exc_info.value.status_code == 422
        assert exc_info.value.server_message == "Doctor is inactive"

    def test_invalid_json(self, client, session):
        session.request.return_value = _response(body=ValueError("bad json"))

        with pytest.raises(APIError):
            client.list_orders()

    def test_empty_base_url_rejected(self):
        with pytest.raises(ValueError):
            OrderAPIClient("")
