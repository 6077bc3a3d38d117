"""
HTTP client for the distributor's order API.

This module wraps the REST endpoints the order desk consumes: orders,
brief product list, doctors, and the current user. Each operation returns
plain decoded JSON; models/ turns it into typed objects.

THREAD OWNERSHIP:
    - requests.Session is not shared between threads
    - Each background service creates its OWN OrderAPIClient
    - Request handlers create a short-lived client with the session's token

Envelopes (owned by the API, normalized here):
    GET  /orders                -> {"data": [...]}
    GET  /orders/{id}           -> {"order": {...}, "cartProducts": [...], "total": n}
    POST /orders                -> {"data": {...}}
    POST /orders/{id}/update    -> {...}            (form, _method=PUT)
    GET  /products/all/brief    -> [...]
    GET  /users/self            -> {"data": {...}}
    GET  /doctors               -> {"data": [...]}

Usage:
    with OrderAPIClient(base_url, token=token, timeout_seconds=10) as client:
        orders = client.list_orders({"doctor_id": 3, "date": "2025-12-03"})
        detail = client.get_order(42)
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .exceptions import APIError, APITimeoutError, AuthenticationError


# Order list filters accepted by the API, keyed by our parameter names
ORDER_FILTER_PARAMS = {
    "doctor_id": "doctorId",
    "user_id": "userId",
    "product_id": "productId",
    "status": "status",
    "date": "date",
}

FormFields = Sequence[Tuple[str, str]]


class OrderAPIClient:
    """
    Client for the order API.

    One instance per thread. All methods raise APIError (or a subclass) on
    failure, never a raw requests exception.

    Attributes:
        base_url: API root without trailing slash
        timeout_seconds: Bound applied to every request
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the API client.

        Args:
            base_url: Root URL of the order API
            token: Bearer token (without the "Bearer " prefix)
            timeout_seconds: Per-request timeout
            session: Optional pre-built session (tests pass a mock)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._token = token or None
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        self._logger = logger or logging.getLogger("core.api_client")
        self._thread_id = threading.get_ident()

    @property
    def token(self) -> Optional[str]:
        """Current bearer token, None once cleared by a 401."""
        return self._token

    @property
    def thread_id(self) -> int:
        """ID of the thread that created this client."""
        return self._thread_id

    def clear_token(self) -> None:
        """Forget the bearer token (called when the API rejects it)."""
        self._token = None

    def close(self) -> None:
        """Release the session's pooled connections."""
        self._session.close()

    def __enter__(self) -> "OrderAPIClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # =========================================================================
    # ORDERS
    # =========================================================================

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        List orders, optionally filtered.

        Args:
            filters: Any of doctor_id, user_id, product_id, status, date.
                     Empty values are dropped.

        Returns:
            List of order dicts in the API's order
        """
        params = {}
        for name, value in (filters or {}).items():
            api_name = ORDER_FILTER_PARAMS.get(name)
            if api_name is None:
                raise ValueError(f"Unsupported order filter: {name}")
            if value is None or value == "":
                continue
            params[api_name] = value

        payload = self._request("GET", "/orders", params=params)
        return _unwrap_list(payload)

    def get_order(self, order_id: int) -> Dict[str, Any]:
        """
        Fetch one order with its cart products.

        The API returns the order header, its cart products and the
        subtotal side by side; they are merged into one dict.

        Returns:
            Order dict with "cartProducts" and "total" keys
        """
        payload = self._request("GET", f"/orders/{order_id}")
        if not isinstance(payload, dict):
            raise APIError("Unexpected order detail response", url=self._url(f"/orders/{order_id}"))

        order = dict(payload.get("order") or {})
        order["cartProducts"] = payload.get("cartProducts") or []
        order["total"] = payload.get("total", order.get("total", 0))
        return order

    def create_order(self, form: FormFields) -> Dict[str, Any]:
        """
        Create an order from form fields.

        Args:
            form: Ordered (name, value) pairs, e.g. ("products[0][id]", "12")

        Returns:
            Created order dict (contains at least "id")
        """
        payload = self._request("POST", "/orders", data=list(form))
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            return payload["data"]
        return payload if isinstance(payload, dict) else {}

    def update_order(self, order_id: int, form: FormFields) -> Dict[str, Any]:
        """
        Update an order (discount, paid amount, line items).

        The API takes the update as a POST form with a PUT override.
        """
        fields = list(form)
        if ("_method", "PUT") not in fields:
            fields.append(("_method", "PUT"))

        payload = self._request("POST", f"/orders/{order_id}/update", data=fields)
        return payload if isinstance(payload, dict) else {}

    # =========================================================================
    # CATALOG, DOCTORS, USERS
    # =========================================================================

    def list_products_brief(self) -> List[Dict[str, Any]]:
        """Brief product list: id, name, price, barcode, slug."""
        payload = self._request("GET", "/products/all/brief")
        return _unwrap_list(payload)

    def list_doctors(self) -> List[Dict[str, Any]]:
        """All doctors with their contact details."""
        payload = self._request("GET", "/doctors")
        return _unwrap_list(payload)

    def get_current_user(self) -> Dict[str, Any]:
        """Profile of the user that owns the bearer token."""
        payload = self._request("GET", "/users/self")
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            return payload["data"]
        raise APIError("Unexpected user profile response", url=self._url("/users/self"))

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[List[Tuple[str, str]]] = None
    ) -> Any:
        """
        Perform one request and decode the JSON body.

        Raises:
            APITimeoutError: No response within timeout_seconds
            AuthenticationError: HTTP 401 (token is cleared)
            APIError: Any other transport, HTTP or decoding failure
        """
        url = self._url(path)
        headers = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        self._logger.debug(f"[Thread {self._thread_id}] {method} {url} params={params}")

        try:
            response = self._session.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as e:
            self._logger.warning(f"[Thread {self._thread_id}] {method} {url} timed out: {e}")
            raise APITimeoutError(
                f"{method} {path} timed out after {self.timeout_seconds:.1f}s", url=url
            ) from e
        except requests.RequestException as e:
            self._logger.warning(f"[Thread {self._thread_id}] {method} {url} failed: {e}")
            raise APIError(f"{method} {path} failed: {e}", url=url) from e

        if response.status_code == 401:
            self.clear_token()
            raise AuthenticationError(
                "Order API rejected the session token",
                status_code=401,
                server_message=_server_message(response),
                url=url,
            )

        if response.status_code >= 400:
            server_message = _server_message(response)
            self._logger.warning(
                f"[Thread {self._thread_id}] {method} {url} -> HTTP {response.status_code}: {server_message}"
            )
            raise APIError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                server_message=server_message,
                url=url,
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                f"Invalid JSON from {method} {path}: {e}",
                status_code=response.status_code,
                url=url,
            ) from e


def _unwrap_list(payload: Any) -> List[Dict[str, Any]]:
    """Accept both a bare list and a {"data": [...]} envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    return []


def _server_message(response: requests.Response) -> Optional[str]:
    """The API's own "message" field, if the error body has one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None
