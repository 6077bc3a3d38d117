"""
Unit tests for draft validation, form assembly and submission.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from core.exceptions import (
    APIError,
    APITimeoutError,
    AuthenticationError,
    DraftNotFoundError,
    SubmissionError,
    SubmissionTimeoutError,
    ValidationError,
)
from models.cart import Cart
from models.catalog import ProductBrief
from models.order import CurrentUser, Doctor, OrderDetail
from services.draft_service import DraftStore
from services.submission_service import DraftCopy, SubmissionService, wire_decimal


# Fixtures

@pytest.fixture
def store():
    return DraftStore()


@pytest.fixture
def service(store):
    return SubmissionService(store, contact_placeholder="-", timeout_seconds=10)


@pytest.fixture
def user():
    return CurrentUser(full_name="Sara Rep", email="sara@example.com")


@pytest.fixture
def gloves():
    return ProductBrief(id=7, name="Nitrile Gloves", price=Decimal("12.50"))


@pytest.fixture
def draft(store, gloves):
    draft = store.create()
    draft.add_product(gloves)
    draft.add_product(gloves)
    draft.set_doctor(3)
    return draft


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.list_doctors.return_value = [
        {"id": 3, "name": "Dr. Hana", "phone": " 0999 ", "address": "Main St 1"},
        {"id": 4, "name": "Dr. Omar", "phone": "", "address": None},
    ]
    client.create_order.return_value = {"id": 501}
    client.update_order.return_value = {}
    return client


class TestValidationGate:
    """First failing check wins; nothing is sent."""

    def test_empty_cart_fails_first(self, service, store, mock_client):
        draft = store.create()

        with pytest.raises(ValidationError) as exc_info:
            service.submit(draft, None, mock_client)

        assert exc_info.value.message == "at least one product required"
        mock_client.create_order.assert_not_called()

    def test_doctor_checked_before_user(self, service, draft, mock_client):
        draft.set_doctor(None)

        with pytest.raises(ValidationError) as exc_info:
            service.submit(draft, None, mock_client)

        assert exc_info.value.message == "doctor required"

    def test_zero_doctor_id_rejected(self, service, draft, user, mock_client):
        draft.set_doctor(0)

        with pytest.raises(ValidationError) as exc_info:
            service.submit(draft, user, mock_client)
        assert exc_info.value.code == "doctor_required"

    def test_user_not_loaded_is_distinct(self, service, draft, mock_client):
        with pytest.raises(ValidationError) as exc_info:
            service.submit(draft, None, mock_client)

        assert exc_info.value.message == "user not loaded"
        assert exc_info.value.code == "user_not_loaded"
        mock_client.list_doctors.assert_not_called()

    def test_negative_price_rejected(self, service, draft, user, mock_client):
        draft.edit_line(0, {"unit_price": "-1"})

        with pytest.raises(ValidationError) as exc_info:
            service.submit(draft, user, mock_client)
        assert exc_info.value.code == "negative_price"

    def test_draft_amounts_reject_negative(self, draft):
        with pytest.raises(ValidationError):
            draft.set_discount("-1")
        with pytest.raises(ValidationError):
            draft.set_paid("abc")


class TestAssembly:

    def test_create_form(self, service, draft, user):
        draft.set_discount("3")
        draft.set_paid("15")
        doctor = Doctor(id=3, name="Dr. Hana", phone=" 0999 ", address="Main St 1")

        fields = dict(service.build_create_form(DraftCopy.of(draft), user, doctor))

        assert fields["phone"] == "0999"
        assert fields["address"] == "Main St 1"
        assert fields["RepName"] == "Sara Rep"
        assert fields["fullName"] == "Sara Rep"
        assert fields["email"] == "sara@example.com"
        assert fields["doctorId"] == "3"
        assert fields["discount"] == "3"
        assert fields["paid"] == "15"
        assert fields["products[0][id]"] == "7"
        assert fields["products[0][quantity]"] == "2"
        assert fields["products[0][price]"] == "12.5"
        assert fields["products[0][notes]"] == ""

    def test_missing_contact_uses_placeholder(self, service, draft):
        user = CurrentUser(full_name="Sara Rep")
        fields = dict(service.build_create_form(DraftCopy.of(draft), user, Doctor(id=4, name="Dr. Omar")))

        assert fields["phone"] == "-"
        assert fields["address"] == "-"
        assert "email" not in fields

    def test_update_form(self, service, draft):
        draft.set_paid("10")
        fields = service.build_update_form(DraftCopy.of(draft))

        assert ("totalPaid", "10") in fields
        assert fields[-1] == ("_method", "PUT")

    @pytest.mark.parametrize("value,expected", [
        (Decimal("12.50"), "12.5"),
        (Decimal("10") / Decimal("3"), "3.33333"),
        (Decimal("0"), "0"),
        (Decimal("100"), "100"),
    ])
    def test_wire_decimal(self, value, expected):
        assert wire_decimal(value) == expected


class TestSubmit:

    def test_create_success_discards_draft(self, service, store, draft, user, mock_client):
        order_id = service.submit(draft, user, mock_client)

        assert order_id == 501
        sent = dict(mock_client.create_order.call_args[0][0])
        assert sent["phone"] == "0999"
        with pytest.raises(DraftNotFoundError):
            store.get(draft.draft_id)

    def test_update_path(self, service, store, user, mock_client):
        detail = OrderDetail.from_api_data({
            "id": 42,
            "doctorId": 3,
            "discount": "2",
            "totalPaid": "5",
            "cartProducts": [
                {"productId": 7, "quantity": 1, "productPrice": "12.50", "product": {"name": "Gloves"}},
            ],
        })
        draft = store.hydrate(detail)
        draft.add_product(ProductBrief(id=9, name="Masks", price=Decimal("5")))

        assert service.submit(draft, user, mock_client) == 42

        order_id, form = mock_client.update_order.call_args[0]
        fields = dict(form)
        assert order_id == 42
        assert fields["discount"] == "2"
        assert fields["totalPaid"] == "5"
        assert fields["products[0][id]"] == "7"
        assert fields["products[1][id]"] == "9"
        mock_client.create_order.assert_not_called()

    def test_server_message_surfaced_and_draft_kept(self, service, store, draft, user, mock_client):
        mock_client.create_order.side_effect = APIError(
            "POST /orders returned HTTP 422", status_code=422, server_message="Doctor is inactive"
        )
        cart_before = draft.cart

        with pytest.raises(SubmissionError) as exc_info:
            service.submit(draft, user, mock_client)

        assert exc_info.value.message == "Doctor is inactive"
        assert store.get(draft.draft_id) is draft
        assert draft.cart is cart_before

    def test_generic_message_without_server_message(self, service, draft, user, mock_client):
        mock_client.create_order.side_effect = APIError("POST /orders failed")

        with pytest.raises(SubmissionError) as exc_info:
            service.submit(draft, user, mock_client)

        assert exc_info.value.message == SubmissionError.GENERIC_MESSAGE

    def test_timeout(self, service, store, draft, user, mock_client):
        mock_client.create_order.side_effect = APITimeoutError("timed out")

        with pytest.raises(SubmissionTimeoutError):
            service.submit(draft, user, mock_client)
        assert store.find(draft.draft_id) is draft

    def test_rejected_token_propagates(self, service, draft, user, mock_client):
        mock_client.list_doctors.side_effect = AuthenticationError("401", status_code=401)

        with pytest.raises(AuthenticationError):
            service.submit(draft, user, mock_client)


class TestDraftStore:

    def test_get_unknown(self, store):
        with pytest.raises(DraftNotFoundError):
            store.get("missing")

    def test_discard(self, store):
        draft = store.create()
        assert store.discard(draft.draft_id) is True
        assert store.discard(draft.draft_id) is False
        assert len(store) == 0

    def test_hydrate_keeps_cart_order(self, store):
        detail = OrderDetail.from_api_data({
            "id": 8,
            "cartProducts": [
                {"productId": 2, "quantity": 1, "productPrice": "1", "product": {"name": "B"}},
                {"productId": 1, "quantity": 4, "productPrice": "2", "product": {"name": "A"}},
            ],
        })
        draft = store.hydrate(detail)

        assert draft.order_id == 8
        assert [line.product_id for line in draft.cart] == [2, 1]
        assert isinstance(draft.cart, Cart)

    def test_old_drafts_swept_when_new_one_stored(self):
        store = DraftStore(max_age_seconds=60)
        abandoned = store.create()
        abandoned.created_at = datetime.now(timezone.utc) - timedelta(hours=2)
        recent = store.create()

        fresh = store.create()

        assert store.find(abandoned.draft_id) is None
        assert store.find(recent.draft_id) is recent
        assert store.find(fresh.draft_id) is fresh

    def test_sweep_disabled_without_max_age(self):
        store = DraftStore(max_age_seconds=None)
        draft = store.create()
        draft.created_at = datetime.now(timezone.utc) - timedelta(days=30)

        assert store.sweep_expired() == 0
        assert store.find(draft.draft_id) is draft
