"""
Order draft submission.

Turns a draft into the order API's form payload and sends it: a create for
a new order, an update for an order being edited.

Flow:
    1. Take a consistent copy of the draft under its lock
    2. Validation gate (first failure wins, before any network call):
       products -> doctor -> acting user -> prices
    3. Resolve the doctor's contact details
    4. POST the form (create or update)
    5. On success discard the draft and return the order id
       On failure raise SubmissionError; the draft is left untouched

Usage:
    submission = SubmissionService(draft_store)
    order_id = submission.submit(draft, current_user, api_client)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from core.api_client import OrderAPIClient
from core.exceptions import (
    APIError,
    APITimeoutError,
    AuthenticationError,
    SubmissionError,
    SubmissionTimeoutError,
    ValidationError,
)
from models.cart import Cart
from models.money import ZERO
from models.order import CurrentUser, Doctor, OrderDraft
from services.draft_service import DraftStore
from logging_config import get_logger, get_draft_logger


# Module logger
logger = get_logger(__name__)

FormFields = List[Tuple[str, str]]

# Prices are sent with five decimals; back-solved unit prices can be longer
WIRE_PRICE_STEP = Decimal("0.00001")


def wire_decimal(value: Decimal) -> str:
    """Plain decimal text for a form field ("12.5", "3.33333", "0")."""
    quantized = value.quantize(WIRE_PRICE_STEP, rounding=ROUND_HALF_UP)
    text = format(quantized.normalize(), "f")
    return "0" if text in ("-0", "") else text


@dataclass(frozen=True)
class DraftCopy:
    """Consistent view of a draft taken under its lock."""

    draft_id: str
    order_id: Optional[int]
    doctor_id: Optional[int]
    discount: Decimal
    paid_amount: Decimal
    cart: Cart

    @classmethod
    def of(cls, draft: OrderDraft) -> "DraftCopy":
        with draft.lock:
            return cls(
                draft_id=draft.draft_id,
                order_id=draft.order_id,
                doctor_id=draft.doctor_id,
                discount=draft.discount,
                paid_amount=draft.paid_amount,
                cart=draft.cart,
            )


class SubmissionService:
    """
    Validates, assembles and submits order drafts.

    Submissions run in the request thread with the session's own API
    client; nothing here is shared between requests except the draft store.
    """

    def __init__(
        self,
        draft_store: DraftStore,
        contact_placeholder: str = "-",
        timeout_seconds: float = 10.0
    ):
        """
        Args:
            draft_store: Where submitted drafts are discarded from
            contact_placeholder: Sent when the doctor has no phone/address
            timeout_seconds: Reported in SubmissionTimeoutError
        """
        self._draft_store = draft_store
        self._placeholder = contact_placeholder
        self._timeout_seconds = timeout_seconds

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @staticmethod
    def validate(draft: DraftCopy, user: Optional[CurrentUser]) -> None:
        """
        Run the validation gate.

        Raises:
            ValidationError: The first failing check, in gate order
        """
        if draft.cart.is_empty:
            raise ValidationError("at least one product required", code="no_products")

        if draft.doctor_id is None or draft.doctor_id <= 0:
            raise ValidationError("doctor required", code="doctor_required", field="doctor_id")

        if user is None or not user.full_name:
            raise ValidationError("user not loaded", code="user_not_loaded")

        for index, line in enumerate(draft.cart):
            if line.unit_price < ZERO:
                raise ValidationError(
                    "unit price must not be negative",
                    code="negative_price",
                    field=f"lines[{index}].unit_price",
                )

    # =========================================================================
    # ASSEMBLY
    # =========================================================================

    @staticmethod
    def _line_fields(cart: Cart) -> FormFields:
        fields: FormFields = []
        for index, line in enumerate(cart):
            fields.append((f"products[{index}][id]", str(line.submission_id)))
            fields.append((f"products[{index}][quantity]", str(line.quantity)))
            fields.append((f"products[{index}][price]", wire_decimal(line.unit_price)))
            fields.append((f"products[{index}][notes]", line.notes or ""))
        return fields

    def build_create_form(
        self,
        draft: DraftCopy,
        user: CurrentUser,
        doctor: Optional[Doctor]
    ) -> FormFields:
        """
        Form fields for POST /orders.

        The representative is always the acting user. Phone and address
        come from the selected doctor, or the placeholder.
        """
        phone = (doctor.phone.strip() if doctor else "") or self._placeholder
        address = (doctor.address.strip() if doctor else "") or self._placeholder

        fields: FormFields = [
            ("phone", phone),
            ("address", address),
            ("fullName", user.full_name),
            ("RepName", user.full_name),
            ("doctorId", str(draft.doctor_id)),
            ("discount", wire_decimal(draft.discount)),
            ("paid", wire_decimal(draft.paid_amount)),
        ]
        if user.email:
            fields.append(("email", user.email))

        fields.extend(self._line_fields(draft.cart))
        return fields

    def build_update_form(self, draft: DraftCopy) -> FormFields:
        """Form fields for POST /orders/{id}/update (PUT override)."""
        fields: FormFields = [
            ("discount", wire_decimal(draft.discount)),
            ("totalPaid", wire_decimal(draft.paid_amount)),
        ]
        fields.extend(self._line_fields(draft.cart))
        fields.append(("_method", "PUT"))
        return fields

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def submit(
        self,
        draft: OrderDraft,
        user: Optional[CurrentUser],
        api_client: OrderAPIClient
    ) -> Optional[int]:
        """
        Validate and submit a draft.

        Returns:
            Id of the created or updated order (None if the API did not
            report one for a create)

        Raises:
            ValidationError: Gate failed; nothing was sent
            AuthenticationError: Session token rejected
            SubmissionTimeoutError: No answer within the client timeout
            SubmissionError: Any other API failure
        """
        copy = DraftCopy.of(draft)
        draft_logger = get_draft_logger(copy.draft_id)

        self.validate(copy, user)

        try:
            if copy.order_id is not None:
                draft_logger.info(f"Updating order {copy.order_id} ({len(copy.cart)} lines)")
                api_client.update_order(copy.order_id, self.build_update_form(copy))
                order_id: Optional[int] = copy.order_id
            else:
                doctor = self._find_doctor(api_client, copy.doctor_id, draft_logger)
                draft_logger.info(f"Creating order for doctor {copy.doctor_id} ({len(copy.cart)} lines)")
                created = api_client.create_order(self.build_create_form(copy, user, doctor))
                order_id = _order_id(created)
                if order_id is None:
                    draft_logger.warning("Order created but the response carried no id")

        except AuthenticationError:
            draft_logger.warning("Submission rejected: session token no longer valid")
            raise

        except APITimeoutError as e:
            draft_logger.error(f"Submission timed out: {e}")
            raise SubmissionTimeoutError(
                self._timeout_seconds, draft_id=copy.draft_id, order_id=copy.order_id
            ) from e

        except APIError as e:
            draft_logger.error(f"Submission failed: {e}")
            raise SubmissionError(
                e.server_message, draft_id=copy.draft_id, order_id=copy.order_id
            ) from e

        self._draft_store.discard(copy.draft_id)
        draft_logger.info(f"Draft submitted as order {order_id}")
        return order_id

    def _find_doctor(self, api_client: OrderAPIClient, doctor_id: int, draft_logger) -> Optional[Doctor]:
        """Selected doctor's profile; None if the list does not contain it."""
        for item in api_client.list_doctors():
            if isinstance(item, dict) and str(item.get("id")) == str(doctor_id):
                return Doctor.from_api_data(item)
        draft_logger.warning(f"Doctor {doctor_id} not in doctor list, using contact placeholder")
        return None


def _order_id(created) -> Optional[int]:
    value = created.get("id") if isinstance(created, dict) else None
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
