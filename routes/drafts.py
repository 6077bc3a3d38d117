"""
Order draft routes.

Handles:
- /drafts                        - Open a draft for a new order
- /orders/<id>/draft             - Open a draft for editing an existing order
- /drafts/<id>                   - Read, edit header (doctor/discount/paid), cancel
- /drafts/<id>/scan              - Add a product by barcode or slug
- /drafts/<id>/products          - Add a product picked from a list
- /drafts/<id>/lines/<index>     - Edit or remove one cart line
- /drafts/<id>/submit            - Submit the draft

Every response carries the draft with freshly computed totals.
"""

from flask import Blueprint, current_app, session

from core.exceptions import ValidationError
from models.money import parse_decimal
from models.order import OrderDetail
from .common import (
    DRAFT_SESSION_KEY,
    api_client,
    current_user,
    draft_payload,
    request_data,
    sanitize_text,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

drafts_bp = Blueprint("drafts", __name__)

LINE_FIELDS = ("quantity", "unit_price", "total", "notes")


def _draft_store():
    return current_app.config["DRAFT_STORE"]


def _get_draft(draft_id: str):
    return _draft_store().get(draft_id)


def _remember_draft(draft) -> None:
    """Make this the session's open draft, discarding the one it replaces."""
    previous = session.get(DRAFT_SESSION_KEY)
    if previous and previous != draft.draft_id and _draft_store().discard(previous):
        logger.info(f"Discarded replaced draft {previous[:8]}")
    session[DRAFT_SESSION_KEY] = draft.draft_id
    session.modified = True


@drafts_bp.route("/drafts", methods=["POST"])
def create_draft():
    """Open an empty draft and remember it in the session."""
    draft = _draft_store().create()
    _remember_draft(draft)
    logger.info(f"Opened draft {draft.draft_id[:8]}")
    return draft_payload(draft), 201


@drafts_bp.route("/orders/<int:order_id>/draft", methods=["POST"])
def edit_order_draft(order_id: int):
    """Open a draft hydrated from an existing order's cart products."""
    with api_client() as client:
        detail = OrderDetail.from_api_data(client.get_order(order_id))
    draft = _draft_store().hydrate(detail)
    _remember_draft(draft)
    return draft_payload(draft), 201


@drafts_bp.route("/drafts/<draft_id>", methods=["GET"])
def get_draft(draft_id: str):
    return draft_payload(_get_draft(draft_id))


@drafts_bp.route("/drafts/<draft_id>", methods=["PATCH"])
def update_draft(draft_id: str):
    """Set doctor, discount and/or paid amount."""
    draft = _get_draft(draft_id)
    data = request_data()

    if "doctor_id" in data:
        draft.set_doctor(data["doctor_id"])
    if "discount" in data:
        draft.set_discount(data["discount"])
    if "paid" in data:
        draft.set_paid(data["paid"])

    return draft_payload(draft)


@drafts_bp.route("/drafts/<draft_id>", methods=["DELETE"])
def cancel_draft(draft_id: str):
    """Discard a draft without submitting it."""
    _get_draft(draft_id)
    _draft_store().discard(draft_id)
    if session.get(DRAFT_SESSION_KEY) == draft_id:
        session.pop(DRAFT_SESSION_KEY, None)
    logger.info(f"Cancelled draft {draft_id[:8]}")
    return {"draft_id": draft_id, "discarded": True}


@drafts_bp.route("/drafts/<draft_id>/scan", methods=["POST"])
def scan(draft_id: str):
    """
    Add a product by scanned barcode or slug.

    Empty input is ignored. 409 while the catalog is loading, 404 for an
    unknown code.
    """
    draft = _get_draft(draft_id)
    code = request_data().get("code")

    product = current_app.config["CATALOG_SERVICE"].lookup_code(code)
    if product is None:
        return {"line": None, "ignored": True, "draft": draft_payload(draft)}

    line = draft.add_product(product)
    logger.debug(f"Draft {draft_id[:8]}: scanned {product.id} -> quantity {line.quantity}")
    return {"line": line.to_dict(), "ignored": False, "draft": draft_payload(draft)}


@drafts_bp.route("/drafts/<draft_id>/products", methods=["POST"])
def add_product(draft_id: str):
    """Add a product picked by id."""
    draft = _get_draft(draft_id)
    number = parse_decimal(request_data().get("product_id"))
    if number is None or number != number.to_integral_value():
        raise ValidationError("product id must be a number", code="invalid_product", field="product_id")

    product = current_app.config["CATALOG_SERVICE"].lookup_id(int(number))
    line = draft.add_product(product)
    return {"line": line.to_dict(), "ignored": False, "draft": draft_payload(draft)}


@drafts_bp.route("/drafts/<draft_id>/lines/<int:index>", methods=["PATCH"])
def edit_line(draft_id: str, index: int):
    """
    Edit one line: quantity, unit_price, total and/or notes.

    A quantity below 1 or a negative total is ignored; ``changed`` tells
    the caller whether anything was applied.
    """
    draft = _get_draft(draft_id)
    data = request_data()

    changes = {name: data[name] for name in LINE_FIELDS if name in data}
    if "notes" in changes:
        changes["notes"] = sanitize_text(
            changes["notes"], current_app.config.get("MAX_NOTES_LENGTH", 1000)
        )

    changed = draft.edit_line(index, changes)
    return {"changed": changed, "draft": draft_payload(draft)}


@drafts_bp.route("/drafts/<draft_id>/lines/<int:index>", methods=["DELETE"])
def remove_line(draft_id: str, index: int):
    draft = _get_draft(draft_id)
    draft.remove_line(index)
    return draft_payload(draft)


@drafts_bp.route("/drafts/<draft_id>/submit", methods=["POST"])
def submit_draft(draft_id: str):
    """
    Submit the draft as a new order, or as an update of the order it edits.

    On success the draft is gone and the order id is returned.
    On failure the draft is kept for correction and resubmission.
    """
    draft = _get_draft(draft_id)
    with api_client() as client:
        user = current_user(client)
        order_id = current_app.config["SUBMISSION_SERVICE"].submit(draft, user, client)

    if session.get(DRAFT_SESSION_KEY) == draft_id:
        session.pop(DRAFT_SESSION_KEY, None)

    return {"order_id": order_id, "draft_id": draft_id, "submitted": True}, 201
