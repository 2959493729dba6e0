# backend/nibso/routes/receipts.py
"""
Standalone receipt generation.

Used for receipts typed in by hand, outside a POS sale. Text generation
failures are returned in "error" with a 200 status so the caller can show
the message in place of the receipt.
"""
from flask import Blueprint, jsonify, request

from ..services.container import get_services
from ..services.receipt_service import ReceiptLine
from ..validation import (
    NUMBER,
    STR,
    PayloadPolicy,
    ValidationError,
    enforce_rules_receipt_item,
    validate_payload,
)


receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")

RECEIPT_ITEM_POLICY = PayloadPolicy(
    fields={"name": STR, "quantity": NUMBER, "price": NUMBER},
    required_on_create=frozenset({"name", "quantity", "price"}),
)


def _receipt_lines(rows) -> list[ReceiptLine]:
    if not isinstance(rows, list) or not rows:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for index, row in enumerate(rows):
        try:
            patch = validate_payload(payload=row, policy=RECEIPT_ITEM_POLICY, partial=False)
            enforce_rules_receipt_item(patch)
        except ValidationError as e:
            raise ValidationError(f"items[{index}]: {e}") from None
        lines.append(ReceiptLine(name=patch["name"], quantity=patch["quantity"], price=patch["price"]))
    return lines


@receipts_bp.post("")
def generate_receipt_route():
    payload = request.get_json(silent=True) or {}
    try:
        lines = _receipt_lines(payload.get("items"))
        customer_name = payload.get("customer_name") or ""
        if not isinstance(customer_name, str):
            raise ValidationError("customer_name must be a string")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    result = get_services().receipts.generate_receipt(lines, customer_name.strip())
    if not result.ok:
        return jsonify({"receipt": None, "error": result.reason}), 200
    return jsonify({"receipt": result.text, "error": None}), 200
