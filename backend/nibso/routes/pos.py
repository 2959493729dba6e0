# Overview: Flask API routes for the point-of-sale cart; parses input and returns JSON responses.

# backend/nibso/routes/pos.py
"""Point-of-sale cart and finalize routes"""

from flask import Blueprint, current_app, jsonify, request

from ..services.container import get_services
from ..services.pos_service import CartError, CartLockedError
from ..validation import BOOL, INT, NUMBER, STR, PayloadPolicy, ValidationError, validate_payload


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")

ADD_ITEM_POLICY = PayloadPolicy(fields={"item_id": STR}, required_on_create=frozenset({"item_id"}))
QUANTITY_POLICY = PayloadPolicy(fields={"quantity": INT}, required_on_create=frozenset({"quantity"}))
MEMBER_POLICY = PayloadPolicy(fields={"query": STR}, required_on_create=frozenset({"query"}))
DELIVERY_POLICY = PayloadPolicy(
    fields={"enabled": BOOL, "customer_name": STR, "address": STR, "cost": NUMBER},
    required_on_create=frozenset({"enabled"}),
    nullable=frozenset({"cost"}),
)


def _cart_state() -> dict:
    services = get_services()
    cart = services.cart
    member = cart.member
    return {
        "lines": [line.to_dict() for line in cart.lines()],
        "totals": cart.totals().to_dict(),
        "member": member.to_dict() if member else None,
        "delivery": cart.delivery.to_dict(),
        "is_finalizing": cart.is_finalizing,
        "profile": services.profile.to_dict(),
    }


def _ensure_unlocked(cart) -> None:
    if cart.is_finalizing:
        raise CartLockedError("Cart is locked while a sale is being finalized")


@pos_bp.get("/cart")
def get_cart_route():
    return jsonify({"cart": _cart_state()}), 200


@pos_bp.post("/cart/items")
def add_item_route():
    """
    Add one unit of an item (by id, e.g. from a scanned code).
    Reaching the stock cap is not an error: "added" is false.
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=ADD_ITEM_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    services = get_services()
    if services.inventory.get_by_id(patch["item_id"]) is None:
        return jsonify({"error": "Product not found!"}), 404

    try:
        _ensure_unlocked(services.cart)
        added = services.cart.add_item(patch["item_id"])
    except CartLockedError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"added": added, "cart": _cart_state()}), 200


@pos_bp.put("/cart/items/<item_id>")
def set_quantity_route(item_id: str):
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=QUANTITY_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    cart = get_services().cart
    try:
        _ensure_unlocked(cart)
        updated = cart.set_quantity(item_id, patch["quantity"])
    except CartLockedError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"updated": updated, "cart": _cart_state()}), 200


@pos_bp.delete("/cart/items/<item_id>")
def remove_item_route(item_id: str):
    cart = get_services().cart
    try:
        _ensure_unlocked(cart)
        removed = cart.remove_item(item_id)
    except CartLockedError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"removed": removed, "cart": _cart_state()}), 200


@pos_bp.post("/cart/member")
def attach_member_route():
    """Attach a loyalty member by phone or name. Supermarket vertical only."""
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=MEMBER_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    services = get_services()
    if not services.profile.is_supermarket:
        return jsonify({"error": "Loyalty is only available for supermarkets"}), 400

    try:
        _ensure_unlocked(services.cart)
        member = services.cart.attach_member(patch["query"])
    except CartLockedError as e:
        return jsonify({"error": str(e)}), 409
    if member is None:
        return jsonify({"error": "Loyalty member not found."}), 404
    return jsonify({"member": member.to_dict(), "cart": _cart_state()}), 200


@pos_bp.delete("/cart/member")
def detach_member_route():
    cart = get_services().cart
    try:
        _ensure_unlocked(cart)
        cart.detach_member()
    except CartLockedError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"cart": _cart_state()}), 200


@pos_bp.put("/cart/delivery")
def set_delivery_route():
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=DELIVERY_POLICY, partial=False)
        if patch.get("cost") is not None and patch["cost"] < 0:
            raise ValidationError("cost must be >= 0")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    cart = get_services().cart
    try:
        _ensure_unlocked(cart)
        cart.set_delivery(
            patch["enabled"],
            customer_name=patch.get("customer_name", ""),
            address=patch.get("address", ""),
            cost=patch.get("cost"),
        )
    except CartLockedError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"cart": _cart_state()}), 200


@pos_bp.delete("/cart")
def clear_cart_route():
    cart = get_services().cart
    try:
        _ensure_unlocked(cart)
        cart.clear()
    except CartLockedError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"cart": _cart_state()}), 200


@pos_bp.post("/finalize")
def finalize_route():
    """
    Commit the cart as a sale.

    The sale is committed before the receipt is generated; a receipt
    failure is reported in "receipt_error" with a 201 status.
    """
    cart = get_services().cart
    try:
        result = cart.finalize()
    except CartError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to finalize sale")
        return jsonify({"error": "Internal server error"}), 500

    if result is None:
        return jsonify({"error": "Sale is already being finalized"}), 409
    return jsonify({"sale": result.to_dict()}), 201
