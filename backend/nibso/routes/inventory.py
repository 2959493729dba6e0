# backend/nibso/routes/inventory.py
"""
Inventory catalog routes.

Stock is only ever reduced by finalized sales (see routes/pos.py); these
routes create items and read the catalog.
"""
from flask import Blueprint, current_app, jsonify, request

from ..services.container import get_services
from ..validation import (
    BOOL,
    NUMBER,
    STR,
    ConflictError,
    PayloadPolicy,
    ValidationError,
    enforce_rules_inventory_item,
    validate_payload,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

INVENTORY_ITEM_POLICY = PayloadPolicy(
    fields={
        "id": STR,
        "name": STR,
        "price": NUMBER,
        "stock": NUMBER,
        "category": STR,
        "image_url": STR,
        "reorder_level": NUMBER,
        "supplier_id": STR,
        "department": STR,
    },
    required_on_create=frozenset({"name", "price", "stock", "category"}),
    nullable=frozenset({"id", "image_url", "reorder_level", "supplier_id", "department"}),
)

INVENTORY_QUERY_POLICY = PayloadPolicy(
    fields={"search": STR, "category": STR, "sellable": BOOL},
)


def _validated_item(payload) -> dict:
    patch = validate_payload(payload=payload, policy=INVENTORY_ITEM_POLICY, partial=False)
    enforce_rules_inventory_item(patch)
    return patch


@inventory_bp.get("")
def list_inventory_route():
    """
    List the catalog.

    ?sellable=true restricts to in-stock items matching ?search= (name
    substring or exact id) and ?category= ("All" for any).
    """
    try:
        query = validate_payload(payload=request.args.to_dict(), policy=INVENTORY_QUERY_POLICY, partial=True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    inventory = get_services().inventory
    if query.get("sellable"):
        items = inventory.sellable(query.get("search", ""), query.get("category", "All"))
    else:
        items = inventory.items()
    return jsonify({"items": [item.to_dict() for item in items]}), 200


@inventory_bp.post("")
def create_item_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = _validated_item(payload)
        item = get_services().inventory.add_item(patch)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"item": item.to_dict()}), 201


@inventory_bp.post("/bulk")
def create_bulk_route():
    """
    Create many items at once (data import). Body: {"items": [...]}.
    The whole batch is rejected if any row is invalid.
    """
    payload = request.get_json(silent=True) or {}
    rows = payload.get("items")
    if not isinstance(rows, list) or not rows:
        return jsonify({"error": "items must be a non-empty list"}), 400

    try:
        patches = []
        for index, row in enumerate(rows):
            try:
                patch = _validated_item(row)
            except ValidationError as e:
                raise ValidationError(f"items[{index}]: {e}") from None
            patch.pop("id", None)
            patches.append(patch)
        items = get_services().inventory.add_bulk(patches)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to import inventory items")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"items": [item.to_dict() for item in items]}), 201


@inventory_bp.get("/alerts")
def stock_alerts_route():
    """Items at or below their reorder level."""
    items = get_services().inventory.low_stock()
    return jsonify({"items": [item.to_dict() for item in items], "count": len(items)}), 200


@inventory_bp.get("/categories")
def categories_route():
    return jsonify({"categories": get_services().inventory.categories()}), 200


@inventory_bp.get("/<item_id>")
def get_item_route(item_id: str):
    item = get_services().inventory.get_by_id(item_id)
    if item is None:
        return jsonify({"error": "Item not found"}), 404
    return jsonify({"item": item.to_dict()}), 200
