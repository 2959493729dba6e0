from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..services.container import get_services
from ..services.logistics_service import ShipmentError
from ..validation import STR, PayloadPolicy, ValidationError, validate_payload

logistics_bp = Blueprint("logistics", __name__, url_prefix="/api/logistics")

SHIPMENT_STATUS_POLICY = PayloadPolicy(
    fields={"status": STR, "driver_id": STR},
    required_on_create=frozenset({"status"}),
    nullable=frozenset({"driver_id"}),
)


@logistics_bp.get("/shipments")
def list_shipments():
    """Shipments newest first. ?status= filters."""
    shipments = get_services().shipments.shipments()
    status = request.args.get("status")
    if status:
        shipments = [s for s in shipments if s.status == status]
    return jsonify({"shipments": [s.to_dict() for s in shipments]})


@logistics_bp.get("/shipments/<shipment_id>")
def get_shipment(shipment_id: str):
    shipment = get_services().shipments.get(shipment_id)
    if shipment is None:
        return jsonify({"error": "Shipment not found"}), 404
    return jsonify({"shipment": shipment.to_dict()})


@logistics_bp.patch("/shipments/<shipment_id>")
def update_shipment(shipment_id: str):
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=SHIPMENT_STATUS_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    registry = get_services().shipments
    if registry.get(shipment_id) is None:
        return jsonify({"error": "Shipment not found"}), 404

    try:
        shipment = registry.update_status(shipment_id, patch["status"], patch.get("driver_id"))
    except ShipmentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update shipment")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"shipment": shipment.to_dict()})
