from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..services.container import get_services
from ..validation import (
    DATE,
    NUMBER,
    STR,
    PayloadPolicy,
    ValidationError,
    enforce_rules_promotion,
    validate_payload,
)

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")

PROMOTION_POLICY = PayloadPolicy(
    fields={
        "description": STR,
        "type": STR,
        "value": NUMBER,
        "target": STR,
        "target_id": STR,
        "start_date": DATE,
        "end_date": DATE,
    },
    required_on_create=frozenset({"value", "target", "target_id", "start_date", "end_date"}),
)


@promotions_bp.route("", methods=["GET"])
def list_promotions():
    active_only = request.args.get("active_only", "false").lower() == "true"
    catalog = get_services().promotions
    promotions = catalog.active_now() if active_only else catalog.promotions()
    return jsonify([p.to_dict() for p in promotions])


@promotions_bp.route("", methods=["POST"])
def create_promotion():
    data = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(payload=data, policy=PROMOTION_POLICY, partial=False)
        enforce_rules_promotion(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        promo = get_services().promotions.add(patch)
    except Exception:
        current_app.logger.exception("Failed to create promotion")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(promo.to_dict()), 201


@promotions_bp.route("/active", methods=["GET"])
def get_active_promotions():
    return jsonify([p.to_dict() for p in get_services().promotions.active_now()])
