from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..services.container import get_services
from ..validation import STR, PayloadPolicy, ValidationError, validate_payload

loyalty_bp = Blueprint("loyalty", __name__, url_prefix="/api/loyalty")

MEMBER_POLICY = PayloadPolicy(
    fields={"name": STR, "phone": STR},
    required_on_create=frozenset({"name", "phone"}),
)


@loyalty_bp.get("")
def list_members():
    return jsonify([m.to_dict() for m in get_services().loyalty.members()])


@loyalty_bp.post("")
def create_member():
    data = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(payload=data, policy=MEMBER_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        member = get_services().loyalty.add(patch["name"], patch["phone"])
    except Exception:
        current_app.logger.exception("Failed to create loyalty member")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(member.to_dict()), 201


@loyalty_bp.get("/search")
def search_member():
    """Exact phone or name substring; first match only."""
    member = get_services().loyalty.find(request.args.get("q", ""))
    if member is None:
        return jsonify({"error": "Loyalty member not found."}), 404
    return jsonify(member.to_dict())
