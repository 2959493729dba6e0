# Overview: Flask API routes for the daily sales ledger, charts, AI insights and the sale journal.

# backend/nibso/routes/sales.py
"""Sales ledger API routes"""

from datetime import date

from flask import Blueprint, current_app, jsonify, request

from ..services.container import get_services
from ..services.reporting_service import ReportError, sales_overview
from ..validation import DATE, INT, NUMBER, PayloadPolicy, ValidationError, validate_payload


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

RECORD_POLICY = PayloadPolicy(
    fields={"amount": NUMBER, "count": INT, "date": DATE},
    required_on_create=frozenset({"amount"}),
    nullable=frozenset({"date"}),
)


@sales_bp.get("")
def list_sales_route():
    records = get_services().sales.records()
    return jsonify({"records": [r.to_dict() for r in records]}), 200


@sales_bp.post("")
def record_sale_route():
    """
    Record revenue outside the POS (e.g. back-dated entries).
    The day's record is created or merged into.
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=RECORD_POLICY, partial=False)
        count = patch.get("count", 1)
        if count < 0:
            raise ValidationError("count must be >= 0")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    sale_date = patch.get("date")
    try:
        record = get_services().sales.record_transaction(
            patch["amount"],
            count,
            date=sale_date.isoformat() if isinstance(sale_date, date) else None,
        )
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"record": record.to_dict()}), 201


@sales_bp.get("/overview")
def sales_overview_route():
    """
    Chart data: ?mode=daily (last 7 days) or ?mode=weekly (last 4 weeks).
    """
    mode = request.args.get("mode", "daily")
    try:
        overview = sales_overview(get_services().sales.records(), mode=mode)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(overview), 200


@sales_bp.post("/insights")
def sales_insights_route():
    services = get_services()
    result = services.receipts.generate_sales_insights(services.sales.records())
    # AI failures are shown to the user as a message, not as an HTTP error
    if not result.ok:
        return jsonify({"insights": None, "error": result.reason}), 200
    return jsonify({"insights": result.text, "error": None}), 200


@sales_bp.get("/events")
def sale_events_route():
    """Journal of finalized sales, newest first. ?date=YYYY-MM-DD filters."""
    limit = request.args.get("limit", 100, type=int)
    events = get_services().journal.list_events(sale_date=request.args.get("date"), limit=limit)
    return jsonify({"events": [ev.to_dict() for ev in events]}), 200
