from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z


class SaleEvent(db.Model):
    """
    Append-only journal of finalized sales.

    IMMUTABLE: one row per finalized transaction; rows are never updated
    or deleted. Ledger views (stock, daily sales, loyalty points) are
    mutated after the event is written.
    """
    __tablename__ = "sale_events"
    __table_args__ = (
        db.Index("ix_sale_events_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), nullable=False, unique=True)
    sale_date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD, local business date

    total = db.Column(db.Float, nullable=False)
    lines_json = db.Column(db.Text, nullable=False)  # JSON array of {id, name, price, quantity}
    member_id = db.Column(db.String(64), nullable=True)
    is_delivery = db.Column(db.Boolean, nullable=False, default=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def lines(self) -> list[dict]:
        return json.loads(self.lines_json)

    def to_dict(self):
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "sale_date": self.sale_date,
            "total": self.total,
            "lines": self.lines,
            "member_id": self.member_id,
            "is_delivery": self.is_delivery,
            "occurred_at": to_utc_z(self.occurred_at),
        }
