from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class KeyValueEntry(db.Model):
    """
    Durable JSON state keyed by a logical ledger name.

    One row per ledger (e.g. "nibsoInventory"). The value column holds the
    serialized JSON document; each ledger rewrites its row on every change.
    """
    __tablename__ = "kv_entries"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "key": self.key,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }
