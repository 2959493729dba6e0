# Overview: Append-only journal of finalized sales.

from __future__ import annotations

import json
from typing import Iterable

from ..extensions import db
from ..models import SaleEvent
from .concurrency import run_with_retry

"""
Sale journal invariants (authoritative)

- Append-only: one SaleEvent per finalized transaction, never updated or deleted.
- transaction_id is unique; callers probe with exists() before appending.
- The event is written before the ledger views (stock, daily sales,
  loyalty) are mutated, so the journal is the record of what was sold.
"""


class SaleJournal:
    def exists(self, transaction_id: str) -> bool:
        return db.session.query(SaleEvent.id).filter_by(transaction_id=transaction_id).first() is not None

    def append(
        self,
        *,
        transaction_id: str,
        sale_date: str,
        total: float,
        lines: Iterable[dict],
        member_id: str | None = None,
        is_delivery: bool = False,
    ) -> SaleEvent:
        """
        Append-only sale event.

        - No domain logic here.
        - No deletes/updates of existing events.
        """
        payload = json.dumps(list(lines))

        def _op():
            ev = SaleEvent(
                transaction_id=transaction_id,
                sale_date=sale_date,
                total=total,
                lines_json=payload,
                member_id=member_id,
                is_delivery=is_delivery,
            )
            db.session.add(ev)
            db.session.commit()
            return ev

        return run_with_retry(_op)

    def list_events(self, *, sale_date: str | None = None, limit: int = 100) -> list[SaleEvent]:
        q = db.session.query(SaleEvent)
        if sale_date:
            q = q.filter_by(sale_date=sale_date)
        return q.order_by(SaleEvent.id.desc()).limit(limit).all()
