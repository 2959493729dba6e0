"""
Sales ledger - one aggregated record per calendar date.

WHY: The dashboard only needs per-day revenue and transaction counts;
individual sales live in the sale journal.
"""

from __future__ import annotations

from ..models import DailySaleRecord
from ..time_utils import epoch_ms, today_iso

SALES_KEY = "nibsoDailySales"


class SalesLedger:
    def __init__(self, store, *, key: str = SALES_KEY):
        self._store = store
        self._key = key
        raw = store.load(key, [])
        # dict preserves first-seen order, which is the persisted order
        self._by_date: dict[str, DailySaleRecord] = {}
        for row in raw:
            record = DailySaleRecord.from_dict(row)
            existing = self._by_date.get(record.date)
            if existing is None:
                self._by_date[record.date] = record
            else:
                existing.revenue += record.revenue
                existing.transactions += record.transactions

    def _persist(self) -> None:
        self._store.save(self._key, [r.to_dict() for r in self._by_date.values()])

    def records(self) -> list[DailySaleRecord]:
        return list(self._by_date.values())

    def for_date(self, date: str) -> DailySaleRecord | None:
        return self._by_date.get(date)

    def record_transaction(self, amount: float, count: int = 1, date: str | None = None) -> DailySaleRecord:
        """Upsert by date: merge into the day's record or create it."""
        date = date or today_iso()
        record = self._by_date.get(date)
        if record is None:
            record = DailySaleRecord(id=f"sale_{epoch_ms()}", date=date, revenue=amount, transactions=count)
            self._by_date[date] = record
        else:
            record.revenue += amount
            record.transactions += count
        self._persist()
        return record
