import pytest

from nibso.services.sales_service import SALES_KEY, SalesLedger


def test_record_transaction_upserts_by_date(store):
    ledger = SalesLedger(store)
    first = ledger.record_transaction(1500.0, date="2024-08-20")
    ledger.record_transaction(500.0, date="2024-08-20")
    ledger.record_transaction(100.0, 3, date="2024-08-21")

    assert len(ledger.records()) == 2
    day = ledger.for_date("2024-08-20")
    assert day.id == first.id
    assert day.revenue == pytest.approx(2000.0)
    assert day.transactions == 2
    assert ledger.for_date("2024-08-21").transactions == 3


def test_record_transaction_defaults_to_today(store, monkeypatch):
    monkeypatch.setattr("nibso.services.sales_service.today_iso", lambda: "2024-01-02")
    record = SalesLedger(store).record_transaction(10.0)
    assert record.date == "2024-01-02"


def test_duplicate_dates_are_merged_on_load(store):
    store.save(SALES_KEY, [
        {"id": "a", "date": "2024-08-20", "revenue": 100, "transactions": 1},
        {"id": "b", "date": "2024-08-20", "revenue": 50, "transactions": 2},
    ])
    ledger = SalesLedger(store)

    assert len(ledger.records()) == 1
    assert ledger.for_date("2024-08-20").revenue == pytest.approx(150.0)
    assert ledger.for_date("2024-08-20").transactions == 3


def test_records_persist_across_instances(store):
    SalesLedger(store).record_transaction(42.0, date="2024-08-20")
    assert SalesLedger(store).for_date("2024-08-20").revenue == pytest.approx(42.0)
