from datetime import date, datetime

import pytest

from conftest import FIXED_NOW, FakeTextClient, make_profile
from nibso.config import BusinessType
from nibso.models import CartLine, InventoryItem, Promotion
from nibso.services.ledger_service import SaleJournal
from nibso.services.pos_service import CartEngine, CartError, compute_totals


def _line(item_id, price, quantity, category="Misc", stock=100):
    return CartLine(item=InventoryItem(id=item_id, name=item_id, price=price, stock=stock, category=category),
                    quantity=quantity)


def _promo(promo_id, target, target_id, value):
    return Promotion(
        id=promo_id,
        description="",
        value=value,
        target=target,
        target_id=target_id,
        start_date=date(2024, 8, 1),
        end_date=date(2024, 8, 31),
    )


# -- pricing -------------------------------------------------------------------

def test_totals_apply_item_promotion_then_tax():
    totals = compute_totals(
        [_line("inv2", 1200.0, 2)],
        [_promo("p1", "item", "inv2", 10)],
        tax_rate=7.5,
        is_supermarket=True,
    )
    assert totals.subtotal == pytest.approx(2160.0)
    assert totals.total_discount == pytest.approx(240.0)
    assert totals.tax_amount == pytest.approx(162.0)
    assert totals.total == pytest.approx(2322.0)
    assert totals.lines[0].effective_price == pytest.approx(1080.0)
    assert totals.lines[0].promotion_id == "p1"


def test_item_promotion_wins_over_category_promotion():
    promos = [
        _promo("cat", "category", "Groceries", 50),
        _promo("item", "item", "inv2", 10),
    ]
    totals = compute_totals([_line("inv2", 1200.0, 1, category="Groceries")], promos,
                            tax_rate=0, is_supermarket=True)
    assert totals.lines[0].promotion_id == "item"
    assert totals.subtotal == pytest.approx(1080.0)


def test_promotions_do_not_stack_on_one_line():
    promos = [
        _promo("a", "category", "Beverages", 15),
        _promo("b", "category", "Beverages", 20),
    ]
    totals = compute_totals([_line("inv4", 500.0, 1, category="Beverages")], promos,
                            tax_rate=0, is_supermarket=True)
    assert totals.lines[0].promotion_id == "a"
    assert totals.subtotal == pytest.approx(425.0)


def test_promotions_ignored_outside_supermarket():
    totals = compute_totals(
        [_line("inv2", 1200.0, 2)],
        [_promo("p1", "item", "inv2", 10)],
        tax_rate=7.5,
        is_supermarket=False,
    )
    assert totals.total_discount == 0
    assert totals.subtotal == pytest.approx(2400.0)
    assert totals.total == pytest.approx(2580.0)


def test_delivery_fee_is_added_after_tax():
    totals = compute_totals([_line("x", 1000.0, 1)], [], tax_rate=7.5, is_supermarket=False, delivery_fee=500.0)
    assert totals.tax_amount == pytest.approx(75.0)
    assert totals.total == pytest.approx(1575.0)


def test_empty_cart_totals_are_zero():
    totals = compute_totals([], [], tax_rate=7.5, is_supermarket=True)
    assert totals.total == 0
    assert totals.lines == ()


# -- cart mutations -------------------------------------------------------------

def test_add_item_caps_at_stock(make_engine, ledgers):
    ledgers.inventory.add_item({"id": "lim", "name": "Limited", "price": 10, "stock": 2, "category": "Misc"})
    engine = make_engine()

    assert engine.add_item("lim") is True
    assert engine.add_item("lim") is True
    assert engine.add_item("lim") is False
    assert engine.lines()[0].quantity == 2


def test_add_item_rejects_out_of_stock_and_unknown(make_engine, ledgers):
    ledgers.inventory.add_item({"id": "empty", "name": "Empty", "price": 10, "stock": 0, "category": "Misc"})
    engine = make_engine()

    assert engine.add_item("empty") is False
    assert engine.add_item("nope") is False
    assert engine.lines() == []


def test_set_quantity_clamps_and_removes(make_engine):
    engine = make_engine()
    engine.add_item("inv2")

    assert engine.set_quantity("inv2", 999) is True
    assert engine.lines()[0].quantity == 45

    assert engine.set_quantity("inv2", 3) is True
    assert engine.lines()[0].quantity == 3

    assert engine.set_quantity("inv2", 0) is True
    assert engine.lines() == []


def test_lines_are_snapshots(make_engine):
    engine = make_engine()
    engine.add_item("inv2")
    engine.lines()[0].quantity = 40
    assert engine.lines()[0].quantity == 1


def test_attach_member_only_on_supermarket(make_engine):
    general = make_engine(profile=make_profile(BusinessType.GENERAL))
    assert general.attach_member("Femi") is None
    assert general.member is None

    supermarket = make_engine()
    member = supermarket.attach_member("08022223333")
    assert member.id == "loyal1"
    assert supermarket.member.id == "loyal1"


def test_totals_use_engine_clock(make_engine):
    engine = make_engine()
    engine.add_item("inv4")
    totals = engine.totals()
    # Beverages promotion runs 2024-08-15..22
    assert totals.lines[0].effective_price == pytest.approx(425.0)

    later = engine.totals(now=FIXED_NOW.replace(month=9))
    assert later.lines[0].effective_price == pytest.approx(500.0)


def test_totals_are_repeatable_without_side_effects(make_engine, ledgers, store):
    engine = make_engine()
    engine.add_item("inv2")
    engine.add_item("inv4")
    before = {key: store.load(key) for key in store.keys()}

    first = engine.totals()
    second = engine.totals()

    assert first == second
    assert {key: store.load(key) for key in store.keys()} == before
    assert ledgers.inventory.get_by_id("inv2").stock == 45
    assert [(line.item.id, line.quantity) for line in engine.lines()] == [("inv2", 1), ("inv4", 1)]


def test_supermarket_without_active_promotion_pays_full_price(make_engine):
    engine = make_engine()
    engine.add_item("inv2")
    engine.add_item("inv2")

    totals = engine.totals(now=datetime(2024, 10, 1, 12, 0))
    assert totals.subtotal == pytest.approx(2400.0)
    assert totals.total_discount == pytest.approx(0.0)
    assert totals.tax_amount == pytest.approx(180.0)
    assert totals.total == pytest.approx(2580.0)


# -- finalize --------------------------------------------------------------------

def test_finalize_commits_sale_to_every_ledger(make_engine, ledgers, text_client):
    engine = make_engine()
    engine.add_item("inv2")
    engine.add_item("inv2")
    engine.attach_member("Femi")

    result = engine.finalize()

    assert result.totals.total == pytest.approx(2322.0)
    assert result.transaction_id.startswith("txn_")
    assert result.date == "2024-08-20"

    assert ledgers.inventory.get_by_id("inv2").stock == 43

    record = ledgers.sales.for_date("2024-08-20")
    assert record.revenue == pytest.approx(2322.0)
    assert record.transactions == 1

    assert result.points_awarded == 23
    assert ledgers.loyalty.get("loyal1").points == 1250 + 23

    assert result.receipt == "RECEIPT TEXT"
    assert result.receipt_error is None

    # Cart is reset after a successful finalize
    assert engine.lines() == []
    assert engine.member is None


def test_receipt_uses_discounted_prices_and_member_name(make_engine, text_client):
    engine = make_engine()
    engine.add_item("inv2")
    engine.attach_member("Ngozi")
    engine.finalize()

    prompt = text_client.calls[0]["prompt"]
    assert "Milk (1L)" in prompt
    assert "₦1080.00 each" in prompt
    assert "Customer Name: Ngozi Eze" in prompt
    assert text_client.calls[0]["temperature"] == 0.2


def test_finalize_empty_cart_raises(make_engine):
    engine = make_engine()
    with pytest.raises(CartError, match="empty"):
        engine.finalize()
    assert engine.is_finalizing is False


def test_finalize_with_incomplete_delivery_records_nothing(make_engine, ledgers):
    engine = make_engine()
    engine.add_item("inv2")
    engine.set_delivery(True, customer_name="Ada", address="", cost=500)

    with pytest.raises(CartError) as excinfo:
        engine.finalize()

    assert excinfo.value.details == {"missing": ["address"]}
    assert ledgers.sales.records() == []
    assert ledgers.inventory.get_by_id("inv2").stock == 45
    assert len(engine.lines()) == 1


def test_finalize_with_delivery_creates_shipment(make_engine, ledgers, text_client):
    engine = make_engine()
    engine.add_item("inv6")
    engine.set_delivery(True, customer_name="Ada Obi", address="12 Marina, Lagos", cost=500)

    result = engine.finalize()

    # 450 * 1.075 + 500
    assert result.totals.total == pytest.approx(983.75)
    shipment = ledgers.shipments.get(result.shipment_id)
    assert shipment.status == "Pending"
    assert shipment.customer_name == "Ada Obi"
    assert shipment.destination == "12 Marina, Lagos"
    assert shipment.estimated_delivery == "2024-08-25"
    assert shipment.source_transaction_id == result.transaction_id
    assert shipment.tracking_number.startswith("NB-")

    prompt = text_client.calls[0]["prompt"]
    assert "Deliver to: Ada Obi" in prompt
    assert "Delivery Fee: ₦500.00" in prompt
    assert engine.delivery.enabled is False


def test_reject_policy_blocks_shortfall_before_any_effect(make_engine, ledgers):
    engine = make_engine(stock_policy="reject")
    engine.add_item("inv2")
    engine.add_item("inv2")
    # Another terminal sells most of the stock meanwhile
    ledgers.inventory.decrement_stock([{"id": "inv2", "quantity": 44}])

    with pytest.raises(CartError) as excinfo:
        engine.finalize()

    assert excinfo.value.details["items"] == [
        {"item_id": "inv2", "requested_quantity": 2, "on_hand": 1}
    ]
    assert ledgers.inventory.get_by_id("inv2").stock == 1
    assert ledgers.sales.records() == []


def test_allow_policy_lets_stock_go_negative(make_engine, ledgers):
    engine = make_engine()
    engine.add_item("inv2")
    engine.add_item("inv2")
    ledgers.inventory.decrement_stock([{"id": "inv2", "quantity": 44}])

    engine.finalize()

    assert ledgers.inventory.get_by_id("inv2").stock == -1


def test_unknown_stock_policy_rejected(make_engine):
    with pytest.raises(ValueError):
        make_engine(stock_policy="floor")


def test_receipt_error_does_not_undo_sale(make_engine, ledgers):
    client = FakeTextClient(error="Error: You are offline.")
    engine = make_engine(client=client)
    engine.add_item("inv1")

    result = engine.finalize()

    assert result.receipt is None
    assert result.receipt_error == "Error: You are offline."
    assert ledgers.sales.for_date("2024-08-20").transactions == 1
    assert engine.lines() == []


def test_receipt_exception_becomes_error_result(make_engine, ledgers):
    engine = make_engine(client=FakeTextClient(raises=True))
    engine.add_item("inv1")

    result = engine.finalize()

    assert result.receipt is None
    assert result.receipt_error.startswith("Error:")
    assert ledgers.inventory.get_by_id("inv1").stock == 87


def test_cart_is_locked_while_finalizing(make_engine, ledgers):
    seen = {}
    engine = None

    def _during_receipt():
        seen["finalizing"] = engine.is_finalizing
        seen["reentry"] = engine.finalize()
        seen["add"] = engine.add_item("inv1")
        seen["clear"] = engine.clear()
        seen["delivery"] = engine.set_delivery(True, "X", "Y", 1)

    engine = make_engine(client=FakeTextClient(on_generate=_during_receipt))
    engine.add_item("inv2")
    result = engine.finalize()

    assert seen == {"finalizing": True, "reentry": None, "add": False, "clear": False, "delivery": False}
    assert result is not None
    assert ledgers.sales.for_date("2024-08-20").transactions == 1
    assert engine.is_finalizing is False


def test_transaction_ids_are_unique_within_same_millisecond(make_engine):
    engine = make_engine()
    engine.add_item("inv1")
    first = engine.finalize()
    engine.add_item("inv1")
    second = engine.finalize()

    assert second.transaction_id == first.transaction_id + "-1"


def test_transaction_ids_stay_unique_across_many_sales_in_one_millisecond(make_engine):
    engine = make_engine()
    ids = []
    for _ in range(40):
        engine.add_item("inv1")
        ids.append(engine.finalize().transaction_id)

    assert len(set(ids)) == len(ids)
    assert ids[-1] == ids[0] + "-39"


def test_non_supermarket_sale_awards_no_points(make_engine, ledgers):
    engine = make_engine(profile=make_profile(BusinessType.HOSPITAL))
    engine.add_item("inv2")
    result = engine.finalize()

    assert result.points_awarded == 0
    assert result.member_id is None
    # No promotion outside supermarkets: 1200 * 1.075
    assert result.totals.total == pytest.approx(1290.0)


def test_finalize_writes_journal_event(app, ledgers, text_client):
    journal = SaleJournal()
    profile = make_profile()
    engine = CartEngine(
        inventory=ledgers.inventory,
        promotions=ledgers.promotions,
        loyalty=ledgers.loyalty,
        sales=ledgers.sales,
        profile=profile,
        journal=journal,
        clock=lambda: FIXED_NOW,
    )
    engine.add_item("inv2")
    result = engine.finalize()

    assert journal.exists(result.transaction_id)
    events = journal.list_events(sale_date="2024-08-20")
    assert len(events) == 1
    assert events[0].total == pytest.approx(1161.0)
    assert events[0].lines[0]["id"] == "inv2"
    assert events[0].lines[0]["effective_price"] == pytest.approx(1080.0)
    assert result.receipt is None


def test_restarted_engine_skips_ids_already_in_journal(app, ledgers, text_client):
    journal = SaleJournal()

    def _engine():
        return CartEngine(
            inventory=ledgers.inventory,
            promotions=ledgers.promotions,
            loyalty=ledgers.loyalty,
            sales=ledgers.sales,
            profile=make_profile(),
            journal=journal,
            clock=lambda: FIXED_NOW,
        )

    first = _engine()
    first.add_item("inv2")
    earlier = first.finalize()

    restarted = _engine()
    restarted.add_item("inv2")
    later = restarted.finalize()

    assert later.transaction_id == earlier.transaction_id + "-1"
