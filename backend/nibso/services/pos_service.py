"""
Point-of-sale cart engine.

Holds the in-progress transaction, prices it on demand, and on finalize
commits the sale to the journal and the ledgers it coordinates
(shipments, daily sales, inventory stock, loyalty points).

Pricing (compute_totals) is a pure function of the cart lines, the active
promotions, the tax rate, the vertical and the delivery fee. Amounts are
plain floats in currency units and are only rounded when serialized.

Finalize is not atomic across ledgers: each ledger persists on its own and
nothing is rolled back if a later step fails. The receipt text is requested
after the sale is committed; a receipt failure never undoes the sale.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from ..config import BusinessProfile, STOCK_POLICIES
from ..models import CartLine, Promotion
from ..time_utils import localnow
from .loyalty_service import points_for_total
from .promotions_service import find_promotion
from .receipt_service import DeliveryDetails, ReceiptLine
from .text_service import Err

logger = logging.getLogger(__name__)


class CartError(Exception):
    """Raised when a cart cannot be finalized."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CartLockedError(CartError):
    """Raised when the cart is touched while a finalize is in flight."""


def _money(amount: float) -> float:
    return round(amount, 2)


@dataclass(frozen=True)
class PricedLine:
    id: str
    name: str
    category: str
    price: float
    quantity: int
    effective_price: float
    line_discount: float
    promotion_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": _money(self.price),
            "quantity": self.quantity,
            "effective_price": _money(self.effective_price),
            "line_discount": _money(self.line_discount),
            "line_total": _money(self.effective_price * self.quantity),
            "promotion_id": self.promotion_id,
        }


@dataclass(frozen=True)
class CartTotals:
    lines: tuple[PricedLine, ...]
    subtotal: float
    total_discount: float
    tax_amount: float
    delivery_fee: float
    total: float

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": _money(self.subtotal),
            "total_discount": _money(self.total_discount),
            "tax_amount": _money(self.tax_amount),
            "delivery_fee": _money(self.delivery_fee),
            "total": _money(self.total),
        }


def compute_totals(
    lines: Iterable[CartLine],
    active_promotions: Iterable[Promotion],
    *,
    tax_rate: float,
    is_supermarket: bool,
    delivery_fee: float = 0.0,
) -> CartTotals:
    """
    Price a cart.

    Each line takes at most one promotion (item match before category
    match, no stacking). Promotions only discount on supermarket verticals.
    Tax is a flat rate on the discounted subtotal; the delivery fee is added
    after tax.
    """
    active = list(active_promotions)
    priced: list[PricedLine] = []
    subtotal = 0.0
    total_discount = 0.0

    for line in lines:
        effective_price = line.price
        line_discount = 0.0
        promotion_id = None

        promo = find_promotion(line, active)
        if promo is not None and is_supermarket:
            unit_discount = line.price * promo.value / 100
            line_discount = unit_discount * line.quantity
            effective_price = line.price - unit_discount
            promotion_id = promo.id

        subtotal += effective_price * line.quantity
        total_discount += line_discount
        priced.append(PricedLine(
            id=line.id,
            name=line.name,
            category=line.category,
            price=line.price,
            quantity=line.quantity,
            effective_price=effective_price,
            line_discount=line_discount,
            promotion_id=promotion_id,
        ))

    tax_amount = subtotal * tax_rate / 100
    total = subtotal + tax_amount + delivery_fee
    return CartTotals(
        lines=tuple(priced),
        subtotal=subtotal,
        total_discount=total_discount,
        tax_amount=tax_amount,
        delivery_fee=delivery_fee,
        total=total,
    )


@dataclass
class DeliveryState:
    enabled: bool = False
    customer_name: str = ""
    address: str = ""
    cost: Optional[float] = None

    @property
    def fee(self) -> float:
        return (self.cost or 0.0) if self.enabled else 0.0

    def missing_fields(self) -> list[str]:
        missing = []
        if not self.customer_name:
            missing.append("customer_name")
        if not self.address:
            missing.append("address")
        if self.cost is None:
            missing.append("cost")
        return missing

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "customer_name": self.customer_name,
            "address": self.address,
            "cost": self.cost,
        }


@dataclass(frozen=True)
class FinalizeResult:
    transaction_id: str
    date: str
    totals: CartTotals
    member_id: Optional[str] = None
    points_awarded: int = 0
    shipment_id: Optional[str] = None
    receipt: Optional[str] = None
    receipt_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "date": self.date,
            "totals": self.totals.to_dict(),
            "member_id": self.member_id,
            "points_awarded": self.points_awarded,
            "shipment_id": self.shipment_id,
            "receipt": self.receipt,
            "receipt_error": self.receipt_error,
        }


class CartEngine:
    """
    One in-progress transaction for a single terminal.

    While a finalize is running the whole cart is locked: finalize
    re-entry returns None and every cart mutation is refused.
    """

    def __init__(
        self,
        *,
        inventory,
        promotions,
        loyalty,
        sales,
        profile: BusinessProfile,
        receipts=None,
        shipments=None,
        journal=None,
        stock_policy: str = "allow",
        delivery_lead_days: int = 5,
        loyalty_point_unit: int = 100,
        clock: Callable[[], datetime] = localnow,
    ):
        if stock_policy not in STOCK_POLICIES:
            raise ValueError(f"stock_policy must be one of: {', '.join(STOCK_POLICIES)}")

        self._inventory = inventory
        self._promotions = promotions
        self._loyalty = loyalty
        self._sales = sales
        self._receipts = receipts
        self._shipments = shipments
        self._journal = journal
        self.profile = profile
        self.stock_policy = stock_policy
        self.delivery_lead_days = delivery_lead_days
        self.loyalty_point_unit = loyalty_point_unit
        self._clock = clock

        self._lock = threading.RLock()
        self._lines: list[CartLine] = []
        self._member_id: Optional[str] = None
        self._delivery = DeliveryState()
        self._finalizing = False
        # Last issued millisecond base and its suffix counter
        self._last_id_base: Optional[str] = None
        self._id_seq = 0

    # -- state ---------------------------------------------------------------

    @property
    def is_finalizing(self) -> bool:
        return self._finalizing

    def lines(self) -> list[CartLine]:
        with self._lock:
            return [CartLine(item=line.item.copy(), quantity=line.quantity) for line in self._lines]

    @property
    def member(self):
        if self._member_id is None:
            return None
        return self._loyalty.get(self._member_id)

    @property
    def delivery(self) -> DeliveryState:
        return DeliveryState(**self._delivery.to_dict())

    def _find(self, item_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.id == item_id:
                return line
        return None

    def _refuse_if_locked(self, action: str) -> bool:
        if self._finalizing:
            logger.info("Cart locked during finalize; ignoring %s", action)
            return True
        return False

    # -- mutations -------------------------------------------------------------

    def add_item(self, item_id: str) -> bool:
        """
        Add one unit of an item. Returns False (no error) when the item is
        unknown, has no stock, or the line is already at the stock cap.
        """
        with self._lock:
            if self._refuse_if_locked("add_item"):
                return False

            item = self._inventory.get_by_id(item_id)
            if item is None or item.stock < 1:
                return False

            line = self._find(item_id)
            if line is None:
                self._lines.append(CartLine(item=item.copy(), quantity=1))
                return True

            line.item = item.copy()
            if line.quantity + 1 > item.stock:
                return False
            line.quantity += 1
            return True

    def set_quantity(self, item_id: str, quantity: int) -> bool:
        """
        <= 0 removes the line; above current stock clamps to stock;
        otherwise sets exactly. No-op when the line or item is missing.
        """
        with self._lock:
            if self._refuse_if_locked("set_quantity"):
                return False

            line = self._find(item_id)
            item = self._inventory.get_by_id(item_id)
            if line is None or item is None:
                return False

            line.item = item.copy()
            if quantity > item.stock:
                quantity = math.floor(item.stock)
            if quantity <= 0:
                self._lines.remove(line)
            else:
                line.quantity = int(quantity)
            return True

    def remove_item(self, item_id: str) -> bool:
        with self._lock:
            if self._refuse_if_locked("remove_item"):
                return False
            line = self._find(item_id)
            if line is None:
                return False
            self._lines.remove(line)
            return True

    def attach_member(self, query: str):
        """Attach a loyalty member by phone or name (supermarket only)."""
        with self._lock:
            if self._refuse_if_locked("attach_member") or not self.profile.is_supermarket:
                return None
            member = self._loyalty.find(query)
            if member is not None:
                self._member_id = member.id
            return member

    def detach_member(self) -> bool:
        with self._lock:
            if self._refuse_if_locked("detach_member"):
                return False
            self._member_id = None
            return True

    def set_delivery(
        self,
        enabled: bool,
        customer_name: str = "",
        address: str = "",
        cost: Optional[float] = None,
    ) -> bool:
        with self._lock:
            if self._refuse_if_locked("set_delivery"):
                return False
            self._delivery = DeliveryState(
                enabled=enabled,
                customer_name=(customer_name or "").strip(),
                address=(address or "").strip(),
                cost=cost,
            )
            return True

    def clear(self) -> bool:
        with self._lock:
            if self._refuse_if_locked("clear"):
                return False
            self._reset()
            return True

    def _reset(self) -> None:
        self._lines = []
        self._member_id = None
        self._delivery = DeliveryState()

    # -- pricing ---------------------------------------------------------------

    def totals(self, now: Optional[datetime] = None) -> CartTotals:
        with self._lock:
            return compute_totals(
                self._lines,
                self._promotions.active_now(now or self._clock()),
                tax_rate=self.profile.tax_rate,
                is_supermarket=self.profile.is_supermarket,
                delivery_fee=self._delivery.fee,
            )

    # -- finalize --------------------------------------------------------------

    def _validate_for_finalize(self) -> None:
        if not self._lines:
            raise CartError("Cart is empty")

        if self._delivery.enabled:
            missing = self._delivery.missing_fields()
            if missing:
                raise CartError("Please fill in all delivery details.", details={"missing": missing})

        if self.stock_policy == "reject":
            insufficient = []
            for line in self._lines:
                item = self._inventory.get_by_id(line.id)
                on_hand = item.stock if item is not None else 0
                if on_hand < line.quantity:
                    insufficient.append({
                        "item_id": line.id,
                        "requested_quantity": line.quantity,
                        "on_hand": on_hand,
                    })
            if insufficient:
                raise CartError("Insufficient stock to finalize sale", details={"items": insufficient})

    def _transaction_id(self, now: datetime) -> str:
        base = f"txn_{int(now.timestamp() * 1000)}"
        if base != self._last_id_base:
            self._last_id_base, self._id_seq = base, 0
        else:
            self._id_seq += 1
        candidate = f"{base}-{self._id_seq}" if self._id_seq else base
        while self._journal is not None and self._journal.exists(candidate):
            self._id_seq += 1
            candidate = f"{base}-{self._id_seq}"
        return candidate

    def finalize(self) -> Optional[FinalizeResult]:
        """
        Commit the cart as a sale.

        Returns None when a finalize is already in flight. Raises CartError
        for validation failures, before any ledger is touched.
        """
        with self._lock:
            if self._finalizing:
                return None
            self._validate_for_finalize()
            self._finalizing = True

        try:
            return self._commit()
        finally:
            self._finalizing = False

    def _commit(self) -> FinalizeResult:
        now = self._clock()
        sale_date = now.date().isoformat()
        totals = self.totals(now)
        lines = list(self._lines)
        delivery = self._delivery
        member = self.member
        transaction_id = self._transaction_id(now)

        if self._journal is not None:
            self._journal.append(
                transaction_id=transaction_id,
                sale_date=sale_date,
                total=totals.total,
                lines=[
                    {"id": p.id, "name": p.name, "price": p.price,
                     "effective_price": p.effective_price, "quantity": p.quantity}
                    for p in totals.lines
                ],
                member_id=member.id if member else None,
                is_delivery=delivery.enabled,
            )

        shipment_id = None
        if delivery.enabled and self._shipments is not None:
            shipment = self._shipments.create_shipment(
                customer_name=delivery.customer_name,
                destination=delivery.address,
                estimated_delivery=(now.date() + timedelta(days=self.delivery_lead_days)).isoformat(),
                source_transaction_id=transaction_id,
            )
            shipment_id = shipment.id

        self._sales.record_transaction(totals.total, 1, date=sale_date)
        self._inventory.decrement_stock(lines)

        points_awarded = 0
        if member is not None and self.profile.is_supermarket:
            points_awarded = points_for_total(totals.total, self.loyalty_point_unit)
            self._loyalty.accrue(member.id, points_awarded)

        logger.info(
            "Finalized sale %s: %d line(s), total %.2f",
            transaction_id, len(lines), totals.total,
        )

        receipt, receipt_error = self._request_receipt(totals, member, delivery)

        with self._lock:
            self._reset()

        return FinalizeResult(
            transaction_id=transaction_id,
            date=sale_date,
            totals=totals,
            member_id=member.id if member else None,
            points_awarded=points_awarded,
            shipment_id=shipment_id,
            receipt=receipt,
            receipt_error=receipt_error,
        )

    def _request_receipt(self, totals: CartTotals, member, delivery: DeliveryState) -> tuple[Optional[str], Optional[str]]:
        if self._receipts is None:
            return None, None

        if delivery.enabled:
            customer_name = delivery.customer_name
            details = DeliveryDetails(address=delivery.address, cost=delivery.cost or 0.0)
        else:
            customer_name = member.name if member else ""
            details = None

        receipt_lines = [
            ReceiptLine(name=p.name, quantity=p.quantity, price=p.effective_price)
            for p in totals.lines
        ]
        try:
            result = self._receipts.generate_receipt(receipt_lines, customer_name, details)
        except Exception:
            logger.exception("Failed to generate receipt")
            result = Err("Error: There was an error generating the receipt for printing.")

        if result.ok:
            return result.text, None
        return None, result.reason
