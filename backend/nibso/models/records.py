"""
Plain records held by the ledgers and persisted as JSON through the
key-value store.

Records are mutable dataclasses; each ledger owns its records and is the
only writer. `to_dict()` is the persisted (and API) shape; `from_dict()`
accepts exactly that shape back.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from ..time_utils import end_of_day, parse_iso_date, start_of_day


PROMOTION_TYPES = ("percentage",)
PROMOTION_TARGETS = ("item", "category")
SHIPMENT_STATUSES = ("Pending", "In-Transit", "Delivered", "Cancelled")


@dataclass
class InventoryItem:
    id: str
    name: str
    price: float
    stock: float
    category: str
    image_url: Optional[str] = None
    reorder_level: Optional[float] = None
    supplier_id: Optional[str] = None
    department: Optional[str] = None

    @property
    def is_low_stock(self) -> bool:
        return self.reorder_level is not None and self.stock <= self.reorder_level

    def copy(self) -> "InventoryItem":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
            "category": self.category,
            "image_url": self.image_url,
            "reorder_level": self.reorder_level,
            "supplier_id": self.supplier_id,
            "department": self.department,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InventoryItem":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            price=float(data["price"]),
            stock=data["stock"],
            category=data.get("category", ""),
            image_url=data.get("image_url"),
            reorder_level=data.get("reorder_level"),
            supplier_id=data.get("supplier_id"),
            department=data.get("department"),
        )


@dataclass
class CartLine:
    """An inventory snapshot plus the requested quantity."""
    item: InventoryItem
    quantity: int

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def price(self) -> float:
        return self.item.price

    @property
    def category(self) -> str:
        return self.item.category

    @property
    def stock(self) -> float:
        return self.item.stock

    def to_dict(self) -> dict:
        data = self.item.to_dict()
        data["quantity"] = self.quantity
        return data


@dataclass
class Promotion:
    id: str
    description: str
    value: float
    target: str
    target_id: str
    start_date: date
    end_date: date
    type: str = "percentage"

    def is_active(self, now: datetime) -> bool:
        # end date is inclusive through the last instant of the day
        return start_of_day(self.start_date) <= now <= end_of_day(self.end_date)

    def applies_to(self, line: CartLine) -> bool:
        if self.target == "item":
            return self.target_id == line.id
        if self.target == "category":
            return self.target_id == line.category
        return False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "type": self.type,
            "value": self.value,
            "target": self.target,
            "target_id": self.target_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Promotion":
        return cls(
            id=str(data["id"]),
            description=data.get("description", ""),
            type=data.get("type", "percentage"),
            value=float(data["value"]),
            target=data["target"],
            target_id=str(data["target_id"]),
            start_date=parse_iso_date(data["start_date"]),
            end_date=parse_iso_date(data["end_date"]),
        )


@dataclass
class LoyaltyMember:
    id: str
    name: str
    phone: str
    points: int = 0

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone, "points": self.points}

    @classmethod
    def from_dict(cls, data: dict) -> "LoyaltyMember":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            phone=str(data.get("phone", "")),
            points=int(data.get("points", 0)),
        )


@dataclass
class DailySaleRecord:
    id: str
    date: str  # YYYY-MM-DD
    revenue: float = 0.0
    transactions: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "revenue": self.revenue,
            "transactions": self.transactions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailySaleRecord":
        return cls(
            id=str(data["id"]),
            date=data["date"],
            revenue=float(data.get("revenue", 0)),
            transactions=int(data.get("transactions", 0)),
        )


@dataclass
class Shipment:
    id: str
    tracking_number: str
    customer_name: str
    destination: str
    estimated_delivery: str  # YYYY-MM-DD
    status: str = "Pending"
    driver_id: Optional[str] = None
    source_transaction_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tracking_number": self.tracking_number,
            "customer_name": self.customer_name,
            "destination": self.destination,
            "estimated_delivery": self.estimated_delivery,
            "status": self.status,
            "driver_id": self.driver_id,
            "source_transaction_id": self.source_transaction_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Shipment":
        return cls(
            id=str(data["id"]),
            tracking_number=data["tracking_number"],
            customer_name=data["customer_name"],
            destination=data["destination"],
            estimated_delivery=data["estimated_delivery"],
            status=data.get("status", "Pending"),
            driver_id=data.get("driver_id"),
            source_transaction_id=data.get("source_transaction_id"),
        )
