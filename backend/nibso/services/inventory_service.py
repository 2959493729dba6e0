# Overview: Inventory ledger; owns the sellable catalog and its stock counts.

from __future__ import annotations

import logging
from typing import Iterable

from ..models import InventoryItem
from ..time_utils import epoch_ms
from ..validation import ConflictError

"""
Inventory invariants (authoritative)

- The ledger is the only writer of stock counts. Carts hold snapshots and
  must re-read the ledger before trusting a stock figure.
- Item ids are unique and never change once created.
- New items are prepended (newest first), bulk batches keep their order.
- decrement_stock applies `stock -= quantity` per line and does NOT floor
  at zero; callers that want a non-negative policy must check first.
- Lines naming an unknown id are skipped without error.
"""

logger = logging.getLogger(__name__)

INVENTORY_KEY = "nibsoInventory"

DEMO_INVENTORY = [
    {"id": "inv1", "name": "Pain Reliever (100ct)", "stock": 88, "price": 1500.00, "category": "Pharmacy",
     "image_url": "https://placehold.co/400x400/ef4444/white?text=Meds"},
    {"id": "inv2", "name": "Milk (1L)", "stock": 45, "price": 1200.00, "category": "Groceries",
     "image_url": "https://placehold.co/400x400/3b82f6/white?text=Milk"},
    {"id": "inv3", "name": "Unleaded Fuel (Litre)", "stock": 5230, "price": 750.50, "category": "Fuel",
     "image_url": "https://placehold.co/400x400/f97316/white?text=Fuel"},
    {"id": "inv4", "name": "Energy Drink (50cl)", "stock": 150, "price": 500.00, "category": "Beverages",
     "image_url": "https://placehold.co/400x400/8b5cf6/white?text=Drink"},
    {"id": "inv5", "name": "Bandages (Box)", "stock": 112, "price": 850.00, "category": "First-Aid",
     "image_url": "https://placehold.co/400x400/22c55e/white?text=First-Aid"},
    {"id": "inv6", "name": "Tomatoes (kg)", "stock": 75, "price": 450.00, "category": "Produce",
     "image_url": "https://placehold.co/400x400/dc2626/white?text=Produce"},
]


class InventoryLedger:
    def __init__(self, store, *, seed: bool = True, key: str = INVENTORY_KEY):
        self._store = store
        self._key = key
        raw = store.load(key, DEMO_INVENTORY if seed else [])
        self._items: list[InventoryItem] = [InventoryItem.from_dict(row) for row in raw]

    def _persist(self) -> None:
        self._store.save(self._key, [item.to_dict() for item in self._items])

    def _new_id(self, suffix: str = "") -> str:
        base = f"inv_{epoch_ms()}{suffix}"
        candidate, n = base, 1
        while self.get_by_id(candidate) is not None:
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    def _build(self, data: dict, item_id: str) -> InventoryItem:
        return InventoryItem(
            id=item_id,
            name=data["name"],
            price=float(data["price"]),
            stock=data.get("stock", 0),
            category=data.get("category", ""),
            image_url=data.get("image_url"),
            reorder_level=data.get("reorder_level"),
            supplier_id=data.get("supplier_id"),
            department=data.get("department"),
        )

    def items(self) -> list[InventoryItem]:
        return list(self._items)

    def get_by_id(self, item_id: str) -> InventoryItem | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def add_item(self, data: dict) -> InventoryItem:
        """Create one item; an explicit id must not already exist."""
        item_id = data.get("id")
        if item_id:
            if self.get_by_id(item_id) is not None:
                raise ConflictError(f"Inventory item {item_id} already exists")
        else:
            item_id = self._new_id()

        item = self._build(data, item_id)
        self._items.insert(0, item)
        self._persist()
        return item

    def add_bulk(self, rows: Iterable[dict]) -> list[InventoryItem]:
        stamp = epoch_ms()
        batch: list[InventoryItem] = []
        for index, data in enumerate(rows):
            item_id = f"inv_{stamp}_{index}"
            if self.get_by_id(item_id) is not None:
                item_id = self._new_id(f"_{index}")
            batch.append(self._build(data, item_id))

        if batch:
            self._items[:0] = batch
            self._persist()
        return batch

    def decrement_stock(self, lines: Iterable) -> None:
        """
        Apply sold quantities. Each line needs `id` and `quantity`
        (CartLine or a mapping).
        """
        changed = False
        for line in lines:
            line_id = line["id"] if isinstance(line, dict) else line.id
            quantity = line["quantity"] if isinstance(line, dict) else line.quantity
            item = self.get_by_id(line_id)
            if item is None:
                continue
            item.stock -= quantity
            changed = True
            if item.stock < 0:
                logger.warning("Stock for %s went negative (%s)", item.id, item.stock)

        if changed:
            self._persist()

    def sellable(self, search: str = "", category: str = "All") -> list[InventoryItem]:
        """Items with stock > 0 matching a name substring or exact id, and a category."""
        needle = (search or "").strip().lower()
        return [
            item for item in self._items
            if (needle in item.name.lower() or item.id == search)
            and (category in (None, "", "All") or item.category == category)
            and item.stock > 0
        ]

    def categories(self) -> list[str]:
        seen: list[str] = ["All"]
        for item in self._items:
            if item.category not in seen:
                seen.append(item.category)
        return seen

    def low_stock(self) -> list[InventoryItem]:
        return [item for item in self._items if item.is_low_stock]
