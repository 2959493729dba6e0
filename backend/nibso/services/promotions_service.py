from __future__ import annotations

from datetime import datetime

from ..models import CartLine, Promotion
from ..time_utils import epoch_ms, localnow, parse_iso_date
from ..validation import ValidationError, enforce_rules_promotion

PROMOTIONS_KEY = "nibsoSupermarketPromotions"

DEMO_PROMOTIONS = [
    {"id": "promo1", "description": "10% off Milk", "type": "percentage", "value": 10,
     "target": "item", "target_id": "inv2", "start_date": "2024-08-01", "end_date": "2024-08-31"},
    {"id": "promo2", "description": "15% off all Beverages", "type": "percentage", "value": 15,
     "target": "category", "target_id": "Beverages", "start_date": "2024-08-15", "end_date": "2024-08-22"},
]


class PromotionCatalog:
    """
    Time-bounded percentage discounts scoped to one item or one category.

    Catalog order is most-recent-first. Overlapping promotions on the same
    target are allowed; lookups take the first match in catalog order.
    """

    def __init__(self, store, *, seed: bool = True, key: str = PROMOTIONS_KEY):
        self._store = store
        self._key = key
        raw = store.load(key, DEMO_PROMOTIONS if seed else [])
        self._promotions = [Promotion.from_dict(row) for row in raw]

    def promotions(self) -> list[Promotion]:
        return list(self._promotions)

    def add(self, data: dict) -> Promotion:
        """
        Validate and prepend a promotion.

        Dates may be date objects or YYYY-MM-DD strings. The catalog is
        only updated after the store write succeeds.
        """
        try:
            start_date = parse_iso_date(data.get("start_date"))
            end_date = parse_iso_date(data.get("end_date"))
        except (TypeError, ValueError):
            raise ValidationError("start_date and end_date must be YYYY-MM-DD dates")
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date must be YYYY-MM-DD dates")
        if not data.get("target") or data.get("target_id") in (None, ""):
            raise ValidationError("target and target_id are required")
        try:
            value = float(data["value"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError("value must be a number")

        promo_type = data.get("type", "percentage")
        enforce_rules_promotion({
            "type": promo_type,
            "value": value,
            "target": data["target"],
            "start_date": start_date,
            "end_date": end_date,
        })

        promo = Promotion(
            id=f"promo_{epoch_ms()}",
            description=data.get("description", ""),
            type=promo_type,
            value=value,
            target=data["target"],
            target_id=str(data["target_id"]),
            start_date=start_date,
            end_date=end_date,
        )
        updated = [promo] + self._promotions
        self._store.save(self._key, [p.to_dict() for p in updated])
        self._promotions = updated
        return promo

    def active_now(self, now: datetime | None = None) -> list[Promotion]:
        now = now or localnow()
        return [p for p in self._promotions if p.is_active(now)]


def find_promotion(line: CartLine, active: list[Promotion]) -> Promotion | None:
    """First item-targeted match, else first category-targeted match."""
    for promo in active:
        if promo.target == "item" and promo.applies_to(line):
            return promo
    for promo in active:
        if promo.target == "category" and promo.applies_to(line):
            return promo
    return None
