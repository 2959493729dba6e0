from __future__ import annotations

import math

from ..models import LoyaltyMember
from ..time_utils import epoch_ms

LOYALTY_KEY = "nibsoSupermarketLoyalty"

DEMO_MEMBERS = [
    {"id": "loyal1", "name": "Femi Adekunle", "phone": "08022223333", "points": 1250},
    {"id": "loyal2", "name": "Ngozi Eze", "phone": "08044445555", "points": 480},
]


class LoyaltyError(Exception):
    """Raised for invalid loyalty operations."""


def points_for_total(total: float, unit: int = 100) -> int:
    """One point per `unit` currency units spent, rounded down."""
    if total <= 0:
        return 0
    return int(math.floor(total / unit))


class LoyaltyRegistry:
    def __init__(self, store, *, seed: bool = True, key: str = LOYALTY_KEY):
        self._store = store
        self._key = key
        raw = store.load(key, DEMO_MEMBERS if seed else [])
        self._members = [LoyaltyMember.from_dict(row) for row in raw]

    def _persist(self) -> None:
        self._store.save(self._key, [m.to_dict() for m in self._members])

    def members(self) -> list[LoyaltyMember]:
        return list(self._members)

    def get(self, member_id: str) -> LoyaltyMember | None:
        for member in self._members:
            if member.id == member_id:
                return member
        return None

    def add(self, name: str, phone: str) -> LoyaltyMember:
        member = LoyaltyMember(id=f"loyal_{epoch_ms()}", name=name, phone=phone, points=0)
        self._members.insert(0, member)
        self._persist()
        return member

    def find(self, query: str) -> LoyaltyMember | None:
        """Exact phone match or case-insensitive name substring; first hit wins."""
        query = (query or "").strip()
        if not query:
            return None
        lowered = query.lower()
        for member in self._members:
            if member.phone == query or lowered in member.name.lower():
                return member
        return None

    def accrue(self, member_id: str, points: int) -> LoyaltyMember | None:
        if points < 0:
            raise LoyaltyError("Loyalty points can only be added")

        member = self.get(member_id)
        if member is None:
            return None
        member.points += points
        self._persist()
        return member
