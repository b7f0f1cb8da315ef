from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from cuemaster.validation import as_int, as_list, as_mapping, as_str


DEFAULT_DISCOUNT_TIERS = MappingProxyType({4: 1000, 7: 2000, 9: 3000, 11: 4000, 15: 5000})

# Range used for any table without an explicit configuration
FALLBACK_DURATION_MIN = 10
FALLBACK_DURATION_MAX = 15


@dataclass(frozen=True)
class DurationRange:
    """Expected length of one game on a table, in minutes."""
    min: int
    max: int

    @property
    def average(self) -> float:
        return (self.min + self.max) / 2

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


FALLBACK_DURATION = DurationRange(FALLBACK_DURATION_MIN, FALLBACK_DURATION_MAX)

DEFAULT_TABLE_DURATIONS = MappingProxyType({
    1: DurationRange(8, 12),
    2: DurationRange(10, 15),
    3: DurationRange(10, 15),
})


@dataclass(frozen=True)
class CatalogItem:
    id: str
    name: str
    price: int

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "price": self.price}


@dataclass(frozen=True)
class HallSettings:
    """
    Immutable settings snapshot for one hall.

    Pricing and audit functions take this as an explicit argument; they never
    read settings from ambient state. Updates produce a new snapshot.
    """
    price_per_game: int = 1000
    table_count: int = 3
    discount_tiers: Mapping[int, int] = field(default_factory=lambda: dict(DEFAULT_DISCOUNT_TIERS))
    table_game_durations: Mapping[int, DurationRange] = field(default_factory=lambda: dict(DEFAULT_TABLE_DURATIONS))
    market_items: tuple[CatalogItem, ...] = ()

    def duration_for(self, table_number: int) -> DurationRange:
        return self.table_game_durations.get(table_number, FALLBACK_DURATION)

    def catalog_price(self, item_name: str) -> int | None:
        for item in self.market_items:
            if item.name == item_name:
                return item.price
        return None

    def to_dict(self) -> dict:
        # JSON object keys are strings; numeric keys are restored in from_dict
        return {
            "pricePerGame": self.price_per_game,
            "tableCount": self.table_count,
            "discountTiers": {str(k): v for k, v in sorted(self.discount_tiers.items())},
            "tableGameDurations": {
                str(k): v.to_dict() for k, v in sorted(self.table_game_durations.items())
            },
            "marketItems": [item.to_dict() for item in self.market_items],
        }

    @classmethod
    def from_dict(cls, raw: Any, default_price: int = 1000) -> "HallSettings":
        raw = as_mapping(raw)

        tiers_raw = raw.get("discountTiers")
        if isinstance(tiers_raw, dict):
            tiers = {as_int(k): as_int(v) for k, v in tiers_raw.items() if as_int(k) > 0}
        else:
            tiers = dict(DEFAULT_DISCOUNT_TIERS)

        durations_raw = raw.get("tableGameDurations")
        if isinstance(durations_raw, dict):
            durations = {}
            for key, value in durations_raw.items():
                value = as_mapping(value)
                durations[as_int(key)] = DurationRange(
                    min=max(1, as_int(value.get("min"), FALLBACK_DURATION_MIN)),
                    max=max(1, as_int(value.get("max"), FALLBACK_DURATION_MAX)),
                )
        else:
            durations = dict(DEFAULT_TABLE_DURATIONS)

        items = []
        for item in as_list(raw.get("marketItems")):
            item = as_mapping(item)
            name = as_str(item.get("name")).strip()
            if name:
                items.append(CatalogItem(id=as_str(item.get("id"), name), name=name, price=as_int(item.get("price"))))

        price = max(0, as_int(raw.get("pricePerGame"), default_price))
        return cls(
            price_per_game=price,
            table_count=max(1, as_int(raw.get("tableCount"), 3)),
            discount_tiers=tiers,
            table_game_durations=durations,
            market_items=tuple(items),
        )
