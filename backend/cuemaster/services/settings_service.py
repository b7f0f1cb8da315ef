from __future__ import annotations

import uuid
from typing import Any

from ..models import CatalogItem, DurationRange, HallSettings
from ..validation import MAX_AMOUNT, ValidationError, as_mapping, parse_int
from . import audit_service
from .hall_data import HallData


class SettingsError(ValueError):
    pass


def _parse_tiers(raw: Any) -> dict[int, int]:
    if not isinstance(raw, dict):
        raise SettingsError("discountTiers must be an object of {games: discount}")
    tiers = {}
    for key, value in raw.items():
        try:
            games = parse_int(key, "discountTiers key", minimum=1, maximum=1000)
            discount = parse_int(value, f"discountTiers[{key}]", minimum=0, maximum=MAX_AMOUNT)
        except ValidationError as e:
            raise SettingsError(str(e))
        tiers[games] = discount
    return tiers


def _parse_catalog(raw: Any) -> tuple[CatalogItem, ...]:
    if not isinstance(raw, list):
        raise SettingsError("marketItems must be a list")
    items = []
    seen = set()
    for entry in raw:
        entry = as_mapping(entry)
        name = str(entry.get("name") or "").strip()
        if not name:
            raise SettingsError("Market item name is required")
        if name in seen:
            raise SettingsError(f"Duplicate market item: {name}")
        seen.add(name)
        try:
            price = parse_int(entry.get("price"), f"price of {name}", minimum=0)
        except ValidationError as e:
            raise SettingsError(str(e))
        items.append(CatalogItem(id=str(entry.get("id") or uuid.uuid4().hex), name=name, price=price))
    return tuple(items)


def apply_update(settings: HallSettings, payload: dict) -> HallSettings:
    """
    Return a new snapshot with the given camelCase fields replaced.

    Unknown keys are rejected so typos do not silently do nothing.
    """
    allowed = {"pricePerGame", "tableCount", "discountTiers", "tableGameDurations", "marketItems"}
    unknown = set(payload) - allowed
    if unknown:
        raise SettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")

    price = settings.price_per_game
    table_count = settings.table_count
    tiers = dict(settings.discount_tiers)
    catalog = settings.market_items

    try:
        if "pricePerGame" in payload:
            price = parse_int(payload["pricePerGame"], "pricePerGame", minimum=0)
        if "tableCount" in payload:
            table_count = parse_int(payload["tableCount"], "tableCount", minimum=1, maximum=100)
    except ValidationError as e:
        raise SettingsError(str(e))

    if "discountTiers" in payload:
        tiers = _parse_tiers(payload["discountTiers"])
    if "marketItems" in payload:
        catalog = _parse_catalog(payload["marketItems"])

    updated = HallSettings(
        price_per_game=price,
        table_count=table_count,
        discount_tiers=tiers,
        table_game_durations=dict(settings.table_game_durations),
        market_items=catalog,
    )

    durations = payload.get("tableGameDurations")
    if durations is not None:
        if not isinstance(durations, dict):
            raise SettingsError("tableGameDurations must be an object of {table: {min, max}}")
        for key, value in durations.items():
            value = as_mapping(value)
            try:
                table = parse_int(key, "table number", minimum=1, maximum=100)
                minimum = parse_int(value["min"], "min", minimum=None, maximum=24 * 60) if "min" in value else None
                maximum = parse_int(value["max"], "max", minimum=None, maximum=24 * 60) if "max" in value else None
                updated = audit_service.update_table_range(updated, table, minimum=minimum, maximum=maximum)
            except (ValidationError, audit_service.AuditError) as e:
                raise SettingsError(str(e))

    return updated


def update_settings(data: HallData, payload: dict) -> HallSettings:
    updated = apply_update(data.load_settings(), payload)
    data.save_settings(updated)
    return updated


def set_table_range(data: HallData, table_number: int, *, minimum: int | None = None, maximum: int | None = None) -> DurationRange:
    updated = audit_service.update_table_range(data.load_settings(), table_number, minimum=minimum, maximum=maximum)
    data.save_settings(updated)
    return updated.duration_for(table_number)


def change_table_count(data: HallData, delta: int) -> HallSettings:
    """Add or remove tables; never below one."""
    settings = data.load_settings()
    return update_settings(data, {"tableCount": max(1, settings.table_count + delta)})
