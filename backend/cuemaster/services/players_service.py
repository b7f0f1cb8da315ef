from __future__ import annotations

from ..models import StaffUser
from .hall_data import HallData


class PlayerError(ValueError):
    pass


def list_players(data: HallData, name_filter: str | None = None) -> list[str]:
    """Known player names, alphabetical, with a case-insensitive substring filter."""
    needle = (name_filter or "").strip().lower()
    return sorted((p for p in data.load_players() if needle in p.lower()), key=str.lower)


def add_player(data: HallData, name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise PlayerError("Player name is required")
    players = data.load_players()
    if name in players:
        raise PlayerError(f"Player {name} already exists")
    players.append(name)
    data.save_players(players)
    return name


def remove_player(data: HallData, name: str, actor: StaffUser | None) -> bool:
    """Privileged only; returns False when nothing was removed."""
    if actor is None or not actor.is_privileged:
        return False
    players = data.load_players()
    if name not in players:
        return False
    data.save_players([p for p in players if p != name])
    return True
