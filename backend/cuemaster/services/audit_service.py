# Overview: Per-table game timelines, revenue-leak estimates and the played-together match view.

"""
Table Audit / Leak Estimator

WHY: Staff can under-record games (a table is busy, nobody taps "add game").
Replaying the game start times stored on transactions, per table, exposes
gaps much longer than a game normally takes.

THIS IS A HEURISTIC ESTIMATE, NOT A RECONCILIATION. It reports and never
mutates the ledger.

RULES (per business day, per table 1..tableCount):
- events come from transactions whose timestamp is inside the window;
  table 0 (untracked) is dropped
- gap minutes are floored whole minutes between consecutive starts
- a gap is idle when gap > max + 3
- missing += floor(gap / ((min + max) / 2)) for each idle gap
- efficiency = round(recorded / (recorded + missing) * 100), 100 when both 0
- loss = missing * current price per game
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date

from ..models import DurationRange, HallSettings, Transaction
from ..time_utils import MS_PER_MINUTE, business_day_window


IDLE_GRACE_MINUTES = 3
MATCH_WINDOW_MS = 3 * MS_PER_MINUTE


class AuditError(ValueError):
    """Raised for invalid audit requests or range updates."""
    pass


@dataclass(frozen=True)
class AuditEvent:
    table: int
    start_time: int
    player_name: str
    transaction_id: str

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "startTime": self.start_time,
            "playerName": self.player_name,
            "transactionId": self.transaction_id,
        }


@dataclass(frozen=True)
class TableLeakStats:
    table_number: int
    recorded_games: int
    total_idle_minutes: int
    estimated_missing_games: int
    estimated_loss: int
    efficiency: int

    def to_dict(self) -> dict:
        return {
            "tableNumber": self.table_number,
            "recordedGames": self.recorded_games,
            "totalIdleMinutes": self.total_idle_minutes,
            "estimatedMissingGames": self.estimated_missing_games,
            "estimatedLoss": self.estimated_loss,
            "efficiency": self.efficiency,
        }


@dataclass
class Match:
    table_number: int
    timestamp: int
    players: list[str] = field(default_factory=list)
    transaction_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "tableNumber": self.table_number,
            "timestamp": self.timestamp,
            "players": list(self.players),
            "transactionIds": list(self.transaction_ids),
        }


# =============================================================================
# EVENT RECONSTRUCTION
# =============================================================================

def expand_events(transactions: list[Transaction], *, keep_untracked: bool = False) -> list[AuditEvent]:
    """Flatten each transaction's parallel time/table arrays into events."""
    events = []
    for tr in transactions:
        for idx, started in enumerate(tr.game_start_times):
            table = tr.game_tables[idx] if idx < len(tr.game_tables) else 0
            if table <= 0 and not keep_untracked:
                continue
            events.append(AuditEvent(table=table, start_time=started, player_name=tr.player_name, transaction_id=tr.id))
    return events


def build_table_timelines(
    transactions: list[Transaction],
    table_count: int,
    *,
    start_ms: int | None = None,
    end_ms: int | None = None,
) -> dict[int, list[AuditEvent]]:
    """
    Table number -> events sorted by start time.

    Only transactions with start_ms <= timestamp < end_ms are replayed when
    a window is given. Tables beyond table_count are left out.
    """
    in_window = [
        t for t in transactions
        if (start_ms is None or t.timestamp >= start_ms) and (end_ms is None or t.timestamp < end_ms)
    ]
    timelines: dict[int, list[AuditEvent]] = {n: [] for n in range(1, max(1, table_count) + 1)}
    for event in expand_events(in_window):
        if event.table in timelines:
            timelines[event.table].append(event)
    for events in timelines.values():
        events.sort(key=lambda e: e.start_time)
    return timelines


def business_day_timelines(
    transactions: list[Transaction],
    settings: HallSettings,
    day: date,
    *,
    tz: str = "UTC",
    start_hour: int = 8,
) -> dict[int, list[AuditEvent]]:
    start_ms, end_ms = business_day_window(day, tz, start_hour)
    return build_table_timelines(transactions, settings.table_count, start_ms=start_ms, end_ms=end_ms)


def gap_minutes(earlier: int, later: int) -> int:
    return (later - earlier) // MS_PER_MINUTE


def describe_timeline(events: list[AuditEvent], duration: DurationRange) -> list[dict]:
    """
    Events annotated for display: minutes until the next start, whether that
    is shorter than the configured minimum, and whether it is an idle gap.
    """
    rows = []
    for idx, event in enumerate(events):
        row = event.to_dict()
        if idx + 1 < len(events):
            minutes = gap_minutes(event.start_time, events[idx + 1].start_time)
            row["durationMinutes"] = minutes
            row["isShortGame"] = minutes < duration.min
            row["gapExceedsRange"] = minutes > duration.max + IDLE_GRACE_MINUTES
        else:
            row["durationMinutes"] = None
            row["isShortGame"] = False
            row["gapExceedsRange"] = False
        rows.append(row)
    return rows


# =============================================================================
# LEAK ESTIMATE
# =============================================================================

def table_leak_stats(table_number: int, events: list[AuditEvent], duration: DurationRange, price_per_game: int) -> TableLeakStats:
    threshold = duration.max + IDLE_GRACE_MINUTES
    total_idle = 0
    missing = 0
    for current, following in zip(events, events[1:]):
        gap = gap_minutes(current.start_time, following.start_time)
        if gap > threshold:
            total_idle += gap
            missing += math.floor(gap / duration.average)

    recorded = len(events)
    if recorded + missing > 0:
        efficiency = round(recorded / (recorded + missing) * 100)
    else:
        efficiency = 100

    return TableLeakStats(
        table_number=table_number,
        recorded_games=recorded,
        total_idle_minutes=total_idle,
        estimated_missing_games=missing,
        estimated_loss=missing * price_per_game,
        efficiency=efficiency,
    )


def leak_stats(timelines: dict[int, list[AuditEvent]], settings: HallSettings) -> list[TableLeakStats]:
    return [
        table_leak_stats(table, events, settings.duration_for(table), settings.price_per_game)
        for table, events in sorted(timelines.items())
    ]


def audit_day(
    transactions: list[Transaction],
    settings: HallSettings,
    day: date,
    *,
    tz: str = "UTC",
    start_hour: int = 8,
) -> dict:
    """Full audit payload for one business day."""
    start_ms, end_ms = business_day_window(day, tz, start_hour)
    timelines = build_table_timelines(transactions, settings.table_count, start_ms=start_ms, end_ms=end_ms)
    stats = leak_stats(timelines, settings)
    return {
        "date": day.isoformat(),
        "windowStart": start_ms,
        "windowEnd": end_ms,
        "tables": [
            {
                "tableNumber": table,
                "range": settings.duration_for(table).to_dict(),
                "events": describe_timeline(events, settings.duration_for(table)),
            }
            for table, events in sorted(timelines.items())
        ],
        "leaks": [s.to_dict() for s in stats],
        "totalEstimatedLoss": sum(s.estimated_loss for s in stats),
    }


# =============================================================================
# MATCHES (PLAYED TOGETHER)
# =============================================================================

def find_matches(transactions: list[Transaction], player_filter: str | None = None) -> list[Match]:
    """
    Group games started on the same table within 3 minutes of each other.

    Walks games newest first; each unclaimed game anchors a candidate match
    and claims every other unclaimed game on its table strictly less than
    3 minutes away. Candidates with fewer than 2 distinct players are
    discarded (their games stay claimed).
    """
    games = expand_events(transactions, keep_untracked=True)
    games.sort(key=lambda e: e.start_time, reverse=True)

    claimed: set[tuple[str, int]] = set()
    matches: list[Match] = []
    for i, game in enumerate(games):
        key = (game.transaction_id, game.start_time)
        if key in claimed:
            continue
        claimed.add(key)
        match = Match(table_number=game.table, timestamp=game.start_time, players=[game.player_name], transaction_ids=[game.transaction_id])

        for j, other in enumerate(games):
            other_key = (other.transaction_id, other.start_time)
            if i == j or other_key in claimed:
                continue
            if other.table == game.table and abs(game.start_time - other.start_time) < MATCH_WINDOW_MS:
                if other.player_name not in match.players:
                    match.players.append(other.player_name)
                if other.transaction_id not in match.transaction_ids:
                    match.transaction_ids.append(other.transaction_id)
                claimed.add(other_key)

        if len(match.players) > 1:
            matches.append(match)

    needle = (player_filter or "").strip().lower()
    if needle:
        matches = [m for m in matches if any(needle in p.lower() for p in m.players)]
    return matches


# =============================================================================
# RANGE CONFIGURATION
# =============================================================================

def update_table_range(settings: HallSettings, table_number: int, *, minimum: int | None = None, maximum: int | None = None) -> HallSettings:
    """New settings snapshot with one table's range changed; values clamp to >= 1."""
    if table_number < 1:
        raise AuditError("Table number must be >= 1")
    if minimum is None and maximum is None:
        raise AuditError("min or max is required")

    current = settings.duration_for(table_number)
    updated = DurationRange(
        min=max(1, minimum) if minimum is not None else current.min,
        max=max(1, maximum) if maximum is not None else current.max,
    )
    durations = dict(settings.table_game_durations)
    durations[table_number] = updated
    return HallSettings(
        price_per_game=settings.price_per_game,
        table_count=settings.table_count,
        discount_tiers=dict(settings.discount_tiers),
        table_game_durations=durations,
        market_items=settings.market_items,
    )
