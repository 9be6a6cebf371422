"""Closed set of prop stat categories and their per-category lookup table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class StatCategory(StrEnum):
    POINTS = "p"
    REBOUNDS = "r"
    ASSISTS = "a"
    THREES = "3"
    STEALS = "s"
    BLOCKS = "b"
    TURNOVERS = "to"
    POINTS_REBOUNDS = "pr"
    POINTS_ASSISTS = "pa"
    REBOUNDS_ASSISTS = "ra"
    POINTS_REBOUNDS_ASSISTS = "pra"


@dataclass(frozen=True)
class StatSpec:
    """Everything scoring needs to know about one stat category."""

    label: str
    market_key: str
    weight: float
    ease_columns: tuple[str, ...]
    components: tuple[str, ...]
    small_magnitude: bool = False

    @property
    def is_combined(self) -> bool:
        return len(self.components) > 1


STAT_TABLE: dict[StatCategory, StatSpec] = {
    StatCategory.POINTS: StatSpec("Points", "player_points", 1.0, ("pV",), ("points",)),
    StatCategory.REBOUNDS: StatSpec("Rebounds", "player_rebounds", 1.5, ("rV",), ("rebounds",)),
    StatCategory.ASSISTS: StatSpec("Assists", "player_assists", 1.6, ("aV",), ("assists",)),
    StatCategory.THREES: StatSpec("Threes", "player_threes", 1.7, ("3V",), ("threes",)),
    StatCategory.STEALS: StatSpec(
        "Steals", "player_steals", 3.5, ("sV",), ("steals",), small_magnitude=True
    ),
    StatCategory.BLOCKS: StatSpec(
        "Blocks", "player_blocks", 3.5, ("bV",), ("blocks",), small_magnitude=True
    ),
    StatCategory.TURNOVERS: StatSpec(
        "Turnovers", "player_turnovers", 2.5, ("toV",), ("turnovers",), small_magnitude=True
    ),
    StatCategory.POINTS_REBOUNDS: StatSpec(
        "Pts+Reb", "player_points_rebounds", 0.90, ("pV", "rV"), ("points", "rebounds")
    ),
    StatCategory.POINTS_ASSISTS: StatSpec(
        "Pts+Ast", "player_points_assists", 0.90, ("pV", "aV"), ("points", "assists")
    ),
    StatCategory.REBOUNDS_ASSISTS: StatSpec(
        "Reb+Ast", "player_rebounds_assists", 1.10, ("rV", "aV"), ("rebounds", "assists")
    ),
    StatCategory.POINTS_REBOUNDS_ASSISTS: StatSpec(
        "Pts+Reb+Ast",
        "player_points_rebounds_assists",
        0.85,
        ("pV", "rV", "aV"),
        ("points", "rebounds", "assists"),
    ),
}

BASE_COMPONENTS: tuple[str, ...] = (
    "points",
    "rebounds",
    "assists",
    "threes",
    "steals",
    "blocks",
    "turnovers",
)

MARKET_KEYS: frozenset[str] = frozenset(spec.market_key for spec in STAT_TABLE.values())


def parse_stat(value: str) -> StatCategory:
    """Accept a stat code (`pra`) or its market key (`player_points_rebounds_assists`)."""
    raw = value.strip().lower()
    for stat, spec in STAT_TABLE.items():
        if raw == stat.value or raw == spec.market_key:
            return stat
    raise ValueError(f"unknown stat category: {value}")


def combine_components(stat: StatCategory, values: dict[str, float | None]) -> float | None:
    """Sum the component values of a stat; None when any component is missing."""
    total = 0.0
    for component in STAT_TABLE[stat].components:
        value = values.get(component)
        if value is None:
            return None
        total += value
    return total
