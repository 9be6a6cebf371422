"""Recent box-score lines per player and last-five-games hit samples."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

from prop_prophet.normalize import normalize_player_name, safe_float
from prop_prophet.stats import STAT_TABLE, StatCategory, combine_components

logger = logging.getLogger(__name__)

Side = Literal["OVER", "UNDER"]

BOX_SCORE_ALIASES: dict[str, tuple[str, ...]] = {
    "points": ("pts", "points", "p"),
    "rebounds": ("reb", "trb", "rebounds", "r"),
    "assists": ("ast", "assists", "a"),
    "threes": ("threes", "3pm", "fg3", "3"),
    "steals": ("stl", "steals", "s"),
    "blocks": ("blk", "blocks", "b"),
    "turnovers": ("to", "tov", "turnovers"),
}

L5_WINDOW = 5


@dataclass(frozen=True)
class BoxScoreLine:
    game_date: date
    values: dict[str, float | None]

    def stat_value(self, stat: StatCategory) -> float | None:
        """Observed value for a stat category; combined stats sum their components."""
        spec = STAT_TABLE[stat]
        if spec.is_combined:
            return combine_components(stat, self.values)
        return self.values.get(spec.components[0])


@dataclass(frozen=True)
class L5Sample:
    hits: int
    valid: int


def _parse_date(value: Any) -> date | None:
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def parse_box_score(row: Mapping[str, Any]) -> BoxScoreLine | None:
    game_date = _parse_date(row.get("date"))
    if game_date is None:
        return None
    lowered = {str(key).strip().lower(): value for key, value in row.items()}
    values: dict[str, float | None] = {}
    for component, aliases in BOX_SCORE_ALIASES.items():
        values[component] = None
        for alias in aliases:
            if alias in lowered:
                values[component] = safe_float(lowered[alias])
                break
    return BoxScoreLine(game_date=game_date, values=values)


def is_hit(value: float, line: float, side: Side) -> bool:
    """OVER needs strictly above the line, UNDER strictly below; a push is a miss."""
    if side == "OVER":
        return value > line
    return value < line


class RecentFormIndex:
    """Map of normalized player name to box-score lines, newest first."""

    def __init__(self, games: Mapping[str, list[BoxScoreLine]] | None = None) -> None:
        self._games: dict[str, list[BoxScoreLine]] = {}
        for name, lines in (games or {}).items():
            key = normalize_player_name(name)
            merged = self._games.setdefault(key, [])
            merged.extend(lines)
        for lines in self._games.values():
            lines.sort(key=lambda line: line.game_date, reverse=True)

    def __len__(self) -> int:
        return len(self._games)

    def games(self, name: str) -> list[BoxScoreLine]:
        return list(self._games.get(normalize_player_name(name), []))

    def line_on(self, name: str, game_date: date) -> BoxScoreLine | None:
        for line in self._games.get(normalize_player_name(name), []):
            if line.game_date == game_date:
                return line
        return None

    def l5_sample(self, name: str, stat: StatCategory, line: float, side: Side) -> L5Sample:
        """Hit count of the five most recent games; games missing the stat are not valid."""
        hits = 0
        valid = 0
        for game in self._games.get(normalize_player_name(name), [])[:L5_WINDOW]:
            value = game.stat_value(stat)
            if value is None:
                continue
            valid += 1
            if is_hit(value, line, side):
                hits += 1
        return L5Sample(hits=hits, valid=valid)

    @classmethod
    def from_feed(cls, payload: Any) -> RecentFormIndex:
        """Build from ``{player: [{date, pts, reb, ...}, ...]}``; malformed rows are skipped."""
        if not isinstance(payload, Mapping):
            raise ValueError("recent form feed must be an object keyed by player")
        games: dict[str, list[BoxScoreLine]] = {}
        skipped = 0
        for name, rows in payload.items():
            if not isinstance(rows, list):
                skipped += 1
                continue
            parsed: list[BoxScoreLine] = []
            for row in rows:
                line = parse_box_score(row) if isinstance(row, Mapping) else None
                if line is None:
                    skipped += 1
                    continue
                parsed.append(line)
            games.setdefault(str(name), []).extend(parsed)
        if skipped:
            logger.warning("recent form rows skipped: %d", skipped)
        index = cls(games)
        logger.info("recent form index built: players=%d", len(index))
        return index
