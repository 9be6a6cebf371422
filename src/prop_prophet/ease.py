"""Ease index: opponent defensive difficulty by position, window, and team."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from prop_prophet.errors import InputError
from prop_prophet.normalize import normalize_opponent, safe_float
from prop_prophet.scoring_config import ScoringSettings
from prop_prophet.stats import STAT_TABLE, StatCategory

logger = logging.getLogger(__name__)

TEAM_POSITION = "All"
POSITIONS = ("PG", "SG", "SF", "PF", "C")
WINDOWS = ("1w", "2w", "season")
EASE_TEXT_COLUMNS = ("val", "pV", "3V", "rV", "aV", "sV", "bV", "fgV", "toV")

_WINDOW_HEADERS = (
    ("Past 1 Week", "1w"),
    ("Past 2 Weeks", "2w"),
    ("Full Season", "season"),
)

EaseTable = dict[str, dict[str, dict[str, dict[str, float]]]]


@dataclass(frozen=True)
class EaseComposite:
    positional: float
    team: float
    blended: float


class EaseIndex:
    """Read-only ``position -> window -> team -> column -> value`` table.

    Missing entries read as neutral ease (0.0).
    """

    def __init__(self, table: Mapping[str, Any] | None = None) -> None:
        frozen: dict[str, Any] = {}
        for position, windows in (table or {}).items():
            if not isinstance(windows, Mapping):
                continue
            frozen_windows: dict[str, Any] = {}
            for window, teams in windows.items():
                if not isinstance(teams, Mapping):
                    continue
                frozen_teams: dict[str, Any] = {}
                for team, columns in teams.items():
                    if not isinstance(columns, Mapping):
                        continue
                    values = {
                        str(column): parsed
                        for column, raw in columns.items()
                        if (parsed := safe_float(raw)) is not None
                    }
                    frozen_teams[normalize_opponent(str(team))] = MappingProxyType(values)
                frozen_windows[str(window)] = MappingProxyType(frozen_teams)
            frozen[str(position)] = MappingProxyType(frozen_windows)
        self._table = MappingProxyType(frozen)

    def __bool__(self) -> bool:
        return bool(self._table)

    @property
    def positions(self) -> list[str]:
        return sorted(self._table)

    def value(self, position: str, window: str, team: str, column: str) -> float:
        teams = self._table.get(position, {}).get(window, {})
        return teams.get(team, {}).get(column, 0.0)

    def has_position(self, position: str) -> bool:
        return position in self._table

    def to_table(self) -> EaseTable:
        return {
            position: {
                window: {team: dict(columns) for team, columns in teams.items()}
                for window, teams in windows.items()
            }
            for position, windows in self._table.items()
        }

    @classmethod
    def from_table(cls, table: Mapping[str, Any]) -> EaseIndex:
        return cls(table)

    @classmethod
    def load(cls, path: Path) -> EaseIndex:
        """Explicitly load a cached ease table written by `ease-build`."""
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise
        except (OSError, json.JSONDecodeError) as exc:
            raise InputError(f"invalid ease table: {path}") from exc
        if not isinstance(payload, dict):
            raise InputError(f"ease table must be a JSON object: {path}")
        index = cls(payload)
        logger.info("ease table loaded: path=%s positions=%s", path, ",".join(index.positions))
        return index


def parse_ease_text(chunks: Iterable[str]) -> EaseTable:
    """Parse pasted ease text into a ``position -> window -> team`` table.

    Section headers (`Past 1 Week`, `Past 2 Weeks`, `Full Season`) set the window,
    bare position lines (`All`, `PG`, ...) set the position, and rows look like
    ``vs MEM 1.15 1.79 1.91 1.20 1.33 1.18 0.78 0.39 1.59``.
    Rows seen before both a window and a position are ignored.
    """
    table: EaseTable = {}
    position: str | None = None
    window: str | None = None
    skipped = 0
    for chunk in chunks:
        for raw_line in chunk.splitlines():
            line = raw_line.strip()
            if not line:
                continue
            for header, key in _WINDOW_HEADERS:
                if header in line:
                    window = key
            if line in (TEAM_POSITION, *POSITIONS):
                position = line
                continue
            if line.startswith("vs Team") or not line.startswith("vs "):
                continue
            if position is None or window is None:
                skipped += 1
                continue
            parts = line[3:].split()
            team = parts[0].upper()
            values: dict[str, float] = {}
            for column, raw in zip(EASE_TEXT_COLUMNS, parts[1:], strict=False):
                parsed = safe_float(raw)
                if parsed is not None:
                    values[column] = parsed
            table.setdefault(position, {}).setdefault(window, {})[team] = values
    if skipped:
        logger.warning("ease rows without position/window context skipped: %d", skipped)
    return table


def _windowed(
    index: EaseIndex,
    position: str,
    opponent: str,
    columns: tuple[str, ...],
    settings: ScoringSettings,
) -> float:
    if not index.has_position(position):
        return 0.0
    total = 0.0
    for column in columns:
        for window, weight in settings.ease_window_weights:
            total += index.value(position, window, opponent, column) * weight
    return total / len(columns)


def composite(
    stat: StatCategory,
    position: str,
    opponent: str,
    index: EaseIndex,
    settings: ScoringSettings,
) -> EaseComposite:
    """Positional, team-wide, and blended ease for one player/stat matchup.

    Combined stats average their component columns. When the position has no
    dedicated table the blended value falls back to the team-wide value.
    """
    team_code = normalize_opponent(opponent)
    if not index or not team_code:
        return EaseComposite(positional=0.0, team=0.0, blended=0.0)
    columns = STAT_TABLE[stat].ease_columns
    team = _windowed(index, TEAM_POSITION, team_code, columns, settings)
    if position not in POSITIONS:
        return EaseComposite(positional=0.0, team=team, blended=team)
    positional = _windowed(index, position, team_code, columns, settings)
    blended = (
        positional * settings.ease_positional_weight + team * settings.ease_team_weight
    )
    return EaseComposite(positional=positional, team=team, blended=blended)
