"""Build per-player projection records from exported projection rows."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from prop_prophet.normalize import (
    normalize_opponent,
    normalize_player_name,
    parse_flag,
    primary_position,
    safe_float,
)
from prop_prophet.stats import BASE_COMPONENTS, STAT_TABLE, StatCategory, combine_components
from prop_prophet.time_utils import parse_iso_z

logger = logging.getLogger(__name__)

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "player", "player name"),
    "team": ("team", "tm"),
    "position": ("pos", "position"),
    "opponent": ("opp", "opponent"),
    "minutes": ("min", "mp", "minutes", "m/g"),
    "injury": ("inj", "injury"),
    "status": ("status",),
    "rest_days": ("rest",),
    "back_to_back": ("b2b",),
    "age": ("age",),
    "val_3": ("3gg", "l3", "last 3"),
    "val_5": ("5gg", "l5", "last 5"),
    "value_c": ("valuec", "val c", "value c"),
    "pc": ("pc", "p cons", "consistency"),
    "josh": ("josh", "joshg", "josh g"),
    "josh_min": ("jming", "jmin", "josh min"),
    "josh_max": ("jmaxg", "jmax", "josh max"),
    "last_minutes": ("last min", "last mp", "min last", "prev min", "lmin"),
    "start": ("start", "start_time", "commence_time"),
    "date": ("date", "dt"),
    "time": ("time", "game time"),
    "game_total": ("ou", "total", "game total", "over/under"),
    "points": ("pts", "p", "points"),
    "rebounds": ("reb", "r", "rebounds"),
    "assists": ("ast", "a", "assists"),
    "threes": ("3", "3pm", "threes"),
    "steals": ("stl", "s", "steals"),
    "blocks": ("blk", "b", "blocks"),
    "turnovers": ("to", "tov", "turnovers"),
}

_DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d", "%m/%d/%y")
_TIME_FORMATS = ("%I:%M %p", "%I:%M%p", "%H:%M", "%I %p")


@dataclass(frozen=True)
class PlayerProjection:
    """One player's projection row, normalized for the scoring run."""

    name: str
    name_norm: str
    team: str
    position: str
    opponent: str
    minutes: float = 0.0
    injury: str = ""
    status: str = ""
    rest_days: float | None = None
    back_to_back: bool = False
    age: float | None = None
    projections: dict[StatCategory, float] = field(default_factory=dict)
    val_3: float | None = None
    val_5: float | None = None
    value_c: float | None = None
    pc: float | None = None
    josh: float | None = None
    josh_min: float | None = None
    josh_max: float | None = None
    last_minutes: float | None = None
    start_time: datetime | None = None
    game_total: float | None = None

    @property
    def is_out(self) -> bool:
        return "out" in self.injury.lower()

    @property
    def is_rookie(self) -> bool:
        return "rookie" in self.status.lower()

    def age_or(self, default: float) -> float:
        return self.age if self.age is not None else default


def _column_lookup(row: Mapping[str, Any]) -> dict[str, str]:
    by_lower = {str(key).strip().lower(): str(key) for key in row}
    resolved: dict[str, str] = {}
    for field_name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in by_lower:
                resolved[field_name] = by_lower[alias]
                break
    return resolved


def _text(row: Mapping[str, Any], columns: dict[str, str], key: str) -> str:
    column = columns.get(key)
    if column is None:
        return ""
    value = row.get(column)
    return "" if value is None else str(value).strip()


def _number(row: Mapping[str, Any], columns: dict[str, str], key: str) -> float | None:
    column = columns.get(key)
    if column is None:
        return None
    return safe_float(row.get(column))


def _parse_local_start(date_text: str, time_text: str, tz: ZoneInfo) -> datetime | None:
    for date_format in _DATE_FORMATS:
        for time_format in _TIME_FORMATS:
            try:
                naive = datetime.strptime(
                    f"{date_text} {time_text.upper()}", f"{date_format} {time_format}"
                )
            except ValueError:
                continue
            return naive.replace(tzinfo=tz)
    return None


def _start_time(row: Mapping[str, Any], columns: dict[str, str], tz: ZoneInfo) -> datetime | None:
    start_text = _text(row, columns, "start")
    if start_text:
        parsed = parse_iso_z(start_text)
        if parsed is not None:
            return parsed
    date_text = _text(row, columns, "date")
    time_text = _text(row, columns, "time")
    if date_text and time_text:
        return _parse_local_start(date_text, time_text, tz)
    return None


def build_projection(row: Mapping[str, Any], tz: ZoneInfo) -> PlayerProjection | None:
    """Normalize one exported row; returns None for rows without a player name.

    Date/time columns without an offset are read in the operating timezone ``tz``.
    Combined projections (pr/pa/ra/pra) are always derived from their components.
    """
    columns = _column_lookup(row)
    name = _text(row, columns, "name")
    if not name:
        return None

    components = {component: _number(row, columns, component) for component in BASE_COMPONENTS}
    projections: dict[StatCategory, float] = {}
    for stat, spec in STAT_TABLE.items():
        if spec.is_combined:
            value = combine_components(stat, components)
        else:
            value = components.get(spec.components[0])
        if value is not None:
            projections[stat] = value

    return PlayerProjection(
        name=name,
        name_norm=normalize_player_name(name),
        team=_text(row, columns, "team").upper(),
        position=primary_position(_text(row, columns, "position")),
        opponent=normalize_opponent(_text(row, columns, "opponent")),
        minutes=_number(row, columns, "minutes") or 0.0,
        injury=_text(row, columns, "injury"),
        status=_text(row, columns, "status"),
        rest_days=_number(row, columns, "rest_days"),
        back_to_back=bool(parse_flag(_text(row, columns, "back_to_back"))),
        age=_number(row, columns, "age"),
        projections=projections,
        val_3=_number(row, columns, "val_3"),
        val_5=_number(row, columns, "val_5"),
        value_c=_number(row, columns, "value_c"),
        pc=_number(row, columns, "pc"),
        josh=_number(row, columns, "josh"),
        josh_min=_number(row, columns, "josh_min"),
        josh_max=_number(row, columns, "josh_max"),
        last_minutes=_number(row, columns, "last_minutes"),
        start_time=_start_time(row, columns, tz),
        game_total=_number(row, columns, "game_total"),
    )


def build_projections(rows: Iterable[Mapping[str, Any]], tz: ZoneInfo) -> list[PlayerProjection]:
    players: list[PlayerProjection] = []
    skipped = 0
    for row in rows:
        if not isinstance(row, Mapping):
            skipped += 1
            continue
        player = build_projection(row, tz)
        if player is None:
            skipped += 1
            continue
        players.append(player)
    logger.info("projection rows parsed: players=%d skipped=%d", len(players), skipped)
    return players
