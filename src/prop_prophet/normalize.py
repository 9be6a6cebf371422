"""Normalization helpers for names, teams, and tolerant numeric coercion."""

from __future__ import annotations

import re
import unicodedata
from typing import Any

TEAM_CODES = {
    "ATL": "atlanta hawks",
    "BOS": "boston celtics",
    "BKN": "brooklyn nets",
    "BRK": "brooklyn nets",
    "CHA": "charlotte hornets",
    "CHO": "charlotte hornets",
    "CHI": "chicago bulls",
    "CLE": "cleveland cavaliers",
    "DAL": "dallas mavericks",
    "DEN": "denver nuggets",
    "DET": "detroit pistons",
    "GS": "golden state warriors",
    "GSW": "golden state warriors",
    "HOU": "houston rockets",
    "IND": "indiana pacers",
    "LAC": "los angeles clippers",
    "LAL": "los angeles lakers",
    "MEM": "memphis grizzlies",
    "MIA": "miami heat",
    "MIL": "milwaukee bucks",
    "MIN": "minnesota timberwolves",
    "NO": "new orleans pelicans",
    "NOP": "new orleans pelicans",
    "NY": "new york knicks",
    "NYK": "new york knicks",
    "OKC": "oklahoma city thunder",
    "ORL": "orlando magic",
    "PHI": "philadelphia 76ers",
    "PHO": "phoenix suns",
    "PHX": "phoenix suns",
    "POR": "portland trail blazers",
    "SA": "san antonio spurs",
    "SAS": "san antonio spurs",
    "SAC": "sacramento kings",
    "TOR": "toronto raptors",
    "UTA": "utah jazz",
    "WAS": "washington wizards",
}

_OPPONENT_MARKERS = re.compile(r"^(?:@|vs\.?)\s*", re.IGNORECASE)


def strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def normalize_player_name(name: str) -> str:
    """Join key for player names: accents and periods dropped, whitespace collapsed, lowercase."""
    if not name:
        return ""
    cleaned = strip_accents(name).replace(".", "")
    return " ".join(cleaned.split()).lower()


def normalize_opponent(value: str) -> str:
    """Turn `@ BOS`, `vs BOS`, or `bos` into the team code `BOS`."""
    raw = value.strip()
    while True:
        stripped = _OPPONENT_MARKERS.sub("", raw).strip()
        if stripped == raw:
            break
        raw = stripped
    return raw.upper()


def team_full_name(code: str) -> str:
    """Full lowercase franchise name for a team code, or empty when unknown."""
    return TEAM_CODES.get(code.strip().upper(), "")


def primary_position(value: str) -> str:
    """First listed position of a slash-separated eligibility string (`PG/SG` -> `PG`)."""
    return value.split("/")[0].strip().upper() if value else ""


def safe_float(value: Any) -> float | None:
    """Parse number-like input into float, returning None when missing or invalid.

    A legitimate zero stays ``0.0``; only blanks, non-numeric text and booleans map to None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        as_float = float(value)
        return None if as_float != as_float else as_float
    if isinstance(value, str):
        raw = value.strip().rstrip("%")
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            return None
    return None


def parse_flag(value: Any) -> bool | None:
    """Parse yes/no style flags (`1`, `Y`, `true`, `b2b`), None when blank."""
    if isinstance(value, bool):
        return value
    number = safe_float(value)
    if number is not None:
        return number >= 1
    if isinstance(value, str):
        raw = value.strip().lower()
        if not raw:
            return None
        return raw in {"y", "yes", "true", "t", "x", "b2b"}
    return None
