"""Calibration constants for candidate generation, scoring, and gating.

Every value here was tuned by hand against the pick history. They are kept in one
frozen dataclass so a runtime TOML ``[scoring]`` table can override any of them
without touching the scoring code.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Literal

from prop_prophet.stats import STAT_TABLE, StatCategory, parse_stat

Tier = Literal["solid", "strong", "elite", "diamond", "lock"]

TIER_SOLID: Tier = "solid"
TIER_STRONG: Tier = "strong"
TIER_ELITE: Tier = "elite"
TIER_DIAMOND: Tier = "diamond"
TIER_LOCK: Tier = "lock"

TIER_ORDER: tuple[Tier, ...] = (TIER_SOLID, TIER_STRONG, TIER_ELITE, TIER_DIAMOND, TIER_LOCK)

TIER_LABELS = {
    TIER_SOLID: "✅ SOLID PLAY",
    TIER_STRONG: "💪 STRONG PLAY",
    TIER_ELITE: "🔥 ELITE",
    TIER_DIAMOND: "💎 DIAMOND BOY",
    TIER_LOCK: "🔒 PROPHET LOCK",
}


def tier_rank(tier: Tier) -> int:
    return TIER_ORDER.index(tier)


def parse_tier(value: str) -> Tier:
    """Map a stored tier (`lock`, or a display label like `🔒 PROPHET LOCK`) to its key."""
    raw = value.strip().lower()
    if raw in TIER_ORDER:
        return raw
    upper = value.upper()
    for needle, tier in (
        ("LOCK", TIER_LOCK),
        ("DIAMOND", TIER_DIAMOND),
        ("ELITE", TIER_ELITE),
        ("STRONG", TIER_STRONG),
        ("SOLID", TIER_SOLID),
    ):
        if needle in upper:
            return tier
    raise ValueError(f"unknown tier: {value}")


def _default_stat_weights() -> dict[StatCategory, float]:
    return {stat: spec.weight for stat, spec in STAT_TABLE.items()}


@dataclass(frozen=True)
class ScoringSettings:
    # eligibility
    min_minutes: float = 20.0
    min_projection: float = 1.0
    min_weighted_edge: float = 0.1
    min_publish_score: float = 4.0
    stat_weights: dict[StatCategory, float] = field(default_factory=_default_stat_weights)

    # ease composite
    ease_window_weights: tuple[tuple[str, float], ...] = (
        ("1w", 0.50),
        ("2w", 0.30),
        ("season", 0.20),
    )
    ease_positional_weight: float = 0.70
    ease_team_weight: float = 0.30
    ease_bands: tuple[tuple[float, float], ...] = (
        (0.30, 0.05),
        (0.50, 0.08),
        (0.70, 0.12),
        (1.00, 0.15),
    )

    # base confidence
    base_confidence: float = 0.5
    edge_divisor: float = 5.0

    # last five games
    l5_min_games: int = 3
    l5_multipliers: tuple[tuple[int, float], ...] = (
        (5, 1.20),
        (4, 1.15),
        (3, 1.00),
        (2, 0.90),
        (1, 0.85),
    )

    # contextual modifiers
    rest0_penalty: float = 0.05
    b2b_penalty_young: float = 0.03
    b2b_penalty_vet: float = 0.08
    vet_age_threshold: float = 30.0
    default_age: float = 25.0
    blowout_spread: float = 10.0
    blowout_penalty: float = 0.20
    blowout_vet_penalty: float = 0.10
    high_total: float = 235.0
    low_total: float = 215.0
    pace_adjust: float = 0.03
    sharp_threshold: float = 1.5
    sharp_bonus: float = 0.06
    sharp_floor_bonus: float = 0.03
    sharp_floor_threshold: float = 1.0
    form_threshold: float = 1.0
    form_adjust: float = 0.05
    value_threshold: float = 1.5
    value_adjust: float = 0.04
    consistency_high: float = 65.0
    consistency_low: float = 35.0
    consistency_adjust: float = 0.05

    # ceilings and clamp
    b2b_confidence_cap: float = 0.89
    contradiction_threshold: float = 0.30
    contradiction_confidence_cap: float = 0.84
    confidence_floor: float = 0.01
    confidence_ceiling: float = 0.99

    # grades and tiers
    grade_breakpoints: tuple[tuple[float, str], ...] = (
        (0.90, "A+"),
        (0.85, "A"),
        (0.80, "A-"),
        (0.75, "B+"),
        (0.70, "B"),
        (0.60, "C"),
    )
    score_scale: float = 2.5
    tier_breakpoints: tuple[tuple[float, Tier], ...] = (
        (10.5, TIER_LOCK),
        (9.0, TIER_DIAMOND),
        (8.0, TIER_ELITE),
        (7.0, TIER_STRONG),
    )

    # gates
    gate_minutes: float = 23.0
    rookie_form_floor: float = 1.0
    score_correction: float = 0.01

    def weight_for(self, stat: StatCategory) -> float:
        return self.stat_weights.get(stat, STAT_TABLE[stat].weight)

    @property
    def lock_threshold(self) -> float:
        for threshold, tier in self.tier_breakpoints:
            if tier == TIER_LOCK:
                return threshold
        raise ValueError("tier_breakpoints has no lock threshold")


def _pairs(value: Any, *, key: str) -> tuple[tuple[Any, Any], ...]:
    if isinstance(value, dict):
        items = list(value.items())
    elif isinstance(value, list):
        items = [tuple(item) for item in value]
    else:
        raise RuntimeError(f"scoring.{key} must be a table or a list of pairs")
    for item in items:
        if len(item) != 2:
            raise RuntimeError(f"scoring.{key} entries must be pairs")
    return tuple((item[0], item[1]) for item in items)


def scoring_settings_from_table(table: dict[str, Any]) -> ScoringSettings:
    """Build settings from a runtime ``[scoring]`` table; unknown keys are rejected."""
    defaults = ScoringSettings()
    known = {item.name: item for item in fields(ScoringSettings)}
    overrides: dict[str, Any] = {}
    for key, value in table.items():
        if key not in known:
            raise RuntimeError(f"unknown scoring setting: {key}")
        if key == "stat_weights":
            weights = dict(defaults.stat_weights)
            for stat_key, weight in _pairs(value, key=key):
                weights[parse_stat(str(stat_key))] = float(weight)
            overrides[key] = weights
        elif key == "ease_window_weights":
            overrides[key] = tuple((str(k), float(v)) for k, v in _pairs(value, key=key))
        elif key == "ease_bands":
            bands = sorted((float(k), float(v)) for k, v in _pairs(value, key=key))
            overrides[key] = tuple(bands)
        elif key == "l5_multipliers":
            overrides[key] = tuple(
                sorted(((int(k), float(v)) for k, v in _pairs(value, key=key)), reverse=True)
            )
        elif key == "grade_breakpoints":
            overrides[key] = tuple(
                sorted(((float(v), str(k)) for k, v in _pairs(value, key=key)), reverse=True)
            )
        elif key == "tier_breakpoints":
            overrides[key] = tuple(
                sorted(
                    ((float(v), parse_tier(str(k))) for k, v in _pairs(value, key=key)),
                    reverse=True,
                )
            )
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            raise RuntimeError(f"scoring.{key} must be a number")
        elif isinstance(getattr(defaults, key), int):
            overrides[key] = int(value)
        else:
            overrides[key] = float(value)
    return ScoringSettings(**overrides)
