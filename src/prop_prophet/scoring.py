"""Confidence scoring for generated candidates.

Scoring runs in a fixed order: base confidence from weighted edge, ease band
bonus or penalty, last-five multiplier, contextual modifiers, ceiling caps,
clamp, then grade/score/tier. The result carries every component so the
explain formatter never has to recompute anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prop_prophet.candidates import Candidate
from prop_prophet.ease import EaseComposite
from prop_prophet.recent_form import L5Sample
from prop_prophet.scoring_config import TIER_SOLID, ScoringSettings, Tier
from prop_prophet.stats import StatCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreResult:
    confidence: float
    grade: str
    score: float
    tier: Tier
    base_confidence: float
    ease: EaseComposite
    ease_bonus: float
    aligned: bool
    contradicted: bool
    l5: L5Sample | None
    l5_multiplier: float
    modifiers: tuple[tuple[str, float], ...]
    caps: tuple[str, ...]


def is_aligned(side: str, ease_value: float) -> bool:
    return (side == "OVER" and ease_value > 0) or (side == "UNDER" and ease_value < 0)


def ease_band_bonus(ease_value: float, settings: ScoringSettings) -> float:
    """Bonus magnitude for |ease|; zero below the first band."""
    magnitude = abs(ease_value)
    bonus = 0.0
    for lower, band_bonus in settings.ease_bands:
        if magnitude >= lower:
            bonus = band_bonus
    return bonus


def is_contradicted(side: str, ease_value: float, settings: ScoringSettings) -> bool:
    return (
        not is_aligned(side, ease_value)
        and ease_value != 0
        and abs(ease_value) >= settings.contradiction_threshold
    )


def l5_multiplier(sample: L5Sample | None, settings: ScoringSettings) -> float:
    if sample is None or sample.valid < settings.l5_min_games:
        return 1.0
    for hits, multiplier in settings.l5_multipliers:
        if sample.hits >= hits:
            return multiplier
    return 1.0


def is_disqualified(sample: L5Sample | None) -> bool:
    """0 hits over exactly five valid games drops the play outright."""
    return sample is not None and sample.valid == 5 and sample.hits == 0


def confidence_grade(confidence: float, settings: ScoringSettings) -> str:
    for threshold, grade in settings.grade_breakpoints:
        if confidence >= threshold:
            return grade
    return "D"


def tier_for_score(score: float, settings: ScoringSettings) -> Tier:
    for threshold, tier in settings.tier_breakpoints:
        if score >= threshold:
            return tier
    return TIER_SOLID


def contextual_modifiers(
    candidate: Candidate, settings: ScoringSettings
) -> list[tuple[str, float]]:
    """Named additive confidence adjustments for rest, fatigue, pace, script, and signals."""
    player = candidate.player
    side = candidate.side
    over = side == "OVER"
    is_vet = player.age_or(settings.default_age) >= settings.vet_age_threshold
    modifiers: list[tuple[str, float]] = []

    if player.rest_days is not None and player.rest_days == 0:
        modifiers.append(("rest0", -settings.rest0_penalty))
    if player.back_to_back:
        penalty = settings.b2b_penalty_vet if is_vet else settings.b2b_penalty_young
        modifiers.append(("back_to_back", -penalty))

    total = candidate.game_total
    if total is not None:
        if total >= settings.high_total:
            modifiers.append(("pace_high", settings.pace_adjust if over else -settings.pace_adjust))
        elif total <= settings.low_total:
            modifiers.append(("pace_low", -settings.pace_adjust if over else settings.pace_adjust))

    spread = candidate.spread
    if spread is not None and abs(spread) >= settings.blowout_spread and over:
        modifiers.append(("blowout", -settings.blowout_penalty))
        if is_vet:
            modifiers.append(("blowout_vet", -settings.blowout_vet_penalty))

    form_values = [value for value in (player.val_3, player.val_5) if value is not None]
    if form_values:
        if max(form_values) >= settings.form_threshold:
            if over:
                modifiers.append(("hot", settings.form_adjust))
        elif min(form_values) <= -settings.form_threshold:
            modifiers.append(("cold", -settings.form_adjust if over else settings.form_adjust))

    value_c = player.value_c
    if value_c is not None and over:
        if value_c >= settings.value_threshold:
            modifiers.append(("value_plus", settings.value_adjust))
        elif value_c <= -settings.value_threshold:
            modifiers.append(("value_minus", -settings.value_adjust))

    pc = player.pc
    if candidate.stat is StatCategory.POINTS and pc is not None:
        if pc >= settings.consistency_high:
            modifiers.append(("steady", settings.consistency_adjust))
        elif 0 < pc <= settings.consistency_low:
            modifiers.append(("volatile", -settings.consistency_adjust))

    josh = player.josh
    if josh is not None and josh != 0:
        if (josh >= settings.sharp_threshold and over) or (
            josh <= -settings.sharp_threshold and not over
        ):
            modifiers.append(("sharp", settings.sharp_bonus))
        floor = settings.sharp_floor_threshold
        if over and player.josh_min is not None and player.josh_min > -floor:
            modifiers.append(("safe_floor", settings.sharp_floor_bonus))
        if not over and player.josh_max is not None and player.josh_max < floor:
            modifiers.append(("capped_ceiling", settings.sharp_floor_bonus))

    return modifiers


def score(
    candidate: Candidate,
    ease: EaseComposite,
    l5: L5Sample | None,
    settings: ScoringSettings,
) -> ScoreResult | None:
    """Score one candidate; None when the last-five rule disqualifies it."""
    if is_disqualified(l5):
        logger.debug(
            "disqualified 0/5: player=%s stat=%s side=%s line=%s",
            candidate.player.name,
            candidate.stat.value,
            candidate.side,
            candidate.line,
        )
        return None

    base = settings.base_confidence + candidate.weighted_edge / settings.edge_divisor
    confidence = base

    aligned = is_aligned(candidate.side, ease.blended)
    bonus = ease_band_bonus(ease.blended, settings)
    ease_bonus = bonus if aligned else -bonus
    confidence += ease_bonus

    multiplier = l5_multiplier(l5, settings)
    confidence *= multiplier

    modifiers = contextual_modifiers(candidate, settings)
    confidence += sum(delta for _, delta in modifiers)

    caps: list[str] = []
    if candidate.player.back_to_back and confidence > settings.b2b_confidence_cap:
        confidence = settings.b2b_confidence_cap
        caps.append("back_to_back")
    contradicted = is_contradicted(candidate.side, ease.blended, settings)
    if contradicted and confidence > settings.contradiction_confidence_cap:
        confidence = settings.contradiction_confidence_cap
        caps.append("contradiction")

    confidence = max(settings.confidence_floor, min(settings.confidence_ceiling, confidence))
    points = round(candidate.weighted_edge * confidence * settings.score_scale, 2)

    return ScoreResult(
        confidence=confidence,
        grade=confidence_grade(confidence, settings),
        score=points,
        tier=tier_for_score(points, settings),
        base_confidence=base,
        ease=ease,
        ease_bonus=ease_bonus,
        aligned=aligned,
        contradicted=contradicted,
        l5=l5,
        l5_multiplier=multiplier,
        modifiers=tuple(modifiers),
        caps=tuple(caps),
    )
