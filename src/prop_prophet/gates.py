"""Tier gates and downgrades applied after scoring."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from prop_prophet.candidates import Candidate
from prop_prophet.normalize import safe_float
from prop_prophet.projections import PlayerProjection
from prop_prophet.scoring import ScoreResult
from prop_prophet.scoring_config import (
    TIER_DIAMOND,
    TIER_ELITE,
    TIER_LABELS,
    TIER_LOCK,
    TIER_STRONG,
    ScoringSettings,
    Tier,
    parse_tier,
    tier_rank,
)
from prop_prophet.stats import STAT_TABLE, StatCategory, parse_stat
from prop_prophet.time_utils import iso_z, parse_iso_z

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishedPick:
    """Final, immutable pick handed to publishers and the ledger."""

    player: str
    team: str
    position: str
    opponent: str
    stat: StatCategory
    side: str
    line: float
    projection: float
    edge: float
    weighted_edge: float
    ease: float
    ease_positional: float
    ease_team: float
    confidence: float
    grade: str
    score: float
    raw_score: float
    tier: Tier
    start_time: datetime | None
    l5_hits: int | None = None
    l5_valid: int | None = None
    gates: tuple[str, ...] = ()
    rationale: tuple[str, ...] = field(default_factory=tuple)
    interpretation: str = ""

    @property
    def tier_label(self) -> str:
        return TIER_LABELS[self.tier]

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": self.player,
            "team": self.team,
            "pos": self.position,
            "opp": self.opponent,
            "stat": self.stat.value,
            "stat_label": STAT_TABLE[self.stat].label,
            "side": self.side,
            "line": self.line,
            "projection": round(self.projection, 2),
            "edge": round(self.edge, 2),
            "weighted_edge": round(self.weighted_edge, 3),
            "ease": round(self.ease, 3),
            "ease_positional": round(self.ease_positional, 3),
            "ease_team": round(self.ease_team, 3),
            "confidence": round(self.confidence, 4),
            "confidence_grade": self.grade,
            "score": self.score,
            "raw_score": self.raw_score,
            "tier": self.tier,
            "bet_rating": self.tier_label,
            "l5_hits": self.l5_hits,
            "l5_valid": self.l5_valid,
            "gates": list(self.gates),
            "start_time": iso_z(self.start_time) if self.start_time is not None else None,
            "interpretation": self.interpretation,
            "analysis": list(self.rationale),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PublishedPick:
        """Rebuild a pick from its published row (the saved commit snapshot)."""
        line = safe_float(payload.get("line"))
        if line is None:
            raise ValueError(f"published pick line missing: {payload.get('player')}")
        score = float(payload.get("score") or 0.0)
        start_raw = payload.get("start_time")
        return cls(
            player=str(payload.get("player", "")),
            team=str(payload.get("team", "")),
            position=str(payload.get("pos", "")),
            opponent=str(payload.get("opp", "")),
            stat=parse_stat(str(payload.get("stat", ""))),
            side=str(payload.get("side", "")).upper(),
            line=line,
            projection=float(payload.get("projection") or 0.0),
            edge=float(payload.get("edge") or 0.0),
            weighted_edge=float(payload.get("weighted_edge") or 0.0),
            ease=float(payload.get("ease") or 0.0),
            ease_positional=float(payload.get("ease_positional") or 0.0),
            ease_team=float(payload.get("ease_team") or 0.0),
            confidence=float(payload.get("confidence") or 0.0),
            grade=str(payload.get("confidence_grade", "")),
            score=score,
            raw_score=float(payload.get("raw_score") or score),
            tier=parse_tier(str(payload.get("tier", ""))),
            start_time=parse_iso_z(start_raw) if isinstance(start_raw, str) else None,
            l5_hits=payload.get("l5_hits"),
            l5_valid=payload.get("l5_valid"),
            gates=tuple(payload.get("gates") or ()),
            rationale=tuple(payload.get("analysis") or ()),
            interpretation=str(payload.get("interpretation", "")),
        )


def minutes_capped(player: PlayerProjection, settings: ScoringSettings) -> bool:
    """Thin role or an unproven rookie: no tier above strong play."""
    if player.minutes < settings.gate_minutes:
        return True
    if player.is_rookie:
        form = player.val_5 if player.val_5 is not None else 0.0
        return form < settings.rookie_form_floor
    return False


def gate(
    candidate: Candidate,
    result: ScoreResult,
    settings: ScoringSettings,
) -> PublishedPick | None:
    """Finalize tier and score; None when the play falls below the publish floor."""
    if result.score < settings.min_publish_score:
        return None

    player = candidate.player
    tier = result.tier
    applied: list[str] = []

    if minutes_capped(player, settings) and tier_rank(tier) >= tier_rank(TIER_ELITE):
        tier = TIER_STRONG
        applied.append("rookie" if player.is_rookie else "minutes")
    if tier == TIER_LOCK and result.contradicted:
        tier = TIER_DIAMOND
        applied.append("contradiction")
    l5 = result.l5
    if tier == TIER_LOCK and l5 is not None and l5.valid == 5 and l5.hits == 1:
        tier = TIER_DIAMOND
        applied.append("thin_sample")

    final_score = result.score
    lock_threshold = settings.lock_threshold
    if final_score >= lock_threshold and tier != TIER_LOCK:
        final_score = round(lock_threshold - settings.score_correction, 2)
        applied.append("score_correction")

    if applied:
        logger.debug(
            "gated %s %s %s: %s -> %s (%s)",
            player.name,
            candidate.stat.value,
            candidate.side,
            result.tier,
            tier,
            ",".join(applied),
        )

    return PublishedPick(
        player=player.name,
        team=player.team,
        position=player.position,
        opponent=player.opponent,
        stat=candidate.stat,
        side=candidate.side,
        line=candidate.line,
        projection=candidate.projection,
        edge=candidate.edge,
        weighted_edge=candidate.weighted_edge,
        ease=result.ease.blended,
        ease_positional=result.ease.positional,
        ease_team=result.ease.team,
        confidence=result.confidence,
        grade=result.grade,
        score=final_score,
        raw_score=result.score,
        tier=tier,
        start_time=candidate.start_time,
        l5_hits=l5.hits if l5 is not None else None,
        l5_valid=l5.valid if l5 is not None else None,
        gates=tuple(applied),
    )
