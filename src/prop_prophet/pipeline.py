"""Pipeline orchestration: inputs -> scored, gated, published picks."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from prop_prophet.candidates import generate
from prop_prophet.ease import EaseIndex, composite
from prop_prophet.explain import explain
from prop_prophet.gates import PublishedPick, gate
from prop_prophet.market import MarketLineIndex
from prop_prophet.projections import PlayerProjection, build_projections
from prop_prophet.recent_form import RecentFormIndex
from prop_prophet.scoring import score
from prop_prophet.scoring_config import ScoringSettings

logger = logging.getLogger(__name__)


def score_players(
    players: Iterable[PlayerProjection],
    market_index: MarketLineIndex,
    ease_index: EaseIndex,
    form_index: RecentFormIndex | None,
    settings: ScoringSettings,
    *,
    now: datetime,
    with_rationale: bool = True,
) -> list[PublishedPick]:
    """Generate, score, and gate candidates; returns picks sorted by score descending."""
    published: list[PublishedPick] = []
    disqualified = 0
    below_floor = 0
    for candidate in generate(players, market_index, settings, now=now):
        player = candidate.player
        ease = composite(candidate.stat, player.position, player.opponent, ease_index, settings)
        l5 = (
            form_index.l5_sample(player.name, candidate.stat, candidate.line, candidate.side)
            if form_index is not None
            else None
        )
        result = score(candidate, ease, l5, settings)
        if result is None:
            disqualified += 1
            continue
        pick = gate(candidate, result, settings)
        if pick is None:
            below_floor += 1
            continue
        if with_rationale:
            pick = explain(candidate, result, pick)
        published.append(pick)

    published.sort(key=lambda pick: (-pick.score, pick.player, pick.stat.value))
    logger.info(
        "picks published=%d disqualified=%d below_floor=%d",
        len(published),
        disqualified,
        below_floor,
    )
    return published


def run_pipeline(
    projection_rows: Iterable[Mapping[str, Any]] | None,
    odds_payload: Any,
    *,
    ease_index: EaseIndex | None,
    form_index: RecentFormIndex | None,
    settings: ScoringSettings,
    now: datetime,
    tz: ZoneInfo,
    with_rationale: bool = True,
) -> list[PublishedPick]:
    """Run one scoring pass over raw feed payloads.

    Missing or unusable projection or market data yields an empty pick list.
    """
    if not projection_rows:
        logger.warning("no projection rows supplied, no picks generated")
        return []
    if not odds_payload:
        logger.warning("no market data supplied, no picks generated")
        return []
    try:
        market_index = MarketLineIndex.from_events(odds_payload, now=now)
    except ValueError as exc:
        logger.error("market payload unusable: %s", exc)
        return []
    if not market_index:
        logger.warning("market index is empty, no picks generated")
        return []

    players = build_projections(projection_rows, tz)
    if not players:
        logger.warning("no usable projection rows, no picks generated")
        return []
    if ease_index is None or not ease_index:
        logger.warning("no ease data, matchup adjustments are neutral")
    return score_players(
        players,
        market_index,
        ease_index or EaseIndex(),
        form_index,
        settings,
        now=now,
        with_rationale=with_rationale,
    )
