"""Candidate generation: players x stat categories joined against market lines."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from prop_prophet.market import MarketLine, MarketLineIndex
from prop_prophet.normalize import team_full_name
from prop_prophet.projections import PlayerProjection
from prop_prophet.recent_form import Side
from prop_prophet.scoring_config import ScoringSettings
from prop_prophet.stats import STAT_TABLE, StatCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """One player/stat/side opportunity before scoring."""

    player: PlayerProjection
    stat: StatCategory
    side: Side
    line: float
    projection: float
    edge: float
    weighted_edge: float
    market: MarketLine

    @property
    def start_time(self) -> datetime | None:
        return self.market.start_time or self.player.start_time

    @property
    def spread(self) -> float | None:
        return self.market.spread

    @property
    def game_total(self) -> float | None:
        if self.player.game_total is not None:
            return self.player.game_total
        return self.market.total


def side_and_edge(stat: StatCategory, projection: float, line: float) -> tuple[Side, float]:
    """OVER iff the projection is above the line; edge is the absolute gap."""
    if stat is StatCategory.TURNOVERS:
        if line > projection:
            return "UNDER", line - projection
        return "OVER", projection - line
    if projection > line:
        return "OVER", projection - line
    return "UNDER", line - projection


def _wrong_game(player: PlayerProjection, market: MarketLine) -> bool:
    if market.event is None or not market.event.teams:
        return False
    franchise = team_full_name(player.team)
    return bool(franchise) and franchise not in market.event.teams


def generate(
    players: Iterable[PlayerProjection],
    market_index: MarketLineIndex,
    settings: ScoringSettings,
    *,
    now: datetime,
) -> list[Candidate]:
    """Eligible candidates for every player/stat with a live market line.

    Lines are never synthesized: a missing line drops the candidate.
    """
    drops: Counter[str] = Counter()
    candidates: list[Candidate] = []
    for player in players:
        if player.minutes < settings.min_minutes:
            drops["minutes"] += 1
            continue
        if player.is_out:
            drops["injury"] += 1
            continue
        for stat, projection in player.projections.items():
            spec = STAT_TABLE[stat]
            if projection < settings.min_projection and not spec.small_magnitude:
                drops["projection_floor"] += 1
                continue
            market = market_index.line_for(player.name_norm, spec.market_key)
            if market is None:
                drops["no_line"] += 1
                continue
            if _wrong_game(player, market):
                drops["team_mismatch"] += 1
                continue
            start_time = market.start_time or player.start_time
            if start_time is not None and start_time <= now:
                drops["started"] += 1
                continue
            side, edge = side_and_edge(stat, projection, market.line)
            weighted_edge = edge * settings.weight_for(stat)
            if weighted_edge < settings.min_weighted_edge:
                drops["edge"] += 1
                continue
            candidates.append(
                Candidate(
                    player=player,
                    stat=stat,
                    side=side,
                    line=market.line,
                    projection=projection,
                    edge=edge,
                    weighted_edge=weighted_edge,
                    market=market,
                )
            )
    logger.info(
        "candidates generated: kept=%d dropped=%s",
        len(candidates),
        ",".join(f"{reason}={count}" for reason, count in sorted(drops.items())) or "none",
    )
    if drops["started"]:
        logger.warning("candidates tied to started games skipped: %d", drops["started"])
    return candidates
