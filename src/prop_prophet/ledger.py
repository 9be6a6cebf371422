"""History ledger: idempotent merge, resolution, commit window, and record stats."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, fields, replace
from datetime import date, datetime, timedelta
from typing import Any, Literal
from zoneinfo import ZoneInfo

import polars as pl

from prop_prophet.gates import PublishedPick
from prop_prophet.normalize import safe_float
from prop_prophet.recent_form import RecentFormIndex, is_hit
from prop_prophet.scoring_config import (
    TIER_DIAMOND,
    TIER_ELITE,
    TIER_LOCK,
    TIER_SOLID,
    Tier,
    parse_tier,
)
from prop_prophet.stats import StatCategory, parse_stat
from prop_prophet.time_utils import iso_z, local_date, utc_now

logger = logging.getLogger(__name__)

Result = Literal["PENDING", "WIN", "LOSS", "PUSH"]
PENDING: Result = "PENDING"
WIN: Result = "WIN"
LOSS: Result = "LOSS"
PUSH: Result = "PUSH"
RESULTS: tuple[Result, ...] = (PENDING, WIN, LOSS, PUSH)

AGGREGATE_BUCKETS: tuple[tuple[str, Tier | None], ...] = (
    ("season", None),
    ("locks", TIER_LOCK),
    ("diamond", TIER_DIAMOND),
    ("elite", TIER_ELITE),
)


def pick_id(player: str, stat: StatCategory | str, game_date: date | str) -> str:
    stat_code = stat.value if isinstance(stat, StatCategory) else str(stat)
    day = game_date.isoformat() if isinstance(game_date, date) else str(game_date)
    return f"{player}-{stat_code}-{day}"


@dataclass
class HistoryPick:
    """One ledger record; identity is ``{player}-{stat}-{local game date}``.

    Mutable only while ``result`` is PENDING.
    """

    id: str
    player: str
    team: str
    opp: str
    stat: StatCategory
    line: float
    side: str
    tier: Tier
    date: str
    result: Result = PENDING
    actual: float | None = None
    edge: float | None = None
    projection: float | None = None
    ease: float | None = None
    score: float | None = None
    confidence: float | None = None
    l5_hits: int | None = None
    start_time: str | None = None
    created_at_utc: str = ""
    updated_at_utc: str = ""
    resolved_at_utc: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.result == PENDING

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["stat"] = self.stat.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> HistoryPick:
        known = {item.name for item in fields(cls)}
        values = {key: value for key, value in payload.items() if key in known}
        values["stat"] = parse_stat(str(payload.get("stat", "")))
        values["tier"] = parse_tier(str(payload.get("tier", "") or TIER_SOLID))
        result = str(payload.get("result", PENDING) or PENDING).upper()
        if result not in RESULTS:
            raise ValueError(f"unknown pick result: {result}")
        values["result"] = result
        line = safe_float(payload.get("line"))
        if line is None:
            raise ValueError(f"pick line missing: {payload.get('id') or payload.get('player')}")
        values["line"] = line
        values["side"] = str(payload.get("side", "")).upper()
        values["date"] = str(payload.get("date", ""))
        if "id" not in values:
            values["id"] = pick_id(str(payload.get("player", "")), values["stat"], values["date"])
        return cls(**values)


@dataclass(frozen=True)
class MergeReport:
    ledger: list[HistoryPick]
    added: int
    updated: int
    skipped: int


@dataclass(frozen=True)
class ResolveReport:
    ledger: list[HistoryPick]
    resolved: int
    still_pending: int


def _copy(ledger: Iterable[HistoryPick]) -> list[HistoryPick]:
    return [replace(record) for record in ledger]


def merge(
    ledger: Iterable[HistoryPick],
    picks: Iterable[PublishedPick],
    *,
    tz: ZoneInfo,
    now: datetime | None = None,
) -> MergeReport:
    """Merge published picks into a copy of the ledger.

    New identities are appended as PENDING; existing PENDING records take the
    latest tier/line/side; resolved records are never touched. Picks without a
    start time have no game date and are skipped.
    """
    stamp = iso_z(now or utc_now())
    merged = _copy(ledger)
    by_id = {record.id: record for record in merged}
    added = updated = skipped = 0
    for pick in picks:
        if pick.start_time is None:
            skipped += 1
            logger.warning(
                "pick without start time not merged: %s %s", pick.player, pick.stat.value
            )
            continue
        game_date = local_date(pick.start_time, tz).isoformat()
        record_id = pick_id(pick.player, pick.stat, game_date)
        existing = by_id.get(record_id)
        if existing is None:
            record = HistoryPick(
                id=record_id,
                player=pick.player,
                team=pick.team,
                opp=pick.opponent,
                stat=pick.stat,
                line=pick.line,
                side=pick.side,
                tier=pick.tier,
                date=game_date,
                edge=round(pick.edge, 2),
                projection=round(pick.projection, 2),
                ease=round(pick.ease, 3),
                score=pick.score,
                confidence=round(pick.confidence, 4),
                l5_hits=pick.l5_hits,
                start_time=iso_z(pick.start_time),
                created_at_utc=stamp,
                updated_at_utc=stamp,
            )
            merged.append(record)
            by_id[record_id] = record
            added += 1
            continue
        if not existing.is_pending:
            continue
        existing.team = pick.team
        existing.opp = pick.opponent
        existing.tier = pick.tier
        existing.line = pick.line
        existing.side = pick.side
        existing.edge = round(pick.edge, 2)
        existing.projection = round(pick.projection, 2)
        existing.ease = round(pick.ease, 3)
        existing.score = pick.score
        existing.confidence = round(pick.confidence, 4)
        existing.l5_hits = pick.l5_hits
        existing.start_time = iso_z(pick.start_time)
        existing.updated_at_utc = stamp
        updated += 1
    logger.info("ledger merge: added=%d updated=%d skipped=%d", added, updated, skipped)
    return MergeReport(ledger=merged, added=added, updated=updated, skipped=skipped)


def grade_result(actual: float, line: float, side: str) -> Result:
    if actual == line:
        return PUSH
    return WIN if is_hit(actual, line, "OVER" if side == "OVER" else "UNDER") else LOSS


def resolve(
    ledger: Iterable[HistoryPick],
    form_index: RecentFormIndex,
    *,
    today: date,
    now: datetime | None = None,
) -> ResolveReport:
    """Resolve PENDING picks dated strictly before ``today`` against box scores."""
    stamp = iso_z(now or utc_now())
    resolved_ledger = _copy(ledger)
    resolved = 0
    still_pending = 0
    for record in resolved_ledger:
        if not record.is_pending:
            continue
        try:
            game_date = date.fromisoformat(record.date)
        except ValueError:
            still_pending += 1
            continue
        if game_date >= today:
            still_pending += 1
            continue
        box = form_index.line_on(record.player, game_date)
        actual = box.stat_value(record.stat) if box is not None else None
        if actual is None:
            still_pending += 1
            continue
        record.actual = actual
        record.result = grade_result(actual, record.line, record.side)
        record.resolved_at_utc = stamp
        record.updated_at_utc = stamp
        resolved += 1
    logger.info("ledger resolve: resolved=%d pending=%d", resolved, still_pending)
    return ResolveReport(ledger=resolved_ledger, resolved=resolved, still_pending=still_pending)


def commit_window(
    start_time: datetime, *, pre_minutes: int, post_minutes: int
) -> tuple[datetime, datetime]:
    return (
        start_time - timedelta(minutes=pre_minutes),
        start_time + timedelta(minutes=post_minutes),
    )


def in_commit_window(
    start_time: datetime | None, now: datetime, *, pre_minutes: int, post_minutes: int
) -> bool:
    if start_time is None:
        return False
    opens, closes = commit_window(start_time, pre_minutes=pre_minutes, post_minutes=post_minutes)
    return opens <= now <= closes


def committable(
    picks: Iterable[PublishedPick],
    now: datetime,
    *,
    pre_minutes: int = 40,
    post_minutes: int = 5,
) -> list[PublishedPick]:
    """Picks whose own game tips within the snapshot-commit window around ``now``."""
    return [
        pick
        for pick in picks
        if in_commit_window(
            pick.start_time, now, pre_minutes=pre_minutes, post_minutes=post_minutes
        )
    ]


def carry_over(
    snapshot: Iterable[PublishedPick],
    picks: Iterable[PublishedPick],
    now: datetime,
    *,
    post_minutes: int = 5,
) -> list[PublishedPick]:
    """Snapshot picks whose game has tipped but whose commit grace has not closed.

    Started games never reach a fresh run, so a commit inside the grace period
    freezes the row from the last run before tip. Picks the current run still
    publishes win over their snapshot copy.
    """
    current = {(pick.player, pick.stat) for pick in picks}
    carried = [
        pick
        for pick in snapshot
        if pick.start_time is not None
        and pick.start_time <= now <= pick.start_time + timedelta(minutes=post_minutes)
        and (pick.player, pick.stat) not in current
    ]
    if carried:
        logger.info("carried %d started picks from the last commit snapshot", len(carried))
    return carried


def _bucket(frame: pl.DataFrame) -> dict[str, int]:
    wins = frame.filter(pl.col("result") == WIN).height
    losses = frame.filter(pl.col("result") == LOSS).height
    total = wins + losses
    return {
        "w": wins,
        "l": losses,
        "total": total,
        "pct": round(wins / total * 100) if total else 0,
    }


def aggregate(ledger: Iterable[HistoryPick]) -> dict[str, dict[str, int]]:
    """Win/loss record overall and per top tier; PENDING and PUSH are excluded."""
    rows = [
        {"tier": record.tier, "result": record.result}
        for record in ledger
        if record.result in (WIN, LOSS)
    ]
    frame = pl.DataFrame(rows, schema={"tier": pl.Utf8, "result": pl.Utf8})
    stats: dict[str, dict[str, int]] = {}
    for name, tier in AGGREGATE_BUCKETS:
        subset = frame if tier is None else frame.filter(pl.col("tier") == tier)
        stats[name] = _bucket(subset)
    return stats


def render_record_markdown(stats: dict[str, dict[str, int]], *, pending: int = 0) -> str:
    lines = [
        "# Pick Record",
        "",
        "| bucket | W | L | total | win % |",
        "| --- | ---: | ---: | ---: | ---: |",
    ]
    for name, _ in AGGREGATE_BUCKETS:
        row = stats.get(name, {"w": 0, "l": 0, "total": 0, "pct": 0})
        lines.append(f"| {name} | {row['w']} | {row['l']} | {row['total']} | {row['pct']}% |")
    lines.extend(["", f"- pending picks: `{pending}`", ""])
    return "\n".join(lines)


def load_ledger(payload: Any) -> list[HistoryPick]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError("history ledger must be a JSON list")
    return [HistoryPick.from_dict(row) for row in payload if isinstance(row, dict)]


def dump_ledger(ledger: Iterable[HistoryPick]) -> list[dict[str, Any]]:
    return [record.to_dict() for record in ledger]

