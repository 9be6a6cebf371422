"""Alert de-duplication: at most one notification per unique pick per day."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from prop_prophet.gates import PublishedPick
from prop_prophet.scoring_config import TIER_LOCK
from prop_prophet.stats import StatCategory
from prop_prophet.time_utils import iso_z, local_date, utc_now

logger = logging.getLogger(__name__)


def alert_key(game_date: str, player: str, stat: StatCategory | str, side: str, line: float) -> str:
    stat_code = stat.value if isinstance(stat, StatCategory) else str(stat)
    return f"{game_date}_{player}_{stat_code}_{side}_{line:g}"


def is_sent(sent: dict[str, Any], key: str) -> bool:
    entry = sent.get(key)
    if isinstance(entry, dict):
        return bool(entry.get("sent"))
    return bool(entry)


def pending_alerts(
    picks: Iterable[PublishedPick],
    sent: dict[str, Any],
    *,
    tz: ZoneInfo,
    now: datetime | None = None,
) -> list[tuple[str, PublishedPick]]:
    """Lock-tier picks whose alert key has not been marked sent yet."""
    fallback_day = local_date(now or utc_now(), tz).isoformat()
    seen: set[str] = set()
    out: list[tuple[str, PublishedPick]] = []
    for pick in picks:
        if pick.tier != TIER_LOCK:
            continue
        day = local_date(pick.start_time, tz).isoformat() if pick.start_time else fallback_day
        key = alert_key(day, pick.player, pick.stat, pick.side, pick.line)
        if key in seen or is_sent(sent, key):
            continue
        seen.add(key)
        out.append((key, pick))
    return out


def mark_sent(
    sent: dict[str, Any], keys: Iterable[str], *, now: datetime | None = None
) -> dict[str, Any]:
    stamp = iso_z(now or utc_now())
    updated = dict(sent)
    count = 0
    for key in keys:
        updated[key] = {"sent": True, "sent_at_utc": stamp}
        count += 1
    if count:
        logger.info("alerts marked sent: %d", count)
    return updated
