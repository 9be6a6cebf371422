from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import pytest

from prop_prophet.gates import PublishedPick
from prop_prophet.ledger import (
    HistoryPick,
    aggregate,
    carry_over,
    committable,
    dump_ledger,
    grade_result,
    load_ledger,
    merge,
    pick_id,
    render_record_markdown,
    resolve,
)
from prop_prophet.recent_form import RecentFormIndex
from prop_prophet.stats import StatCategory

LA = ZoneInfo("America/Los_Angeles")
TIP = datetime(2026, 1, 16, 3, 30, tzinfo=UTC)


def _pick(
    *,
    tier: str = "diamond",
    line: float = 24.5,
    side: str = "OVER",
    player: str = "Jayson Tatum",
    stat: StatCategory = StatCategory.POINTS,
    start_time: datetime | None = TIP,
) -> PublishedPick:
    return PublishedPick(
        player=player,
        team="BOS",
        position="SF",
        opponent="MIA",
        stat=stat,
        side=side,
        line=line,
        projection=29.0,
        edge=29.0 - line,
        weighted_edge=29.0 - line,
        ease=0.2,
        ease_positional=0.25,
        ease_team=0.1,
        confidence=0.9,
        grade="A+",
        score=9.5,
        raw_score=9.5,
        tier=tier,  # type: ignore[arg-type]
        start_time=start_time,
    )


def _form(player: str, day: str, **stats) -> RecentFormIndex:
    return RecentFormIndex.from_feed({player: [{"date": day, **stats}]})


def test_pick_id_uses_local_game_date() -> None:
    report = merge([], [_pick()], tz=LA)

    [record] = report.ledger
    assert record.id == "Jayson Tatum-p-2026-01-15"
    assert record.date == "2026-01-15"
    assert record.result == "PENDING"
    assert pick_id("Jayson Tatum", StatCategory.POINTS, date(2026, 1, 15)) == record.id


def test_same_day_rerun_updates_pending_pick_in_place() -> None:
    morning = datetime(2026, 1, 15, 17, 0, tzinfo=UTC)
    afternoon = datetime(2026, 1, 15, 22, 0, tzinfo=UTC)

    first = merge([], [_pick(tier="diamond", line=24.5)], tz=LA, now=morning)
    second = merge(first.ledger, [_pick(tier="lock", line=25.0)], tz=LA, now=afternoon)

    assert (second.added, second.updated) == (0, 1)
    [record] = second.ledger
    assert record.id == "Jayson Tatum-p-2026-01-15"
    assert record.tier == "lock"
    assert record.line == 25.0
    assert record.result == "PENDING"
    assert record.created_at_utc == "2026-01-15T17:00:00Z"
    assert record.updated_at_utc == "2026-01-15T22:00:00Z"
    assert first.ledger[0].tier == "diamond"


def test_merge_is_idempotent() -> None:
    picks = [_pick(), _pick(stat=StatCategory.REBOUNDS, line=8.5)]
    now = datetime(2026, 1, 15, 17, 0, tzinfo=UTC)

    once = merge([], picks, tz=LA, now=now).ledger
    twice = merge(once, picks, tz=LA, now=now).ledger

    assert dump_ledger(once) == dump_ledger(twice)
    assert len({record.id for record in twice}) == 2


def test_merge_skips_picks_without_start_time() -> None:
    report = merge([], [_pick(start_time=None)], tz=LA)

    assert report.ledger == []
    assert report.skipped == 1


def test_resolve_only_touches_picks_before_today() -> None:
    ledger = merge([], [_pick()], tz=LA).ledger
    form = _form("Jayson Tatum", "2026-01-15", pts=31)

    same_day = resolve(ledger, form, today=date(2026, 1, 15))
    next_day = resolve(ledger, form, today=date(2026, 1, 16))

    assert same_day.resolved == 0
    assert same_day.ledger[0].result == "PENDING"
    assert next_day.resolved == 1
    assert next_day.ledger[0].result == "WIN"
    assert next_day.ledger[0].actual == 31.0
    assert ledger[0].result == "PENDING"


def test_resolve_leaves_pick_pending_without_box_score() -> None:
    ledger = merge([], [_pick()], tz=LA).ledger

    report = resolve(ledger, _form("Someone Else", "2026-01-15", pts=10), today=date(2026, 1, 20))

    assert report.resolved == 0
    assert report.still_pending == 1
    assert report.ledger[0].result == "PENDING"


def test_resolved_picks_are_immutable() -> None:
    ledger = merge([], [_pick(line=24.5)], tz=LA).ledger
    resolved = resolve(
        ledger, _form("Jayson Tatum", "2026-01-15", pts=20), today=date(2026, 1, 16)
    ).ledger
    assert resolved[0].result == "LOSS"

    remerged = merge(resolved, [_pick(tier="lock", line=18.5)], tz=LA)
    reresolved = resolve(
        remerged.ledger, _form("Jayson Tatum", "2026-01-15", pts=40), today=date(2026, 1, 17)
    )

    assert remerged.updated == 0
    assert dump_ledger(reresolved.ledger) == dump_ledger(resolved)


def test_resolve_combined_stat_and_push() -> None:
    ledger = merge(
        [], [_pick(stat=StatCategory.POINTS_REBOUNDS_ASSISTS, line=40.0, side="UNDER")], tz=LA
    ).ledger
    form = _form("Jayson Tatum", "2026-01-15", pts=25, reb=9, ast=6)

    [record] = resolve(ledger, form, today=date(2026, 1, 16)).ledger

    assert record.actual == 40.0
    assert record.result == "PUSH"


@pytest.mark.parametrize(
    ("actual", "line", "side", "expected"),
    [
        (25.0, 24.5, "OVER", "WIN"),
        (24.0, 24.5, "OVER", "LOSS"),
        (24.0, 24.5, "UNDER", "WIN"),
        (25.0, 25.0, "UNDER", "PUSH"),
    ],
)
def test_grade_result(actual: float, line: float, side: str, expected: str) -> None:
    assert grade_result(actual, line, side) == expected


def test_commit_window_bounds() -> None:
    tip = datetime(2026, 1, 16, 3, 0, tzinfo=UTC)
    pick = _pick(start_time=tip)

    def _at(hour: int, minute: int) -> list[PublishedPick]:
        return committable([pick], datetime(2026, 1, 16, hour, minute, tzinfo=UTC))

    assert _at(2, 19) == []
    assert _at(2, 20) == [pick]
    assert _at(3, 5) == [pick]
    assert _at(3, 6) == []
    assert committable([_pick(start_time=None)], tip) == []


def test_carry_over_keeps_started_snapshot_picks_until_grace_closes() -> None:
    tip = datetime(2026, 1, 16, 3, 0, tzinfo=UTC)
    started = _pick(start_time=tip)
    later = _pick(player="Jaylen Brown", start_time=datetime(2026, 1, 16, 5, 0, tzinfo=UTC))
    snapshot = [started, later, _pick(player="Bam Adebayo", start_time=None)]

    def _at(minute: int, picks: list[PublishedPick]) -> list[PublishedPick]:
        return carry_over(snapshot, picks, datetime(2026, 1, 16, 3, minute, tzinfo=UTC))

    assert _at(0, []) == [started]
    assert _at(5, []) == [started]
    assert _at(6, []) == []
    assert _at(3, [_pick(line=25.5, start_time=tip)]) == []
    assert committable(_at(3, []), datetime(2026, 1, 16, 3, 3, tzinfo=UTC)) == [started]


def _record(tier: str, result: str, suffix: str) -> HistoryPick:
    return HistoryPick(
        id=f"p-{suffix}",
        player=f"Player {suffix}",
        team="BOS",
        opp="MIA",
        stat=StatCategory.POINTS,
        line=20.5,
        side="OVER",
        tier=tier,  # type: ignore[arg-type]
        date="2026-01-10",
        result=result,  # type: ignore[arg-type]
    )


def test_aggregate_counts_wins_and_losses_only() -> None:
    ledger = [
        _record("lock", "WIN", "1"),
        _record("lock", "LOSS", "2"),
        _record("diamond", "WIN", "3"),
        _record("elite", "PUSH", "4"),
        _record("solid", "PENDING", "5"),
        _record("strong", "WIN", "6"),
    ]

    stats = aggregate(ledger)

    assert stats["season"] == {"w": 3, "l": 1, "total": 4, "pct": 75}
    assert stats["locks"] == {"w": 1, "l": 1, "total": 2, "pct": 50}
    assert stats["diamond"] == {"w": 1, "l": 0, "total": 1, "pct": 100}
    assert stats["elite"] == {"w": 0, "l": 0, "total": 0, "pct": 0}


def test_aggregate_empty_ledger() -> None:
    stats = aggregate([])

    assert all(bucket["total"] == 0 and bucket["pct"] == 0 for bucket in stats.values())
    assert "| season | 0 | 0 | 0 | 0% |" in render_record_markdown(stats)


def test_load_ledger_reads_legacy_tier_labels() -> None:
    payload = [
        {
            "id": "Jayson Tatum-p-2026-01-15",
            "player": "Jayson Tatum",
            "team": "BOS",
            "opp": "MIA",
            "stat": "p",
            "line": 24.5,
            "side": "over",
            "tier": "🔒 PROPHET LOCK",
            "date": "2026-01-15",
            "result": "win",
            "legacy_field": "ignored",
        }
    ]

    [record] = load_ledger(payload)

    assert record.tier == "lock"
    assert record.result == "WIN"
    assert record.side == "OVER"
    assert record.to_dict()["stat"] == "p"


def test_load_ledger_rejects_bad_payloads() -> None:
    assert load_ledger(None) == []
    with pytest.raises(ValueError, match="JSON list"):
        load_ledger({"picks": []})
    with pytest.raises(ValueError, match="unknown pick result"):
        load_ledger([{"player": "A", "stat": "p", "result": "VOID"}])


@pytest.mark.parametrize("line", [None, "", "n/a"])
def test_load_ledger_rejects_rows_without_a_line(line: object) -> None:
    row = {"player": "Jayson Tatum", "stat": "p", "side": "OVER", "date": "2026-01-15"}

    with pytest.raises(ValueError, match="pick line missing: Jayson Tatum"):
        load_ledger([row | {"line": line}])
    with pytest.raises(ValueError, match="pick line missing"):
        load_ledger([row])
    assert load_ledger([row | {"line": "24.5"}])[0].line == 24.5
