from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from prop_prophet.ease import EaseIndex
from prop_prophet.pipeline import run_pipeline
from prop_prophet.recent_form import RecentFormIndex
from prop_prophet.scoring_config import ScoringSettings

LA = ZoneInfo("America/Los_Angeles")
NOW = datetime(2026, 1, 16, 1, 0, tzinfo=UTC)


def _row(name: str, team: str, opp: str, **stats) -> dict:
    row = {"Name": name, "Team": team, "Pos": "SF", "Opp": opp, "Min": "35"}
    row.update(stats)
    return row


def _market(key: str, player: str, point: float) -> dict:
    return {
        "key": key,
        "outcomes": [
            {"name": "Over", "description": player, "point": point},
            {"name": "Under", "description": player, "point": point},
        ],
    }


def _odds() -> list[dict]:
    return [
        {
            "id": "evt-1",
            "commence_time": "2026-01-16T03:00:00Z",
            "home_team": "Boston Celtics",
            "away_team": "Miami Heat",
            "bookmakers": [
                {
                    "key": "draftkings",
                    "markets": [
                        _market("player_points", "Jayson Tatum", 24.5),
                        _market("player_points", "Jaylen Brown", 22.5),
                        _market("player_rebounds", "Bam Adebayo", 10.5),
                    ],
                }
            ],
        }
    ]


def _rows() -> list[dict]:
    return [
        _row("Jayson Tatum", "BOS", "MIA", PTS="28.0"),
        _row("Jaylen Brown", "BOS", "MIA", PTS="29.0"),
        _row("Bam Adebayo", "MIA", "@ BOS", REB="7.0"),
    ]


def _ease() -> EaseIndex:
    return EaseIndex.from_table(
        {
            "All": {window: {"MIA": {"pV": 0.45}} for window in ("1w", "2w", "season")},
            "SF": {window: {"MIA": {"pV": 0.45}} for window in ("1w", "2w", "season")},
        }
    )


def _form(tatum_points: list[float]) -> RecentFormIndex:
    games = [
        {"date": f"2026-01-{10 - offset:02d}", "pts": value}
        for offset, value in enumerate(tatum_points)
    ]
    return RecentFormIndex.from_feed({"Jayson Tatum": games})


def _run(**overrides):
    values = {
        "ease_index": _ease(),
        "form_index": _form([30, 28, 26, 25, 20]),
        "settings": ScoringSettings(),
        "now": NOW,
        "tz": LA,
    }
    values.update(overrides)
    return run_pipeline(_rows(), _odds(), **values)


def test_pipeline_scores_sorts_and_explains() -> None:
    picks = _run()

    assert [pick.player for pick in picks] == ["Jaylen Brown", "Bam Adebayo", "Jayson Tatum"]
    tatum = picks[-1]
    assert tatum.side == "OVER"
    assert tatum.ease == pytest.approx(0.45)
    assert tatum.l5_hits == 4
    assert tatum.score == pytest.approx(8.66)
    assert tatum.tier == "elite"
    assert tatum.rationale
    assert tatum.interpretation.startswith("Matchup: [GREAT]")
    assert [pick.score for pick in picks] == sorted((pick.score for pick in picks), reverse=True)


def test_zero_for_five_player_is_absent_from_output() -> None:
    picks = _run(form_index=_form([20, 21, 22, 23, 24]))

    assert "Jayson Tatum" not in {pick.player for pick in picks}
    assert "Jaylen Brown" in {pick.player for pick in picks}


def test_side_matches_projection_direction() -> None:
    for pick in _run():
        assert (pick.side == "OVER") == (pick.projection > pick.line)


def test_rationale_can_be_skipped() -> None:
    picks = _run(with_rationale=False)

    assert picks
    assert all(pick.rationale == () and pick.interpretation == "" for pick in picks)


def test_missing_inputs_yield_no_picks() -> None:
    settings = ScoringSettings()

    assert run_pipeline([], _odds(), ease_index=None, form_index=None,
                        settings=settings, now=NOW, tz=LA) == []
    assert run_pipeline(_rows(), [], ease_index=None, form_index=None,
                        settings=settings, now=NOW, tz=LA) == []
    assert run_pipeline(_rows(), {"id": "x", "bookmakers": "bad"}, ease_index=None,
                        form_index=None, settings=settings, now=NOW, tz=LA) == []


def test_missing_ease_and_form_are_neutral() -> None:
    picks = _run(ease_index=None, form_index=None)

    tatum = next(pick for pick in picks if pick.player == "Jayson Tatum")
    assert tatum.ease == 0.0
    assert tatum.l5_hits is None
    assert tatum.score == pytest.approx(8.66)


def test_started_games_produce_no_picks() -> None:
    assert _run(now=datetime(2026, 1, 16, 3, 1, tzinfo=UTC)) == []
