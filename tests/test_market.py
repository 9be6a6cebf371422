from datetime import UTC, datetime

import pytest

from prop_prophet.market import MarketLineIndex, round_half

NOW = datetime(2026, 1, 16, 1, 0, tzinfo=UTC)


def _outcomes(player: str, point: float) -> list[dict]:
    return [
        {"name": "Over", "description": player, "price": -115, "point": point},
        {"name": "Under", "description": player, "price": -105, "point": point},
    ]


def _event(
    *,
    event_id: str = "evt-1",
    commence: str = "2026-01-16T03:00:00Z",
    books: list[tuple[str, float]] | None = None,
    player: str = "Jayson Tatum",
    market: str = "player_points",
) -> dict:
    bookmakers = []
    for book, point in books or [("draftkings", 24.5)]:
        bookmakers.append(
            {
                "key": book,
                "markets": [
                    {"key": market, "outcomes": _outcomes(player, point)},
                    {
                        "key": "spreads",
                        "outcomes": [
                            {"name": "Boston Celtics", "point": -11.5},
                            {"name": "Miami Heat", "point": 11.5},
                        ],
                    },
                    {
                        "key": "totals",
                        "outcomes": [
                            {"name": "Over", "point": 224.0},
                            {"name": "Under", "point": 224.0},
                        ],
                    },
                ],
            }
        )
    return {
        "id": event_id,
        "commence_time": commence,
        "home_team": "Boston Celtics",
        "away_team": "Miami Heat",
        "bookmakers": bookmakers,
    }


@pytest.mark.parametrize(
    ("value", "expected"),
    [(24.5, 24.5), (24.75, 25.0), (24.7, 24.5), (24.2, 24.0), (25.0, 25.0)],
)
def test_round_half(value: float, expected: float) -> None:
    assert round_half(value) == expected


def test_line_is_average_of_book_quotes_rounded_to_half() -> None:
    payload = [_event(books=[("draftkings", 24.5), ("fanduel", 25.5)])]

    index = MarketLineIndex.from_events(payload, now=NOW)
    line = index.line_for("jayson tatum", "player_points")

    assert line is not None
    assert line.line == 25.0
    assert {quote.book for quote in line.quotes} == {"draftkings", "fanduel"}
    assert len(index.quotes_for("jayson tatum", "player_points")) == 4


def test_event_context_carries_spread_total_and_start() -> None:
    index = MarketLineIndex.from_events(_event(), now=NOW)
    line = index.line_for("jayson tatum", "player_points")

    assert line is not None
    assert line.spread == 11.5
    assert line.total == 224.0
    assert line.start_time == datetime(2026, 1, 16, 3, 0, tzinfo=UTC)
    assert line.event is not None
    assert line.event.teams == frozenset({"boston celtics", "miami heat"})
    assert [event.event_id for event in index.events] == ["evt-1"]


def test_started_events_are_not_indexed() -> None:
    payload = [
        _event(event_id="early", commence="2026-01-16T00:30:00Z", player="Bam Adebayo"),
        _event(event_id="late"),
    ]

    index = MarketLineIndex.from_events(payload, now=NOW)

    assert index.skipped_started == 1
    assert index.line_for("bam adebayo", "player_points") is None
    assert index.line_for("jayson tatum", "player_points") is not None


def test_names_are_matched_without_accents_and_unknown_markets_ignored() -> None:
    payload = [
        _event(player="Nikola Jokić", market="player_rebounds"),
        _event(event_id="evt-2", player="Nikola Jokić", market="player_double_double"),
    ]

    index = MarketLineIndex.from_events(payload, now=NOW)

    assert index.line_for("nikola jokic", "player_rebounds") is not None
    assert index.line_for("nikola jokic", "player_double_double") is None


def test_malformed_payload_raises_value_error() -> None:
    with pytest.raises(ValueError, match="bookmakers"):
        MarketLineIndex.from_events({"id": "x", "bookmakers": "nope"}, now=NOW)
    with pytest.raises(ValueError, match="odds_payload"):
        MarketLineIndex.from_events("nope", now=NOW)


def test_empty_payload_builds_empty_index() -> None:
    index = MarketLineIndex.from_events([], now=NOW)

    assert not index
    assert len(index) == 0
