import json
from pathlib import Path

import pytest

from prop_prophet.ease import EaseIndex, composite, parse_ease_text
from prop_prophet.errors import InputError
from prop_prophet.scoring_config import ScoringSettings
from prop_prophet.stats import StatCategory

RAW_WEEK = "\n".join(
    [
        "Defense vs Position",
        "Past 1 Week",
        "All",
        "vs Team Value pV 3V rV aV sV bV fg%V toV",
        "vs MEM 1.15 1.79 1.91 1.20 1.33 1.18 0.78 0.39 1.59",
        "PG",
        "vs MEM 0.50 0.60 0.10 0.20 0.30 0.40 0.50 0.60 0.70",
    ]
)

RAW_SEASON = "\n".join(
    [
        "Full Season",
        "All",
        "vs MEM 0.10 0.20 0.30 0.40 0.50 0.60 0.70 0.80 0.90",
    ]
)


def _index() -> EaseIndex:
    return EaseIndex.from_table(parse_ease_text([RAW_WEEK, RAW_SEASON]))


def test_parse_ease_text_builds_position_window_team_table() -> None:
    table = parse_ease_text([RAW_WEEK, RAW_SEASON])

    assert sorted(table) == ["All", "PG"]
    assert table["All"]["1w"]["MEM"]["pV"] == 1.79
    assert table["All"]["1w"]["MEM"]["3V"] == 1.91
    assert table["All"]["1w"]["MEM"]["toV"] == 1.59
    assert table["All"]["season"]["MEM"]["val"] == 0.10
    assert "2w" not in table["All"]


def test_parse_ease_text_ignores_rows_without_context() -> None:
    table = parse_ease_text(["vs MEM 1.0 1.0", "PG", "vs MEM 1.0 1.0"])

    assert table == {}


def test_composite_blends_positional_and_team_values() -> None:
    ease = composite(StatCategory.POINTS, "PG", "@ MEM", _index(), ScoringSettings())

    assert ease.team == pytest.approx(1.79 * 0.5 + 0.20 * 0.2)
    assert ease.positional == pytest.approx(0.60 * 0.5)
    assert ease.blended == pytest.approx(ease.positional * 0.7 + ease.team * 0.3)


def test_composite_averages_combined_stat_columns() -> None:
    ease = composite(StatCategory.POINTS_REBOUNDS, "PG", "MEM", _index(), ScoringSettings())

    assert ease.positional == pytest.approx((0.60 * 0.5 + 0.20 * 0.5) / 2)


def test_composite_falls_back_to_team_value_for_generic_positions() -> None:
    ease = composite(StatCategory.POINTS, "G", "MEM", _index(), ScoringSettings())

    assert ease.positional == 0.0
    assert ease.blended == pytest.approx(ease.team)


def test_composite_is_neutral_without_data() -> None:
    settings = ScoringSettings()

    empty = composite(StatCategory.POINTS, "PG", "MEM", EaseIndex(), settings)
    unknown_team = composite(StatCategory.POINTS, "PG", "BOS", _index(), settings)
    no_opponent = composite(StatCategory.POINTS, "PG", "", _index(), settings)

    assert empty.blended == 0.0
    assert unknown_team.blended == 0.0
    assert no_opponent.blended == 0.0


def test_ease_index_is_read_only() -> None:
    index = _index()

    assert index.value("All", "1w", "MEM", "pV") == 1.79
    assert index.value("SG", "1w", "MEM", "pV") == 0.0
    with pytest.raises(TypeError):
        index._table["All"] = {}  # type: ignore[index]


def test_load_round_trips_cached_table(tmp_path: Path) -> None:
    path = tmp_path / "ease_rankings.json"
    path.write_text(json.dumps(_index().to_table()), encoding="utf-8")

    loaded = EaseIndex.load(path)

    assert loaded.positions == ["All", "PG"]
    assert loaded.value("PG", "1w", "MEM", "aV") == 0.30


def test_load_rejects_invalid_table(tmp_path: Path) -> None:
    path = tmp_path / "ease_rankings.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(InputError, match="must be a JSON object"):
        EaseIndex.load(path)
    with pytest.raises(FileNotFoundError):
        EaseIndex.load(tmp_path / "missing.json")
