from __future__ import annotations

from pathlib import Path

import pytest

from prop_prophet.runtime_config import DEFAULT_CONFIG_PATH, load_runtime_config
from prop_prophet.scoring_config import ScoringSettings
from prop_prophet.stats import StatCategory


def test_load_runtime_config_resolves_relative_paths(tmp_path: Path) -> None:
    config_path = tmp_path / "runtime.toml"
    config_path.write_text(
        "\n".join(
            [
                "[paths]",
                'data_dir = "prophet_data"',
                "",
                "[ledger]",
                'timezone = "America/New_York"',
                "commit_pre_tip_minutes = 30",
                "",
                "[feeds]",
                "retries = 5",
                'ease_url = "https://feeds.example.test/ease.json"',
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    config = load_runtime_config(config_path)

    assert config.data_dir == (tmp_path / "prophet_data").resolve()
    assert config.timezone == "America/New_York"
    assert config.commit_pre_tip_minutes == 30
    assert config.commit_post_tip_minutes == 5
    assert config.feeds_timeout_s == 12.0
    assert config.feeds_retries == 5
    assert config.ease_url == "https://feeds.example.test/ease.json"
    assert config.scoring == ScoringSettings()


def test_scoring_table_overrides_calibration(tmp_path: Path) -> None:
    config_path = tmp_path / "runtime.toml"
    config_path.write_text(
        "\n".join(
            [
                "[scoring]",
                "confidence_ceiling = 2.0",
                "l5_min_games = 4",
                "ease_bands = [[0.5, 0.1], [0.25, 0.04]]",
                "tier_breakpoints = { lock = 11, diamond = 9.5, elite = 8, strong = 7 }",
                "",
                "[scoring.stat_weights]",
                "player_rebounds = 1.25",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    scoring = load_runtime_config(config_path).scoring

    assert scoring.confidence_ceiling == 2.0
    assert scoring.l5_min_games == 4
    assert isinstance(scoring.l5_min_games, int)
    assert scoring.ease_bands == ((0.25, 0.04), (0.5, 0.1))
    assert scoring.lock_threshold == 11.0
    assert scoring.weight_for(StatCategory.REBOUNDS) == 1.25
    assert scoring.weight_for(StatCategory.POINTS) == 1.0


def test_unknown_scoring_key_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "runtime.toml"
    config_path.write_text("[scoring]\nmystery_factor = 1.0\n", encoding="utf-8")

    with pytest.raises(RuntimeError, match="unknown scoring setting"):
        load_runtime_config(config_path)


def test_missing_or_invalid_config_raises(tmp_path: Path) -> None:
    broken = tmp_path / "runtime.toml"
    broken.write_text("[paths\n", encoding="utf-8")

    with pytest.raises(RuntimeError, match="not found"):
        load_runtime_config(tmp_path / "absent.toml")
    with pytest.raises(RuntimeError, match="invalid runtime config TOML"):
        load_runtime_config(broken)


def test_default_runtime_config_matches_built_in_calibration() -> None:
    config = load_runtime_config()

    assert config.config_path == DEFAULT_CONFIG_PATH
    assert config.data_dir == (DEFAULT_CONFIG_PATH.parent.parent / "data").resolve()
    assert config.timezone == "America/Los_Angeles"
    assert config.scoring == ScoringSettings()
