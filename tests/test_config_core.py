from __future__ import annotations

import json
from pathlib import Path

import pytest

from tapzone_lab.config import (
    CONFIG_PATH_ENV,
    EngineConfig,
    config_from_env,
    config_from_mapping,
    default_config_path,
    load_config,
)


def test_defaults_are_valid() -> None:
    cfg = EngineConfig()
    cfg.validate()
    assert (cfg.base_radius, cfg.min_radius, cfg.max_radius) == (30.0, 20.0, 150.0)
    assert cfg.region_count == 5
    assert (cfg.coarse_radius, cfg.precise_radius) == (100.0, 20.0)
    assert (cfg.zoom_scale, cfg.zoom_radius) == (2.0, 150.0)
    assert cfg.max_failed_attempts == 3
    assert (cfg.zoom_step, cfg.min_zoom_level, cfg.max_zoom_level) == (0.5, 1.0, 5.0)
    assert cfg.retry_on_precise_miss is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"base_radius": 10.0},
        {"min_radius": 0.0},
        {"region_count": 0},
        {"zoom_scale": 0.0},
        {"max_failed_attempts": 0},
        {"min_zoom_level": 0.5},
        {"max_zoom_level": 0.9},
        {"chart_padding": -1.0},
    ],
)
def test_validate_rejects_inconsistent_values(overrides: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        config_from_mapping(overrides)


def test_mapping_coerces_types_and_skips_bad_values() -> None:
    cfg = config_from_mapping(
        {
            "coarse_radius": 80,
            "region_count": "4",
            "retry_on_precise_miss": True,
            "zoom_scale": "fast",
            "mystery": 1,
        }
    )
    assert cfg.coarse_radius == 80.0
    assert cfg.region_count == 4
    assert cfg.retry_on_precise_miss is True
    assert cfg.zoom_scale == 2.0


def test_bool_field_requires_a_bool() -> None:
    cfg = config_from_mapping({"retry_on_precise_miss": 1})
    assert cfg.retry_on_precise_miss is False


def test_load_config_from_json(tmp_path: Path) -> None:
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"max_failed_attempts": 5, "precise_radius": 25}), encoding="utf-8")
    cfg = load_config(path)
    assert cfg.max_failed_attempts == 5
    assert cfg.precise_radius == 25.0


def test_missing_or_corrupt_file_gives_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path / "absent.json") == EngineConfig()
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert load_config(broken) == EngineConfig()


def test_env_var_selects_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "env.json"
    path.write_text(json.dumps({"zoom_radius": 120}), encoding="utf-8")
    monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
    assert default_config_path() == path
    assert config_from_env().zoom_radius == 120.0
