"""Tests for grid configuration loading and validation."""

import json

import pytest

from grid_config import ConfigError, GridConfig, load_config
from lens_models import LensParameters


def test_defaults_match_reference_grid() -> None:
    config = GridConfig().validate()
    assert (config.width, config.height) == (20, 20)
    assert config.samples_per_side == 10
    assert config.threshold == 100.0
    assert config.lens == LensParameters()


def test_from_dict_reads_nested_lens() -> None:
    config = GridConfig.from_dict({"width": 4, "thresh": 0.5, "lens": {"q": 0.5, "b": 2.0}})
    assert config.width == 4
    assert config.threshold == 50.0
    assert config.lens.q == 0.5
    assert config.lens.b == 2.0
    assert config.lens.x == LensParameters().x


def test_from_dict_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigError, match="colour, lens.z"):
        GridConfig.from_dict({"colour": "red", "lens": {"z": 1.0}})


@pytest.mark.parametrize(
    "data",
    [
        {"width": 0},
        {"samples_per_side": 0},
        {"thresh": -1.0},
        {"max_depth": -2},
        {"lens": {"q": 1.5}},
    ],
)
def test_from_dict_rejects_invalid_values(data) -> None:
    with pytest.raises(ConfigError):
        GridConfig.from_dict(data)


def test_with_overrides_skips_none() -> None:
    config = GridConfig().with_overrides(width=5, height=None)
    assert config.width == 5
    assert config.height == 20


def test_load_config_from_file(tmp_path) -> None:
    path = tmp_path / "grid.json"
    path.write_text(json.dumps({"height": 7, "max_depth": None}))

    config = load_config(str(path))
    assert config.height == 7
    assert config.max_depth is None


def test_load_config_reports_bad_files(tmp_path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    listed = tmp_path / "list.json"
    listed.write_text("[1, 2]")

    with pytest.raises(ConfigError):
        load_config(str(broken))
    with pytest.raises(ConfigError):
        load_config(str(listed))
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.json"))
