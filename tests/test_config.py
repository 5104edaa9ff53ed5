"""Tests for world configuration."""

from pathlib import Path

import pytest

from worldgen.config import WorldConfig, build_config, load_config
from worldgen.exceptions import ConfigurationError, WorldGenError


class TestWorldConfig:
    """Tests for defaults and constraints."""

    def test_defaults(self) -> None:
        """Defaults match the documented values."""
        config = WorldConfig()
        assert (config.width, config.height) == (200, 200)
        assert config.sea_level == 0.45
        assert config.continent_count == 3
        assert config.island_density == 0.4
        assert config.mountain_ranges == 3
        assert config.river_count == 8
        assert config.lake_count == 5
        assert config.forest_density == 0.4
        assert config.cave_systems == 4
        assert config.civilization_count == 3
        assert config.settlement_density == 0.6
        assert config.road_density == 0.4
        assert config.mineral_richness == 0.3
        assert config.soil_fertility == 0.5
        assert config.water_availability == 0.4

    def test_frozen(self) -> None:
        """Configs cannot be mutated."""
        config = WorldConfig()
        with pytest.raises(Exception):
            config.width = 10  # type: ignore[misc]

    def test_tuning_nested(self) -> None:
        """Tuning groups are reachable from the config."""
        config = WorldConfig()
        assert config.tuning.hydrology.min_river_tiles >= 2
        assert config.tuning.landmass.min_continent_tiles >= 1


class TestBuildConfig:
    """Tests for build_config validation."""

    def test_overrides_take_precedence(self) -> None:
        """Keyword overrides win over mapping values."""
        config = build_config({"width": 50, "seed": 1}, seed=2)
        assert config.width == 50
        assert config.seed == 2

    @pytest.mark.parametrize(
        "field, value",
        [
            ("width", 0),
            ("height", -3),
            ("sea_level", 1.5),
            ("island_density", -0.1),
            ("road_density", 2.0),
            ("river_count", -1),
            ("civilization_count", -2),
        ],
    )
    def test_rejects_out_of_range(self, field: str, value: float) -> None:
        """Invalid values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            build_config(**{field: value})

    @pytest.mark.parametrize(
        "field", ["elevation_scale", "temperature_scale", "rainfall_scale", "sea_level"]
    )
    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_rejects_non_finite(self, field: str, value: float) -> None:
        """Infinite and NaN floats are rejected before generation."""
        with pytest.raises(ConfigurationError):
            build_config(**{field: value})

    def test_rejects_non_finite_tuning(self) -> None:
        """Nested tuning floats must be finite too."""
        with pytest.raises(ConfigurationError):
            build_config(tuning={"settlements": {"slope_cost": float("inf")}})

    def test_rejects_unknown_field(self) -> None:
        """Unknown fields are rejected."""
        with pytest.raises(ConfigurationError):
            build_config(rivers=3)

    def test_error_hierarchy(self) -> None:
        """ConfigurationError is both a WorldGenError and a ValueError."""
        with pytest.raises(WorldGenError):
            build_config(width=0)
        with pytest.raises(ValueError):
            build_config(width=0)


class TestLoadConfig:
    """Tests for TOML loading."""

    def test_top_level_fields(self, tmp_path: Path) -> None:
        """Fields at the top level are read."""
        path = tmp_path / "world.toml"
        path.write_text("width = 32\nheight = 16\nseed = 99\n")
        config = load_config(path)
        assert (config.width, config.height, config.seed) == (32, 16, 99)

    def test_world_table(self, tmp_path: Path) -> None:
        """Fields under [world] are read, with nested tuning tables."""
        path = tmp_path / "world.toml"
        path.write_text(
            "[world]\nriver_count = 2\n\n[world.tuning.hydrology]\nmin_river_tiles = 6\n"
        )
        config = load_config(path)
        assert config.river_count == 2
        assert config.tuning.hydrology.min_river_tiles == 6

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_malformed_toml(self, tmp_path: Path) -> None:
        """Malformed TOML raises ConfigurationError."""
        path = tmp_path / "bad.toml"
        path.write_text("width = = 3\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_value(self, tmp_path: Path) -> None:
        """Out-of-range values in the file raise ConfigurationError."""
        path = tmp_path / "world.toml"
        path.write_text("sea_level = 3.0\n")
        with pytest.raises(ConfigurationError):
            load_config(path)
