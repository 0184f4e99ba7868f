"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from arborist.config import (
    DEFAULT_DB_PATH,
    DEFAULT_MAX_DEPTH,
    ArboristConfig,
    load_config,
)


class TestArboristConfig:
    """Tests for ArboristConfig."""

    def test_defaults(self) -> None:
        config = ArboristConfig()
        assert config.db_path == DEFAULT_DB_PATH
        assert config.max_depth == DEFAULT_MAX_DEPTH
        assert config.seed_sample_data is False

    def test_from_dict(self) -> None:
        data = {
            "database": {"path": "forest.db", "seed": True},
            "traversal": {"max_depth": 50},
        }
        config = ArboristConfig.from_dict(data)
        assert config.db_path == "forest.db"
        assert config.max_depth == 50
        assert config.seed_sample_data is True

    def test_from_dict_empty_sections(self) -> None:
        config = ArboristConfig.from_dict({"database": None})
        assert config.db_path == DEFAULT_DB_PATH

    @pytest.mark.parametrize("seed", ["false", "yes", 1, 0])
    def test_seed_must_be_boolean(self, seed: object) -> None:
        with pytest.raises(ValueError, match="database.seed"):
            ArboristConfig.from_dict({"database": {"seed": seed}})

    def test_rejects_non_positive_depth(self) -> None:
        with pytest.raises(ValueError, match="max_depth"):
            ArboristConfig(max_depth=0)


class TestLoadConfig:
    """Tests for load_config resolution order."""

    def test_no_file_uses_defaults(self) -> None:
        config = load_config()
        assert config == ArboristConfig()

    def test_default_file_in_working_directory(self) -> None:
        Path("arborist.yaml").write_text("database:\n  path: local.db\n")
        assert load_config().db_path == "local.db"

    def test_explicit_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("traversal:\n  max_depth: 12\ndatabase:\n  seed: true\n")
        config = load_config(config_file)
        assert config.max_depth == 12
        assert config.seed_sample_data is True

    def test_quoted_seed_rejected(self, tmp_path: Path) -> None:
        """A quoted "false" is a string, not a boolean."""
        config_file = tmp_path / "quoted.yaml"
        config_file.write_text('database:\n  seed: "false"\n')
        with pytest.raises(ValueError, match="database.seed"):
            load_config(config_file)

    def test_explicit_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_malformed_yaml_falls_back_to_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("database: [unclosed\n")
        assert load_config(config_file) == ArboristConfig()

    def test_non_mapping_yaml_ignored(self, tmp_path: Path) -> None:
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")
        assert load_config(config_file) == ArboristConfig()

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "arborist.yaml"
        config_file.write_text("database:\n  path: file.db\ntraversal:\n  max_depth: 5\n")
        monkeypatch.setenv("ARBORIST_DB", "env.db")
        monkeypatch.setenv("ARBORIST_MAX_DEPTH", "64")

        config = load_config(config_file)
        assert config.db_path == "env.db"
        assert config.max_depth == 64

    def test_env_depth_must_be_positive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ARBORIST_MAX_DEPTH", "-1")
        with pytest.raises(ValueError, match="max_depth"):
            load_config()

    def test_env_depth_must_be_numeric(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ARBORIST_MAX_DEPTH", "deep")
        with pytest.raises(ValueError):
            load_config()
