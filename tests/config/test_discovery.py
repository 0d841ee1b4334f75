"""Tests for buildgate.toml discovery and loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildgate.config.discovery import CONFIG_ENV_VAR, CONFIG_FILENAME, find_config, load_config


class TestFindConfig:
    def test_finds_in_start_dir(self, tmp_path: Path) -> None:
        cfg = tmp_path / CONFIG_FILENAME
        cfg.write_text("")
        assert find_config(tmp_path) == cfg

    def test_walks_up_to_parent(self, tmp_path: Path) -> None:
        cfg = tmp_path / CONFIG_FILENAME
        cfg.write_text("")
        nested = tmp_path / "docker" / "stage"
        nested.mkdir(parents=True)
        assert find_config(nested) == cfg.resolve()

    def test_env_var_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        override = tmp_path / "ci.toml"
        override.write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(override))
        assert find_config(tmp_path) == override

    def test_env_var_pointing_nowhere(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "missing.toml"))
        assert find_config(tmp_path) is None


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        config = load_config(cwd=tmp_path)
        assert config.toolchain.name == "premake5"
        assert config.build.targets == ["test", "server"]

    def test_sparse_overrides(self, tmp_path: Path) -> None:
        cfg = tmp_path / CONFIG_FILENAME
        cfg.write_text(
            '[toolchain]\nversion = "5.0.0-beta2"\n\n[build]\nconfiguration = "Debug"\n'
        )
        config = load_config(cfg)
        assert config.toolchain.version == "5.0.0-beta2"
        assert config.toolchain.name == "premake5"
        assert config.build.configuration == "Debug"
        assert config.build.compiler == ["dotnet", "build"]
