"""Tests for config.yaml loading and index.db path resolution."""

import logging
from pathlib import Path

import pytest

from beeper_reader import config as config_module
from beeper_reader.config import ReaderConfig, load_config, resolve_db_path
from beeper_reader.errors import DatabaseNotFoundError
from beeper_reader.store import MessageFormat


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path: Path) -> None:
    """Keep the real environment and home directory out of resolution."""
    monkeypatch.delenv(config_module.DB_ENV_VAR, raising=False)
    monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(tmp_path / "absent.yaml"))
    monkeypatch.setattr(config_module, "default_db_paths", lambda: [])
    monkeypatch.setattr(config_module, "_glob_candidates", lambda: [])


@pytest.fixture
def db_file(tmp_path: Path) -> Path:
    path = tmp_path / "index.db"
    path.write_bytes(b"")
    return path


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path / "nope.yaml") == ReaderConfig()

    def test_reads_all_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "db_path: ~/beeper/index.db\n"
            "bridge_root: /srv/beeper\n"
            "bridge_lookup: false\n"
            "format: PLAIN\n"
            "limit: 20\n"
        )
        config = load_config(path)
        assert config.db_path == "~/beeper/index.db"
        assert config.bridge_root == "/srv/beeper"
        assert config.bridge_lookup is False
        assert config.format == MessageFormat.PLAIN
        assert config.limit == 20

    def test_env_var_selects_file(self, tmp_path: Path, monkeypatch) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("limit: 7\n")
        monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(path))
        assert load_config().limit == 7

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == ReaderConfig()

    def test_malformed_yaml_warns(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("limit: [unclosed\n")
        with caplog.at_level(logging.WARNING, logger="beeper_reader.config"):
            assert load_config(path) == ReaderConfig()
        assert "Failed to read config" in caplog.text

    def test_non_mapping_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        assert load_config(path) == ReaderConfig()

    def test_invalid_values_keep_defaults(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("format: html\nlimit: -3\nbridge_lookup: maybe\ndb_path: 42\n")
        with caplog.at_level(logging.WARNING, logger="beeper_reader.config"):
            config = load_config(path)
        assert config == ReaderConfig()
        assert "ignoring format" in caplog.text
        assert "ignoring limit" in caplog.text
        assert "ignoring bridge_lookup" in caplog.text
        assert "ignoring db_path" in caplog.text


class TestResolveDBPath:
    def test_explicit_path(self, db_file: Path) -> None:
        assert resolve_db_path(str(db_file)) == db_file

    def test_explicit_missing_raises(self, tmp_path: Path) -> None:
        missing = tmp_path / "missing.db"
        with pytest.raises(DatabaseNotFoundError) as exc_info:
            resolve_db_path(str(missing))
        assert exc_info.value.tried == [str(missing)]

    def test_explicit_wins_over_env(self, db_file: Path, tmp_path: Path, monkeypatch) -> None:
        other = tmp_path / "other.db"
        other.write_bytes(b"")
        monkeypatch.setenv(config_module.DB_ENV_VAR, str(other))
        assert resolve_db_path(str(db_file)) == db_file

    def test_env_var(self, db_file: Path, monkeypatch) -> None:
        monkeypatch.setenv(config_module.DB_ENV_VAR, str(db_file))
        assert resolve_db_path() == db_file

    def test_config_path(self, db_file: Path) -> None:
        assert resolve_db_path(config=ReaderConfig(db_path=str(db_file))) == db_file

    def test_env_before_config(self, db_file: Path, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv(config_module.DB_ENV_VAR, str(db_file))
        config = ReaderConfig(db_path=str(tmp_path / "elsewhere.db"))
        assert resolve_db_path(config=config) == db_file

    def test_defaults_then_glob(self, db_file: Path, monkeypatch) -> None:
        monkeypatch.setattr(config_module, "_glob_candidates", lambda: [str(db_file)])
        assert resolve_db_path() == db_file

    def test_nothing_found_lists_tried_paths(self, tmp_path: Path, monkeypatch) -> None:
        missing = tmp_path / "missing.db"
        monkeypatch.setenv(config_module.DB_ENV_VAR, str(missing))
        with pytest.raises(DatabaseNotFoundError) as exc_info:
            resolve_db_path()
        assert exc_info.value.tried == [str(missing)]
        assert str(missing) in str(exc_info.value)

    def test_expands_user(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        (tmp_path / "index.db").write_bytes(b"")
        assert resolve_db_path("~/index.db") == tmp_path / "index.db"


class TestReaderConfigValidation:
    def test_bad_key_does_not_discard_others(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("limit: 0\nformat: plain\nbridge_root: ' /srv/beeper '\n")
        config = load_config(path)
        assert config.limit == 50
        assert config.format == MessageFormat.PLAIN
        assert config.bridge_root == "/srv/beeper"

    def test_bool_is_not_a_limit(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("limit: true\n")
        assert load_config(path).limit == 50

    def test_quoted_bool_is_not_accepted(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("bridge_lookup: 'no'\n")
        assert load_config(path).bridge_lookup is True

    def test_unknown_keys_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("theme: dark\nlimit: 5\n")
        assert load_config(path) == ReaderConfig(limit=5)

    def test_blank_path_means_unset(self) -> None:
        assert ReaderConfig.model_validate({"db_path": "   "}).db_path is None
