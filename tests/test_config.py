"""Tests for confcurate.config."""

import json

import pytest

from confcurate.config import REPO_PATH_KEY, ConfigStore, default_config_dir, load_settings
from confcurate.errors import CorruptCollectionError, CorruptConfigError


class TestConfigStore:
    def test_fresh_store_is_unconfigured(self, config_dir):
        store = ConfigStore(config_dir)
        assert store.get(REPO_PATH_KEY) is None
        assert store.get_all() == {}
        assert not store.is_configured

    def test_set_persists_across_instances(self, config_dir, tmp_path):
        ConfigStore(config_dir).set(REPO_PATH_KEY, str(tmp_path))
        again = ConfigStore(config_dir)
        assert again.get(REPO_PATH_KEY) == str(tmp_path)
        assert again.repo_path == tmp_path
        assert again.is_configured

    def test_file_is_indented_json(self, config_dir):
        store = ConfigStore(config_dir)
        store.set("theme", {"dark": True})
        assert json.loads(store.path.read_text()) == {"theme": {"dark": True}}
        assert '\n  "theme"' in store.path.read_text()

    def test_get_all_returns_every_key(self, config_dir):
        store = ConfigStore(config_dir)
        store.set("a", 1)
        store.set("b", [1, 2])
        assert store.get_all() == {"a": 1, "b": [1, 2]}

    def test_unreadable_file_raises_and_is_never_overwritten(self, config_dir):
        config_dir.mkdir()
        path = config_dir / "config.json"
        truncated = '{"websiteRepoPath": "/x", "theme": "dark",'
        path.write_text(truncated)
        store = ConfigStore(config_dir)

        with pytest.raises(CorruptConfigError, match="Unreadable config file"):
            store.get(REPO_PATH_KEY)
        with pytest.raises(CorruptConfigError):
            store.set("other", 1)
        assert path.read_text() == truncated

    def test_non_object_file_raises(self, config_dir):
        config_dir.mkdir()
        (config_dir / "config.json").write_text("[1, 2]")
        with pytest.raises(CorruptCollectionError):
            ConfigStore(config_dir).get_all()

    def test_empty_file_reads_as_empty(self, config_dir):
        config_dir.mkdir()
        (config_dir / "config.json").write_text("")
        assert ConfigStore(config_dir).get_all() == {}


class TestConfigDir:
    def test_explicit_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CONFCURATE_CONFIG_DIR", str(tmp_path / "x"))
        assert default_config_dir() == tmp_path / "x"

    def test_xdg(self, monkeypatch, tmp_path):
        monkeypatch.delenv("CONFCURATE_CONFIG_DIR")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert default_config_dir() == tmp_path / "confcurate"


class TestSettings:
    def test_defaults_without_file(self, config_dir):
        settings = load_settings(config_dir)
        assert settings.logging.level == "INFO"
        assert settings.git.remote == "origin"
        assert settings.git.base_branch == "main"

    def test_reads_toml(self, config_dir):
        config_dir.mkdir()
        (config_dir / "settings.toml").write_text(
            '[logging]\nlevel = "debug"\n\n[git]\nremote = "upstream"\nbase_branch = "develop"\n'
        )
        settings = load_settings(config_dir)
        assert settings.logging.level == "DEBUG"
        assert settings.git.remote == "upstream"
        assert settings.git.base_branch == "develop"

    def test_env_overrides_level(self, config_dir, monkeypatch):
        monkeypatch.setenv("CONFCURATE_LOG_LEVEL", "warning")
        assert load_settings(config_dir).logging.level == "WARNING"
