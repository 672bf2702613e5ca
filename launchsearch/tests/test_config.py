"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from launchsearch.engine.config import Config, TuningConfig
from launchsearch.engine.filters import FilterState, all_categories_enabled


class TestConfigDefaults:
    def test_defaults(self):
        config = Config()

        assert config.sources.search_apps
        assert config.sources.search_wikipedia
        assert not config.sources.search_locations
        assert config.behavior.launch_on_enter
        assert not config.behavior.results_bottom_up
        assert config.tuning.shortcut_candidates == 12
        assert config.tuning.articles_delay_ms == 750
        assert config.tuning.places_delay_ms == 250

    def test_default_filters(self):
        filters = Config().default_filters

        assert filters == FilterState()
        assert all_categories_enabled(filters)

    def test_database_path_is_expanded(self):
        config = Config(database_path="~/items.db")

        assert config.database_path == Path.home() / "items.db"

    def test_memory_database_is_kept(self):
        assert str(Config(database_path=":memory:").database_path) == ":memory:"


class TestTuningValidation:
    def test_candidates_must_be_positive(self):
        with pytest.raises(ValidationError):
            TuningConfig(shortcut_candidates=0)

    def test_delays_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            TuningConfig(articles_delay_ms=-1)

    def test_zero_delay_is_allowed(self):
        assert TuningConfig(places_delay_ms=0).places_delay_ms == 0


class TestConfigFiles:
    def test_load_yaml_with_camel_case_filters(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            'sources': {'search_locations': True, 'search_files': False},
            'behavior': {
                'results_bottom_up': True,
                'search_filter': {'allowNetwork': True, 'hiddenItems': False, 'files': False},
            },
            'tuning': {'articles_delay_ms': 100},
        }))

        config = Config.load(path)

        assert config.sources.search_locations
        assert not config.sources.search_files
        assert config.behavior.results_bottom_up
        assert config.default_filters.allow_network
        assert not config.default_filters.files
        assert config.tuning.articles_delay_ms == 100
        assert config.tuning.places_delay_ms == 250

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert Config.load(path).default_filters == FilterState()

    def test_save_and_reload(self, tmp_path):
        config = Config(database_path=tmp_path / "items.db")
        config.behavior.launch_on_enter = False
        path = tmp_path / "nested" / "config.yaml"

        config.save(path)
        loaded = Config.load(path)

        assert not loaded.behavior.launch_on_enter
        assert loaded.database_path == tmp_path / "items.db"

    def test_load_without_any_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))

        if Path("/etc/launchsearch/config.yaml").exists():
            pytest.skip("system config present")
        with pytest.raises(FileNotFoundError):
            Config.load()

    def test_load_or_default(self, tmp_path):
        config = Config.load_or_default(tmp_path / "missing.yaml")

        assert config.tuning.shortcut_candidates == 12
