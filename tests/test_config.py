"""Tests for configuration loading and validation."""

import json

import pytest

from label_catalog.exceptions import ConfigurationError
from label_catalog.models.config import (
    Config,
    config_from_env,
    create_default_config,
    load_config,
    save_config,
    validate_config_json,
)


def configured(**overrides):
    config = Config()
    config.credentials.client_id = "id"
    config.credentials.client_secret = "secret"
    for section, values in overrides.items():
        for key, value in values.items():
            setattr(getattr(config, section), key, value)
    return config


class TestDefaults:

    def test_default_values(self):
        config = Config.default()

        assert config.cache.ttl_seconds == 3600.0
        assert config.queue.max_calls_per_window == 100
        assert config.queue.window_seconds == 30.0
        assert config.queue.inter_task_delay == 0.05
        assert config.queue.max_retries == 3
        assert config.api.market == "US"
        assert set(config.labels.genre_mappings) == {"deep", "tech", "records"}

    def test_default_mappings_are_independent_copies(self):
        first, second = Config(), Config()
        first.labels.genre_mappings["deep"].append("polka")

        assert "polka" not in second.labels.genre_mappings["deep"]


class TestValidate:

    def test_valid(self):
        configured().validate()

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError, match="SPOTIFY_CLIENT_ID"):
            Config().validate()

    @pytest.mark.parametrize("section,values", [
        ("cache", {"ttl_seconds": 0}),
        ("queue", {"max_calls_per_window": 0}),
        ("queue", {"window_seconds": -1}),
        ("queue", {"max_retries": -1}),
        ("queue", {"task_timeout": 0}),
        ("api", {"timeout": 0}),
        ("reconciler", {"fuzzy_dedupe_threshold": 1.5}),
    ])
    def test_invalid_limits(self, section, values):
        with pytest.raises(ConfigurationError):
            configured(**{section: values}).validate()


class TestFiles:

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config.json"
        config = configured(queue={"max_calls_per_window": 50, "task_timeout": 5.0})

        save_config(config, path)
        loaded = load_config(path)

        assert loaded == config
        assert isinstance(loaded.queue.max_calls_per_window, int)

    def test_create_default_config(self, tmp_path):
        path = tmp_path / "config.json"
        create_default_config(path)

        data = json.loads(path.read_text())
        assert data["credentials"] == {"client_id": "", "client_secret": ""}
        assert load_config(path) == Config()

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"cache": {"ttl_seconds": 60}}))

        config = load_config(path)

        assert config.cache.ttl_seconds == 60
        assert config.queue.max_calls_per_window == 100

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.json")

    def test_schema_violation(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"queue": {"max_calls_per_window": 0}}))

        with pytest.raises(ConfigurationError, match="queue -> max_calls_per_window"):
            load_config(path)

    def test_validate_config_json_reports_unknown_section(self):
        errors = validate_config_json({"colour": "blue"})

        assert len(errors) == 1
        assert "colour" in errors[0]

    def test_validate_config_json_market(self):
        assert validate_config_json({"api": {"market": "GB"}}) == []
        assert validate_config_json({"api": {"market": "gbr"}})


class TestEnvironment:

    def test_reads_credentials_and_overrides(self):
        config = config_from_env({
            "SPOTIFY_CLIENT_ID": "env_id",
            "SPOTIFY_CLIENT_SECRET": "env_secret",
            "LABEL_CATALOG_CACHE_TTL": "120",
            "LABEL_CATALOG_MAX_CALLS": "20",
            "LABEL_CATALOG_WINDOW_SECONDS": "10.5",
            "LABEL_CATALOG_MARKET": "de",
        })

        assert config.credentials.client_id == "env_id"
        assert config.credentials.client_secret == "env_secret"
        assert config.cache.ttl_seconds == 120.0
        assert config.queue.max_calls_per_window == 20
        assert config.queue.window_seconds == 10.5
        assert config.api.market == "DE"
        config.validate()

    def test_overlays_base_config(self):
        base = configured(cache={"ttl_seconds": 99.0})

        config = config_from_env({"SPOTIFY_CLIENT_ID": "other"}, base=base)

        assert config.credentials.client_id == "other"
        assert config.credentials.client_secret == "secret"
        assert config.cache.ttl_seconds == 99.0

    def test_empty_environment(self):
        config = config_from_env({})

        with pytest.raises(ConfigurationError):
            config.validate()

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError, match="LABEL_CATALOG_MAX_CALLS"):
            config_from_env({"LABEL_CATALOG_MAX_CALLS": "lots"})
