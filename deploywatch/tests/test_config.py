"""Tests for configuration loading and saving."""

import json
import os
import pytest
from unittest.mock import patch


CLEAN_ENV = {
    key: ""
    for key in (
        "ES_HOST", "ES_PORT", "ES_INDEX", "ES_LOG", "ES_TIMEOUT",
        "SLACK_BOT_TOKEN", "SLACK_SIGNING_SECRET",
        "DEPLOYWATCH_PORT", "DEPLOYWATCH_TRIGGER", "DEPLOYWATCH_LOG_LEVEL",
    )
}


class TestLoadConfig:

    def test_defaults(self, tmp_path):
        from deploywatch.common.config import load_config

        with patch("deploywatch.common.config.CONFIG_PATH", tmp_path / "missing.json"), \
             patch.dict(os.environ, CLEAN_ENV):
            cfg = load_config()

        assert cfg.store.host == "127.0.0.1"
        assert cfg.store.port == 9200
        assert cfg.store.index == "capistrano"
        assert cfg.store.log is False
        assert cfg.slack.trigger == "cho"
        assert cfg.log_level == "INFO"

    def test_config_file(self, tmp_path):
        from deploywatch.common.config import load_config

        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "store": {"host": "es.internal", "port": 9201, "log": True},
            "slack": {"bot_token": "xoxb-file", "trigger": "deployed"},
        }))

        with patch("deploywatch.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, CLEAN_ENV):
            cfg = load_config()

        assert cfg.store.host == "es.internal"
        assert cfg.store.port == 9201
        assert cfg.store.log is True
        assert cfg.store.index == "capistrano"
        assert cfg.slack.bot_token == "xoxb-file"
        assert cfg.slack.trigger == "deployed"

    def test_env_overrides_file(self, tmp_path):
        from deploywatch.common.config import load_config

        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"store": {"host": "es.internal", "port": 9201}}))

        env = dict(CLEAN_ENV, ES_HOST="es.override", ES_PORT="9300", ES_LOG="true", SLACK_BOT_TOKEN="xoxb-env")
        with patch("deploywatch.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env):
            cfg = load_config()

        assert cfg.store.host == "es.override"
        assert cfg.store.port == 9300
        assert cfg.store.log is True
        assert cfg.slack.bot_token == "xoxb-env"
        assert "bot_token" in cfg._env_sourced_keys

    def test_malformed_file_falls_back_to_defaults(self, tmp_path):
        from deploywatch.common.config import load_config

        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with patch("deploywatch.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, CLEAN_ENV):
            cfg = load_config()

        assert cfg.store.host == "127.0.0.1"


class TestSaveConfig:

    def test_save_omits_env_secrets(self, tmp_path):
        from deploywatch.common.config import load_config, save_config

        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"slack": {"signing_secret": "from-file"}}))

        env = dict(CLEAN_ENV, SLACK_BOT_TOKEN="xoxb-env")
        with patch("deploywatch.common.config.CONFIG_PATH", config_file), \
             patch("deploywatch.common.config.CONFIG_DIR", tmp_path), \
             patch.dict(os.environ, env):
            cfg = load_config()
            save_config(cfg)

        saved = json.loads(config_file.read_text())
        assert saved["slack"]["bot_token"] == ""
        assert saved["slack"]["signing_secret"] == "from-file"
        assert saved["store"]["index"] == "capistrano"
        assert oct(config_file.stat().st_mode & 0o777) == "0o600"
