"""Tests for settings and logging configuration."""

import logging
from unittest.mock import patch

from contentindex.client import create_client
from contentindex.config import Settings, get_log_level, load_settings
from contentindex.config.logging_config import NOISY_LOGGERS, configure_all_loggers

ENV_VARS = (
    "ES_HOST",
    "ES_USER",
    "ES_PASSWORD",
    "ES_INDEX",
    "ES_INDEX_POSTFIX",
    "ES_REQUEST_TIMEOUT",
    "INDEX_ALL_WORKSPACES",
    "LIVE_WORKSPACE",
    "ES_NATIVE_SCRIPTS",
    "CONTENTINDEX_LOG_LEVEL",
)


def clear_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    """Tests for reading settings from the environment."""

    def test_defaults(self, monkeypatch):
        clear_env(monkeypatch)

        settings = load_settings()

        assert settings.es_host == "http://localhost:9200"
        assert settings.index_name == "contentindex"
        assert settings.index_name_postfix == ""
        assert settings.request_timeout == 30
        assert settings.index_all_workspaces is False
        assert settings.live_workspace == "live"
        assert settings.native_scripts is True

    def test_from_environment(self, monkeypatch):
        clear_env(monkeypatch)
        monkeypatch.setenv("ES_HOST", "http://search:9200")
        monkeypatch.setenv("ES_INDEX", "site")
        monkeypatch.setenv("ES_INDEX_POSTFIX", "1700000000")
        monkeypatch.setenv("ES_REQUEST_TIMEOUT", "5")
        monkeypatch.setenv("INDEX_ALL_WORKSPACES", "true")
        monkeypatch.setenv("ES_NATIVE_SCRIPTS", "0")

        settings = load_settings()

        assert settings.es_host == "http://search:9200"
        assert settings.index_name == "site"
        assert settings.index_name_postfix == "1700000000"
        assert settings.request_timeout == 5
        assert settings.index_all_workspaces is True
        assert settings.native_scripts is False

    def test_blank_flag_keeps_default(self, monkeypatch):
        clear_env(monkeypatch)
        monkeypatch.setenv("ES_NATIVE_SCRIPTS", " ")
        assert load_settings().native_scripts is True


class TestLogging:
    """Tests for the logging helpers."""

    def test_log_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("CONTENTINDEX_LOG_LEVEL", "debug")
        assert get_log_level() == logging.DEBUG

    def test_unknown_log_level(self, monkeypatch):
        monkeypatch.setenv("CONTENTINDEX_LOG_LEVEL", "chatty")
        assert get_log_level() == logging.INFO

    def test_client_loggers_quieted(self):
        configure_all_loggers(logging.DEBUG)

        assert logging.getLogger("contentindex").level == logging.DEBUG
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestCreateClient:
    """Tests for client construction."""

    def test_basic_auth_when_configured(self):
        settings = Settings(es_host="http://search:9200", es_user="elastic", es_password="secret", request_timeout=5)

        with patch("contentindex.client.Elasticsearch") as elasticsearch:
            create_client(settings)

        elasticsearch.assert_called_once_with("http://search:9200", basic_auth=("elastic", "secret"), request_timeout=5)

    def test_no_auth_without_password(self):
        settings = Settings(es_host="http://search:9200", es_user="elastic", es_password=None)

        with patch("contentindex.client.Elasticsearch") as elasticsearch:
            create_client(settings)

        assert elasticsearch.call_args.kwargs["basic_auth"] is None
