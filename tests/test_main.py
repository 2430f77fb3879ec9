#!/usr/bin/env python3
"""Tests for SiteStyle startup wiring."""

import json
from unittest.mock import patch

import pytest

from sitestyle.core.constants import DEFAULT_OPTIONS, ConfigKey
from sitestyle.infrastructure.config_manager import ConfigError, ConfigManager, set_global_config
from sitestyle.main import SiteStyle, create_backend
from sitestyle.storage.backends import JsonFileStorage, MemoryStorage
from sitestyle.styles.editor import PageStyle


@pytest.fixture
def config():
    config = ConfigManager(load_environment=False)
    config.set(ConfigKey.STORAGE_BACKEND, "memory")
    return config


@pytest.fixture
def app(config, fetcher, mock_logger):
    app = SiteStyle(config, fetcher=fetcher, logger=mock_logger)
    yield app
    app.shutdown(wait=True)


class TestConfigValidation:
    """Tests for configuration checks at startup."""

    def test_invalid_type_rejected(self, config, fetcher, mock_logger):
        """A mistyped setting fails with ConfigError before anything is built."""
        config.set(ConfigKey.IMPORT_WORKERS, "four")
        with pytest.raises(ConfigError, match="max_workers"):
            SiteStyle(config, fetcher=fetcher, logger=mock_logger)

    def test_global_config_default(self, config, fetcher, mock_logger):
        """Without a config the process-wide manager is used."""
        set_global_config(config)
        try:
            app = SiteStyle(fetcher=fetcher, logger=mock_logger)
            app.shutdown(wait=True)
            assert app.config is config
        finally:
            set_global_config(None)


class TestCreateBackend:
    """Tests for create_backend."""

    def test_memory(self, config, mock_logger):
        """'memory' builds in-process storage."""
        assert isinstance(create_backend(config, mock_logger), MemoryStorage)

    def test_file(self, config, temp_dir, mock_logger):
        """'file' builds JSON storage at the configured path."""
        config.set(ConfigKey.STORAGE_BACKEND, "file")
        config.set(ConfigKey.STORAGE_PATH, str(temp_dir / "storage.json"))

        backend = create_backend(config, mock_logger)
        assert isinstance(backend, JsonFileStorage)
        assert backend.path == temp_dir / "storage.json"

    def test_unknown(self, config, mock_logger):
        """Unknown backends are a configuration error."""
        config.set(ConfigKey.STORAGE_BACKEND, "redis")
        with pytest.raises(ConfigError, match="redis"):
            create_backend(config, mock_logger)


class TestInitialize:
    """Tests for SiteStyle.initialize."""

    def test_empty_backend(self, app):
        """Nothing stored gives default options and no styles."""
        app.initialize()
        assert app.options == DEFAULT_OPTIONS
        assert len(app.store) == 0

    def test_loads_options_and_styles(self, config, fetcher, mock_logger, sample_styles):
        """Stored options overlay the defaults and styles are loaded."""
        backend = MemoryStorage({"options": {"mode": "Advanced"}, "styles": sample_styles})
        app = SiteStyle(config, backend=backend, fetcher=fetcher, logger=mock_logger)
        try:
            app.initialize()
            assert app.options["mode"] == "Advanced"
            assert app.options["shortcutKey"] == 77
            assert app.store.patterns() == list(sample_styles)
        finally:
            app.shutdown(wait=True)

    def test_single_backend_read(self, config, fetcher, mock_logger, sample_styles):
        """Options and styles come from one backend read."""
        backend = MemoryStorage({"options": {"mode": "Advanced"}, "styles": sample_styles})
        app = SiteStyle(config, backend=backend, fetcher=fetcher, logger=mock_logger)
        try:
            with patch.object(backend, "get", wraps=backend.get) as get:
                app.initialize()
            get.assert_called_once_with(["options", "styles"])
            assert app.store.patterns() == list(sample_styles)
        finally:
            app.shutdown(wait=True)

    def test_save_options(self, app):
        """Options are merged and persisted."""
        app.initialize()
        app.save_options({"sync": True})

        assert app.options["sync"] is True
        assert app.backend.get(["options"])["options"]["sync"] is True
        assert DEFAULT_OPTIONS["sync"] is False


class TestEndToEnd:
    """Tests across components."""

    def test_edit_then_resolve(self, app):
        """Edits through a PageStyle show up in later resolutions."""
        app.initialize()
        page = app.page_style("https://www.example.com/")
        assert isinstance(page, PageStyle)
        page.save_rule("p", "color", "blue")

        result = app.resolve("https://www.example.com/news")
        assert result.primary_pattern == "www.example.com"
        assert result.rules == {"p": {"color": "blue"}}

    def test_file_persistence(self, config, temp_dir, fetcher, mock_logger):
        """Styles written by one instance load in the next."""
        config.set(ConfigKey.STORAGE_BACKEND, "file")
        config.set(ConfigKey.STORAGE_PATH, str(temp_dir / "storage.json"))

        first = SiteStyle(config, fetcher=fetcher, logger=mock_logger)
        first.initialize()
        first.page_style("https://example.com/").save_rule("a", "color", "red")
        first.shutdown(wait=True)

        stored = json.loads((temp_dir / "storage.json").read_text())
        assert stored["styles"]["example.com"]["_rules"] == {"a": {"color": "red"}}

        second = SiteStyle(config, fetcher=fetcher, logger=mock_logger)
        try:
            second.initialize()
            assert second.resolve("https://example.com/").rules == {"a": {"color": "red"}}
        finally:
            second.shutdown(wait=True)

    def test_configured_social_pattern(self, config, fetcher, mock_logger):
        """The social pattern comes from configuration."""
        config.set(ConfigKey.SOCIAL_PATTERN, "styles.test")
        app = SiteStyle(config, fetcher=fetcher, logger=mock_logger)
        try:
            assert app.resolver.social_pattern == "styles.test"
        finally:
            app.shutdown(wait=True)


class TestLogging:
    """Tests for logging configuration."""

    def test_level_applied(self, config, fetcher, mock_logger):
        """The configured level is applied to the logger."""
        config.set(ConfigKey.LOG_LEVEL, "DEBUG")
        app = SiteStyle(config, fetcher=fetcher, logger=mock_logger)
        app.shutdown(wait=True)
        mock_logger.set_level.assert_called_with("DEBUG")

    def test_log_file(self, config, fetcher, mock_logger, temp_dir):
        """A configured log file adds a file handler, removed again on shutdown."""
        config.set(ConfigKey.LOG_FILE, str(temp_dir / "sitestyle.log"))
        app = SiteStyle(config, fetcher=fetcher, logger=mock_logger)
        app.shutdown(wait=True)
        mock_logger.create_file_handler.assert_called_once_with(str(temp_dir / "sitestyle.log"))
        handler = mock_logger.create_file_handler.return_value
        mock_logger.add_handler.assert_called_once_with(handler)
        mock_logger.remove_handler.assert_called_once_with(handler)
        handler.close.assert_called_once()
