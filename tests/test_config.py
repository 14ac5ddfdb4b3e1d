"""Tests for perch.config.AppConfig."""

import dataclasses

import pytest

from perch.config import AppConfig


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8000
        assert config.debug is False
        assert config.log_level == "info"
        assert config.access_log is False
        assert config.server_header is None
        assert config.max_content_length == 16 * 1024 * 1024

    def test_frozen(self) -> None:
        config = AppConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.port = 1  # type: ignore[misc]

    def test_override(self) -> None:
        config = AppConfig(debug=True, port=3000)
        assert config.debug is True
        assert config.port == 3000
