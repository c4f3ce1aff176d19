"""Tests for fluentlite.config."""

from __future__ import annotations

import logging

import pytest

from fluentlite.config import DEFAULT_TIMEOUT_MS, ToolConfig, load_config
from fluentlite.core.sqlite_tool import SQLiteTool


class TestToolConfig:
    def test_defaults(self) -> None:
        config = ToolConfig()
        assert config.logging is False
        assert config.logger is None
        assert config.timeout == DEFAULT_TIMEOUT_MS == 30000
        assert config.verbose is False
        assert config.readonly is False
        assert config.file_must_exist is False
        assert config.open_mode == "rwc"

    def test_open_mode(self) -> None:
        assert ToolConfig(file_must_exist=True).open_mode == "rw"
        assert ToolConfig(readonly=True, file_must_exist=True).open_mode == "ro"

    def test_overrides_apply_on_top_of_config(self) -> None:
        base = ToolConfig(timeout=5000, verbose=True)
        tool = SQLiteTool(":memory:", base, logging=True)
        assert tool.config.timeout == 5000
        assert tool.config.verbose is True
        assert tool.config.logging is True
        # The caller's config object is left untouched.
        assert base.logging is False


class TestLoadConfig:
    def test_load_database_section(self, tmp_path) -> None:
        path = tmp_path / "fluentlite.toml"
        path.write_text(
            "[database]\n"
            "logging = true\n"
            "timeout = 1500\n"
            "readonly = false\n"
            "file_must_exist = true\n"
        )
        config = load_config(path)
        assert config.logging is True
        assert config.timeout == 1500
        assert config.file_must_exist is True
        assert config.verbose is False

    def test_missing_section_uses_defaults(self, tmp_path) -> None:
        path = tmp_path / "empty.toml"
        path.write_text("[other]\nkey = 1\n")
        assert load_config(path) == ToolConfig()

    def test_unknown_keys_are_ignored(self, tmp_path, caplog) -> None:
        path = tmp_path / "extra.toml"
        path.write_text("[database]\nlogger = 'nope'\ncolour = 'blue'\n")
        with caplog.at_level(logging.WARNING, logger="fluentlite.config"):
            config = load_config(str(path))
        assert config == ToolConfig()
        messages = [r.getMessage() for r in caplog.records]
        assert any("colour" in m for m in messages)
        assert any("logger" in m for m in messages)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")
