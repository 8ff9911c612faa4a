"""Tests for configuration resolution."""

import logging

import pytest
from pydantic import ValidationError

from brief.config import DEFAULT_MODEL, AppConfig
from brief.utils.logging import LogConfig, get_logger, setup_logging


class TestAppConfig:
    """Tests for AppConfig.from_env."""

    def test_defaults(self):
        """Test defaults with an empty environment."""
        config = AppConfig.from_env({})

        assert config.anthropic_api_key is None
        assert config.model == DEFAULT_MODEL
        assert config.summary_enabled is True
        assert config.summary_target_tokens == 8000
        assert config.context_reserve_tokens == 4000
        assert config.max_tool_iterations == 3
        assert config.show_tool_messages is False
        assert config.log_level == "INFO"

    def test_environment_values(self):
        """Test that recognised environment variables are applied."""
        config = AppConfig.from_env(
            {
                "ANTHROPIC_API_KEY": " sk-test ",
                "LLM_MODEL": "claude-3-haiku",
                "BRIEF_SUMMARY_DISABLED": "true",
                "BRIEF_SUMMARY_TARGET_TOKENS": "2000",
                "BRIEF_CONTEXT_RESERVE_TOKENS": "1500",
                "BRIEF_SHOW_TOOLS": "1",
                "LOG_LEVEL": "debug",
            }
        )

        assert config.anthropic_api_key == "sk-test"
        assert config.model == "claude-3-haiku"
        assert config.summary_enabled is False
        assert config.summary_target_tokens == 2000
        assert config.context_reserve_tokens == 1500
        assert config.show_tool_messages is True
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["abc", "0", "-5", "", "  "])
    def test_invalid_numbers_ignored(self, value):
        """Test that non-positive or unparseable numbers fall back to defaults."""
        config = AppConfig.from_env({"BRIEF_SUMMARY_TARGET_TOKENS": value, "BRIEF_CONTEXT_RESERVE_TOKENS": value})

        assert config.summary_target_tokens == 8000
        assert config.context_reserve_tokens == 4000

    @pytest.mark.parametrize(("value", "enabled"), [("1", False), ("TRUE", False), ("0", True), ("yes", True)])
    def test_summary_disabled_flag(self, value, enabled):
        """Test which values disable summarization."""
        assert AppConfig.from_env({"BRIEF_SUMMARY_DISABLED": value}).summary_enabled is enabled

    def test_show_tools_only_on_one(self):
        """Test that only "1" enables tool display."""
        assert AppConfig.from_env({"BRIEF_SHOW_TOOLS": "true"}).show_tool_messages is False

    def test_overrides_win(self):
        """Test explicit overrides beat the environment; None overrides are ignored."""
        config = AppConfig.from_env(
            {"LLM_MODEL": "claude-3-haiku", "BRIEF_SUMMARY_TARGET_TOKENS": "2000"},
            model="gpt-4o",
            summary_target_tokens=None,
        )

        assert config.model == "gpt-4o"
        assert config.summary_target_tokens == 2000

    def test_blank_model_falls_back(self):
        """Test that a blank model variable is ignored."""
        assert AppConfig.from_env({"LLM_MODEL": "   "}).model == DEFAULT_MODEL

    def test_invalid_override_rejected(self):
        """Test that overrides are validated."""
        with pytest.raises(ValidationError):
            AppConfig.from_env({}, max_tool_iterations=0)


class TestLogConfig:
    """Tests for logging setup."""

    def test_level_normalized(self):
        """Test that levels are case-insensitive."""
        assert LogConfig(level=" debug ").level == "DEBUG"

    def test_unknown_level_rejected(self):
        """Test that typos in the level are reported."""
        with pytest.raises(ValidationError, match="Unknown log level"):
            LogConfig(level="verbose")

    def test_setup_quiets_dependencies(self):
        """Test root level and quieted third-party loggers."""
        setup_logging(LogConfig(level="DEBUG", quiet_loggers=("brief.test.noisy",)))

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("brief.test.noisy").level == logging.WARNING

    def test_get_logger_level_override(self):
        """Test the per-logger level override."""
        assert get_logger("brief.test.override", "error").level == logging.ERROR
