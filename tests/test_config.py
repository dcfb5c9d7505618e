"""
Tests for the GenForge configuration module.

Copyright (c) 2025 GenForge
"""

import os
import pytest
from unittest.mock import patch


class TestGenForgeConfig:
    """Test the unified configuration module."""

    def setup_method(self):
        """Reset singleton before each test."""
        from genforge.config import GenForgeConfig
        GenForgeConfig.reset()

    def teardown_method(self):
        from genforge.config import GenForgeConfig
        GenForgeConfig.reset()

    def test_config_singleton(self):
        """Test that config is a singleton."""
        from genforge.config import get_config

        config1 = get_config()
        config2 = get_config()

        assert config1 is config2

    def test_config_default_values(self):
        """Test default configuration values."""
        from genforge.config import get_config

        config = get_config()

        assert config.retry.max_attempts == 3
        assert config.retry.base_delay_ms == 1000
        assert config.retry.max_delay_ms == 30000
        assert config.retry.backoff_multiplier == 2.0
        assert config.validation.fallback_score_threshold == 60
        assert config.validation.build_runner == "static"
        assert config.session.backend == "memory"
        assert config.session.expertise_step == 0.1
        assert config.personalization.frequent_feature_top_n == 2
        assert config.regression.feature_threshold == 0.6

    @patch.dict(os.environ, {"RETRY_MAX_ATTEMPTS": "5", "RETRY_BASE_DELAY_MS": "250"})
    def test_config_loads_from_env(self):
        """Test configuration loads from environment variables."""
        from genforge.config import get_config

        config = get_config()

        assert config.retry.max_attempts == 5
        assert config.retry.base_delay_ms == 250

    @patch.dict(os.environ, {"LOG_JSON": "yes"})
    def test_config_boolean_parsing(self):
        """Test boolean environment variable parsing."""
        from genforge.config import get_config

        assert get_config().logging.json_output is True

    @patch.dict(os.environ, {"RETRY_RETRYABLE_KINDS": "api_error, timeout_error"})
    def test_config_list_parsing(self):
        """Test list environment variable parsing."""
        from genforge.config import get_config

        assert get_config().retry.retryable_kinds == ["api_error", "timeout_error"]

    @patch.dict(os.environ, {"VALIDATION_MAX_WORKERS": "not-a-number"})
    def test_invalid_int_falls_back_to_default(self):
        """Test unparsable values keep the default."""
        from genforge.config import get_config

        assert get_config().validation.max_workers == 6

    def test_config_reload(self):
        """Test configuration reload."""
        from genforge.config import get_config

        config = get_config()

        with patch.dict(os.environ, {"FALLBACK_SCORE_THRESHOLD": "45"}):
            config.reload()
            assert config.validation.fallback_score_threshold == 45


class TestConfigValidator:
    """Test configuration validation."""

    def setup_method(self):
        from genforge.config import GenForgeConfig
        GenForgeConfig.reset()

    def teardown_method(self):
        from genforge.config import GenForgeConfig
        GenForgeConfig.reset()

    def test_defaults_are_valid(self):
        """Test the default configuration validates."""
        from genforge.config import get_config
        from genforge.config.validator import ConfigValidator

        result = ConfigValidator(get_config()).validate_all()

        assert result.valid is True
        assert result.errors == []
        assert any("in memory" in w for w in result.warnings)

    @patch.dict(os.environ, {"RETRY_MAX_DELAY_MS": "10", "RETRY_BACKOFF_MULTIPLIER": "0.5"})
    def test_retry_errors(self):
        """Test inconsistent retry settings are errors."""
        from genforge.config import get_config
        from genforge.config.validator import ConfigValidator

        result = ConfigValidator(get_config()).validate_all()

        assert result.valid is False
        assert any("RETRY_MAX_DELAY_MS" in e for e in result.errors)
        assert any("RETRY_BACKOFF_MULTIPLIER" in e for e in result.errors)

    @patch.dict(os.environ, {"RETRY_RETRYABLE_KINDS": "api_error,bogus_error,validation_error"})
    def test_retryable_kind_warnings(self):
        """Test unknown and never-retried kinds are reported."""
        from genforge.config import get_config
        from genforge.config.validator import ConfigValidator

        result = ConfigValidator(get_config()).validate_all()

        assert result.valid is True
        assert any("bogus_error" in w for w in result.warnings)
        assert any("never retried" in w for w in result.warnings)

    @patch.dict(os.environ, {"BUILD_RUNNER": "docker", "FALLBACK_SCORE_THRESHOLD": "150"})
    def test_validation_errors(self):
        """Test validator settings out of range."""
        from genforge.config import get_config
        from genforge.config.validator import ConfigValidator

        result = ConfigValidator(get_config()).validate_all()

        assert any("BUILD_RUNNER" in e for e in result.errors)
        assert any("FALLBACK_SCORE_THRESHOLD" in e for e in result.errors)

    @patch.dict(os.environ, {"BUILD_RUNNER": "subprocess", "BUILD_TIMEOUT": "120", "VALIDATION_CHECK_TIMEOUT": "30"})
    def test_build_timeout_longer_than_check(self):
        """Test a build that outlives its check timeout is reported."""
        from genforge.config import get_config
        from genforge.config.validator import ConfigValidator

        result = ConfigValidator(get_config()).validate_all()

        assert result.valid is True
        assert any("BUILD_TIMEOUT" in w for w in result.warnings)

    @patch.dict(os.environ, {"REGRESSION_MAX_CONCURRENT": "0"})
    def test_regression_errors(self):
        """Test scenario runner settings are validated."""
        from genforge.config import get_config
        from genforge.config.validator import ConfigValidator

        result = ConfigValidator(get_config()).validate_all()

        assert any("REGRESSION_MAX_CONCURRENT" in e for e in result.errors)

    def test_file_backend_creates_directory(self, tmp_path):
        """Test the file backend's directory is created on validation."""
        from genforge.config import get_config
        from genforge.config.validator import ConfigValidator

        sessions_dir = tmp_path / "sessions"
        with patch.dict(os.environ, {"SESSION_BACKEND": "file", "SESSIONS_DIR": str(sessions_dir)}):
            result = ConfigValidator(get_config()).validate_all()

        assert result.valid is True
        assert sessions_dir.exists()
        assert any(str(sessions_dir) in i for i in result.info)


class TestLogSetup:
    """Test logging configuration."""

    def test_configure_logging(self):
        """Test structlog is wired onto stdlib logging."""
        import structlog
        from genforge.utils.log_setup import configure_logging, is_configured

        configure_logging(level="DEBUG", json_output=True)

        assert is_configured() is True
        logger = structlog.get_logger("genforge.test")
        logger.info("Configured", key="value")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
