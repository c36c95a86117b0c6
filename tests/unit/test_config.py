"""
Unit tests for configuration management.
"""

import pytest

from bikecolors.config import (
    BUNDLED_STATIC_DIR,
    BUNDLED_TEMPLATE_DIR,
    DEFAULT_MAX_UPLOAD_SIZE,
    Config,
    load_settings,
)


class TestConfig:
    """Test cases for the Config class."""

    def test_get_default(self):
        assert Config().get("BIKECOLORS_UNSET_KEY", "fallback") == "fallback"

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("Yes", True), ("off", False), ("", False)])
    def test_bool_casting(self, monkeypatch, raw, expected):
        monkeypatch.setenv("DEV_MODE", raw)

        assert Config().get("DEV_MODE", False, bool) is expected

    def test_failed_cast_uses_default(self, monkeypatch):
        monkeypatch.setenv("PORT", "not-a-number")

        assert Config().get("PORT", 8082, int) == 8082

    def test_values_are_cached(self, monkeypatch):
        config = Config()
        monkeypatch.setenv("PORT", "9000")
        assert config.get("PORT", 8082, int) == 9000

        monkeypatch.setenv("PORT", "9001")
        assert config.get("PORT", 8082, int) == 9000
        assert Config().get("PORT", 8082, int) == 9001


class TestLoadSettings:
    """Test cases for load_settings."""

    def test_defaults(self):
        settings = load_settings()

        assert settings.port == 8082
        assert settings.dev_mode is False
        assert settings.enable_admin is False
        assert settings.bucket_name == "workcycles-colors"
        assert settings.storage_backend == "gcs"
        assert settings.max_upload_size == DEFAULT_MAX_UPLOAD_SIZE
        assert settings.pending_limit == 50
        assert settings.template_dir == BUNDLED_TEMPLATE_DIR
        assert settings.static_dir == BUNDLED_STATIC_DIR

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("ENABLE_ADMIN", "true")
        monkeypatch.setenv("STORAGE_BACKEND", "Memory")
        monkeypatch.setenv("SKIP_CORRUPT_PENDING", "1")

        settings = load_settings()

        assert settings.port == 9090
        assert settings.enable_admin is True
        assert settings.storage_backend == "memory"
        assert settings.skip_corrupt_pending is True

    def test_overrides_win_over_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "9090")

        settings = load_settings(port=7000, dev_mode=None)

        assert settings.port == 7000
        assert settings.dev_mode is False

    def test_unknown_override(self):
        with pytest.raises(ValueError, match="Unknown setting"):
            load_settings(colour="red")

    def test_unsupported_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "s3")

        with pytest.raises(ValueError, match="STORAGE_BACKEND"):
            load_settings()

    def test_dev_mode_prefers_working_tree_assets(self, tmp_path, monkeypatch):
        (tmp_path / "templates").mkdir()
        monkeypatch.chdir(tmp_path)

        settings = load_settings(dev_mode=True)

        assert settings.template_dir == tmp_path / "templates"
        assert settings.static_dir == BUNDLED_STATIC_DIR
