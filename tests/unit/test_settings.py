"""
Tests for config.settings and the rate limit configuration
"""

import pytest

from api.rate_limiter import RateLimitConfig
from config.settings import Settings


@pytest.fixture
def dirs(tmp_path):
    return {
        "output_dir": tmp_path / "output",
        "logs_dir": tmp_path / "logs",
    }


class TestSettings:

    def test_defaults(self, dirs):
        settings = Settings(**dirs)
        assert settings.content_width == 515.0
        assert settings.render_scale == 0.8
        assert settings.download_delay_ms == 5000
        assert settings.get_allowed_extensions() == [".txt", ".md", ".docx"]
        assert settings.output_filename == "vpdf-document.pdf"

    def test_creates_directories(self, dirs):
        Settings(**dirs)
        assert all(path.is_dir() for path in dirs.values())

    def test_extension_list_normalized(self, dirs):
        settings = Settings(allowed_extensions=" TXT, .Md ,,", **dirs)
        assert settings.get_allowed_extensions() == [".txt", ".md"]

    def test_env_override(self, dirs, monkeypatch):
        monkeypatch.setenv("VPDF_RENDER_SCALE", "0.9")
        monkeypatch.setenv("VPDF_MAX_UPLOAD_SIZE_MB", "2")
        settings = Settings(**dirs)
        assert settings.render_scale == 0.9
        assert settings.max_upload_size_bytes == 2 * 1024 * 1024

    @pytest.mark.parametrize("override", [
        {"render_scale": 1.5},
        {"render_scale": 0},
        {"page_format": "letter"},
        {"auto_paging": "flow"},
    ])
    def test_invalid_geometry(self, dirs, override):
        with pytest.raises(ValueError):
            Settings(**override, **dirs)

    def test_cors_origins(self, dirs):
        settings = Settings(cors_origins="http://a.test, http://b.test", **dirs)
        assert settings.get_cors_origins() == ["http://a.test", "http://b.test"]


class TestRateLimitConfig:

    def test_known_category(self):
        assert RateLimitConfig().get_limit("upload") == "20/minute"

    def test_unknown_category_uses_default(self):
        config = RateLimitConfig()
        assert config.get_limit("something_else") == config.defaults["default"]

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("VPDF_RATE_LIMIT_CONVERT", "2/minute")
        assert RateLimitConfig().get_limit("convert") == "2/minute"
