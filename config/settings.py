#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== Page Geometry ==========
    # All lengths in PDF points (1/72 inch)
    page_format: str = "a4"  # Only A4 portrait is supported
    margin_x: float = 40.0
    margin_y: float = 40.0
    content_width: float = 515.0  # A4 width (595pt) - 2 * margin (40pt)
    window_width: int = 650  # Layout viewport width of the editor surface
    render_scale: float = 0.8  # Uniform output scale, < 1.0 leaves room for rounding
    auto_paging: str = "slice"

    # ========== Output ==========
    output_filename: str = "vpdf-document.pdf"

    # ========== Uploads ==========
    allowed_extensions: str = ".txt,.md,.docx"
    max_upload_size_mb: int = 10

    # ========== Notification pacing (milliseconds) ==========
    # Advisory UX pacing; only the ordering is guaranteed
    notify_rendering_ms: int = 3000
    notify_ready_ms: int = 6000
    download_delay_ms: int = 5000  # "ready" stays up this long before the save
    notify_complete_ms: int = 3000
    notify_default_ms: int = 5000
    notify_error_ms: int = 5000
    notify_invalid_type_ms: int = 7000
    notify_upload_ms: int = 3000
    notify_extracting_ms: int = 4000

    # ========== Timeouts ==========
    # None = wait forever on the collaborator
    extract_timeout_s: Optional[float] = None
    render_timeout_s: Optional[float] = None

    # ========== API ==========
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    rate_limit: str = "60/minute"
    convert_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True
    max_sessions: int = 100

    # ========== Logging ==========
    log_level: str = "INFO"
    log_json: bool = False

    # ========== Directories ==========
    output_dir: Path = BASE_DIR / "data" / "output"
    logs_dir: Path = BASE_DIR / "data" / "logs"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        env_prefix = "VPDF_"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Create directories
        for dir_path in [
            self.output_dir,
            self.logs_dir,
        ]:
            dir_path.mkdir(exist_ok=True, parents=True)

        self._validate_geometry()

    def _validate_geometry(self):
        """Reject geometry that cannot produce a page."""
        errors = []

        if self.page_format.lower() != "a4":
            errors.append(f"Unsupported page format: {self.page_format} (only 'a4')")
        if not 0 < self.render_scale <= 1.0:
            errors.append("RENDER_SCALE must be in (0, 1]")
        if self.content_width <= 0:
            errors.append("CONTENT_WIDTH must be positive")
        if self.auto_paging != "slice":
            errors.append(f"Unsupported auto paging mode: {self.auto_paging}")

        if errors:
            raise ValueError(
                "CONFIG ERROR - invalid page geometry:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

    def get_allowed_extensions(self) -> List[str]:
        """Get allowed upload extensions as a lowercase list with leading dots."""
        exts = []
        for raw in self.allowed_extensions.split(","):
            ext = raw.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = "." + ext
            exts.append(ext)
        return exts

    def get_cors_origins(self) -> List[str]:
        """Get CORS origins as a list"""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()
