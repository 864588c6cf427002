"""
Report PDF Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Consultation Feedback Report"
DEFAULT_FILENAME = "consultation-feedback.pdf"


class PdfServiceSettings(BaseSettings):
    """
    PDF service configuration with validation.

    All settings can be overridden via environment variables.
    Validation happens at startup to fail fast on misconfiguration.
    """

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === Server ===
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8001, ge=1, le=65535)
    log_level: str = Field(default="INFO")

    # === CORS ===
    cors_origins: str = Field(
        default="https://www.scarevision.ai,https://scarevision.ai",
        description="Comma-separated list of allowed CORS origins"
    )

    # === Rendering ===
    wait_strategy: str = Field(
        default="load",
        description="Page load completion policy: 'networkidle' or 'load'"
    )
    load_timeout_ms: int = Field(
        default=15000,
        ge=1000,
        le=120000,
        description="Upper bound on the page load wait in milliseconds"
    )
    settle_delay_ms: int = Field(
        default=250,
        ge=0,
        le=10000,
        description="Fixed delay after the load event before export (load strategy only)"
    )
    export_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=300000,
        description="Upper bound on PDF export in milliseconds"
    )
    release_timeout_ms: int = Field(
        default=5000,
        ge=100,
        le=60000,
        description="Upper bound on each cleanup step (page, browser, driver) in milliseconds"
    )
    pdf_format: str = Field(default="A4", description="Physical page size for export")
    playwright_headless: bool = Field(default=True)
    chromium_executable_path: Optional[str] = Field(
        default=None,
        description="Explicit Chromium binary (serverless/bundled builds)"
    )
    chromium_args: str = Field(
        default="--no-sandbox,--disable-dev-shm-usage",
        description="Comma-separated extra Chromium launch arguments"
    )
    pdf_library_path: Optional[str] = Field(
        default=None,
        description="Directory prepended to LD_LIBRARY_PATH once at startup"
    )
    validate_browser_on_startup: bool = Field(default=True)

    # === Limits ===
    max_markdown_chars: int = Field(default=200_000, ge=1)
    max_html_chars: int = Field(default=400_000, ge=1)
    max_concurrent_renders: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum concurrent browser renders (1-50)"
    )

    # === Report defaults ===
    default_title: str = Field(default=DEFAULT_TITLE)
    default_filename: str = Field(default=DEFAULT_FILENAME)

    # === Report client ===
    grading_base_url: str = Field(
        default="https://voice-patient-web.vercel.app",
        description="Reporting service that serves grading text"
    )
    pdf_service_url: str = Field(
        default="http://localhost:8001/api/render-pdf",
        description="Render endpoint used by the report client"
    )
    report_logo_url: str = Field(default="", description="Logo URL sent by the report client")
    client_timeout_seconds: float = Field(default=60.0, gt=0)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("wait_strategy")
    @classmethod
    def validate_wait_strategy(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"networkidle", "load"}:
            raise ValueError("wait_strategy must be 'networkidle' or 'load'")
        return v_lower

    @field_validator("grading_base_url", "pdf_service_url")
    @classmethod
    def validate_url_format(cls, v: str) -> str:
        """Basic URL format validation."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL format: {v}")
        return v.rstrip("/")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def chromium_args_list(self) -> List[str]:
        return [arg.strip() for arg in self.chromium_args.split(",") if arg.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration is suitable for production.

        Returns list of warning/error messages.
        """
        issues = []

        if self.is_production:
            if not self.cors_origins_list:
                issues.append("CRITICAL: CORS_ORIGINS required in production")
            if self.wait_strategy == "networkidle":
                issues.append(
                    "WARNING: WAIT_STRATEGY=networkidle can stall on asset hosts "
                    "that keep connections open"
                )
            if not self.playwright_headless:
                issues.append("WARNING: PLAYWRIGHT_HEADLESS disabled in production")

        return issues


@lru_cache()
def get_settings() -> PdfServiceSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for performance.
    Use this function to access configuration throughout the app.
    """
    return PdfServiceSettings()


def validate_config_on_startup() -> PdfServiceSettings:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_production_config():
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  wait_strategy={settings.wait_strategy} timeout={settings.load_timeout_ms}ms")
    logger.info(f"  pdf_format={settings.pdf_format}")
    logger.info(f"  max_concurrent_renders={settings.max_concurrent_renders}")
    logger.info(f"  cors_origins={settings.cors_origins_list}")
    return settings
