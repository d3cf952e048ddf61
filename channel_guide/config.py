import logging

from croniter import croniter
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    epg_enabled: bool = True  # Fetch guides on cache miss
    directory_api_base: str = "https://iptv-org.github.io/api"
    guide_base_url: str = "https://iptv-epg.org/files"
    directory_timeout_sec: float = 30.0
    guide_timeout_sec: float = 60.0
    max_guide_size_bytes: int = 50 * 1024 * 1024
    directory_ttl_sec: int = 6 * 3600  # Directory freshness window
    guide_parse_timeout_sec: int = 120  # XML parsing timeout, 0 disables timeout
    directory_refresh_enabled: bool = True
    directory_refresh_cron: str = "0 */6 * * *"
    directory_refresh_misfire_grace_sec: int = 600
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("directory_api_base", "guide_base_url")
    @classmethod
    def validate_base_urls(cls, value: str, info) -> str:
        """Validate base URLs are HTTP/HTTPS and strip trailing slashes."""
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name} must be HTTP/HTTPS: {value}")
        return value.rstrip("/")

    @field_validator(
        "directory_timeout_sec",
        "guide_timeout_sec",
    )
    @classmethod
    def validate_timeouts(cls, value: float, info) -> float:
        """Ensure HTTP timeouts are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("max_guide_size_bytes", "directory_ttl_sec")
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer limits are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("guide_parse_timeout_sec", "directory_refresh_misfire_grace_sec")
    @classmethod
    def validate_non_negative_ints(cls, value: int, info) -> int:
        """Ensure values where 0 means 'disabled' are non-negative."""
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("directory_refresh_cron")
    @classmethod
    def validate_cron_expression(cls, value: str) -> str:
        """Validate cron expression is valid."""
        try:
            croniter(value)
            return value
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Invalid cron expression '{value}': {exc}") from exc

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level name."""
        normalized = value.upper()
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_guide_configuration(self):
        """Validate cross-field configuration."""
        if not self.epg_enabled:
            logger.warning(
                "EPG fetching disabled - only cached schedules will be served"
            )

        if self.directory_refresh_enabled and not self.epg_enabled:
            logger.warning(
                "Directory refresh scheduled while EPG fetching is disabled"
            )

        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  EPG Enabled: %s", self.epg_enabled)
        logger.info("  Directory API: %s", self.directory_api_base)
        logger.info("  Guide Base URL: %s", self.guide_base_url)
        logger.info(
            "  Timeouts: directory=%.1fs guide=%.1fs",
            self.directory_timeout_sec,
            self.guide_timeout_sec,
        )
        logger.info("  Max Guide Size: %s bytes", self.max_guide_size_bytes)
        logger.info("  Directory TTL: %s seconds", self.directory_ttl_sec)
        logger.info(
            "  Parse Timeout: %s seconds",
            self.guide_parse_timeout_sec or "disabled",
        )
        logger.info(
            "  Directory Refresh Schedule: %s",
            self.directory_refresh_cron if self.directory_refresh_enabled else "disabled",
        )


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
