import logging
import os
import sys
from typing import Optional
from urllib.parse import urlparse

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://scraper-scraper-main.kube.agrp.dev/rest/v2/control/"


def normalize_base_url(base_url: str) -> str:
    """
    Validate and normalize the control-plane base URL.

    Rules:
    - Must be http(s)
    - Must have hostname
    - Always ends with a single "/" so endpoint names can be appended

    Raises:
        ValueError: Invalid URL format

    Examples:
        >>> normalize_base_url("https://queue.example.com/rest/v2/control")
        "https://queue.example.com/rest/v2/control/"
    """
    base_url = base_url.strip()
    if not base_url:
        raise ValueError("base_url cannot be an empty string")

    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"base_url must use http:// or https://, got: {base_url}")

    if not parsed.hostname:
        raise ValueError(f"base_url missing hostname: {base_url}")

    if parsed.query or parsed.fragment:
        raise ValueError(f"base_url must not include query or fragment: {base_url}")

    return base_url.rstrip("/") + "/"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="allow")

    # Credentials
    api_key: Optional[str] = None
    custom_id: Optional[str] = None

    # Control plane
    base_url: str = DEFAULT_BASE_URL

    # Work item lifecycle
    work_item_progress_interval_seconds: float = 60.0  # Heartbeat while a handler runs
    noop_sleep_seconds: float = 3.0  # Idle before asking for the next work item

    # HTTP
    http_timeout_seconds: float = 30.0
    http_connect_timeout_seconds: float = 10.0
    http_slow_request_threshold_seconds: float = 5.0

    @model_validator(mode="after")
    def validate_base_url_format(self):
        try:
            self.base_url = normalize_base_url(self.base_url)
        except ValueError as e:
            logging.error(
                f"Invalid BASE_URL configuration: {e}\n"
                f"Example: BASE_URL={DEFAULT_BASE_URL}"
            )
            sys.exit(1)
        return self

    @model_validator(mode="after")
    def validate_worker_settings(self):
        """Ensure interval and timeout values are sane."""
        positive_fields = (
            "work_item_progress_interval_seconds",
            "noop_sleep_seconds",
            "http_timeout_seconds",
            "http_connect_timeout_seconds",
            "http_slow_request_threshold_seconds",
        )
        for field_name in positive_fields:
            value = getattr(self, field_name)
            if value <= 0:
                logging.error(
                    "%s must be greater than zero. Current value: %s",
                    field_name.upper(),
                    value,
                )
                sys.exit(1)

        if self.http_connect_timeout_seconds > self.http_timeout_seconds:
            logging.warning(
                "HTTP_CONNECT_TIMEOUT_SECONDS (%s) exceeds HTTP_TIMEOUT_SECONDS (%s). "
                "The total timeout will cut the connect phase short.",
                self.http_connect_timeout_seconds,
                self.http_timeout_seconds,
            )

        return self


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton, creating it if needed.

    Returns:
        Settings: The worker settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Override settings (primarily for testing).

    Args:
        settings: The Settings instance to use.
    """
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to None (for test cleanup)."""
    global _settings
    _settings = None


def get_loglevel():
    loglevel = os.getenv("LOGLEVEL", "INFO")

    match loglevel:
        case "INFO":
            return logging.INFO
        case "WARNING":
            return logging.WARNING
        case "ERROR":
            return logging.ERROR
        case "CRITICAL":
            return logging.CRITICAL
        case "DEBUG":
            return logging.DEBUG
        case _:
            return logging.INFO
