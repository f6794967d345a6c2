"""Configuration management for the commentscope pipeline.

All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Required:
        YOUTUBE_API_KEY: YouTube Data API v3 key

    Analysis:
        LANGUAGE_API_KEY: Cloud Natural Language API key (default: YOUTUBE_API_KEY)

    Pipeline Behavior:
        MAX_COMMENTS: Comments to analyze per run (default: 150)
        PAGE_CONCURRENCY: Concurrent comment analyses per page (default: 10)
        REQUEST_TIMEOUT: Timeout per remote call in seconds (default: 30)

    Storage:
        PERSIST_COMMENTS: Store the cleaned comment list after each run
        DB_PATH: SQLite database file path

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing
        LOGFIRE_TOKEN: Logfire authentication token

    Logging:
        LOG_DIR: Directory for log files
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default."""
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Required ===
    youtube_api_key: str = ""  # YOUTUBE_API_KEY - YouTube Data API key

    # === Analysis ===
    language_api_key: str = ""  # LANGUAGE_API_KEY - Natural Language API key

    # === Pipeline Behavior ===
    max_comments: int = 150  # MAX_COMMENTS - Run-wide comment budget
    page_concurrency: int = 10  # PAGE_CONCURRENCY - Concurrent analyses per page
    request_timeout: float = 30.0  # REQUEST_TIMEOUT - Seconds per remote call

    # === Storage ===
    persist_comments: bool = True  # PERSIST_COMMENTS - Save cleaned comments
    db_path: Path = field(default_factory=lambda: Path("comments.db"))  # DB_PATH

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        youtube_api_key = _env("YOUTUBE_API_KEY")
        return cls(
            youtube_api_key=youtube_api_key,
            language_api_key=_env("LANGUAGE_API_KEY", youtube_api_key),
            max_comments=_env_int("MAX_COMMENTS", 150),
            page_concurrency=_env_int("PAGE_CONCURRENCY", 10),
            request_timeout=_env_float("REQUEST_TIMEOUT", 30.0),
            persist_comments=_env_bool("PERSIST_COMMENTS", True),
            db_path=Path(_env("DB_PATH", "comments.db")),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Returns:
            Error message string if invalid, None if valid.
        """
        if not self.youtube_api_key:
            return "YOUTUBE_API_KEY environment variable is required"
        if self.max_comments <= 0:
            return "MAX_COMMENTS must be positive"
        if self.page_concurrency <= 0:
            return "PAGE_CONCURRENCY must be positive"
        if self.request_timeout <= 0:
            return "REQUEST_TIMEOUT must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
