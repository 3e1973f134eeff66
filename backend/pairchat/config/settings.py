"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "PairChat"
    app_version: str = "1.0.0"
    debug: bool = True

    # Presence and matching
    heartbeat_interval_seconds: float = 15
    liveness_threshold_seconds: float = 30  # two heartbeats, tolerates one miss
    reaper_period_seconds: float = 30
    reaper_enabled: bool = True
    candidate_window: int = 20

    # Validation limits
    max_name_length: int = 30
    max_message_length: int = 500

    # Retry policy
    search_max_attempts: int = 3  # pairing attempts per search before giving up
    store_retry_attempts: int = 3
    store_retry_base_delay: float = 0.05  # seconds, doubled on each retry

    # Storage
    storage_type: str = "memory"  # memory, local
    local_storage_path: str = "./data"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/pairchat.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
