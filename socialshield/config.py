from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================
    environment: str = "dev"  # "dev", "prod"
    debug: bool = True

    # ==========================================================================
    # DATABASE
    # ==========================================================================
    database_url: str = "sqlite:///./socialshield.db"
    db_timeout: int = 15  # Seconds the driver waits on a locked/busy database

    # ==========================================================================
    # PATTERN CATALOG
    # ==========================================================================
    catalog_failure_policy: str = "fail_open"  # "fail_open" or "fail_closed"
    seed_default_patterns: bool = True  # Insert the default catalog when empty

    # ==========================================================================
    # SCANNING
    # ==========================================================================
    max_content_length: int = 50000  # Characters accepted per scan
    recent_threats_limit: int = 50  # Default page size for recent threats
    max_recent_threats_limit: int = 200

    # ==========================================================================
    # API SECURITY
    # ==========================================================================
    api_token: str = ""  # Required in production, optional in dev
    api_token_header: str = "X-API-Key"

    # ==========================================================================
    # RATE LIMITING
    # ==========================================================================
    rate_limit_requests: int = 60  # Max requests per window
    rate_limit_window: int = 60  # Window in seconds (60 = per minute)

    # ==========================================================================
    # CORS
    # ==========================================================================
    cors_origins: str = "*"  # Comma-separated origins, or "*" for all

    # ==========================================================================
    # LOGGING & METRICS
    # ==========================================================================
    log_level: str = ""  # Empty: DEBUG in dev, INFO in prod
    log_json: Optional[bool] = None  # None: JSON in prod, console lines in dev
    log_file: str = ""  # Extra JSON log file, e.g. "logs/socialshield.log"
    metrics_window: int = 1000  # Timing samples kept per metric

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "prod"

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def fail_closed(self) -> bool:
        return self.catalog_failure_policy.strip().lower() == "fail_closed"


settings = Settings()
