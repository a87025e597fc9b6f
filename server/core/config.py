"""Environment-driven configuration with Pydantic v2."""

from typing import List, Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=3020, env="PORT", ge=1024, le=65535)
    debug: bool = Field(default=False, env="DEBUG")
    workers: int = Field(default=1, env="WORKERS", ge=1, le=8)
    cors_origins: List[str] = Field(default=["*"], env="CORS_ORIGINS")

    # UCM PBX endpoint
    ucm_api_base_url: str = Field(default="https://ucm.local:8089/api", env="UCM_API_BASE_URL")
    ucm_cdr_api_url: Optional[str] = Field(default=None, env="UCM_CDR_API_URL")
    ucm_rec_api_url: Optional[str] = Field(default=None, env="UCM_REC_API_URL")
    ucm_api_version: str = Field(default="1.0", env="UCM_API_VERSION")
    ucm_api_user: str = Field(default="cdrapi", env="UCM_API_USER")
    ucm_token_secret: str = Field(default="cdrapi123", env="UCM_TOKEN_SECRET")
    ucm_verify_tls: bool = Field(default=False, env="UCM_VERIFY_TLS")  # appliance ships a self-signed cert

    # Service Timeouts (seconds)
    ucm_auth_timeout: float = Field(default=10.0, env="UCM_AUTH_TIMEOUT", ge=1, le=120)
    ucm_fetch_timeout: float = Field(default=30.0, env="UCM_FETCH_TIMEOUT", ge=1, le=300)

    # Session & Cache Lifetimes (seconds)
    session_ttl: int = Field(default=900, env="SESSION_TTL", ge=60)            # 15 minutes
    recording_cache_ttl: int = Field(default=1800, env="RECORDING_CACHE_TTL", ge=1)  # 30 minutes
    cdr_cookie_ttl: int = Field(default=900, env="CDR_COOKIE_TTL", ge=1)      # 15 minutes
    cache_max_entries: int = Field(default=1000, env="CACHE_MAX_ENTRIES", ge=1)

    # Periodic cleanup
    cleanup_enabled: bool = Field(default=True, env="CLEANUP_ENABLED")
    cleanup_interval: int = Field(default=300, env="CLEANUP_INTERVAL", ge=1)  # 5 minutes

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    @property
    def cdr_url(self) -> str:
        """CDR endpoint, defaulting to the main API URL."""
        return self.ucm_cdr_api_url or self.ucm_api_base_url

    @property
    def recording_url(self) -> str:
        """Recording endpoint, defaulting to the main API URL."""
        return self.ucm_rec_api_url or self.ucm_api_base_url

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": "../.env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "forbid",
        "env_parse_none_str": "none",
    }
