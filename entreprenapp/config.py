"""
Application Configuration.

Uses Pydantic Settings for environment variable management.
Startup validation distinguishes fatal problems from warnings.
"""
import json
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


ENVIRONMENTS = ("development", "production", "testing")
JWT_SECRET_MIN_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # =========================================================================
    # Application
    # =========================================================================
    APP_NAME: str = "EntreprenApp API"
    APP_DESCRIPTION: str = "Social network for entrepreneurs, investors and institutions"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    REQUEST_TIMEOUT_SECONDS: float = 60.0

    # Logging
    LOG_LEVEL: str = "INFO"

    FRONTEND_URL: str = ""

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================
    MONGO_URL: str = ""
    MONGODB_DB_NAME: str = "entreprenapp"

    # Connection Pool Settings
    MONGODB_MIN_POOL_SIZE: int = 1
    MONGODB_MAX_POOL_SIZE: int = 10
    MONGODB_MAX_IDLE_TIME_MS: int = 30000
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # Initial connection retries (delays: base, base*2, base*4, ...)
    MONGODB_CONNECT_RETRIES: int = 5
    MONGODB_RETRY_BASE_DELAY: float = 2.0

    # =========================================================================
    # Security
    # =========================================================================
    JWT_ACCESS_SECRET: str = ""
    JWT_REFRESH_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Password
    BCRYPT_ROUNDS: int = 12

    # One-time codes
    VERIFICATION_CODE_EXPIRE_MINUTES: int = 10
    RESET_TOKEN_EXPIRE_MINUTES: int = 10

    # Cookies
    COOKIE_PATH: str = "/"
    COOKIE_SAMESITE: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production

    @property
    def cookie_samesite(self) -> str:
        if self.COOKIE_SAMESITE:
            return self.COOKIE_SAMESITE
        return "strict" if self.is_production else "lax"

    # =========================================================================
    # Media storage and outbound email credentials
    # =========================================================================
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""

    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""

    # =========================================================================
    # CORS
    # =========================================================================
    CORS_ORIGINS: str = '["http://localhost:3000","http://localhost:5173"]'
    CORS_ALLOW_METHODS: str = '["GET","POST","PUT","DELETE","PATCH","OPTIONS"]'
    CORS_ALLOW_HEADERS: str = '["Content-Type","Authorization"]'
    CORS_ALLOW_CREDENTIALS: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from JSON string, adding the frontend URL."""
        try:
            origins = json.loads(self.CORS_ORIGINS)
        except json.JSONDecodeError:
            origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL)
        return origins

    @property
    def cors_methods_list(self) -> List[str]:
        """Parse CORS methods from JSON string."""
        try:
            return json.loads(self.CORS_ALLOW_METHODS)
        except json.JSONDecodeError:
            return ["*"]

    @property
    def cors_headers_list(self) -> List[str]:
        """Parse CORS headers from JSON string."""
        try:
            return json.loads(self.CORS_ALLOW_HEADERS)
        except json.JSONDecodeError:
            return ["*"]

    # =========================================================================
    # Rate Limiting
    # =========================================================================
    RATE_LIMIT_ENABLED: Optional[bool] = None
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_AUTH_REQUESTS: Optional[int] = None
    RATE_LIMIT_API_REQUESTS: Optional[int] = None

    @property
    def rate_limit_enabled(self) -> bool:
        """Rate limiting is skipped in development unless forced on."""
        if self.RATE_LIMIT_ENABLED is not None:
            return self.RATE_LIMIT_ENABLED
        return not self.is_development

    @property
    def rate_limit_auth_requests(self) -> int:
        if self.RATE_LIMIT_AUTH_REQUESTS is not None:
            return self.RATE_LIMIT_AUTH_REQUESTS
        return 100 if self.is_production else 500

    @property
    def rate_limit_api_requests(self) -> int:
        if self.RATE_LIMIT_API_REQUESTS is not None:
            return self.RATE_LIMIT_API_REQUESTS
        return 500 if self.is_production else 5000

    # =========================================================================
    # API Documentation
    # =========================================================================
    DOCS_URL: str = "/api-docs"
    OPENAPI_URL: str = "/openapi.json"
    API_PREFIX: str = "/api"

    # =========================================================================
    # Real-time
    # =========================================================================
    SOCKETIO_PATH: str = "socket.io"


@dataclass
class ConfigReport:
    """Outcome of startup configuration validation."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_settings(config: Settings) -> ConfigReport:
    """
    Check required configuration before the server starts.

    Errors are fatal (the process must exit 1); warnings are logged only.
    """
    report = ConfigReport()

    if config.ENVIRONMENT not in ENVIRONMENTS:
        report.errors.append(
            f"ENVIRONMENT must be one of {', '.join(ENVIRONMENTS)}, got '{config.ENVIRONMENT}'"
        )

    if not config.MONGO_URL:
        report.errors.append("MONGO_URL is required")
    elif not config.MONGO_URL.startswith(("mongodb://", "mongodb+srv://")):
        report.errors.append("MONGO_URL must start with mongodb:// or mongodb+srv://")
    elif config.is_production and "localhost" in config.MONGO_URL:
        report.warnings.append("MONGO_URL points to localhost in production")

    for name in ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"):
        value = getattr(config, name)
        if not value:
            report.errors.append(f"{name} is required")
        elif len(value) < JWT_SECRET_MIN_LENGTH:
            report.errors.append(
                f"{name} must be at least {JWT_SECRET_MIN_LENGTH} characters long"
            )

    if config.JWT_ACCESS_SECRET and config.JWT_ACCESS_SECRET == config.JWT_REFRESH_SECRET:
        report.warnings.append("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET should differ")

    for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
        if not getattr(config, name):
            report.warnings.append(f"{name} is not set, media uploads are unavailable")

    for name in ("SENDGRID_API_KEY", "SENDGRID_FROM_EMAIL"):
        if not getattr(config, name):
            report.warnings.append(f"{name} is not set, emails will only be logged")

    if not config.FRONTEND_URL:
        report.warnings.append("FRONTEND_URL is not set, email links will be relative")

    return report


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
