import logging
from typing import List, Optional

import structlog
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Demo values for local runs only. Refused when APP_ENV=production.
DEMO_JWT_SECRET = "tienda_innova_secret_demo"
DEMO_ADMIN_PASSWORD = "admin123"


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables."""

    app_env: str = "development"
    host: str = "0.0.0.0"
    port: int = 3001

    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 8  # 8 hours

    admin_email: str = "admin@innova.com"
    admin_password: Optional[str] = None
    bcrypt_rounds: int = 12

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_secrets_in_production(self) -> "Settings":
        if self.is_production:
            missing = [
                name
                for name, value in (("JWT_SECRET", self.jwt_secret), ("ADMIN_PASSWORD", self.admin_password))
                if not value
            ]
            if missing:
                raise ValueError(f"{', '.join(missing)} must be set when APP_ENV=production")
        return self

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def signing_secret(self) -> str:
        return self.jwt_secret or DEMO_JWT_SECRET

    @property
    def seed_admin_password(self) -> str:
        return self.admin_password or DEMO_ADMIN_PASSWORD

    def demo_defaults_in_use(self) -> List[str]:
        """Names of settings currently falling back to a hardcoded demo value."""

        in_use = []
        if not self.jwt_secret:
            in_use.append("JWT_SECRET")
        if not self.admin_password:
            in_use.append("ADMIN_PASSWORD")
        return in_use


def load_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
