from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global Micro-CRM settings.
    Values are read from the environment and from a local .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Project
    project_name: str = "Micro-CRM API"
    api_prefix: str = "/api"
    environment: str = "development"
    debug: bool = False

    # Security / JWT
    secret_key: str = "changeme"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    auth_cookie_name: str = "token"

    # Database (sqlite:// -> embedded file engine, postgresql:// -> networked engine)
    database_url: str = "sqlite:///./microcrm.db"
    postgres_client_encoding: str = "UTF8"

    # CORS
    allowed_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Invoicing
    invoice_number_prefix: str = "INV-"
    invoice_number_width: int = 4
    invoice_number_max_attempts: int = 5

    # Recurring billing scheduler
    recurring_scheduler_enabled: bool = True
    recurring_interval_seconds: float = 60 * 60

    # Client portal links
    app_url: str = "http://localhost:3000"

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def check_production_secrets(self) -> None:
        """Refuse to run a production deployment with the development secret."""
        if self.is_production and self.secret_key == "changeme":
            raise RuntimeError("SECRET_KEY must be set in production")


@lru_cache
def get_settings() -> Settings:
    """Return the cached global settings instance."""
    return Settings()


settings = get_settings()
