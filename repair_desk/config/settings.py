"""
Runtime settings for the back-office core.
Values come from environment variables (or a .env file) with safe defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Hosted database / auth provider
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""

    # Designated administrative account, created on start if missing
    ADMIN_EMAIL: str = "admin@repairdesk.local"
    ADMIN_PASSWORD: str = ""
    ADMIN_FULL_NAME: str = "Administrator"
    ADMIN_PHONE: str = ""

    # Business rules
    TAX_RATE: float = 0.20
    DEFAULT_DELIVERY_DAYS: int = 7
    LOW_STOCK_THRESHOLD: int = 5

    # Every remote call is bounded by this timeout
    REMOTE_TIMEOUT_SECONDS: float = 15.0

    # Server
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    def require_supabase(self) -> None:
        """Raise if the provider credentials are missing"""
        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY environment variables are required")


@lru_cache
def get_settings() -> Settings:
    return Settings()
