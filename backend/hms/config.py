"""
Application settings
Read from environment variables / .env file
"""
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    APP_NAME: str = "HMS"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./hms.db"

    # JWT (tokens are issued by the identity provider, this core only verifies them)
    SECRET_KEY: str = "hms-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # Reservation pricing
    WEEKLY_NIGHTS: int = 7
    MONTHLY_NIGHTS: int = 30

    # Nightly reconciliation
    AUTO_CANCEL_AFTER_HOURS: int = 12
    NO_SHOW_WINDOW_HOURS: int = 24
    NO_SHOW_FEE_RATE: float = 0.5
    DAILY_REPORT_HISTORY_LIMIT: int = 30

    # In-process scheduler for the nightly run (off when an external cron drives it)
    RECONCILIATION_SCHEDULER_ENABLED: bool = False
    RECONCILIATION_CRON: str = "0 2 * * *"

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()
