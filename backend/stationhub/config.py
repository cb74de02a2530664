import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Station Hub"
    DATABASE_URL: str = "sqlite:///./weather.db"

    # Empty token leaves the dashboard mutation endpoints open
    DASHBOARD_TOKEN: str = ""

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    HISTORY_DEFAULT_LIMIT: int = 100
    HISTORY_MAX_LIMIT: int = 5000
    EXPORT_DEFAULT_LIMIT: int = 10000
    ALERT_LIST_LIMIT: int = 100
    CLEANUP_DEFAULT_DAYS: int = 90

    class Config:
        env_file = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env")
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
