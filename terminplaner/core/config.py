from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Database
    database_url: str = "postgresql+asyncpg://localhost/terminplaner"

    # App Settings
    debug: bool = False
    secret_key: str = "change-me-terminplaner-secret"
    app_name: str = "Terminplaner"

    # Session cookie
    session_cookie_name: str = "terminplaner_session"
    session_ttl_seconds: int = 60 * 60 * 24 * 7

    # CORS
    cors_origins: List[str] = ["*"]

    # Background jobs
    enable_background_jobs: bool = True
    reminder_sweep_interval_seconds: int = 60
    archive_sweep_hour: int = 0

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
