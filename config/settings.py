import os

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve project root and absolute path to .env regardless of CWD
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
ENV_FILE = os.path.join(PROJECT_ROOT, ".env")


class Settings(BaseSettings):
    """
    Central configuration for Drive Tree.

    Values are loaded from environment variables and optionally from a local .env file
    (not committed). Defaults are reasonable for local development.
    """

    # Google OAuth (override via .env in real usage)
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REDIRECT_URI: str = "http://localhost:8000/auth/google/callback"
    GOOGLE_CREDENTIALS_FILE: str = "google_credentials.json"

    # Drive API
    DRIVE_API_BASE: str = "https://www.googleapis.com/drive/v3"
    DRIVE_PAGE_SIZE: int = 1000
    HTTP_TIMEOUT_SECONDS: float = 60.0
    # "every_page" expands folders found on any listing page; "terminal_page" only
    # expands folders found on the last page of a folder listing.
    FOLDER_DISCOVERY: str = "every_page"

    # Infra
    REDIS_URL: str = "redis://127.0.0.1:6379/0"

    # Directory for downloaded binaries written by the worker and CLI
    STORAGE_DIR: str = "data/downloads"

    LOG_LEVEL: str = "INFO"

    # pydantic-settings v2 style config; ignore unknown env keys so they don't raise ValidationError
    model_config = SettingsConfigDict(env_file=ENV_FILE, env_file_encoding="utf-8", extra="ignore")


settings = Settings()
