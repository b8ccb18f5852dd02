"""Application configuration module."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

# Absolute project paths, relative to this file
_THIS_DIR = Path(__file__).parent  # backend/concrete_orders/
_BACKEND_ROOT = _THIS_DIR.parent  # backend/
_PROJECT_ROOT = _BACKEND_ROOT.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Backend Configuration
    backend_host: str = "0.0.0.0"
    backend_port: int = 3000
    backend_debug: bool = False
    timezone: str = "Asia/Bangkok"

    # Database
    data_dir: str = str(_BACKEND_ROOT / "data")
    database_url: str = ""

    # LINE Messaging API
    line_channel_secret: str = ""
    line_channel_access_token: str = ""
    enable_reply_message: bool = False

    # Duplicate detection (minutes)
    duplicate_message_window_minutes: int = 10
    duplicate_item_window_minutes: int = 30
    duplicate_fail_open: bool = True

    # Google Sheets
    google_sheets_id: str = ""
    google_sheet_index: int = 0
    google_application_credentials_json: str = ""
    google_application_credentials_base64: str = ""
    google_service_account_key_path: str = ""

    # Periodic sync sweep, 0 disables it
    sync_interval_seconds: int = 300

    # Logging
    log_level: str = "INFO"

    @property
    def data_dir_path(self) -> Path:
        """Get data directory path as Path object (always absolute)."""
        path = Path(self.data_dir)
        if not path.is_absolute():
            path = _PROJECT_ROOT / path
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def resolved_database_url(self) -> str:
        """Database URL, defaulting to a SQLite file inside the data directory."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir_path / 'orders.db'}"

    @property
    def google_key_path_resolved(self) -> Optional[Path]:
        """Service account key file path, or None when not configured."""
        if not self.google_service_account_key_path:
            return None
        path = Path(self.google_service_account_key_path)
        if not path.is_absolute():
            path = _PROJECT_ROOT / path
        return path

    @property
    def google_credentials_configured(self) -> bool:
        """Whether any service account credential source is set."""
        return bool(
            self.google_application_credentials_json
            or self.google_application_credentials_base64
            or self.google_service_account_key_path
        )

    @property
    def line_reply_available(self) -> bool:
        """Check if confirmation replies are switched on and can be sent."""
        return self.enable_reply_message and bool(self.line_channel_access_token)

    @property
    def google_sheets_available(self) -> bool:
        """Check if Google Sheets sync can run."""
        return bool(self.google_sheets_id) and self.google_credentials_configured

    model_config = {
        "env_file": str(_ENV_FILE),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
