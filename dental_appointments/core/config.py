from pydantic_settings import BaseSettings
from typing import List
import os

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Dental Appointment Manager"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    TESTING: bool = os.getenv("TESTING", "0").lower() in ("1", "true", "t", "yes", "y")

    # Local storage - one file per key, the whole collection lives under STORAGE_KEY
    STORAGE_DIR: str = "./data"
    STORAGE_KEY: str = "davanteDentCitas"
    STORAGE_QUOTA_BYTES: int = 5 * 1024 * 1024  # 0 disables the quota
    STORAGE_READ_ONLY: bool = False

    # Opening hours and slots
    CLINIC_OPEN_HOUR: int = 8
    CLINIC_CLOSE_HOUR: int = 18
    LAST_SLOT_MINUTE: int = 30  # last bookable minute within CLINIC_CLOSE_HOUR
    SLOT_MINUTES: int = 30

    # Listing
    NOTES_PREVIEW_LENGTH: int = 30
    EMPTY_STATE_TEXT: str = "dato vacío"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080", "http://testserver"]

    @property
    def storage_path(self) -> str:
        """Return the file the appointment collection is stored in."""
        return os.path.join(self.STORAGE_DIR, f"{self.STORAGE_KEY}.json")

    class Config:
        env_file = ".env"
        case_sensitive = True

# Create settings instance
settings = Settings()
