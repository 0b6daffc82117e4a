from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/data.db"
    DATA_DIR: str = "./data"

    # Uploaded photos
    UPLOADS_DIR: str = "./public/images"
    MAX_UPLOAD_FILES: int = 10

    # Admin gate
    ADMIN_USER: str = "admin"
    ADMIN_PASS: str = "password"
    ADMIN_RATE_LIMIT: str = "30/minute"

    # Contact link; empty disables it
    WHATSAPP_PHONE: str = ""

    RECENT_LIMIT: int = 6
    LOG_LEVEL: str = "INFO"

    @field_validator("WHATSAPP_PHONE", mode="before")
    @classmethod
    def strip_phone(cls, v):
        """Keep only the digits of the configured phone number."""
        if v is None:
            return ""
        return "".join(ch for ch in str(v) if ch.isdigit())

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
