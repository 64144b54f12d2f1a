# app/core/config.py

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # MongoDB settings
    MONGODB_URI: str = Field(default="mongodb://localhost:27017")
    MONGODB_DB: str = Field(default="coliving")
    MONGODB_TIMEOUT_MS: int = Field(default=5000)

    # Auth/JWT settings
    SECRET_KEY: str = Field(...)
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24)

    # Chat settings
    MESSAGE_MAX_LENGTH: int = Field(default=5000)
    WS_SEND_TIMEOUT_SECONDS: float = Field(default=5.0)
    WS_OUTBOX_SIZE: int = Field(default=100)
    HISTORY_MAX_PAGE_SIZE: int = Field(default=200)

    FRONTEND_URL: str = Field(default="http://localhost:5173")

settings = Settings()
