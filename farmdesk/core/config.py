# farmdesk/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal

class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = False

    # Security
    SECRET_KEY: str
    ALGORITHM: Literal["HS256", "HS512"] = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Auth cookie (set on login, read by get_current_user)
    AUTH_COOKIE_NAME: str = "token"
    COOKIE_SECURE: bool = False

    # Database
    DATABASE_URL: str

    # HTTP
    CORS_ORIGINS: list[str] = [
        "http://127.0.0.1:3000",
        "http://localhost:3000",
    ]
    RATE_LIMIT_ENABLED: bool = True

    # Sales
    SALE_FINALIZE_TIMEOUT_SECONDS: float = 10.0


    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
    )


settings = Settings()
