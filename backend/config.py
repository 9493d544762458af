# backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./gamer_bazaar.db"

    # Public storefront origin, used to build /verify/<code> links
    FRONTEND_URL: str = "http://localhost:5000"
    QR_IMAGE_API_URL: str = "https://api.qrserver.com/v1/create-qr-code/"

    # Outgoing mail; without credentials notifications are only logged
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = ""
    EMAIL_FROM_NAME: str = "Gamer Bazaar"

    ORDER_NUMBER_PREFIX: str = "GB"
    LOG_LEVEL: str = "INFO"

settings = Settings()
