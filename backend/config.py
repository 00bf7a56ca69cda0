# backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_bakery.db"

    FRONTEND_URL: Optional[str] = None

    # Bootstrap admin account created on startup when both are set
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    # Post-commit attempts to clear a cart that could not be cleared with its order
    CART_CLEAR_RETRIES: int = 3

    FALLBACK_IMAGE_URL: str = "https://images.unsplash.com/photo-1578985545062-69928b1d9587?w=500&q=80"
    DEFAULT_SHOP_NAME: str = "Sweet Delights Bakery"
    DEFAULT_LOGO_URL: str = "https://api.dicebear.com/7.x/avataaars/svg?seed=cake"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

settings = Settings()
