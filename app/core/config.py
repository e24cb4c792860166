# app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional, Set
from dotenv import load_dotenv
from loguru import logger
import os

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DOTENV_PATH = os.path.join(BASE_DIR, '.env')

if os.path.exists(DOTENV_PATH):
    load_dotenv(dotenv_path=DOTENV_PATH)
    logger.info(f".env loaded from: {DOTENV_PATH}")
else:
    logger.warning(f".env not found at: {DOTENV_PATH}, relying on process environment")

class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SUPABASE_URL: str
    SUPABASE_SERVICE_KEY: str

    # Optional integrations: features degrade when these are missing
    GOOGLE_API_KEY: Optional[str] = None
    RATE_LIMIT_STORAGE_URI: Optional[str] = None  # e.g. redis://localhost:6379

    # Comma-separated Supabase account emails allowed to review verifications
    ADMIN_EMAILS: str = ""
    APP_URL: str = "https://verified.doctor"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    @property
    def admin_emails(self) -> Set[str]:
        return {email.strip().lower() for email in self.ADMIN_EMAILS.split(",") if email.strip()}

@lru_cache()
def get_settings() -> Settings:
    try:
        return Settings()
    except Exception as e:
        logger.error(f"Settings could not be loaded. Check your .env file or variable names. Error: {e}")
        raise e
