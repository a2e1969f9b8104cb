from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Force-load .env from the project root
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

SETUP_HINT = (
    "Cannot find necessary environment variables. Set STRIPE_SECRET_KEY and "
    "STRIPE_PUBLISHABLE_KEY in your environment or .env file."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    STRIPE_SECRET_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: Optional[str] = None

    DEFAULT_CURRENCY: str = "usd"

    APP_NAME: str = "Stripe Checkout Example"
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")

    def ensure_keys(self) -> "Settings":
        if not self.STRIPE_SECRET_KEY or not self.STRIPE_PUBLISHABLE_KEY:
            raise RuntimeError(SETUP_HINT)
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings().ensure_keys()
