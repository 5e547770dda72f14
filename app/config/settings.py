from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    FIREBASE_KEY_PATH: Optional[str] = None
    FIREBASE_PROJECT_ID: Optional[str] = None

    # Gemini: either variable name works, GEMINI_API_KEY wins
    GEMINI_API_KEY: Optional[str] = None
    GOOGLE_GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-pro"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    AI_TIMEOUT_SECONDS: float = 10.0

    IDX_BROKER_API_KEY: Optional[str] = None
    IDX_BROKER_BASE_URL: str = "https://api.idxbroker.com"
    IDX_TIMEOUT_SECONDS: float = 10.0
    IDX_SEARCH_TIMEOUT_SECONDS: float = 15.0
    PROPERTY_CACHE_TTL_SECONDS: int = 300
    PROPERTY_CACHE_MAX_ENTRIES: int = 256

    STRIPE_PUBLIC_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("VITE_STRIPE_PUBLIC_KEY", "STRIPE_PUBLIC_KEY"),
    )
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_API_VERSION: Optional[str] = None
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def gemini_key(self) -> Optional[str]:
        return self.GEMINI_API_KEY or self.GOOGLE_GEMINI_API_KEY

settings = Settings()
