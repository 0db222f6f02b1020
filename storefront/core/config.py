# storefront/core/config.py
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)
      - ADMIN_ACCESS_PASSWORD (front-door password for the admin panel)

    Optional:
      - DEFAULT_WHATSAPP_NUMBER (used until an admin saves a number)
      - LOCAL_CONFIG_PATH (JSON file holding the saved WhatsApp number)
    """

    PROJECT_NAME: str = "Storefront API"
    API_V1_STR: str = "/api/v1"

    # Supabase config
    SUPABASE_URL: str
    SUPABASE_KEY: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Admin panel
    ADMIN_ACCESS_PASSWORD: str
    PRODUCT_IMAGES_BUCKET: str = "mira-img"
    SITE_URL: str = "http://localhost:3000"
    AUTH_REDIRECT_URL: str | None = None

    # Checkout via WhatsApp
    WHATSAPP_BASE_URL: str = "https://wa.me"
    DEFAULT_WHATSAPP_NUMBER: str = "967773226263"
    LOCAL_CONFIG_PATH: str = "storefront_config.json"

    # Browsing sessions & caches
    SESSION_COOKIE_NAME: str = "storefront_session"
    SESSION_TTL_SECONDS: int = 3600
    PRODUCT_CACHE_TTL_SECONDS: int = 300

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def default_redirect(self) -> "Settings":
        # Sign-up confirmation links land back on the admin page
        if not self.AUTH_REDIRECT_URL:
            self.AUTH_REDIRECT_URL = f"{self.SITE_URL.rstrip('/')}/admin"
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
