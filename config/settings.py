"""App settings — loaded from environment."""
from __future__ import annotations

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # API
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8000"))

    # Database (postgresql:// URLs are rewritten to asyncpg)
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///nutria.db")

    # Auth
    JWT_SECRET = os.getenv("JWT_SECRET", "nutria-dev-secret-change-in-prod")

    # CORS origins (comma-separated, or * for dev)
    CORS_ORIGINS = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")
    ]

    # Anthropic (chat, meal analysis, plan generation)
    ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
    AI_MODEL = os.getenv("AI_MODEL", "claude-sonnet-4-20250514")

    # USDA FoodData Central
    USDA_API_KEY = os.getenv("USDA_API_KEY")
    USDA_API_BASE = os.getenv("USDA_API_BASE", "https://api.nal.usda.gov/fdc/v1")

    # Nutritional day (05:00 -> 05:00)
    NUTRITIONAL_DAY_START_HOUR = int(os.getenv("NUTRITIONAL_DAY_START_HOUR", "5"))
    NUTRITIONAL_DAY_TZ = os.getenv("NUTRITIONAL_DAY_TZ", "UTC")

    # Daily progress notification
    NOTIFICATION_HOUR = int(os.getenv("NOTIFICATION_HOUR", "20"))

    # AI chat memory per user
    CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", "20"))

    # Observability
    SENTRY_DSN = os.getenv("SENTRY_DSN", "")
    SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))

    # Logging
    LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
