# catalog_import/core/config.py
from typing import List

from pydantic_settings import BaseSettings
from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    # Validation engine tuning
    FUZZY_MATCH_THRESHOLD: float = 0.6
    PRICE_LOW_THRESHOLD: float = 1.0
    PRICE_HIGH_THRESHOLD: float = 10000.0
    FIXES_PER_TIME_UNIT: int = 100
    VALIDATION_CHUNK_SIZE: int = 500
    PREVIEW_ROW_LIMIT: int = 50

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:8000"]

    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

settings = Settings()
