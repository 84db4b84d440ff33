"""Application configuration"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./shelfprice.db"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 30

    # Outlier detection: relative deviation from the active mean above which
    # a new price is flagged at creation
    AUTO_FLAG_DEVIATION_THRESHOLD: float = 0.5

    # Moderation queue listing
    MODERATION_LIST_DEFAULT_LIMIT: int = 100
    MODERATION_LIST_MAX_LIMIT: int = 200

    # Analytics rankings
    ANALYTICS_TOP_DEFAULT_LIMIT: int = 5
    ANALYTICS_TOP_MAX_LIMIT: int = 20

    # Insert sample stores/products on first startup
    SEED_SAMPLE_DATA: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
