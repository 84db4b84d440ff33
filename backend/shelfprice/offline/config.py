"""Offline sync client configuration"""
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8000"
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Local durable store for the pending queue and price cache
    LOCAL_DATABASE_URL: str = "sqlite:///./shelfprice_client.db"

    # Sync scheduling
    SYNC_INTERVAL_SECONDS: float = 60.0
    STORE_REFRESH_COOLDOWN_SECONDS: float = 300.0

    # Queue limits
    PENDING_BATCH_LIMIT: int = 1000
    LAST_ERROR_MAX_LENGTH: int = 500

    class Config:
        env_file = ".env"
        env_prefix = "SHELFPRICE_CLIENT_"


client_settings = ClientSettings()
