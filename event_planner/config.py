"""
Application Configuration
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FIXTURE_PATH = Path(__file__).parent / "data" / "fixture.json"


class Settings(BaseSettings):
    """Application settings"""

    # Service Info
    SERVICE_NAME: str = "event-planner-service"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 4000

    # Data
    FIXTURE_PATH: str = str(DEFAULT_FIXTURE_PATH)

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    # Notification bus
    BROKER_BACKEND: str = "redis"  # "redis" or "memory"
    BROKER_CHANNEL_PREFIX: str = "event_planner"
    BROKER_RECONNECT_BASE_DELAY: float = 0.5
    BROKER_RECONNECT_MAX_DELAY: float = 30.0
    PUBLISH_QUEUE_SIZE: int = 1000
    SUBSCRIBER_BUFFER_SIZE: int = 100
    BACKPRESSURE_POLICY: str = "drop_oldest"  # "drop_oldest" or "disconnect"

    # Observability
    LOG_LEVEL: str = "INFO"
    ENABLE_METRICS: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()
