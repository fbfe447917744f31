"""
Application configuration settings
FILE: exam_portal/core/config.py
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB Configuration
    mongodb_url: str = "mongodb://localhost:27017"
    database_name: str = "exam_portal"

    # Test assembly
    max_pools_per_query: int = 10
    shuffle_seed: Optional[int] = None

    # Analytics
    pass_mark: float = 50.0
    trend_window: int = 5
    analysis_topic_count: int = 3

    # HTTP
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:4000",
    ]
    log_level: str = "INFO"


settings = Settings()
