# footprint/config.py
import os
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "data", "footprint.db")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FOOTPRINT_", env_file=".env", extra="ignore")

    DATABASE_URL: str = f"sqlite:///{DEFAULT_DB_PATH}"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]
    DEFAULT_ACTIVITY_LIMIT: int = 50
    DEFAULT_USER_ACTIVITY_LIMIT: int = 5
    LEADERBOARD_SIZE: int = 10


settings = Settings()
