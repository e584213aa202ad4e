from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Load env from .env file
    model_config = {"env_file": ".env", "extra": "ignore"}

    # Storage
    SOURCE_DIR: str = "public"
    CACHE_DIR: str = "cache"

    # Request defaults (applied when a query param is absent or not numeric)
    DEFAULT_WIDTH: int = 800
    DEFAULT_HEIGHT: int = 600
    DEFAULT_QUALITY: int = 80
    DEFAULT_FORMAT: str = "jpg"
    MAX_DIMENSION: int = 4096

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5173
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

# Instantiate settings
settings = Settings()
