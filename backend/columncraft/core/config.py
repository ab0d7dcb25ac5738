from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_name: str = "ColumnCraft"
    debug: bool = False
    log_level: str = "INFO"

    # Board
    column_capacity: int = 6
    settle_delay_ms: int = 500

    # Mental training
    training_advance_delay_ms: int = 1000

    # CORS
    frontend_url: str = "http://localhost:5173"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
