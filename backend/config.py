from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./empowermint.db"

    # Static catalog (scenarios.json, lessons.json)
    data_dir: Path = Path(__file__).parent / "data"

    # Gemini API
    gemini_api_key: str = ""
    use_mock_gemini: bool = False
    gemini_model: str = "gemini-2.5-flash"
    gemini_max_retries: int = 1
    gemini_timeout_seconds: float = 10.0
    gemini_cache_ttl_seconds: int = 300

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = True
    environment: str = "development"  # development | production

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Rate limits (slowapi syntax)
    decision_rate_limit: str = "60/minute"
    ai_rate_limit: str = "20/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
