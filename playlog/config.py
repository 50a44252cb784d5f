from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Playlog API"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]
    database_url: Optional[str] = None

    # List endpoints (sessions, completion logs)
    default_page_limit: int = 50
    max_page_limit: int = 200

    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
