import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="ALPHABET_DATABASE_URL")
    database_pool_size: int = Field(10, alias="ALPHABET_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="ALPHABET_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="ALPHABET_DATABASE_ECHO")
    auto_create_schema: bool = Field(False, alias="ALPHABET_AUTO_CREATE_SCHEMA")
    identity_url: Optional[str] = Field(None, alias="ALPHABET_IDENTITY_URL")
    identity_service_key: Optional[str] = Field(None, alias="ALPHABET_IDENTITY_SERVICE_KEY")
    identity_timeout_seconds: float = Field(10.0, alias="ALPHABET_IDENTITY_TIMEOUT_SECONDS")
    app_url: str = Field("http://localhost:3000", alias="ALPHABET_APP_URL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="ALPHABET_CORS_ORIGINS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url)

    @property
    def identity_configured(self) -> bool:
        return bool(self.identity_url and self.identity_service_key)


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
