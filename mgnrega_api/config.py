from __future__ import annotations
from functools import lru_cache
from typing import List
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ──────────────────────────────────────────────────────────────────
    APP_NAME: str = "MGNREGA District API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    PORT: int = 4000

    # ── CORS ─────────────────────────────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # ── Database ─────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./mgnrega.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # ── data.gov.in ──────────────────────────────────────────────────────────
    DATA_GOV_API_KEY: str  # required, no default
    DATA_GOV_BASE_URL: str = "https://api.data.gov.in/resource"
    DATA_GOV_RESOURCE_ID: str = "ee03643a-ee4c-48c2-ac30-9f2ff26ab722"
    STATE_NAME: str = "BIHAR"

    # ── HTTP fetcher ─────────────────────────────────────────────────────────
    HTTP_TIMEOUT: float = 20.0
    FETCH_LIMIT: int = 5000              # district cache misses
    STATE_FETCH_LIMIT: int = 10000       # per state / financial year
    AVAILABILITY_SAMPLE_SIZE: int = 1000

    # ── Record store ─────────────────────────────────────────────────────────
    RECORD_LIMIT: int = 24               # newest periods served per district

    @property
    def DATA_GOV_URL(self) -> str:
        return f"{self.DATA_GOV_BASE_URL.rstrip('/')}/{self.DATA_GOV_RESOURCE_ID}"

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of {allowed}")
        return v

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
