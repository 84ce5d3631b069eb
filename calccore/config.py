import json
from datetime import timedelta
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from calccore.core.rate_source import NBU_URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    HOME_CURRENCY: str = Field(default="UAH", description="Currency every schedule is computed in")
    RATE_CODES: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["USD", "EUR"],
        description="Display currencies to cache, comma-separated in the environment",
    )
    RATE_SOURCE_URL: str = Field(default=NBU_URL, description="JSON exchange endpoint")
    RATE_CACHE_TTL_HOURS: float = Field(default=12, gt=0, description="Freshness window of cached rates")
    RATE_FETCH_TIMEOUT_SECONDS: float = Field(default=10, gt=0, description="HTTP timeout for the rate fetch")
    REFRESH_RATES_ON_STARTUP: bool = Field(default=False, description="Fetch rates when the app is created")

    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call /api/*",
    )
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    @field_validator("RATE_CODES", "CORS_ORIGINS", mode="before")
    @classmethod
    def split_csv(cls, value: Any) -> Any:
        # env values arrive as "USD,EUR"; JSON lists are accepted too
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                return json.loads(text)
            return [item.strip() for item in text.split(",") if item.strip()]
        return value

    @field_validator("HOME_CURRENCY")
    @classmethod
    def upper_home(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("RATE_CODES")
    @classmethod
    def upper_codes(cls, value: List[str]) -> List[str]:
        return [code.strip().upper() for code in value if code.strip()]

    @property
    def rate_cache_ttl(self) -> timedelta:
        return timedelta(hours=self.RATE_CACHE_TTL_HOURS)


settings = Settings()
