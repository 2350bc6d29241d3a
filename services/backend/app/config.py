"""Application configuration driven by environment variables."""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables.

    Field names map to upper-case variables, e.g. ``WEATHER_SERVICE_URL``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = "cep-weather"
    service_port: int = 8080
    # Where the gateway reaches the aggregator (``GET {url}/weather/{cep}``).
    weather_service_url: str = "http://localhost:8080"
    weather_api_key: str = ""
    geo_api_url: str = "http://viacep.com.br/ws"
    weather_api_url: str = "http://api.weatherapi.com"
    otel_exporter_otlp_endpoint: Optional[str] = None
    request_timeout_seconds: float = 60.0
    log_level: str = "INFO"

    @field_validator("weather_service_url", "geo_api_url", "weather_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("otel_exporter_otlp_endpoint", mode="before")
    @classmethod
    def _blank_endpoint(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        return str(value).strip()


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance, read once at process start."""
    return Settings()
