"""Service configuration pulled from environment variables via pydantic."""
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the fare estimation service."""
    model_config = SettingsConfigDict(env_prefix="FARE_", extra="ignore")

    weather_source: str = "weatherapi"  # options: weatherapi, static
    weather_api_key: str | None = None
    weather_api_url: str = "https://api.weatherapi.com/v1/current.json"

    route_source: str = "google"  # options: google, static
    maps_api_key: str | None = None
    directions_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    route_safety_seed: int | None = None

    operators_file: str | None = None

    http_timeout_seconds: float = 5.0
    http_retries: int = 3
    http_backoff_factor: float = 0.2
    provider_timeout_seconds: float = 8.0

    timezone: str = "Africa/Nairobi"
    log_level: str = "INFO"

    @field_validator("weather_source", "route_source", mode="after")
    @classmethod
    def normalize_source(cls, v: str) -> str:
        """Source names are matched case-insensitively."""
        return str(v).strip().lower()

    @field_validator("timezone", mode="after")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        """Reject timezone names the zoneinfo database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{v}'") from exc
        return v


settings = Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    dumped = settings.model_dump_json(indent=4, exclude={"weather_api_key", "maps_api_key"})
    logger.debug(f"Loaded settings: {dumped}")
