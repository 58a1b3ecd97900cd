import json
from os import environ

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PROVIDER_CATALOG: dict[str, tuple[str, ...]] = {
    "flight": ("skyscanner", "amadeus", "expedia"),
    "hotel": ("booking", "hotels", "airbnb"),
    "ticket": ("ticketmaster", "eventbrite", "stubhub"),
    "car": ("hertz", "avis", "enterprise"),
    "transportation": ("uber", "lyft", "taxi"),
}


class BookingConfig(BaseModel):
    """予約サービスの設定（環境変数から一度だけ構築する）"""

    model_config = ConfigDict(frozen=True)

    aws_region: str
    table_name: str
    dynamodb_endpoint: str | None = None
    redis_url: str
    cache_ttl_seconds: int = Field(default=3600, gt=0)
    provider_timeout_seconds: float = Field(default=30.0, gt=0)
    simulated_failure_rate: float = Field(default=0.1, ge=0, le=1)
    simulated_min_delay_seconds: float = Field(default=1.0, ge=0)
    simulated_max_delay_seconds: float = Field(default=4.0, ge=0)
    provider_catalog: dict[str, tuple[str, ...]] = Field(
        default_factory=lambda: dict(DEFAULT_PROVIDER_CATALOG)
    )
    environment: str = "local"


_cached_config: BookingConfig | None = None


def _reset_config() -> None:
    """キャッシュ済みの設定を破棄する（テスト専用）"""
    global _cached_config
    _cached_config = None


def _load_provider_catalog() -> dict[str, tuple[str, ...]]:
    raw = environ.get("PROVIDER_CATALOG")
    if not raw:
        return dict(DEFAULT_PROVIDER_CATALOG)
    catalog = json.loads(raw)
    return {component: tuple(names) for component, names in catalog.items()}


def get_config() -> BookingConfig:
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    _cached_config = BookingConfig(
        aws_region=environ.get("AWS_REGION", "us-east-1"),
        table_name=environ.get("TABLE_NAME", "TripBookings"),
        dynamodb_endpoint=environ.get("DYNAMODB_ENDPOINT"),
        redis_url=environ.get("REDIS_URL", "redis://localhost:6379/0"),
        cache_ttl_seconds=int(environ.get("CACHE_TTL_SECONDS", "3600")),
        provider_timeout_seconds=float(environ.get("PROVIDER_TIMEOUT_SECONDS", "30")),
        simulated_failure_rate=float(environ.get("SIMULATED_FAILURE_RATE", "0.1")),
        simulated_min_delay_seconds=float(
            environ.get("SIMULATED_MIN_DELAY_SECONDS", "1")
        ),
        simulated_max_delay_seconds=float(
            environ.get("SIMULATED_MAX_DELAY_SECONDS", "4")
        ),
        provider_catalog=_load_provider_catalog(),
        environment=environ.get("ENVIRONMENT", "local"),
    )
    return _cached_config
