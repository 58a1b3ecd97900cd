"""Lambda 実行環境ごとの依存関係の組み立て

設定とストア・プロバイダは実行環境内で再利用する。
Redis クライアントはイベントループに紐づくため、呼び出しごとに開いて閉じる。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from trip_booking.booking.applications.apply_payment_event import (
    ApplyPaymentEventService,
)
from trip_booking.booking.applications.book_component import (
    ComponentBookingExecutor,
)
from trip_booking.booking.applications.cancel_booking import CancellationCoordinator
from trip_booking.booking.applications.get_booking import BookingQueryService
from trip_booking.booking.applications.process_trip_booking import (
    BookingOrchestrator,
)
from trip_booking.booking.domain.factory import TripBookingFactory
from trip_booking.booking.domain.provider import ProviderRegistry
from trip_booking.booking.domain.repository import BookingStateStore, ResultCache
from trip_booking.booking.infrastructure import (
    DynamoDBBookingStateStore,
    RedisResultCache,
    SimulatedProviderAdapter,
)
from trip_booking.shared.config import get_config


@lru_cache(maxsize=1)
def provider_registry() -> ProviderRegistry:
    config = get_config()
    simulated = SimulatedProviderAdapter(
        failure_rate=config.simulated_failure_rate,
        min_delay_seconds=config.simulated_min_delay_seconds,
        max_delay_seconds=config.simulated_max_delay_seconds,
    )
    return ProviderRegistry(config.provider_catalog, default_adapter=simulated)


@lru_cache(maxsize=1)
def state_store() -> BookingStateStore:
    config = get_config()
    return DynamoDBBookingStateStore(
        table_name=config.table_name,
        endpoint_url=config.dynamodb_endpoint,
        region_name=config.aws_region,
    )


@lru_cache(maxsize=1)
def component_executor() -> ComponentBookingExecutor:
    return ComponentBookingExecutor(
        store=state_store(),
        providers=provider_registry(),
        provider_timeout_seconds=get_config().provider_timeout_seconds,
    )


@asynccontextmanager
async def open_cache() -> AsyncIterator[ResultCache]:
    cache = RedisResultCache.from_url(get_config().redis_url)
    try:
        yield cache
    finally:
        await cache.close()


def booking_orchestrator(cache: ResultCache) -> BookingOrchestrator:
    return BookingOrchestrator(
        store=state_store(),
        cache=cache,
        executor=component_executor(),
        factory=TripBookingFactory(),
        providers=provider_registry(),
        cache_ttl_seconds=get_config().cache_ttl_seconds,
    )


def booking_query_service(cache: ResultCache) -> BookingQueryService:
    return BookingQueryService(
        store=state_store(),
        cache=cache,
        cache_ttl_seconds=get_config().cache_ttl_seconds,
    )


def cancellation_coordinator(cache: ResultCache) -> CancellationCoordinator:
    return CancellationCoordinator(store=state_store(), cache=cache)


def payment_event_service(cache: ResultCache) -> ApplyPaymentEventService:
    return ApplyPaymentEventService(store=state_store(), cache=cache)
