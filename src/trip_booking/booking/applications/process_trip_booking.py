import asyncio
from dataclasses import dataclass

from aws_lambda_powertools import Logger

from trip_booking.booking.applications.book_component import (
    ComponentBookingExecutor,
    ComponentResult,
)
from trip_booking.booking.domain.entity import ComponentBooking, TripBooking
from trip_booking.booking.domain.enum import BookingStatus, ComponentStatus
from trip_booking.booking.domain.factory import SelectionDetails, TripBookingFactory
from trip_booking.booking.domain.provider import ProviderRegistry
from trip_booking.booking.domain.repository import BookingStateStore, ResultCache
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.shared.domain import Money, TripId, UserId
from trip_booking.shared.domain.exception import (
    OptimisticLockException,
    PersistenceException,
    ValidationException,
)
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME, child=True)


@dataclass(frozen=True)
class BookingResult:
    """旅行予約の処理結果

    部分的な成功（PARTIAL）もエラーではなく正常な結果として返す。
    """

    booking: TripBooking
    status: BookingStatus
    components: list[ComponentBooking]
    failed: list[ComponentBooking]
    total_cost: Money

    @property
    def booking_id(self) -> BookingId:
        return self.booking.id


class BookingOrchestrator:
    """旅行予約のユースケース

    1. PENDING のコンポーネント行を永続化（プロバイダ呼び出しより前）
    2. 全コンポーネントを並行に予約し、すべての完了を待つ
    3. 集約ステータスを確定し、ストアとキャッシュへ書き込む
    """

    def __init__(
        self,
        store: BookingStateStore,
        cache: ResultCache,
        executor: ComponentBookingExecutor,
        factory: TripBookingFactory,
        providers: ProviderRegistry,
        cache_ttl_seconds: int = 3600,
    ) -> None:
        self._store = store
        self._cache = cache
        self._executor = executor
        self._factory = factory
        self._providers = providers
        self._cache_ttl = cache_ttl_seconds

    async def process_trip_booking(
        self,
        user_id: UserId,
        trip_id: TripId,
        selections: list[SelectionDetails],
    ) -> BookingResult:
        """旅行予約を処理する

        Raises:
            ValidationException: 選択内容が不正（何も永続化しない）
            PersistenceException: PENDING 行の永続化に失敗（プロバイダは呼ばない）
        """
        booking = self._factory.create(user_id, trip_id, selections)
        self._validate_providers(booking)

        context = {
            "booking_id": str(booking.id),
            "user_id": str(user_id),
            "trip_id": trip_id.value,
            "component_count": len(booking.components),
        }
        logger.info("Starting trip booking process", extra=context)

        try:
            await self._store.create(booking)
        except PersistenceException:
            logger.exception("Failed to persist pending components", extra=context)
            raise

        outcomes = await asyncio.gather(
            *(self._executor.book_component(c) for c in booking.components),
            return_exceptions=True,
        )
        results = [
            self._settle(component, outcome)
            for component, outcome in zip(booking.components, outcomes)
        ]

        booking.touch()
        booking = await self._finalize(booking, results, context)

        result = BookingResult(
            booking=booking,
            status=booking.status,
            components=booking.confirmed_components,
            failed=booking.failed_components,
            total_cost=booking.total_cost,
        )
        logger.info(
            "Trip booking process completed",
            extra={
                **context,
                "status": result.status.value,
                "successful": len(result.components),
                "failed": len(result.failed),
                "total_cost": str(result.total_cost.amount),
            },
        )
        return result

    def _validate_providers(self, booking: TripBooking) -> None:
        for component in booking.components:
            if not self._providers.is_allowed(
                component.component_type, component.provider
            ):
                raise ValidationException(
                    f"Provider {component.provider} is not available for "
                    f"{component.component_type.value}"
                )

    def _settle(
        self, component: ComponentBooking, outcome: ComponentResult | BaseException
    ) -> ComponentResult:
        """gather の結果を ComponentResult に揃える"""
        if isinstance(outcome, ComponentResult):
            return outcome

        logger.error(
            "Component task raised unexpectedly",
            extra={"component_id": str(component.id), "error": repr(outcome)},
        )
        if component.status == ComponentStatus.PENDING:
            component.start_processing()
        if component.status == ComponentStatus.PROCESSING:
            component.fail(str(outcome))
        return ComponentResult(component=component, error=str(outcome), persisted=False)

    async def _finalize(
        self, booking: TripBooking, results: list[ComponentResult], context: dict
    ) -> TripBooking:
        """最終ヘッダを書き込み、キャッシュを更新する

        並行キャンセルと競合した場合はストアの状態を正とし、キャッシュは破棄する。
        """
        try:
            await self._store.update_header(booking)
        except OptimisticLockException:
            logger.warning(
                "Booking cancelled while settling; stored cancellation kept",
                extra=context,
            )
            await self._cache.invalidate(booking.id)
            return await self._store.find_by_id(booking.id) or booking
        except PersistenceException:
            logger.exception("Failed to persist final booking status", extra=context)
            await self._cache.invalidate(booking.id)
            return booking

        if booking.status == BookingStatus.CANCELLED or not all(
            r.persisted for r in results
        ):
            # ストアとの差分が残るため、読み出しはストアから再計算させる
            await self._cache.invalidate(booking.id)
        else:
            await self._cache.set(booking, self._cache_ttl)
        return booking
