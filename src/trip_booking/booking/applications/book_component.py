import asyncio
import random
import string
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from aws_lambda_powertools import Logger

from trip_booking.booking.domain.entity import ComponentBooking
from trip_booking.booking.domain.enum import ComponentStatus, ComponentType
from trip_booking.booking.domain.provider import ProviderRegistry
from trip_booking.booking.domain.repository import BookingStateStore
from trip_booking.booking.domain.value_object import (
    CarConfirmation,
    ConfirmationDetails,
    ConfirmationNumber,
    FlightConfirmation,
    HotelConfirmation,
    ProviderReference,
    TicketConfirmation,
    TransportationConfirmation,
)
from trip_booking.shared.domain.exception import (
    OptimisticLockException,
    PersistenceException,
    ProviderException,
)
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME, child=True)

DEFAULT_CANCELLATION_POLICY = "Standard cancellation policy applies"

_UPPER_ALNUM = string.ascii_uppercase + string.digits
_LOWER_ALNUM = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class ComponentResult:
    """1コンポーネント分の予約結果

    persisted が False の場合、最終ステータスがストアに反映されていない。
    その場合は後続の get_booking_status での再計算で整合させる。
    """

    component: ComponentBooking
    error: str | None = None
    persisted: bool = True

    @property
    def status(self) -> ComponentStatus:
        return self.component.status

    @property
    def succeeded(self) -> bool:
        return self.component.is_confirmed()


class _DetailSource:
    """プロバイダの応答 > 選択時の details > 既定値 の順に値を解決する"""

    def __init__(self, provider_data: dict, option_details: dict, rng: random.Random):
        self._sources = (provider_data, option_details)
        self.rng = rng

    def get(self, key: str, default: object) -> str:
        for source in self._sources:
            value = source.get(key)
            if value not in (None, ""):
                return str(value)
        return str(default() if callable(default) else default)


def _flight(base: dict, src: _DetailSource) -> FlightConfirmation:
    rng = src.rng
    return FlightConfirmation(
        **base,
        flight_number=src.get(
            "flight_number", lambda: "FL-" + "".join(rng.choices(_UPPER_ALNUM, k=4))
        ),
        departure=src.get("departure", "JFK"),
        arrival=src.get("arrival", "LAX"),
        departure_time=src.get("departure_time", "10:00 AM"),
        arrival_time=src.get("arrival_time", "1:00 PM"),
        seat=src.get(
            "seat", lambda: f"{rng.randint(1, 30)}{rng.choice('ABCDEF')}"
        ),
        cabin_class=src.get("class", "Economy"),
    )


def _hotel(base: dict, src: _DetailSource) -> HotelConfirmation:
    rng = src.rng
    return HotelConfirmation(
        **base,
        hotel_name=src.get("name", "Sample Hotel"),
        room_type=src.get("room_type", "Standard Room"),
        room_number=src.get(
            "room_number", lambda: f"{rng.randint(1, 10)}{rng.randint(0, 99):02d}"
        ),
        check_in=src.get("check_in", "3:00 PM"),
        check_out=src.get("check_out", "11:00 AM"),
    )


def _ticket(base: dict, src: _DetailSource) -> TicketConfirmation:
    rng = src.rng
    return TicketConfirmation(
        **base,
        ticket_type=src.get("ticket_type", "General Admission"),
        section=src.get("section", "GA"),
        row=src.get("row", lambda: rng.randint(1, 50)),
        seat=src.get("seat", lambda: rng.randint(1, 20)),
        delivery=src.get("delivery", "Mobile"),
    )


def _car(base: dict, src: _DetailSource) -> CarConfirmation:
    now = datetime.now(timezone.utc)
    return CarConfirmation(
        **base,
        car_model=src.get("car_model", "Toyota Camry"),
        pickup_location=src.get("pickup_location", "Airport"),
        return_location=src.get("return_location", "Airport"),
        pickup_date=src.get("pickup_date", now.isoformat()),
        return_date=src.get("return_date", (now + timedelta(days=1)).isoformat()),
    )


def _transportation(base: dict, src: _DetailSource) -> TransportationConfirmation:
    return TransportationConfirmation(
        **base,
        service=src.get("service", "Ride Share"),
        pickup=src.get("pickup", "Hotel"),
        dropoff=src.get("dropoff", "Venue"),
        eta=src.get("eta", "15 min"),
    )


_DETAIL_BUILDERS: dict[
    ComponentType, Callable[[dict, _DetailSource], ConfirmationDetails]
] = {
    ComponentType.FLIGHT: _flight,
    ComponentType.HOTEL: _hotel,
    ComponentType.TICKET: _ticket,
    ComponentType.CAR: _car,
    ComponentType.TRANSPORTATION: _transportation,
}


class ComponentBookingExecutor:
    """1コンポーネントをプロバイダで予約するユースケース

    コンポーネント種別ごとの詳細の組み立てはこのクラスだけが行う。
    失敗は例外として送出せず、FAILED の ComponentResult として返す。
    """

    def __init__(
        self,
        store: BookingStateStore,
        providers: ProviderRegistry,
        provider_timeout_seconds: float = 30.0,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._providers = providers
        self._timeout = provider_timeout_seconds
        self._rng = rng or random.Random()
        self._issued_references: set[str] = set()

    async def book_component(self, component: ComponentBooking) -> ComponentResult:
        """コンポーネントを予約する

        PROCESSING の書き込み -> プロバイダ呼び出し -> 最終ステータスの書き込み
        の順序を守る。
        """
        context = {
            "component_id": str(component.id),
            "booking_id": str(component.booking_id),
            "component_type": component.component_type.value,
            "provider": component.provider,
        }
        logger.info("Processing component booking", extra=context)

        component.start_processing()
        try:
            await self._store.update_component(
                component, expected_status=ComponentStatus.PENDING
            )
        except OptimisticLockException:
            # PENDING から変わっている = 予約全体がキャンセル済み
            logger.warning("Component cancelled before provider call", extra=context)
            component.cancel()
            return ComponentResult(component=component, error="cancelled")
        except PersistenceException as e:
            logger.exception("Failed to mark component as processing", extra=context)
            component.fail(f"Could not record processing state: {e}")
            return await self._persist_failure_from_pending(component, context)

        try:
            provider_data = await self._call_provider(component)
        except ProviderException as e:
            logger.error(
                "Component booking failed", extra={**context, "error": str(e)}
            )
            component.fail(str(e))
            return await self._persist_outcome(component, context, error=str(e))

        component.confirm(
            provider_reference=self._new_reference(component.provider),
            confirmation_number=self._new_confirmation_number(),
            provider_details=self._build_details(component, provider_data).to_dict(),
        )
        logger.info(
            "Component booking successful",
            extra={**context, "booking_reference": str(component.provider_reference)},
        )
        return await self._persist_outcome(component, context)

    async def _call_provider(self, component: ComponentBooking) -> dict:
        adapter = self._providers.adapter_for(component.provider)
        try:
            return await asyncio.wait_for(adapter.book(component), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ProviderException(
                component.provider,
                f"Provider {component.provider} did not respond within {self._timeout}s",
            ) from e
        except ProviderException:
            raise
        except Exception as e:
            logger.exception(
                "Unexpected provider adapter error",
                extra={"component_id": str(component.id), "provider": component.provider},
            )
            raise ProviderException(component.provider, str(e)) from e

    async def _persist_failure_from_pending(
        self, component: ComponentBooking, context: dict
    ) -> ComponentResult:
        """PROCESSING を記録できなかった行を FAILED で確定させる（ベストエフォート）

        行は PENDING のまま残っているため、PENDING を期待して書き込む。
        """
        try:
            await self._store.update_component(
                component, expected_status=ComponentStatus.PENDING
            )
        except OptimisticLockException:
            logger.warning("Component cancelled before provider call", extra=context)
            component.cancel()
            return ComponentResult(component=component, error="cancelled")
        except PersistenceException:
            logger.exception(
                "Failed to record component failure; row left pending", extra=context
            )
            return ComponentResult(
                component=component, error=component.error, persisted=False
            )
        return ComponentResult(component=component, error=component.error)

    async def _persist_outcome(
        self, component: ComponentBooking, context: dict, error: str | None = None
    ) -> ComponentResult:
        """最終ステータスを書き込む（PROCESSING のままの場合のみ）"""
        try:
            await self._store.update_component(
                component, expected_status=ComponentStatus.PROCESSING
            )
        except OptimisticLockException:
            # プロバイダ呼び出し中にキャンセルされた。キャンセルは覆さない
            logger.warning(
                "Component cancelled during provider call; outcome discarded",
                extra={**context, "outcome": component.status.value},
            )
            component.cancel()
            return ComponentResult(component=component, error=error)
        except PersistenceException:
            logger.exception(
                "Failed to persist component outcome; provider-side result kept",
                extra={**context, "outcome": component.status.value},
            )
            return ComponentResult(component=component, error=error, persisted=False)
        return ComponentResult(component=component, error=error)

    def _build_details(
        self, component: ComponentBooking, provider_data: dict
    ) -> ConfirmationDetails:
        base = {
            "provider": component.provider,
            "booking_time": datetime.now(timezone.utc).isoformat(),
            "cancellation_policy": component.selection_details.get(
                "cancellation_policy", DEFAULT_CANCELLATION_POLICY
            ),
        }
        option_details = component.selection_details.get("details") or {}
        source = _DetailSource(provider_data or {}, option_details, self._rng)
        return _DETAIL_BUILDERS[component.component_type](base, source)

    def _new_reference(self, provider: str) -> ProviderReference:
        """プロセス内で一意なプロバイダ参照番号を生成する"""
        prefix = "".join(ch for ch in provider.upper() if ch.isalnum()) or "PROVIDER"
        while True:
            suffix = "".join(self._rng.choices(_LOWER_ALNUM, k=6))
            value = f"{prefix}-{time.time_ns() // 1_000_000}-{suffix}"
            if value not in self._issued_references:
                self._issued_references.add(value)
                return ProviderReference(value)

    def _new_confirmation_number(self) -> ConfirmationNumber:
        return ConfirmationNumber("CN-" + "".join(self._rng.choices(_UPPER_ALNUM, k=9)))
