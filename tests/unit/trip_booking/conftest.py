import copy
import os
import random
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from trip_booking.booking.applications.book_component import (
    ComponentBookingExecutor,
)
from trip_booking.booking.applications.process_trip_booking import (
    BookingOrchestrator,
)
from trip_booking.booking.domain.entity import ComponentBooking, TripBooking
from trip_booking.booking.domain.enum import ComponentStatus, ComponentType
from trip_booking.booking.domain.factory import SelectionDetails, TripBookingFactory
from trip_booking.booking.domain.provider import ProviderAdapter, ProviderRegistry
from trip_booking.booking.domain.repository import BookingStateStore, ResultCache
from trip_booking.booking.domain.value_object import BookingId, ComponentKey
from trip_booking.booking.infrastructure.booking_mapper import (
    booking_from_record,
    booking_header_to_record,
    booking_to_record,
    component_from_record,
    component_to_record,
)
from trip_booking.shared.config import DEFAULT_PROVIDER_CATALOG
from trip_booking.shared.domain import IsoDateTime, Money, TripId, UserId
from trip_booking.shared.domain.exception import (
    DuplicateResourceException,
    OptimisticLockException,
    PersistenceException,
    ProviderException,
    ResourceNotFoundException,
)

os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

DEFAULT_PROVIDERS = {
    "flight": "skyscanner",
    "hotel": "booking",
    "ticket": "ticketmaster",
    "car": "hertz",
    "transportation": "uber",
}


class InMemoryBookingStateStore(BookingStateStore):
    """条件付き書き込みと予約枠を再現するインメモリのストア

    rows は (booking_id, コンポーネント種別)、slots は (trip_id, コンポーネント種別)
    をキーとする。writes には書き込み順に (操作, コンポーネント種別, ステータス) を記録する。
    """

    def __init__(self) -> None:
        self.headers: dict[str, dict] = {}
        self.rows: dict[tuple[str, str], dict] = {}
        self.slots: dict[tuple[int, str], str] = {}
        self.writes: list[tuple[str, str | None, str | None]] = []
        self.fail_create: Exception | None = None
        self.fail_header: Exception | None = None
        # (component_type, status) の書き込みで送出する例外
        self.fail_component_writes: dict[tuple[str, str], Exception] = {}

    @staticmethod
    def _key(component: ComponentBooking) -> tuple[str, str]:
        return (str(component.booking_id), component.component_type.value)

    @staticmethod
    def _slot(component: ComponentBooking) -> tuple[int, str]:
        return (component.trip_id.value, component.component_type.value)

    def _release(self, component: ComponentBooking) -> None:
        if self.slots.get(self._slot(component)) == str(component.booking_id):
            del self.slots[self._slot(component)]

    async def create(self, booking: TripBooking) -> None:
        if self.fail_create is not None:
            raise self.fail_create
        booking_id = str(booking.id)
        held = [c for c in booking.components if c.status.holds_trip_slot]
        if booking_id in self.headers or any(self._slot(c) in self.slots for c in held):
            raise DuplicateResourceException(
                f"Components already booked for trip: {booking.trip_id}"
            )
        self.headers[booking_id] = booking_header_to_record(booking)
        for component in held:
            self.slots[self._slot(component)] = booking_id
        for component in booking.components:
            self.rows[self._key(component)] = component_to_record(component)
            self.writes.append(
                ("create", component.component_type.value, component.status.value)
            )

    async def update_component(
        self,
        component: ComponentBooking,
        expected_status: ComponentStatus | None = None,
    ) -> None:
        failure = self.fail_component_writes.get(
            (component.component_type.value, component.status.value)
        )
        if failure is not None:
            raise failure

        row = self.rows.get(self._key(component))
        if row is None:
            raise OptimisticLockException(f"No row for {component.id}")
        if expected_status is not None and row["status"] != expected_status.value:
            raise OptimisticLockException(
                f"Component status conflict: expected {expected_status.value}, "
                f"got {row['status']}"
            )
        self.rows[self._key(component)] = {
            **component_to_record(component),
            "created_at": row["created_at"],
        }
        if not component.status.holds_trip_slot:
            self._release(component)
        self.writes.append(
            ("update_component", component.component_type.value, component.status.value)
        )

    async def save_cancellation(self, booking: TripBooking) -> None:
        for component in booking.components:
            row = self.rows[self._key(component)]
            row["status"] = ComponentStatus.CANCELLED.value
            row["updated_at"] = str(IsoDateTime.now())
            self._release(component)
        header = self.headers[str(booking.id)]
        header.update(
            status="cancelled",
            cancelled_at=str(booking.cancelled_at),
            cancelled_by=str(booking.cancelled_by),
            updated_at=str(booking.updated_at),
        )
        self.writes.append(("save_cancellation", None, "cancelled"))

    async def update_header(self, booking: TripBooking) -> None:
        if self.fail_header is not None:
            raise self.fail_header
        booking_id = str(booking.id)
        if booking_id not in self.headers:
            raise ResourceNotFoundException(f"Booking not found: {booking_id}")
        record = booking_header_to_record(booking)
        stored = self.headers[booking_id]
        if stored["status"] == "cancelled" and record["status"] != "cancelled":
            raise OptimisticLockException(f"Booking already cancelled: {booking_id}")
        # キャンセル情報は save_cancellation のみが書き込む
        for key in ("cancelled_at", "cancelled_by"):
            record[key] = stored.get(key)
        self.headers[booking_id] = record
        self.writes.append(("update_header", None, record["status"]))

    async def find_by_id(self, booking_id: BookingId) -> TripBooking | None:
        header = self.headers.get(str(booking_id))
        if header is None:
            return None
        return self._to_entity(header)

    async def find_by_user_id(
        self, user_id: UserId, limit: int | None, offset: int
    ) -> list[TripBooking]:
        headers = sorted(
            (h for h in self.headers.values() if h["user_id"] == str(user_id)),
            key=lambda h: (h["created_at"], h["booking_id"]),
            reverse=True,
        )
        end = None if limit is None else offset + limit
        return [self._to_entity(h) for h in headers[offset:end]]

    def _to_entity(self, header: dict) -> TripBooking:
        components = [
            component_from_record(copy.deepcopy(row))
            for row in self.rows.values()
            if row["booking_id"] == header["booking_id"]
        ]
        return booking_from_record(copy.deepcopy(header), components=components)

    def row(self, trip_id: int, component_type: str) -> dict:
        """指定した旅行・種別の最も新しい予約の行"""
        matches = [
            row
            for row in self.rows.values()
            if row["trip_id"] == trip_id and row["component_type"] == component_type
        ]
        return matches[-1]


class FakeResultCache(ResultCache):
    """dict ベースの ResultCache（集約の JSON 互換レコードを保持）"""

    def __init__(self) -> None:
        self.entries: dict[str, dict] = {}
        self.ttls: dict[str, int] = {}
        self.invalidated: list[str] = []

    async def get(self, booking_id: BookingId) -> TripBooking | None:
        record = self.entries.get(str(booking_id))
        if record is None or not record.get("user_id"):
            return None
        return booking_from_record(copy.deepcopy(record))

    async def set(self, booking: TripBooking, ttl_seconds: int) -> None:
        self.entries[str(booking.id)] = booking_to_record(booking)
        self.ttls[str(booking.id)] = ttl_seconds

    async def invalidate(self, booking_id: BookingId) -> None:
        self.entries.pop(str(booking_id), None)
        self.invalidated.append(str(booking_id))


class StubProviderAdapter(ProviderAdapter):
    """指定したコンポーネント種別だけ失敗するプロバイダ"""

    def __init__(
        self,
        fail_types: tuple[str, ...] = (),
        response: dict | None = None,
        on_book: Callable[[ComponentBooking], Awaitable[None]] | None = None,
    ) -> None:
        self.fail_types = set(fail_types)
        self.response = response or {}
        self.on_book = on_book
        self.calls: list[str] = []

    async def book(self, component: ComponentBooking) -> dict:
        self.calls.append(component.component_type.value)
        if self.on_book is not None:
            await self.on_book(component)
        if component.component_type.value in self.fail_types:
            raise ProviderException(
                component.provider,
                f"Provider {component.provider} is temporarily unavailable",
            )
        return dict(self.response)


@pytest.fixture
def store():
    return InMemoryBookingStateStore()


@pytest.fixture
def cache():
    return FakeResultCache()


@pytest.fixture
def adapter():
    return StubProviderAdapter()


@pytest.fixture
def registry(adapter):
    return ProviderRegistry(DEFAULT_PROVIDER_CATALOG, default_adapter=adapter)


@pytest.fixture
def executor(store, registry):
    return ComponentBookingExecutor(
        store=store,
        providers=registry,
        provider_timeout_seconds=1.0,
        rng=random.Random(7),
    )


@pytest.fixture
def orchestrator(store, cache, executor, registry):
    return BookingOrchestrator(
        store=store,
        cache=cache,
        executor=executor,
        factory=TripBookingFactory(),
        providers=registry,
        cache_ttl_seconds=3600,
    )


@pytest.fixture
def make_selection():
    """SelectionDetails を生成する Factory fixture"""

    def _factory(
        component_type: str = "flight",
        provider: str | None = None,
        price: str = "100.00",
        details: dict | None = None,
    ) -> SelectionDetails:
        return {
            "component_type": component_type,
            "provider": provider or DEFAULT_PROVIDERS.get(component_type, "unknown"),
            "price_amount": Decimal(price),
            "selection_details": {"id": f"{component_type}-opt", "details": details or {}},
        }

    return _factory


@pytest.fixture
def create_component():
    """ComponentBooking を生成する Factory fixture"""

    def _factory(
        component_type: ComponentType = ComponentType.FLIGHT,
        status: ComponentStatus = ComponentStatus.PENDING,
        trip_id: int = 42,
        booking_id: str = "TRIP-42-1735689600000",
        provider: str | None = None,
        price: str = "100.00",
    ) -> ComponentBooking:
        return ComponentBooking(
            id=ComponentKey(trip_id=TripId(value=trip_id), component_type=component_type),
            booking_id=BookingId(value=booking_id),
            provider=provider or DEFAULT_PROVIDERS[component_type.value],
            price=Money.usd(Decimal(price)),
            selection_details={"id": "opt-1"},
            status=status,
        )

    return _factory


@pytest.fixture
def create_booking(create_component):
    """TripBooking を生成する Factory fixture

    statuses はコンポーネント種別ごとのステータス。
    """

    def _factory(
        statuses: dict[ComponentType, ComponentStatus] | None = None,
        prices: dict[ComponentType, str] | None = None,
        user_id: str = "user-1",
        trip_id: int = 42,
        booking_id: str = "TRIP-42-1735689600000",
        created_at: datetime | None = None,
    ) -> TripBooking:
        statuses = statuses or {ComponentType.FLIGHT: ComponentStatus.CONFIRMED}
        prices = prices or {}
        components = [
            create_component(
                component_type=t,
                status=s,
                trip_id=trip_id,
                booking_id=booking_id,
                price=prices.get(t, "100.00"),
            )
            for t, s in statuses.items()
        ]
        created = IsoDateTime(
            value=created_at or datetime(2025, 1, 1, tzinfo=timezone.utc)
        )
        return TripBooking(
            id=BookingId(value=booking_id),
            trip_id=TripId(value=trip_id),
            user_id=UserId(value=user_id),
            components=components,
            created_at=created,
        )

    return _factory


@pytest.fixture
def seed_booking(store, create_booking):
    """ストアに保存済みの予約を生成する Factory fixture"""

    async def _seed(**kwargs) -> TripBooking:
        booking = create_booking(**kwargs)
        await store.create(booking)
        return booking

    return _seed


@pytest.fixture
def days_ago():
    def _at(days: int) -> datetime:
        return datetime(2025, 6, 1, tzinfo=timezone.utc) - timedelta(days=days)

    return _at
