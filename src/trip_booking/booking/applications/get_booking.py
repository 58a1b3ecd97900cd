from dataclasses import dataclass

from aws_lambda_powertools import Logger

from trip_booking.booking.domain.entity import TripBooking
from trip_booking.booking.domain.enum import BookingStatus
from trip_booking.booking.domain.repository import BookingStateStore, ResultCache
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.shared.domain import IsoDateTime, Money, TripId, UserId
from trip_booking.shared.domain.exception import (
    ResourceNotFoundException,
    ValidationException,
)
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME, child=True)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class BookingSummary:
    """予約履歴の1件"""

    booking_id: BookingId
    trip_id: TripId
    status: BookingStatus
    component_count: int
    confirmed_components: int
    total_cost: Money
    created_at: IsoDateTime


@dataclass(frozen=True)
class ReceiptLine:
    component_type: str
    provider: str
    price: Money
    booking_reference: str | None
    confirmation_number: str | None


@dataclass(frozen=True)
class Receipt:
    """領収書（確定済みコンポーネントのみ）"""

    booking_id: BookingId
    booking_date: IsoDateTime
    total_amount: Money
    status: BookingStatus
    components: list[ReceiptLine]


@dataclass(frozen=True)
class BookingAnalytics:
    total_bookings: int
    successful_bookings: int
    failed_bookings: int
    partial_bookings: int
    cancelled_bookings: int
    avg_components_per_booking: float


class BookingQueryService:
    """予約の参照系ユースケース

    キャッシュは読み出しの高速化のみに使い、所有者の確認は必ず行う。
    """

    def __init__(
        self,
        store: BookingStateStore,
        cache: ResultCache,
        cache_ttl_seconds: int = 3600,
    ) -> None:
        self._store = store
        self._cache = cache
        self._cache_ttl = cache_ttl_seconds

    async def get_booking_status(
        self, booking_id: BookingId, user_id: UserId
    ) -> TripBooking:
        """予約の現在の状態を取得する

        Raises:
            ResourceNotFoundException: 予約が存在しない
            OwnershipException: 要求者が所有者ではない
        """
        booking = await self._cache.get(booking_id)
        if booking is None:
            booking = await self._load(booking_id)
            await self._cache.set(booking, self._cache_ttl)

        booking.verify_owner(user_id)
        return booking

    async def get_user_bookings(
        self, user_id: UserId, limit: int = 10, offset: int = 0
    ) -> list[BookingSummary]:
        """予約履歴を新しい順に取得する"""
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationException(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationException("offset must not be negative")

        bookings = await self._store.find_by_user_id(user_id, limit=limit, offset=offset)
        return [self._to_summary(b) for b in bookings]

    async def get_receipt(self, booking_id: BookingId, user_id: UserId) -> Receipt:
        booking = await self.get_booking_status(booking_id, user_id)
        return Receipt(
            booking_id=booking.id,
            booking_date=booking.created_at,
            total_amount=booking.total_cost,
            status=booking.status,
            components=[
                ReceiptLine(
                    component_type=c.component_type.value,
                    provider=c.provider,
                    price=c.price,
                    booking_reference=(
                        str(c.provider_reference) if c.provider_reference else None
                    ),
                    confirmation_number=(
                        str(c.confirmation_number) if c.confirmation_number else None
                    ),
                )
                for c in booking.confirmed_components
            ],
        )

    async def get_booking_analytics(self, user_id: UserId) -> BookingAnalytics:
        bookings = await self._store.find_by_user_id(user_id, limit=None, offset=0)
        statuses = [b.status for b in bookings]
        total = len(bookings)
        components = sum(len(b.components) for b in bookings)
        return BookingAnalytics(
            total_bookings=total,
            successful_bookings=statuses.count(BookingStatus.CONFIRMED),
            failed_bookings=statuses.count(BookingStatus.FAILED),
            partial_bookings=statuses.count(BookingStatus.PARTIAL),
            cancelled_bookings=statuses.count(BookingStatus.CANCELLED),
            avg_components_per_booking=round(components / total, 2) if total else 0.0,
        )

    async def _load(self, booking_id: BookingId) -> TripBooking:
        booking = await self._store.find_by_id(booking_id)
        if booking is None:
            raise ResourceNotFoundException(f"Booking not found: {booking_id}")
        return booking

    @staticmethod
    def _to_summary(booking: TripBooking) -> BookingSummary:
        return BookingSummary(
            booking_id=booking.id,
            trip_id=booking.trip_id,
            status=booking.status,
            component_count=len(booking.components),
            confirmed_components=len(booking.confirmed_components),
            total_cost=booking.total_cost,
            created_at=booking.created_at,
        )
