from trip_booking.booking.domain.entity import TripBooking
from trip_booking.booking.domain.enum import PaymentEventType
from trip_booking.booking.domain.repository import BookingStateStore, ResultCache
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.shared.domain.exception import ResourceNotFoundException


class ApplyPaymentEventService:
    """決済サブシステムからのイベントを予約の決済ステータスに反映する"""

    def __init__(self, store: BookingStateStore, cache: ResultCache) -> None:
        self._store = store
        self._cache = cache

    async def apply(self, booking_id: BookingId, event: PaymentEventType) -> TripBooking:
        booking = await self._store.find_by_id(booking_id)
        if booking is None:
            raise ResourceNotFoundException(f"Booking not found: {booking_id}")

        booking.apply_payment_event(event)
        await self._store.update_header(booking)
        await self._cache.invalidate(booking.id)
        return booking
