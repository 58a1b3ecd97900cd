from dataclasses import dataclass

from trip_booking.booking.domain.value_object.booking_id import BookingId
from trip_booking.shared.domain import Money, UserId


@dataclass(frozen=True)
class PaymentRequest:
    """決済サブシステムへ渡す決済依頼（PaymentIntent 作成用）"""

    booking_id: BookingId
    user_id: UserId
    amount: Money
