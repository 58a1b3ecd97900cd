from abc import ABC, abstractmethod

from trip_booking.booking.domain.entity import TripBooking
from trip_booking.booking.domain.value_object import BookingId


class ResultCache(ABC):
    """予約スナップショットの短期キャッシュ

    正はあくまで BookingStateStore。破棄してもデータは失われない。
    """

    @abstractmethod
    async def get(self, booking_id: BookingId) -> TripBooking | None:
        """キャッシュから取得する

        所有者情報を欠いたエントリは信頼できないため None（ミス）として扱う。
        """
        raise NotImplementedError

    @abstractmethod
    async def set(self, booking: TripBooking, ttl_seconds: int) -> None:
        """スナップショットを所有者情報付きで保存する"""
        raise NotImplementedError

    @abstractmethod
    async def invalidate(self, booking_id: BookingId) -> None:
        raise NotImplementedError
