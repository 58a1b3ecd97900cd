from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from trip_booking.shared.domain import TripId


@dataclass(frozen=True)
class BookingId:
    """旅行予約ID（送信ごとに一意）

    例: "TRIP-123-1735689600000"
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("BookingId cannot be empty")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def generate(cls, trip_id: TripId, submitted_at: datetime) -> BookingId:
        """TripId と送信時刻（ミリ秒）から BookingId を生成"""
        millis = int(submitted_at.timestamp() * 1000)
        return cls(value=f"TRIP-{trip_id}-{millis}")
