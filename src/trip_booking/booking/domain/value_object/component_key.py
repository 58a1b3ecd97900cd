from dataclasses import dataclass

from trip_booking.booking.domain.enum import ComponentType
from trip_booking.shared.domain import TripId


@dataclass(frozen=True)
class ComponentKey:
    """コンポーネント予約の識別子

    予約内では (TripId, ComponentType) の組で一意。
    同じ組を有効な状態で持てる予約は同時に1件のみ。
    例: "123-flight"
    """

    trip_id: TripId
    component_type: ComponentType

    def __str__(self) -> str:
        return f"{self.trip_id}-{self.component_type.value}"
