from datetime import datetime, timezone
from decimal import Decimal
from typing import TypedDict

from trip_booking.booking.domain.entity import ComponentBooking, TripBooking
from trip_booking.booking.domain.enum import ComponentStatus, ComponentType
from trip_booking.booking.domain.value_object import BookingId, ComponentKey
from trip_booking.shared.domain import IsoDateTime, Money, TripId, UserId
from trip_booking.shared.domain.exception import ValidationException


class SelectionDetails(TypedDict):
    """コンポーネント選択の入力データ構造"""

    component_type: str
    provider: str
    price_amount: Decimal
    selection_details: dict


class TripBookingFactory:
    """旅行予約集約のファクトリ

    - 送信ごとに一意な BookingId の生成
    - プリミティブ型から Value Object への変換
    - 全コンポーネントを PENDING で生成
    """

    def create(
        self,
        user_id: UserId,
        trip_id: TripId,
        selections: list[SelectionDetails],
        submitted_at: datetime | None = None,
    ) -> TripBooking:
        """新規の旅行予約を生成する

        Args:
            user_id: 予約者
            trip_id: 旅行ID（Value Object）
            selections: 1件以上のコンポーネント選択
            submitted_at: 送信時刻（省略時は現在時刻）

        Returns:
            TripBooking: 全コンポーネントが PENDING 状態の集約
        """
        if not selections:
            raise ValidationException("At least one selection is required")

        submitted_at = submitted_at or datetime.now(timezone.utc)
        booking_id = BookingId.generate(trip_id, submitted_at)
        created_at = IsoDateTime(value=submitted_at)

        seen: set[ComponentType] = set()
        components: list[ComponentBooking] = []
        for selection in selections:
            component_type = self._to_component_type(selection["component_type"])
            if component_type in seen:
                raise ValidationException(
                    f"Duplicate component type in selections: {component_type.value}"
                )
            seen.add(component_type)

            price = selection["price_amount"]
            if price <= 0:
                raise ValidationException(
                    f"Price must be positive: {component_type.value}"
                )

            components.append(
                ComponentBooking(
                    id=ComponentKey(trip_id=trip_id, component_type=component_type),
                    booking_id=booking_id,
                    provider=selection["provider"],
                    price=Money.usd(price),
                    selection_details=selection["selection_details"],
                    status=ComponentStatus.PENDING,
                    created_at=created_at,
                )
            )

        return TripBooking(
            id=booking_id,
            trip_id=trip_id,
            user_id=user_id,
            components=components,
            created_at=created_at,
        )

    @staticmethod
    def _to_component_type(value: str) -> ComponentType:
        try:
            return ComponentType(value)
        except ValueError as e:
            allowed = ", ".join(t.value for t in ComponentType)
            raise ValidationException(
                f"Component type must be one of: {allowed}"
            ) from e
