from dataclasses import dataclass

from trip_booking.booking.domain.enum import ComponentType
from trip_booking.shared.domain import IsoDateTime, UserId


@dataclass(frozen=True)
class RefundRequest:
    """払い戻し依頼の記録

    予約ステータスは変更せず、決済サブシステム側で非同期に突き合わせる。
    component_types が空の場合は予約全体が対象。
    """

    reason: str
    requested_by: UserId
    requested_at: IsoDateTime
    component_types: tuple[ComponentType, ...] = ()

    def __post_init__(self) -> None:
        if not self.reason.strip():
            raise ValueError("Refund reason cannot be empty")
