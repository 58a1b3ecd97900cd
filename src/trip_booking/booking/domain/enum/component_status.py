from enum import Enum


class ComponentStatus(str, Enum):
    """コンポーネント予約ステータス

    PENDING -> PROCESSING -> {CONFIRMED, FAILED}、いずれからも CANCELLED（終端）
    """

    PENDING = "pending"
    PROCESSING = "processing"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def holds_trip_slot(self) -> bool:
        """同じ旅行・種別の新規予約を妨げる状態か（FAILED / CANCELLED は解放）"""
        return self not in (ComponentStatus.FAILED, ComponentStatus.CANCELLED)
