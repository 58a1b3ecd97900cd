from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from .component_status import ComponentStatus


class BookingStatus(str, Enum):
    """旅行予約（集約）のステータス

    直接設定されることはなく、常にコンポーネントのステータスから導出する。
    """

    PROCESSING = "processing"
    CONFIRMED = "confirmed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def derive(cls, statuses: Iterable[ComponentStatus]) -> BookingStatus:
        """コンポーネントのステータス一覧から集約ステータスを算出する"""
        statuses = list(statuses)
        if not statuses:
            return cls.PROCESSING

        # キャンセルは集約全体に適用される
        if ComponentStatus.CANCELLED in statuses:
            return cls.CANCELLED
        if any(
            s in (ComponentStatus.PENDING, ComponentStatus.PROCESSING)
            for s in statuses
        ):
            return cls.PROCESSING

        confirmed = statuses.count(ComponentStatus.CONFIRMED)
        failed = statuses.count(ComponentStatus.FAILED)
        if failed == 0:
            return cls.CONFIRMED
        if confirmed == 0:
            return cls.FAILED
        return cls.PARTIAL
