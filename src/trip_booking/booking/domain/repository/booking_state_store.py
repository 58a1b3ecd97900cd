from abc import abstractmethod

from trip_booking.booking.domain.entity import ComponentBooking, TripBooking
from trip_booking.booking.domain.enum import ComponentStatus
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.shared.domain import Repository, UserId


class BookingStateStore(Repository[TripBooking, BookingId]):
    """旅行予約の永続ストア（ステータスと所有者の唯一の正）"""

    @abstractmethod
    async def create(self, booking: TripBooking) -> None:
        """集約ヘッダと PENDING のコンポーネント行を一括で保存する

        Raises:
            DuplicateResourceException: 同じ (TripId, ComponentType) が別の予約で
                有効（FAILED / CANCELLED 以外）
            PersistenceException: 書き込みに失敗した
        """
        raise NotImplementedError

    @abstractmethod
    async def update_component(
        self,
        component: ComponentBooking,
        expected_status: ComponentStatus | None = None,
    ) -> None:
        """コンポーネント行を更新する

        FAILED / CANCELLED に遷移した場合は (TripId, ComponentType) の枠を解放する。

        Raises:
            OptimisticLockException: 現在のステータスが expected_status と異なる
            PersistenceException: 書き込みに失敗した
        """
        raise NotImplementedError

    @abstractmethod
    async def save_cancellation(self, booking: TripBooking) -> None:
        """集約ヘッダと全コンポーネント行を CANCELLED で一括更新する

        全コンポーネントの (TripId, ComponentType) の枠も同時に解放する。
        キャンセルは終端状態のため、コンポーネントの現在のステータスは問わない。
        """
        raise NotImplementedError

    @abstractmethod
    async def update_header(self, booking: TripBooking) -> None:
        """集約ヘッダ（非正規化ステータス・合計・決済・注記）を更新する

        キャンセル済みのヘッダをキャンセル以外のステータスで上書きしない。

        Raises:
            OptimisticLockException: ヘッダが既にキャンセル済み
            ResourceNotFoundException: ヘッダが存在しない
            PersistenceException: 書き込みに失敗した
        """
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, booking_id: BookingId) -> TripBooking | None:
        """予約IDで検索（ヘッダと全コンポーネント行から再構築）"""
        raise NotImplementedError

    @abstractmethod
    async def find_by_user_id(
        self, user_id: UserId, limit: int | None, offset: int
    ) -> list[TripBooking]:
        """利用者の予約を新しい順に取得する（limit=None で全件）"""
        raise NotImplementedError
