from dataclasses import dataclass

from aws_lambda_powertools import Logger

from trip_booking.booking.domain.entity import TripBooking
from trip_booking.booking.domain.enum import BookingStatus, ComponentType
from trip_booking.booking.domain.repository import BookingStateStore, ResultCache
from trip_booking.booking.domain.value_object import BookingId, RefundRequest
from trip_booking.shared.domain import UserId
from trip_booking.shared.domain.exception import (
    ResourceNotFoundException,
    ValidationException,
)
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME, child=True)

REFUND_REQUESTED = "refund_requested"
ESTIMATED_REFUND_PROCESSING_TIME = "3-5 business days"


@dataclass(frozen=True)
class CancellationResult:
    booking_id: BookingId
    status: BookingStatus


@dataclass(frozen=True)
class RefundRequestResult:
    booking_id: BookingId
    refund_request: RefundRequest
    status: str = REFUND_REQUESTED
    estimated_processing_time: str = ESTIMATED_REFUND_PROCESSING_TIME


class CancellationCoordinator:
    """予約キャンセル・払い戻し依頼のサービス（補償操作）

    ローカルの状態遷移のみを行い、プロバイダへの取消は行わない。
    プロバイダ側の取消・返金は決済サブシステムの責務。
    """

    def __init__(self, store: BookingStateStore, cache: ResultCache) -> None:
        self._store = store
        self._cache = cache

    async def cancel_booking(
        self, booking_id: BookingId, user_id: UserId
    ) -> CancellationResult:
        """予約全体をキャンセルする

        所有者の確認はストアに対して行い、不一致の場合は何も変更しない。
        """
        booking = await self._load_owned(booking_id, user_id)

        booking.cancel(cancelled_by=user_id)
        await self._store.save_cancellation(booking)
        await self._cache.invalidate(booking.id)

        logger.info(
            "Booking cancelled",
            extra={"booking_id": str(booking.id), "user_id": str(user_id)},
        )
        return CancellationResult(booking_id=booking.id, status=booking.status)

    async def request_refund(
        self,
        booking_id: BookingId,
        user_id: UserId,
        reason: str,
        components: list[str] | None = None,
    ) -> RefundRequestResult:
        """払い戻し依頼を記録する（予約ステータスは変更しない）"""
        booking = await self._load_owned(booking_id, user_id)

        refund_request = booking.request_refund(
            requested_by=user_id,
            reason=reason,
            component_types=self._to_component_types(components),
        )
        await self._store.update_header(booking)
        await self._cache.invalidate(booking.id)

        logger.info(
            "Refund request received",
            extra={
                "booking_id": str(booking.id),
                "user_id": str(user_id),
                "components": [t.value for t in refund_request.component_types],
            },
        )
        return RefundRequestResult(booking_id=booking.id, refund_request=refund_request)

    async def _load_owned(self, booking_id: BookingId, user_id: UserId) -> TripBooking:
        booking = await self._store.find_by_id(booking_id)
        if booking is None:
            raise ResourceNotFoundException(f"Booking not found: {booking_id}")
        booking.verify_owner(user_id)
        return booking

    @staticmethod
    def _to_component_types(components: list[str] | None) -> list[ComponentType]:
        try:
            return [ComponentType(c) for c in components or []]
        except ValueError as e:
            raise ValidationException(f"Unknown component type: {e}") from e
