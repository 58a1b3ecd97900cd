from trip_booking.booking.domain.enum import ComponentStatus, ComponentType
from trip_booking.booking.domain.value_object import (
    BookingId,
    ComponentKey,
    ConfirmationNumber,
    ProviderReference,
)
from trip_booking.shared.domain import Entity, IsoDateTime, Money, TripId
from trip_booking.shared.domain.exception import BusinessRuleViolationException


class ComponentBooking(Entity[ComponentKey]):
    """コンポーネント予約（フライト・ホテル・チケット・レンタカー・送迎のいずれか）

    selection_details / provider_details は不透明なペイロードとして保持する。
    """

    def __init__(
        self,
        id: ComponentKey,
        booking_id: BookingId,
        provider: str,
        price: Money,
        selection_details: dict | None = None,
        status: ComponentStatus = ComponentStatus.PENDING,
        provider_reference: ProviderReference | None = None,
        confirmation_number: ConfirmationNumber | None = None,
        provider_details: dict | None = None,
        error: str | None = None,
        created_at: IsoDateTime | None = None,
        updated_at: IsoDateTime | None = None,
    ) -> None:
        super().__init__(id)

        self._booking_id = booking_id
        self._provider = provider
        self._price = price
        self._selection_details = selection_details or {}
        self._status = status
        self._provider_reference = provider_reference
        self._confirmation_number = confirmation_number
        self._provider_details = provider_details or {}
        self._error = error
        self._created_at = created_at or IsoDateTime.now()
        self._updated_at = updated_at or self._created_at

        self._validate_price()

    def _validate_price(self) -> None:
        """料金 > 0"""
        if not self._price.is_positive():
            raise BusinessRuleViolationException("Component price must be positive")

    @property
    def trip_id(self) -> TripId:
        return self._id.trip_id

    @property
    def component_type(self) -> ComponentType:
        return self._id.component_type

    @property
    def booking_id(self) -> BookingId:
        return self._booking_id

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def price(self) -> Money:
        return self._price

    @property
    def selection_details(self) -> dict:
        return self._selection_details

    @property
    def status(self) -> ComponentStatus:
        return self._status

    @property
    def provider_reference(self) -> ProviderReference | None:
        return self._provider_reference

    @property
    def confirmation_number(self) -> ConfirmationNumber | None:
        return self._confirmation_number

    @property
    def provider_details(self) -> dict:
        return self._provider_details

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def created_at(self) -> IsoDateTime:
        return self._created_at

    @property
    def updated_at(self) -> IsoDateTime:
        return self._updated_at

    def start_processing(self) -> None:
        """プロバイダ呼び出し開始（PENDING -> PROCESSING）"""
        if self._status != ComponentStatus.PENDING:
            raise BusinessRuleViolationException(
                f"Cannot start processing component in {self._status.value} status"
            )
        self._transition(ComponentStatus.PROCESSING)

    def confirm(
        self,
        provider_reference: ProviderReference,
        confirmation_number: ConfirmationNumber,
        provider_details: dict,
    ) -> None:
        """予約を確定する（PROCESSING -> CONFIRMED）"""
        if self._status == ComponentStatus.CANCELLED:
            raise BusinessRuleViolationException(
                "Cannot confirm a cancelled component"
            )
        if self._status != ComponentStatus.PROCESSING:
            raise BusinessRuleViolationException(
                f"Cannot confirm component in {self._status.value} status"
            )
        self._provider_reference = provider_reference
        self._confirmation_number = confirmation_number
        self._provider_details = provider_details
        self._transition(ComponentStatus.CONFIRMED)

    def fail(self, error: str) -> None:
        """予約失敗を記録する（PROCESSING -> FAILED）"""
        if self._status == ComponentStatus.CANCELLED:
            raise BusinessRuleViolationException("Cannot fail a cancelled component")
        if self._status != ComponentStatus.PROCESSING:
            raise BusinessRuleViolationException(
                f"Cannot fail component in {self._status.value} status"
            )
        self._error = error
        self._transition(ComponentStatus.FAILED)

    def cancel(self) -> None:
        """予約をキャンセルする（終端状態。プロバイダへの取消は行わない）"""
        if self._status == ComponentStatus.CANCELLED:
            return
        self._transition(ComponentStatus.CANCELLED)

    def is_confirmed(self) -> bool:
        return self._status == ComponentStatus.CONFIRMED

    def is_failed(self) -> bool:
        return self._status == ComponentStatus.FAILED

    def is_cancelled(self) -> bool:
        return self._status == ComponentStatus.CANCELLED

    def _transition(self, status: ComponentStatus) -> None:
        self._status = status
        self._updated_at = IsoDateTime.now()
