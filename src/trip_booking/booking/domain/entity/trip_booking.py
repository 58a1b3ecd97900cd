from trip_booking.booking.domain.entity.component_booking import ComponentBooking
from trip_booking.booking.domain.enum import (
    BookingStatus,
    ComponentType,
    PaymentEventType,
    PaymentStatus,
)
from trip_booking.booking.domain.value_object import (
    BookingId,
    PaymentRequest,
    RefundRequest,
)
from trip_booking.shared.domain import (
    AggregateRoot,
    Currency,
    IsoDateTime,
    Money,
    TripId,
    UserId,
)
from trip_booking.shared.domain.exception import (
    BusinessRuleViolationException,
    OwnershipException,
    ValidationException,
)

# 決済イベントごとの (遷移先, 遷移元として許可するステータス)
_PAYMENT_TRANSITIONS: dict[
    PaymentEventType, tuple[PaymentStatus, frozenset[PaymentStatus]]
] = {
    PaymentEventType.PAYMENT_CONFIRMED: (
        PaymentStatus.PAID,
        frozenset({PaymentStatus.UNPAID, PaymentStatus.FAILED}),
    ),
    PaymentEventType.PAYMENT_FAILED: (
        PaymentStatus.FAILED,
        frozenset({PaymentStatus.UNPAID}),
    ),
    PaymentEventType.REFUND_SUCCEEDED: (
        PaymentStatus.REFUNDED,
        frozenset({PaymentStatus.PAID}),
    ),
}


class TripBooking(AggregateRoot[BookingId]):
    """旅行予約（集約ルート）

    1回の送信で選択されたコンポーネント予約の集まり。
    ステータスと合計金額は保持せず、コンポーネントから都度算出する。
    """

    def __init__(
        self,
        id: BookingId,
        trip_id: TripId,
        user_id: UserId,
        components: list[ComponentBooking],
        created_at: IsoDateTime | None = None,
        updated_at: IsoDateTime | None = None,
        payment_status: PaymentStatus = PaymentStatus.UNPAID,
        refund_requests: list[RefundRequest] | None = None,
        cancelled_at: IsoDateTime | None = None,
        cancelled_by: UserId | None = None,
        currency: Currency | None = None,
    ) -> None:
        super().__init__(id, created_at, updated_at)

        self._trip_id = trip_id
        self._user_id = user_id
        self._components = list(components)
        self._payment_status = payment_status
        self._refund_requests = list(refund_requests or [])
        self._cancelled_at = cancelled_at
        self._cancelled_by = cancelled_by
        self._currency = currency or Currency.default()

        self._validate_components()

    def _validate_components(self) -> None:
        """(TripId, ComponentType) ごとに最大1件"""
        types = [c.component_type for c in self._components]
        if len(types) != len(set(types)):
            raise BusinessRuleViolationException(
                "A trip booking cannot contain the same component type twice"
            )
        for component in self._components:
            if component.trip_id != self._trip_id:
                raise BusinessRuleViolationException(
                    f"Component {component.id} does not belong to trip {self._trip_id}"
                )

    @property
    def trip_id(self) -> TripId:
        return self._trip_id

    @property
    def user_id(self) -> UserId:
        return self._user_id

    @property
    def components(self) -> list[ComponentBooking]:
        return list(self._components)

    @property
    def payment_status(self) -> PaymentStatus:
        return self._payment_status

    @property
    def refund_requests(self) -> list[RefundRequest]:
        return list(self._refund_requests)

    @property
    def cancelled_at(self) -> IsoDateTime | None:
        return self._cancelled_at

    @property
    def cancelled_by(self) -> UserId | None:
        return self._cancelled_by

    @property
    def status(self) -> BookingStatus:
        return BookingStatus.derive(c.status for c in self._components)

    @property
    def confirmed_components(self) -> list[ComponentBooking]:
        return [c for c in self._components if c.is_confirmed()]

    @property
    def failed_components(self) -> list[ComponentBooking]:
        return [c for c in self._components if c.is_failed()]

    @property
    def total_cost(self) -> Money:
        """確定済みコンポーネントの料金合計"""
        total = Money.zero(self._currency)
        for component in self.confirmed_components:
            total = total.add(component.price)
        return total

    def component(self, component_type: ComponentType) -> ComponentBooking | None:
        for component in self._components:
            if component.component_type == component_type:
                return component
        return None

    def is_owned_by(self, user_id: UserId) -> bool:
        return self._user_id == user_id

    def verify_owner(self, user_id: UserId) -> None:
        """所有者でなければ OwnershipException（予約内容は含めない）"""
        if not self.is_owned_by(user_id):
            raise OwnershipException(f"Access denied for booking {self.id}")

    def cancel(self, cancelled_by: UserId) -> None:
        """予約全体をキャンセルする（全コンポーネントを CANCELLED に）"""
        self.verify_owner(cancelled_by)
        for component in self._components:
            component.cancel()
        if self._cancelled_at is None:
            self._cancelled_at = IsoDateTime.now()
            self._cancelled_by = cancelled_by
        self.touch()

    def request_refund(
        self,
        requested_by: UserId,
        reason: str,
        component_types: list[ComponentType] | None = None,
    ) -> RefundRequest:
        """払い戻し依頼を記録する（ステータスは変更しない）"""
        self.verify_owner(requested_by)

        requested = tuple(component_types or ())
        unknown = [t.value for t in requested if self.component(t) is None]
        if unknown:
            raise ValidationException(
                f"Booking {self.id} has no components of type: {', '.join(unknown)}"
            )

        refund_request = RefundRequest(
            reason=reason,
            requested_by=requested_by,
            requested_at=IsoDateTime.now(),
            component_types=requested,
        )
        self._refund_requests.append(refund_request)
        self.touch()
        return refund_request

    def apply_payment_event(self, event: PaymentEventType) -> None:
        """決済サブシステムのイベントを決済ステータスに反映する"""
        target, allowed_from = _PAYMENT_TRANSITIONS[event]
        if self._payment_status == target:
            return
        if self._payment_status not in allowed_from:
            raise BusinessRuleViolationException(
                f"Cannot apply {event.value} to payment in "
                f"{self._payment_status.value} status"
            )
        self._payment_status = target
        self.touch()

    def payment_request(self) -> PaymentRequest:
        """決済依頼を生成する（確定済み金額のみ請求）"""
        total = self.total_cost
        if not total.is_positive():
            raise BusinessRuleViolationException(
                f"Booking {self.id} has no confirmed components to pay for"
            )
        return PaymentRequest(booking_id=self.id, user_id=self._user_id, amount=total)
