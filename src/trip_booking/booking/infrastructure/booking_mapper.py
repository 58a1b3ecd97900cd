"""TripBooking とプリミティブな辞書（永続化・キャッシュ用）の相互変換"""

from decimal import Decimal

from trip_booking.booking.domain.entity import ComponentBooking, TripBooking
from trip_booking.booking.domain.enum import (
    ComponentStatus,
    ComponentType,
    PaymentStatus,
)
from trip_booking.booking.domain.value_object import (
    BookingId,
    ComponentKey,
    ConfirmationNumber,
    ProviderReference,
    RefundRequest,
)
from trip_booking.shared.domain import Currency, IsoDateTime, Money, TripId, UserId


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None


def component_to_record(component: ComponentBooking) -> dict:
    return {
        "booking_id": str(component.booking_id),
        "trip_id": component.trip_id.value,
        "component_type": component.component_type.value,
        "provider": component.provider,
        "price_amount": str(component.price.amount),
        "price_currency": str(component.price.currency),
        "selection_details": component.selection_details,
        "status": component.status.value,
        "provider_reference": _optional_str(component.provider_reference),
        "confirmation_number": _optional_str(component.confirmation_number),
        "provider_details": component.provider_details,
        "error": component.error,
        "created_at": str(component.created_at),
        "updated_at": str(component.updated_at),
    }


def component_from_record(record: dict) -> ComponentBooking:
    reference = record.get("provider_reference")
    confirmation = record.get("confirmation_number")
    return ComponentBooking(
        id=ComponentKey(
            trip_id=TripId(value=int(record["trip_id"])),
            component_type=ComponentType(record["component_type"]),
        ),
        booking_id=BookingId(value=record["booking_id"]),
        provider=record["provider"],
        price=Money(
            amount=Decimal(record["price_amount"]),
            currency=Currency(record["price_currency"]),
        ),
        selection_details=record.get("selection_details") or {},
        status=ComponentStatus(record["status"]),
        provider_reference=ProviderReference(reference) if reference else None,
        confirmation_number=ConfirmationNumber(confirmation) if confirmation else None,
        provider_details=record.get("provider_details") or {},
        error=record.get("error"),
        created_at=IsoDateTime.from_string(record["created_at"]),
        updated_at=IsoDateTime.from_string(record["updated_at"]),
    )


def refund_request_to_record(refund_request: RefundRequest) -> dict:
    return {
        "reason": refund_request.reason,
        "requested_by": str(refund_request.requested_by),
        "requested_at": str(refund_request.requested_at),
        "component_types": [t.value for t in refund_request.component_types],
    }


def refund_request_from_record(record: dict) -> RefundRequest:
    return RefundRequest(
        reason=record["reason"],
        requested_by=UserId(value=record["requested_by"]),
        requested_at=IsoDateTime.from_string(record["requested_at"]),
        component_types=tuple(ComponentType(t) for t in record["component_types"]),
    )


def booking_header_to_record(booking: TripBooking) -> dict:
    """集約ヘッダ（コンポーネントを除く）を辞書に変換する

    status と total_cost は非正規化した参考値。読み出し時は再計算する。
    """
    return {
        "booking_id": str(booking.id),
        "trip_id": booking.trip_id.value,
        "user_id": str(booking.user_id),
        "component_types": [c.component_type.value for c in booking.components],
        "status": booking.status.value,
        "total_cost": str(booking.total_cost.amount),
        "currency": str(booking.total_cost.currency),
        "payment_status": booking.payment_status.value,
        "refund_requests": [
            refund_request_to_record(r) for r in booking.refund_requests
        ],
        "cancelled_at": _optional_str(booking.cancelled_at),
        "cancelled_by": _optional_str(booking.cancelled_by),
        "created_at": str(booking.created_at),
        "updated_at": str(booking.updated_at),
    }


def booking_to_record(booking: TripBooking) -> dict:
    return {
        **booking_header_to_record(booking),
        "components": [component_to_record(c) for c in booking.components],
    }


def booking_from_record(
    record: dict, components: list[ComponentBooking] | None = None
) -> TripBooking:
    """辞書から TripBooking を再構築する

    components を省略した場合は record["components"] から復元する。
    コンポーネントの並びはヘッダの component_types の順に揃える。
    """
    if components is None:
        components = [component_from_record(c) for c in record["components"]]

    order = {t: i for i, t in enumerate(record.get("component_types", []))}
    components = sorted(
        components, key=lambda c: order.get(c.component_type.value, len(order))
    )

    cancelled_at = record.get("cancelled_at")
    cancelled_by = record.get("cancelled_by")
    return TripBooking(
        id=BookingId(value=record["booking_id"]),
        trip_id=TripId(value=int(record["trip_id"])),
        user_id=UserId(value=record["user_id"]),
        components=components,
        created_at=IsoDateTime.from_string(record["created_at"]),
        updated_at=IsoDateTime.from_string(record["updated_at"]),
        payment_status=PaymentStatus(record.get("payment_status", "unpaid")),
        refund_requests=[
            refund_request_from_record(r) for r in record.get("refund_requests", [])
        ],
        cancelled_at=IsoDateTime.from_string(cancelled_at) if cancelled_at else None,
        cancelled_by=UserId(value=cancelled_by) if cancelled_by else None,
        currency=Currency(record.get("currency") or Currency.DEFAULT),
    )
