from __future__ import annotations

from pydantic import BaseModel

from trip_booking.booking.applications.cancel_booking import (
    CancellationResult,
    RefundRequestResult,
)
from trip_booking.booking.applications.get_booking import (
    BookingAnalytics,
    BookingSummary,
    Receipt,
)
from trip_booking.booking.applications.process_trip_booking import BookingResult
from trip_booking.booking.domain.entity import ComponentBooking, TripBooking
from trip_booking.shared.domain.exception import BusinessRuleViolationException

ESTIMATED_COMPLETION = "2-5 minutes"


class SuccessResponse(BaseModel):
    """成功レスポンスモデル"""

    success: bool = True
    message: str | None = None
    data: dict


class ComponentData(BaseModel):
    component_type: str
    provider: str
    price: str
    currency: str
    status: str
    provider_reference: str | None = None
    confirmation_number: str | None = None
    provider_details: dict
    error: str | None = None
    created_at: str
    updated_at: str


class RefundRequestData(BaseModel):
    reason: str
    requested_by: str
    requested_at: str
    components: list[str]


class BookingData(BaseModel):
    """予約の全体像（所有者のみ参照可能）"""

    booking_id: str
    trip_id: int
    user_id: str
    status: str
    total_cost: str
    currency: str
    payment_status: str
    components: list[ComponentData]
    refund_requests: list[RefundRequestData]
    cancelled_at: str | None = None
    created_at: str
    updated_at: str


class PaymentRequestData(BaseModel):
    booking_id: str
    user_id: str
    amount: str
    currency: str


class SubmitBookingData(BaseModel):
    booking_id: str
    status: str
    estimated_completion: str = ESTIMATED_COMPLETION
    component_count: int
    confirmed_components: list[str]
    failed_components: list[str]
    total_cost: str
    payment: PaymentRequestData | None = None


class BookingSummaryData(BaseModel):
    booking_id: str
    trip_id: int
    status: str
    component_count: int
    confirmed_components: int
    total_cost: str
    created_at: str


class PaginationData(BaseModel):
    limit: int
    offset: int
    total: int


class BookingHistoryData(BaseModel):
    bookings: list[BookingSummaryData]
    pagination: PaginationData


class ReceiptLineData(BaseModel):
    component_type: str
    provider: str
    price: str
    booking_reference: str | None = None
    confirmation_number: str | None = None


class ReceiptData(BaseModel):
    booking_id: str
    booking_date: str
    total_amount: str
    currency: str
    status: str
    components: list[ReceiptLineData]


class AnalyticsData(BaseModel):
    total_bookings: int
    successful_bookings: int
    failed_bookings: int
    partial_bookings: int
    cancelled_bookings: int
    avg_components_per_booking: float


class CancellationData(BaseModel):
    booking_id: str
    status: str


class RefundData(BaseModel):
    booking_id: str
    status: str
    estimated_processing_time: str
    components: list[str]


class PaymentEventData(BaseModel):
    booking_id: str
    payment_status: str


def _component_data(component: ComponentBooking) -> ComponentData:
    return ComponentData(
        component_type=component.component_type.value,
        provider=component.provider,
        price=str(component.price.amount),
        currency=str(component.price.currency),
        status=component.status.value,
        provider_reference=(
            str(component.provider_reference) if component.provider_reference else None
        ),
        confirmation_number=(
            str(component.confirmation_number)
            if component.confirmation_number
            else None
        ),
        provider_details=component.provider_details,
        error=component.error,
        created_at=str(component.created_at),
        updated_at=str(component.updated_at),
    )


def booking_data(booking: TripBooking) -> BookingData:
    return BookingData(
        booking_id=str(booking.id),
        trip_id=booking.trip_id.value,
        user_id=str(booking.user_id),
        status=booking.status.value,
        total_cost=str(booking.total_cost.amount),
        currency=str(booking.total_cost.currency),
        payment_status=booking.payment_status.value,
        components=[_component_data(c) for c in booking.components],
        refund_requests=[
            RefundRequestData(
                reason=r.reason,
                requested_by=str(r.requested_by),
                requested_at=str(r.requested_at),
                components=[t.value for t in r.component_types],
            )
            for r in booking.refund_requests
        ],
        cancelled_at=str(booking.cancelled_at) if booking.cancelled_at else None,
        created_at=str(booking.created_at),
        updated_at=str(booking.updated_at),
    )


def submit_data(result: BookingResult) -> SubmitBookingData:
    """予約結果を送信レスポンスに変換する

    確定済みの金額がある場合のみ決済依頼を含める。
    """
    try:
        payment_request = result.booking.payment_request()
    except BusinessRuleViolationException:
        payment = None
    else:
        payment = PaymentRequestData(
            booking_id=str(payment_request.booking_id),
            user_id=str(payment_request.user_id),
            amount=str(payment_request.amount.amount),
            currency=str(payment_request.amount.currency),
        )

    return SubmitBookingData(
        booking_id=str(result.booking_id),
        status=result.status.value,
        component_count=len(result.booking.components),
        confirmed_components=[c.component_type.value for c in result.components],
        failed_components=[c.component_type.value for c in result.failed],
        total_cost=str(result.total_cost.amount),
        payment=payment,
    )


def history_data(
    summaries: list[BookingSummary], limit: int, offset: int
) -> BookingHistoryData:
    return BookingHistoryData(
        bookings=[
            BookingSummaryData(
                booking_id=str(s.booking_id),
                trip_id=s.trip_id.value,
                status=s.status.value,
                component_count=s.component_count,
                confirmed_components=s.confirmed_components,
                total_cost=str(s.total_cost.amount),
                created_at=str(s.created_at),
            )
            for s in summaries
        ],
        pagination=PaginationData(limit=limit, offset=offset, total=len(summaries)),
    )


def receipt_data(receipt: Receipt) -> ReceiptData:
    return ReceiptData(
        booking_id=str(receipt.booking_id),
        booking_date=str(receipt.booking_date),
        total_amount=str(receipt.total_amount.amount),
        currency=str(receipt.total_amount.currency),
        status=receipt.status.value,
        components=[
            ReceiptLineData(
                component_type=line.component_type,
                provider=line.provider,
                price=str(line.price.amount),
                booking_reference=line.booking_reference,
                confirmation_number=line.confirmation_number,
            )
            for line in receipt.components
        ],
    )


def analytics_data(analytics: BookingAnalytics) -> AnalyticsData:
    return AnalyticsData(
        total_bookings=analytics.total_bookings,
        successful_bookings=analytics.successful_bookings,
        failed_bookings=analytics.failed_bookings,
        partial_bookings=analytics.partial_bookings,
        cancelled_bookings=analytics.cancelled_bookings,
        avg_components_per_booking=analytics.avg_components_per_booking,
    )


def cancellation_data(result: CancellationResult) -> CancellationData:
    return CancellationData(booking_id=str(result.booking_id), status=result.status.value)


def refund_data(result: RefundRequestResult) -> RefundData:
    return RefundData(
        booking_id=str(result.booking_id),
        status=result.status,
        estimated_processing_time=result.estimated_processing_time,
        components=[t.value for t in result.refund_request.component_types],
    )


def to_response(data: BaseModel, message: str | None = None) -> dict:
    """レスポンスモデルを JSON 互換の辞書に変換する"""
    return SuccessResponse(
        data=data.model_dump(mode="json"), message=message
    ).model_dump(mode="json")
