import asyncio

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext

from trip_booking.booking.domain.entity import TripBooking
from trip_booking.booking.domain.enum import PaymentEventType
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.booking.handlers import bootstrap
from trip_booking.booking.handlers.request_models import PaymentEventRequest
from trip_booking.booking.handlers.response_models import PaymentEventData
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME)


async def _apply(booking_id: BookingId, event_type: PaymentEventType) -> TripBooking:
    async with bootstrap.open_cache() as cache:
        return await bootstrap.payment_event_service(cache).apply(
            booking_id, event_type
        )


@logger.inject_lambda_context
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """決済イベント反映の Lambda ハンドラー

    決済サブシステム（Step Functions / EventBridge）から呼び出される。
    失敗は例外のまま呼び出し元に返し、リトライ・エラー処理は呼び出し元で行う。
    """
    payload = event.get("Payload", event)
    request = PaymentEventRequest.model_validate(payload)
    logger.info(
        "Received payment event",
        extra={
            "booking_id": request.booking_id,
            "event_type": request.event_type.value,
        },
    )

    booking = asyncio.run(
        _apply(BookingId(value=request.booking_id), request.event_type)
    )
    return PaymentEventData(
        booking_id=str(booking.id), payment_status=booking.payment_status.value
    ).model_dump()
