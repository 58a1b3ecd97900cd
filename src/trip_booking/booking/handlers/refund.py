import asyncio

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import (
    APIGatewayProxyEventV2,
    event_source,
)
from aws_lambda_powertools.utilities.typing import LambdaContext

from trip_booking.booking.applications.cancel_booking import RefundRequestResult
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.booking.handlers import bootstrap
from trip_booking.booking.handlers.errors import handle_error, requester_id
from trip_booking.booking.handlers.request_models import RefundBookingRequest
from trip_booking.booking.handlers.response_models import refund_data, to_response
from trip_booking.shared.domain import UserId
from trip_booking.shared.utils import api_response, error_response
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME)


async def _request_refund(
    booking_id: BookingId, user_id: UserId, request: RefundBookingRequest
) -> RefundRequestResult:
    async with bootstrap.open_cache() as cache:
        return await bootstrap.cancellation_coordinator(cache).request_refund(
            booking_id,
            user_id,
            reason=request.reason,
            components=request.components,
        )


@logger.inject_lambda_context
@event_source(data_class=APIGatewayProxyEventV2)
def lambda_handler(event: APIGatewayProxyEventV2, context: LambdaContext) -> dict:
    """払い戻し依頼 Lambda Handler"""
    booking_id = (event.path_parameters or {}).get("booking_id")
    if not booking_id:
        return error_response(400, "booking_id is required")

    try:
        user_id = requester_id(event)
        body = event.json_body if event.body else {}
        request = RefundBookingRequest.model_validate(body)
        result = asyncio.run(
            _request_refund(BookingId(value=booking_id), user_id, request)
        )
        return api_response(
            200,
            to_response(refund_data(result), message="Refund request submitted"),
        )
    except Exception as e:
        return handle_error(e, logger)
