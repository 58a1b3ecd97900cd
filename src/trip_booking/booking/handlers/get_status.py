import asyncio

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import (
    APIGatewayProxyEventV2,
    event_source,
)
from aws_lambda_powertools.utilities.typing import LambdaContext

from trip_booking.booking.domain.entity import TripBooking
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.booking.handlers import bootstrap
from trip_booking.booking.handlers.errors import handle_error, requester_id
from trip_booking.booking.handlers.response_models import booking_data, to_response
from trip_booking.shared.domain import UserId
from trip_booking.shared.utils import api_response, error_response
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME)


async def _get_status(booking_id: BookingId, user_id: UserId) -> TripBooking:
    async with bootstrap.open_cache() as cache:
        return await bootstrap.booking_query_service(cache).get_booking_status(
            booking_id, user_id
        )


@logger.inject_lambda_context
@event_source(data_class=APIGatewayProxyEventV2)
def lambda_handler(event: APIGatewayProxyEventV2, context: LambdaContext) -> dict:
    """予約ステータス取得 Lambda Handler"""
    booking_id = (event.path_parameters or {}).get("booking_id")
    if not booking_id:
        return error_response(400, "booking_id is required")

    try:
        user_id = requester_id(event)
        logger.info("Fetching booking status", extra={"booking_id": booking_id})
        booking = asyncio.run(_get_status(BookingId(value=booking_id), user_id))
        return api_response(200, to_response(booking_data(booking)))
    except Exception as e:
        return handle_error(e, logger)
