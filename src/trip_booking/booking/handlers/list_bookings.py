import asyncio

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import (
    APIGatewayProxyEventV2,
    event_source,
)
from aws_lambda_powertools.utilities.typing import LambdaContext

from trip_booking.booking.applications.get_booking import BookingSummary
from trip_booking.booking.handlers import bootstrap
from trip_booking.booking.handlers.errors import handle_error, requester_id
from trip_booking.booking.handlers.request_models import BookingHistoryQuery
from trip_booking.booking.handlers.response_models import history_data, to_response
from trip_booking.shared.domain import UserId
from trip_booking.shared.utils import api_response
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME)


async def _list_bookings(
    user_id: UserId, query: BookingHistoryQuery
) -> list[BookingSummary]:
    async with bootstrap.open_cache() as cache:
        return await bootstrap.booking_query_service(cache).get_user_bookings(
            user_id, limit=query.limit, offset=query.offset
        )


@logger.inject_lambda_context
@event_source(data_class=APIGatewayProxyEventV2)
def lambda_handler(event: APIGatewayProxyEventV2, context: LambdaContext) -> dict:
    """予約履歴取得 Lambda Handler（新しい順）"""
    try:
        user_id = requester_id(event)
        query = BookingHistoryQuery.model_validate(event.query_string_parameters or {})
        summaries = asyncio.run(_list_bookings(user_id, query))
        return api_response(
            200, to_response(history_data(summaries, query.limit, query.offset))
        )
    except Exception as e:
        return handle_error(e, logger)
