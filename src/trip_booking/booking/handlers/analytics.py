import asyncio

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import (
    APIGatewayProxyEventV2,
    event_source,
)
from aws_lambda_powertools.utilities.typing import LambdaContext

from trip_booking.booking.applications.get_booking import BookingAnalytics
from trip_booking.booking.handlers import bootstrap
from trip_booking.booking.handlers.errors import handle_error, requester_id
from trip_booking.booking.handlers.response_models import analytics_data, to_response
from trip_booking.shared.domain import UserId
from trip_booking.shared.utils import api_response
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME)


async def _get_analytics(user_id: UserId) -> BookingAnalytics:
    async with bootstrap.open_cache() as cache:
        return await bootstrap.booking_query_service(cache).get_booking_analytics(
            user_id
        )


@logger.inject_lambda_context
@event_source(data_class=APIGatewayProxyEventV2)
def lambda_handler(event: APIGatewayProxyEventV2, context: LambdaContext) -> dict:
    """予約の集計 Lambda Handler"""
    try:
        user_id = requester_id(event)
        analytics = asyncio.run(_get_analytics(user_id))
        return api_response(200, to_response(analytics_data(analytics)))
    except Exception as e:
        return handle_error(e, logger)
