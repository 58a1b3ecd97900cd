import asyncio

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import (
    APIGatewayProxyEventV2,
    event_source,
)
from aws_lambda_powertools.utilities.typing import LambdaContext

from trip_booking.booking.applications.process_trip_booking import BookingResult
from trip_booking.booking.handlers import bootstrap
from trip_booking.booking.handlers.errors import handle_error, requester_id
from trip_booking.booking.handlers.request_models import SubmitBookingRequest
from trip_booking.booking.handlers.response_models import submit_data, to_response
from trip_booking.shared.domain import TripId, UserId
from trip_booking.shared.utils import api_response
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME)


async def _submit(user_id: UserId, request: SubmitBookingRequest) -> BookingResult:
    async with bootstrap.open_cache() as cache:
        return await bootstrap.booking_orchestrator(cache).process_trip_booking(
            user_id=user_id,
            trip_id=TripId(value=request.trip_id),
            selections=[s.to_selection() for s in request.selections],
        )


@logger.inject_lambda_context
@event_source(data_class=APIGatewayProxyEventV2)
def lambda_handler(event: APIGatewayProxyEventV2, context: LambdaContext) -> dict:
    """旅行予約の送信 Lambda Handler

    全コンポーネントの予約が完了（成功・失敗）してから応答する。
    """
    try:
        user_id = requester_id(event)
        body = event.json_body if event.body else {}
        request = SubmitBookingRequest.model_validate(body)
        logger.info(
            "Trip booking request received",
            extra={
                "user_id": str(user_id),
                "trip_id": request.trip_id,
                "component_count": len(request.selections),
            },
        )

        result = asyncio.run(_submit(user_id, request))
        return api_response(
            200,
            to_response(
                submit_data(result), message="Booking process completed"
            ),
        )
    except Exception as e:
        return handle_error(e, logger)
