from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import (
    APIGatewayProxyEventV2,
    event_source,
)
from aws_lambda_powertools.utilities.typing import LambdaContext

from trip_booking.booking.handlers import bootstrap
from trip_booking.booking.handlers.errors import handle_error
from trip_booking.shared.utils import api_response
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME)


@logger.inject_lambda_context
@event_source(data_class=APIGatewayProxyEventV2)
def lambda_handler(event: APIGatewayProxyEventV2, context: LambdaContext) -> dict:
    """コンポーネント種別ごとの利用可能プロバイダ一覧"""
    try:
        providers = bootstrap.provider_registry().to_dict()
        return api_response(200, {"success": True, "data": {"providers": providers}})
    except Exception as e:
        return handle_error(e, logger)
