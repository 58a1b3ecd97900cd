import json

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEventV2
from pydantic import ValidationError

from trip_booking.shared.domain import UserId
from trip_booking.shared.domain.exception import (
    BusinessRuleViolationException,
    DuplicateResourceException,
    OwnershipException,
    ResourceNotFoundException,
    ValidationException,
)
from trip_booking.shared.utils import error_response


class MissingIdentityError(Exception):
    """JWT の sub クレームが存在しない"""

    pass


def requester_id(event: APIGatewayProxyEventV2) -> UserId:
    """API Gateway の JWT オーソライザが検証した sub クレームを取得する"""
    claims = (
        event.raw_event.get("requestContext", {})
        .get("authorizer", {})
        .get("jwt", {})
        .get("claims", {})
    )
    sub = claims.get("sub")
    if not sub:
        raise MissingIdentityError("Missing sub claim")
    return UserId(value=sub)


def handle_error(e: Exception, logger: Logger) -> dict:
    """例外を HTTP レスポンスに変換する

    所有者不一致の場合は予約の内容を一切含めない。
    """
    if isinstance(e, MissingIdentityError):
        return error_response(401, "Unauthorized")
    if isinstance(e, ValidationError):
        return error_response(
            400, "Invalid request", errors=e.errors(include_url=False)
        )
    if isinstance(e, json.JSONDecodeError):
        return error_response(400, "Request body must be valid JSON")
    if isinstance(e, ValidationException):
        return error_response(400, str(e))
    if isinstance(e, OwnershipException):
        logger.warning("Access denied", extra={"error": str(e)})
        return error_response(403, "Access denied")
    if isinstance(e, ResourceNotFoundException):
        return error_response(404, str(e))
    if isinstance(e, DuplicateResourceException):
        return error_response(409, str(e))
    if isinstance(e, BusinessRuleViolationException):
        return error_response(409, str(e))

    logger.exception("Unexpected error")
    return error_response(500, "Internal server error")
