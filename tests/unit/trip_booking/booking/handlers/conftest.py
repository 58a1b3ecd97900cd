import json
from dataclasses import dataclass

import pytest


@dataclass
class FakeLambdaContext:
    function_name: str = "trip-booking-test"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = (
        "arn:aws:lambda:us-east-1:123456789012:function:trip-booking-test"
    )
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"


@pytest.fixture
def lambda_context():
    return FakeLambdaContext()


@pytest.fixture
def api_event():
    """API Gateway HTTP API (v2) のイベントを生成する Factory fixture"""

    def _factory(
        body: dict | None = None,
        path_parameters: dict | None = None,
        query: dict | None = None,
        sub: str | None = "user-1",
    ) -> dict:
        authorizer = {"jwt": {"claims": {"sub": sub}, "scopes": None}} if sub else {}
        return {
            "version": "2.0",
            "routeKey": "ANY /bookings",
            "rawPath": "/bookings",
            "rawQueryString": "",
            "headers": {"content-type": "application/json"},
            "queryStringParameters": query,
            "pathParameters": path_parameters,
            "requestContext": {
                "http": {"method": "POST", "path": "/bookings"},
                "requestId": "req-1",
                "authorizer": authorizer,
            },
            "body": json.dumps(body) if body is not None else None,
            "isBase64Encoded": False,
        }

    return _factory

