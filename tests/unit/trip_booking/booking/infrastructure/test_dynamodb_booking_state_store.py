import json
from unittest.mock import MagicMock, patch

import pytest
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from trip_booking.booking.domain.enum import (
    BookingStatus,
    ComponentStatus,
    ComponentType,
)
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.booking.infrastructure.dynamodb_booking_state_store import (
    DynamoDBBookingStateStore,
)
from trip_booking.shared.domain import UserId
from trip_booking.shared.domain.exception import (
    DuplicateResourceException,
    OptimisticLockException,
    PersistenceException,
    ResourceNotFoundException,
)

T = ComponentType
S = ComponentStatus


def _client_error(code: str, operation: str, **extra) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}, **extra}, operation)


@pytest.fixture
def mock_boto3():
    with patch(
        "trip_booking.booking.infrastructure.dynamodb_booking_state_store.boto3"
    ) as mock:
        yield mock


@pytest.fixture
def repo(mock_boto3):
    return DynamoDBBookingStateStore(table_name="TripBookings")


@pytest.fixture
def table(mock_boto3):
    return mock_boto3.resource.return_value.Table.return_value


@pytest.fixture
def client(mock_boto3):
    return mock_boto3.resource.return_value.meta.client


class TestCreate:
    @pytest.mark.asyncio
    async def test_writes_header_and_rows_in_one_transaction(
        self, repo, client, create_booking
    ):
        booking = create_booking(
            statuses={T.FLIGHT: S.PENDING, T.HOTEL: S.PENDING}, user_id="user-1"
        )

        await repo.create(booking)

        items = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert len(items) == 5
        header = items[0]["Put"]["Item"]
        assert header["PK"] == f"BOOKING#{booking.id}"
        assert header["SK"] == "META"
        assert header["GSI1PK"] == "USER#user-1"
        assert header["GSI1SK"].endswith(f"#{booking.id}")
        assert header["component_types"] == ["flight", "hotel"]

        flight = items[1]["Put"]
        assert flight["Item"]["PK"] == f"BOOKING#{booking.id}"
        assert flight["Item"]["SK"] == "COMPONENT#flight"
        assert flight["Item"]["status"] == "pending"
        assert flight["Item"]["price_amount"] == "100.00"
        assert json.loads(flight["Item"]["selection_details"]) == {"id": "opt-1"}
        assert flight["ConditionExpression"] == "attribute_not_exists(PK)"
        assert flight["TableName"] == "TripBookings"

        slot = items[2]["Put"]
        assert slot["Item"]["PK"] == "TRIP#42"
        assert slot["Item"]["SK"] == "ACTIVE#flight"
        assert slot["Item"]["booking_id"] == str(booking.id)
        assert slot["ConditionExpression"] == "attribute_not_exists(PK)"
        assert items[4]["Put"]["Item"]["SK"] == "ACTIVE#hotel"

    @pytest.mark.asyncio
    async def test_settled_failures_do_not_take_a_slot(
        self, repo, client, create_booking
    ):
        booking = create_booking(statuses={T.FLIGHT: S.CONFIRMED, T.CAR: S.FAILED})

        await repo.create(booking)

        items = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert [i["Put"]["Item"]["SK"] for i in items] == [
            "META",
            "COMPONENT#flight",
            "ACTIVE#flight",
            "COMPONENT#car",
        ]

    @pytest.mark.asyncio
    async def test_condition_failure_is_duplicate(self, repo, client, create_booking):
        client.transact_write_items.side_effect = _client_error(
            "TransactionCanceledException",
            "TransactWriteItems",
            CancellationReasons=[{"Code": "None"}, {"Code": "ConditionalCheckFailed"}],
        )

        with pytest.raises(DuplicateResourceException):
            await repo.create(create_booking(statuses={T.FLIGHT: S.PENDING}))

    @pytest.mark.asyncio
    async def test_other_errors_are_persistence_errors(
        self, repo, client, create_booking
    ):
        client.transact_write_items.side_effect = _client_error(
            "ProvisionedThroughputExceededException", "TransactWriteItems"
        )

        with pytest.raises(PersistenceException) as exc_info:
            await repo.create(create_booking(statuses={T.FLIGHT: S.PENDING}))
        assert not isinstance(exc_info.value, DuplicateResourceException)


class TestUpdateComponent:
    @pytest.mark.asyncio
    async def test_conditional_update(self, repo, table, create_component):
        component = create_component(status=S.PENDING)
        component.start_processing()

        await repo.update_component(component, expected_status=S.PENDING)

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["Key"] == {
            "PK": "BOOKING#TRIP-42-1735689600000",
            "SK": "COMPONENT#flight",
        }
        assert kwargs["ExpressionAttributeValues"][":status"] == "processing"
        assert kwargs["ExpressionAttributeValues"][":expected"] == "pending"
        assert kwargs["ConditionExpression"] == (
            "attribute_exists(PK) AND #status = :expected"
        )

    @pytest.mark.asyncio
    async def test_condition_failure_is_optimistic_lock(
        self, repo, table, create_component
    ):
        table.update_item.side_effect = _client_error(
            "ConditionalCheckFailedException", "UpdateItem"
        )
        component = create_component(status=S.PROCESSING)

        with pytest.raises(OptimisticLockException):
            await repo.update_component(component, expected_status=S.PROCESSING)

    @pytest.mark.asyncio
    async def test_other_errors_are_persistence_errors(
        self, repo, table, create_component
    ):
        table.update_item.side_effect = _client_error("InternalServerError", "UpdateItem")

        with pytest.raises(PersistenceException):
            await repo.update_component(create_component())

    @pytest.mark.asyncio
    async def test_failure_releases_trip_slot(self, repo, table, client, create_component):
        component = create_component(status=S.PROCESSING)
        component.fail("Provider skyscanner is temporarily unavailable")

        await repo.update_component(component, expected_status=S.PROCESSING)

        table.update_item.assert_not_called()
        update, release = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert update["Update"]["ExpressionAttributeValues"][":status"] == "failed"
        assert release["Delete"]["Key"] == {"PK": "TRIP#42", "SK": "ACTIVE#flight"}
        assert release["Delete"]["ExpressionAttributeValues"] == {
            ":booking_id": "TRIP-42-1735689600000"
        }

    @pytest.mark.asyncio
    async def test_failure_on_cancelled_row_is_optimistic_lock(
        self, repo, client, create_component
    ):
        client.transact_write_items.side_effect = _client_error(
            "TransactionCanceledException",
            "TransactWriteItems",
            CancellationReasons=[{"Code": "ConditionalCheckFailed"}, {"Code": "None"}],
        )
        component = create_component(status=S.PROCESSING)
        component.fail("timeout")

        with pytest.raises(OptimisticLockException):
            await repo.update_component(component, expected_status=S.PROCESSING)


class TestCancellationAndHeader:
    @pytest.mark.asyncio
    async def test_save_cancellation(self, repo, client, create_booking):
        booking = create_booking(statuses={T.FLIGHT: S.CONFIRMED, T.CAR: S.FAILED})
        # FAILED の car は既に枠を解放している
        client.batch_get_item.return_value = {
            "Responses": {
                "TripBookings": [
                    {"PK": "TRIP#42", "SK": "ACTIVE#flight", "booking_id": str(booking.id)}
                ]
            }
        }
        booking.cancel(cancelled_by=UserId(value="user-1"))

        await repo.save_cancellation(booking)

        items = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert [
            (action, item[action]["Key"]["PK"], item[action]["Key"]["SK"])
            for item in items
            for action in item
        ] == [
            ("Update", f"BOOKING#{booking.id}", "COMPONENT#flight"),
            ("Delete", "TRIP#42", "ACTIVE#flight"),
            ("Update", f"BOOKING#{booking.id}", "COMPONENT#car"),
            ("Update", f"BOOKING#{booking.id}", "META"),
        ]
        header_values = items[-1]["Update"]["ExpressionAttributeValues"]
        assert header_values[":status"] == "cancelled"
        assert header_values[":cancelled_by"] == "user-1"
        request = client.batch_get_item.call_args.kwargs["RequestItems"]["TripBookings"]
        assert request["Keys"] == [
            {"PK": "TRIP#42", "SK": "ACTIVE#flight"},
            {"PK": "TRIP#42", "SK": "ACTIVE#car"},
        ]

    @pytest.mark.asyncio
    async def test_save_cancellation_keeps_slot_reclaimed_by_another_booking(
        self, repo, client, create_booking
    ):
        """解放済みの枠を別の予約が確保し直していても、キャンセルは成功する"""
        booking = create_booking(statuses={T.FLIGHT: S.FAILED})
        booking.cancel(cancelled_by=UserId(value="user-1"))
        client.batch_get_item.return_value = {
            "Responses": {
                "TripBookings": [
                    {"PK": "TRIP#42", "SK": "ACTIVE#flight", "booking_id": "TRIP-42-9"}
                ]
            }
        }

        await repo.save_cancellation(booking)

        items = client.transact_write_items.call_args.kwargs["TransactItems"]
        assert [list(item) for item in items] == [["Update"], ["Update"]]

    @pytest.mark.asyncio
    async def test_save_cancellation_read_failure(self, repo, client, create_booking):
        booking = create_booking(statuses={T.FLIGHT: S.CONFIRMED})
        booking.cancel(cancelled_by=UserId(value="user-1"))
        client.batch_get_item.side_effect = _client_error(
            "ProvisionedThroughputExceededException", "BatchGetItem"
        )

        with pytest.raises(PersistenceException):
            await repo.save_cancellation(booking)
        client.transact_write_items.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_header_on_missing_booking(self, repo, table, create_booking):
        table.update_item.side_effect = _client_error(
            "ConditionalCheckFailedException", "UpdateItem"
        )

        with pytest.raises(ResourceNotFoundException):
            await repo.update_header(create_booking())

    @pytest.mark.asyncio
    async def test_update_header_does_not_overwrite_cancellation(
        self, repo, table, create_booking
    ):
        booking = create_booking()

        await repo.update_header(booking)

        condition = table.update_item.call_args.kwargs["ConditionExpression"]
        assert condition == Attr("PK").exists() & Attr("status").ne("cancelled")

    @pytest.mark.asyncio
    async def test_update_header_on_cancelled_booking(self, repo, table, create_booking):
        table.update_item.side_effect = _client_error(
            "ConditionalCheckFailedException",
            "UpdateItem",
            Item={"status": {"S": "cancelled"}},
        )

        with pytest.raises(OptimisticLockException):
            await repo.update_header(create_booking())

    @pytest.mark.asyncio
    async def test_cancelled_header_can_still_be_annotated(
        self, repo, table, create_booking
    ):
        booking = create_booking()
        booking.cancel(cancelled_by=UserId(value="user-1"))

        await repo.update_header(booking)

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == Attr("PK").exists()
        assert kwargs["ExpressionAttributeValues"][":status"] == "cancelled"


def _header_item(booking_id="TRIP-42-1", user_id="user-1", created_at="2025-01-01T00:00:00+00:00"):
    return {
        "PK": f"BOOKING#{booking_id}",
        "SK": "META",
        "booking_id": booking_id,
        "trip_id": 42,
        "user_id": user_id,
        "component_types": ["hotel", "flight"],
        "status": "confirmed",
        "payment_status": "paid",
        "refund_requests": [],
        "currency": "USD",
        "created_at": created_at,
        "updated_at": created_at,
    }


def _component_item(component_type, status, booking_id="TRIP-42-1", **extra):
    return {
        "PK": f"BOOKING#{booking_id}",
        "SK": f"COMPONENT#{component_type}",
        "booking_id": booking_id,
        "trip_id": 42,
        "component_type": component_type,
        "provider": "booking" if component_type == "hotel" else "skyscanner",
        "price_amount": "150.00",
        "price_currency": "USD",
        "selection_details": json.dumps({"id": "opt"}),
        "provider_details": json.dumps({}),
        "status": status,
        "created_at": "2025-01-01T00:00:00+00:00",
        "updated_at": "2025-01-01T00:00:00+00:00",
        **extra,
    }


class TestFind:
    @pytest.mark.asyncio
    async def test_find_by_id_rebuilds_aggregate(self, repo, table):
        table.get_item.return_value = {"Item": _header_item()}
        table.query.return_value = {
            "Items": [
                _component_item("flight", "failed", error="Provider skyscanner is temporarily unavailable"),
                _component_item(
                    "hotel",
                    "confirmed",
                    provider_reference="BOOKING-1735689600000-abc123",
                    confirmation_number="CN-ABCDEFGHI",
                ),
            ]
        }

        booking = await repo.find_by_id(BookingId(value="TRIP-42-1"))

        # ヘッダの component_types の順序に揃える
        assert [c.component_type for c in booking.components] == [T.HOTEL, T.FLIGHT]
        assert booking.status == BookingStatus.PARTIAL
        assert str(booking.components[0].provider_reference) == "BOOKING-1735689600000-abc123"
        assert booking.components[1].error == "Provider skyscanner is temporarily unavailable"
        assert booking.user_id == UserId(value="user-1")
        component_query = table.query.call_args.kwargs
        assert component_query["KeyConditionExpression"] == (
            Key("PK").eq("BOOKING#TRIP-42-1") & Key("SK").begins_with("COMPONENT#")
        )

    @pytest.mark.asyncio
    async def test_find_by_id_absent(self, repo, table):
        table.get_item.return_value = {}
        assert await repo.find_by_id(BookingId(value="TRIP-42-1")) is None

    @pytest.mark.asyncio
    async def test_find_by_user_id_pages_through_index(self, repo, table):
        headers = [
            _header_item(booking_id=f"TRIP-42-{i}", created_at=f"2025-01-0{9 - i}T00:00:00+00:00")
            for i in range(3)
        ]

        def _query(**kwargs):
            if kwargs.get("IndexName") == "GSI1":
                if "ExclusiveStartKey" in kwargs:
                    return {"Items": headers[2:]}
                return {"Items": headers[:2], "LastEvaluatedKey": {"PK": "x"}}
            return {"Items": []}

        table.query.side_effect = _query

        bookings = await repo.find_by_user_id(UserId(value="user-1"), limit=2, offset=1)

        assert [str(b.id) for b in bookings] == ["TRIP-42-1", "TRIP-42-2"]
        index_call = table.query.call_args_list[0].kwargs
        assert index_call["ScanIndexForward"] is False
