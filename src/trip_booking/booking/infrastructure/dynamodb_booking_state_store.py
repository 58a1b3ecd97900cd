import asyncio
import json
import os

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from trip_booking.booking.domain.entity import ComponentBooking, TripBooking
from trip_booking.booking.domain.enum import BookingStatus, ComponentStatus
from trip_booking.booking.domain.repository import BookingStateStore
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.booking.infrastructure.booking_mapper import (
    booking_from_record,
    booking_header_to_record,
    component_from_record,
    component_to_record,
)
from trip_booking.shared.domain import IsoDateTime, UserId
from trip_booking.shared.domain.exception import (
    DuplicateResourceException,
    OptimisticLockException,
    PersistenceException,
    ResourceNotFoundException,
)

HEADER_SK = "META"

# 枠の解放: 自分の予約が持つ枠か、既に存在しない場合のみ削除する
_RELEASE_CONDITION = "attribute_not_exists(PK) OR booking_id = :booking_id"


def _header_key(booking_id: BookingId) -> dict:
    return {"PK": f"BOOKING#{booking_id}", "SK": HEADER_SK}


def _component_key(component: ComponentBooking) -> dict:
    return {
        "PK": f"BOOKING#{component.booking_id}",
        "SK": f"COMPONENT#{component.component_type.value}",
    }


def _slot_key(component: ComponentBooking) -> dict:
    return {
        "PK": f"TRIP#{component.trip_id}",
        "SK": f"ACTIVE#{component.component_type.value}",
    }


def _cancellation_reasons(error: ClientError) -> list[str]:
    if error.response["Error"]["Code"] != "TransactionCanceledException":
        return []
    return [r.get("Code", "") for r in error.response.get("CancellationReasons", [])]


class DynamoDBBookingStateStore(BookingStateStore):
    """DynamoDB を使用した BookingStateStore の具象実装

    シングルテーブル設計:
        - 集約ヘッダ      PK=BOOKING#{booking_id} / SK=META
                          GSI1PK=USER#{user_id} / GSI1SK={created_at}#{booking_id}
        - コンポーネント行 PK=BOOKING#{booking_id} / SK=COMPONENT#{component_type}
        - 予約枠          PK=TRIP#{trip_id} / SK=ACTIVE#{component_type}

    予約枠は (TripId, ComponentType) ごとに有効な予約を1件に制限する。
    作成と同じトランザクションで確保し、FAILED / CANCELLED で解放する。
    解放後は同じ組を新しい予約として再送信できる。

    boto3 はブロッキング I/O のため、asyncio.to_thread で実行する。
    """

    def __init__(
        self,
        table_name: str | None = None,
        endpoint_url: str | None = None,
        region_name: str | None = None,
    ) -> None:
        self.table_name = table_name or os.getenv("TABLE_NAME")
        self.dynamodb = boto3.resource(
            "dynamodb", endpoint_url=endpoint_url, region_name=region_name
        )
        self.table = self.dynamodb.Table(self.table_name)
        self.client = self.dynamodb.meta.client

    async def create(self, booking: TripBooking) -> None:
        await asyncio.to_thread(self._create, booking)

    async def update_component(
        self,
        component: ComponentBooking,
        expected_status: ComponentStatus | None = None,
    ) -> None:
        await asyncio.to_thread(self._update_component, component, expected_status)

    async def save_cancellation(self, booking: TripBooking) -> None:
        await asyncio.to_thread(self._save_cancellation, booking)

    async def update_header(self, booking: TripBooking) -> None:
        await asyncio.to_thread(self._update_header, booking)

    async def find_by_id(self, booking_id: BookingId) -> TripBooking | None:
        return await asyncio.to_thread(self._find_by_id, booking_id)

    async def find_by_user_id(
        self, user_id: UserId, limit: int | None, offset: int
    ) -> list[TripBooking]:
        return await asyncio.to_thread(self._find_by_user_id, user_id, limit, offset)

    def _create(self, booking: TripBooking) -> None:
        """ヘッダ・PENDING 行・予約枠をトランザクションで一括保存する"""
        transact_items = [
            {
                "Put": {
                    "TableName": self.table_name,
                    "Item": self._header_item(booking),
                    "ConditionExpression": "attribute_not_exists(PK)",
                }
            }
        ]
        for component in booking.components:
            transact_items.append(
                {
                    "Put": {
                        "TableName": self.table_name,
                        "Item": self._component_item(component),
                        "ConditionExpression": "attribute_not_exists(PK)",
                    }
                }
            )
            if component.status.holds_trip_slot:
                transact_items.append(
                    {
                        "Put": {
                            "TableName": self.table_name,
                            "Item": self._slot_item(component),
                            "ConditionExpression": "attribute_not_exists(PK)",
                        }
                    }
                )

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as e:
            if "ConditionalCheckFailed" in _cancellation_reasons(e):
                raise DuplicateResourceException(
                    f"Components already booked for trip: {booking.trip_id}"
                ) from e
            raise PersistenceException(
                f"Failed to create booking: {booking.id}"
            ) from e
        except BotoCoreError as e:
            raise PersistenceException(f"Failed to create booking: {booking.id}") from e

    def _update_component(
        self, component: ComponentBooking, expected_status: ComponentStatus | None
    ) -> None:
        update = self._component_update(component, expected_status)
        try:
            if component.status.holds_trip_slot:
                self.table.update_item(**update)
            else:
                self.client.transact_write_items(
                    TransactItems=[
                        {"Update": {"TableName": self.table_name, **update}},
                        self._slot_release(component),
                    ]
                )
        except ClientError as e:
            code = e.response["Error"]["Code"]
            reasons = _cancellation_reasons(e)
            if code == "ConditionalCheckFailedException" or (
                reasons and reasons[0] == "ConditionalCheckFailed"
            ):
                raise OptimisticLockException(
                    f"Component status conflict: "
                    f"expected {expected_status}, "
                    f"component_id={component.id}"
                ) from e
            raise PersistenceException(
                f"Failed to update component: {component.id}"
            ) from e
        except BotoCoreError as e:
            raise PersistenceException(
                f"Failed to update component: {component.id}"
            ) from e

    def _component_update(
        self, component: ComponentBooking, expected_status: ComponentStatus | None
    ) -> dict:
        condition = "attribute_exists(PK)"
        values = {}
        if expected_status is not None:
            condition += " AND #status = :expected"
            values[":expected"] = expected_status.value

        record = component_to_record(component)
        return {
            "Key": _component_key(component),
            "UpdateExpression": (
                "SET #status = :status, provider_reference = :reference, "
                "confirmation_number = :confirmation, "
                "provider_details = :details, #error = :error, "
                "updated_at = :updated_at"
            ),
            "ConditionExpression": condition,
            "ExpressionAttributeNames": {"#status": "status", "#error": "error"},
            "ExpressionAttributeValues": {
                ":status": record["status"],
                ":reference": record["provider_reference"],
                ":confirmation": record["confirmation_number"],
                ":details": json.dumps(record["provider_details"], default=str),
                ":error": record["error"],
                ":updated_at": record["updated_at"],
                **values,
            },
        }

    def _slot_release(self, component: ComponentBooking) -> dict:
        return {
            "Delete": {
                "TableName": self.table_name,
                "Key": _slot_key(component),
                "ConditionExpression": _RELEASE_CONDITION,
                "ExpressionAttributeValues": {
                    ":booking_id": str(component.booking_id)
                },
            }
        }

    def _held_slots(self, booking: TripBooking) -> set[str]:
        """この予約がまだ保持している予約枠の SK

        解放済みの枠は別の予約が確保し直している場合があるため、削除対象から外す。
        """
        request = {
            self.table_name: {
                "Keys": [_slot_key(c) for c in booking.components],
                "ConsistentRead": True,
            }
        }
        held: set[str] = set()
        while request:
            response = self.client.batch_get_item(RequestItems=request)
            for item in response.get("Responses", {}).get(self.table_name, []):
                if item.get("booking_id") == str(booking.id):
                    held.add(item["SK"])
            request = response.get("UnprocessedKeys") or {}
        return held

    def _save_cancellation(self, booking: TripBooking) -> None:
        updated_at = str(IsoDateTime.now())
        try:
            held = self._held_slots(booking)
        except (ClientError, BotoCoreError) as e:
            raise PersistenceException(f"Failed to cancel booking: {booking.id}") from e

        transact_items = []
        for component in booking.components:
            transact_items.append(
                {
                    "Update": {
                        "TableName": self.table_name,
                        "Key": _component_key(component),
                        "UpdateExpression": "SET #status = :status, updated_at = :updated_at",
                        "ConditionExpression": "attribute_exists(PK)",
                        "ExpressionAttributeNames": {"#status": "status"},
                        "ExpressionAttributeValues": {
                            ":status": ComponentStatus.CANCELLED.value,
                            ":updated_at": updated_at,
                        },
                    }
                }
            )
            if _slot_key(component)["SK"] in held:
                transact_items.append(self._slot_release(component))
        transact_items.append(
            {
                "Update": {
                    "TableName": self.table_name,
                    "Key": _header_key(booking.id),
                    "UpdateExpression": (
                        "SET #status = :status, cancelled_at = :cancelled_at, "
                        "cancelled_by = :cancelled_by, updated_at = :updated_at"
                    ),
                    "ExpressionAttributeNames": {"#status": "status"},
                    "ExpressionAttributeValues": {
                        ":status": BookingStatus.CANCELLED.value,
                        ":cancelled_at": str(booking.cancelled_at),
                        ":cancelled_by": str(booking.cancelled_by),
                        ":updated_at": updated_at,
                    },
                }
            }
        )

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except (ClientError, BotoCoreError) as e:
            raise PersistenceException(f"Failed to cancel booking: {booking.id}") from e

    def _update_header(self, booking: TripBooking) -> None:
        record = booking_header_to_record(booking)
        condition = Attr("PK").exists()
        if record["status"] != BookingStatus.CANCELLED.value:
            condition = condition & Attr("status").ne(BookingStatus.CANCELLED.value)
        try:
            self.table.update_item(
                Key=_header_key(booking.id),
                UpdateExpression=(
                    "SET #status = :status, total_cost = :total_cost, "
                    "payment_status = :payment_status, "
                    "refund_requests = :refund_requests, updated_at = :updated_at"
                ),
                ConditionExpression=condition,
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    ":status": record["status"],
                    ":total_cost": record["total_cost"],
                    ":payment_status": record["payment_status"],
                    ":refund_requests": record["refund_requests"],
                    ":updated_at": record["updated_at"],
                },
                ReturnValuesOnConditionCheckFailure="ALL_OLD",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                if e.response.get("Item"):
                    raise OptimisticLockException(
                        f"Booking already cancelled: {booking.id}"
                    ) from e
                raise ResourceNotFoundException(
                    f"Booking not found: {booking.id}"
                ) from e
            raise PersistenceException(f"Failed to update booking: {booking.id}") from e
        except BotoCoreError as e:
            raise PersistenceException(f"Failed to update booking: {booking.id}") from e

    def _find_by_id(self, booking_id: BookingId) -> TripBooking | None:
        """予約IDで検索"""
        response = self.table.get_item(Key=_header_key(booking_id), ConsistentRead=True)
        item = response.get("Item")
        if not item:
            return None
        return self._to_entity(item)

    def _find_by_user_id(
        self, user_id: UserId, limit: int | None, offset: int
    ) -> list[TripBooking]:
        """GSI1 を新しい順に走査し、offset から limit 件を返す"""
        wanted = None if limit is None else offset + limit
        headers: list[dict] = []
        kwargs: dict = {
            "IndexName": "GSI1",
            "KeyConditionExpression": Key("GSI1PK").eq(f"USER#{user_id}"),
            "ScanIndexForward": False,
        }
        while True:
            response = self.table.query(**kwargs)
            headers.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if last_key is None or (wanted is not None and len(headers) >= wanted):
                break
            kwargs["ExclusiveStartKey"] = last_key

        page = headers[offset:wanted]
        return [self._to_entity(item) for item in page]

    def _load_components(self, header: dict) -> list[ComponentBooking]:
        response = self.table.query(
            KeyConditionExpression=Key("PK").eq(f"BOOKING#{header['booking_id']}")
            & Key("SK").begins_with("COMPONENT#"),
            ConsistentRead=True,
        )
        return [
            component_from_record(self._from_component_item(item))
            for item in response.get("Items", [])
        ]

    def _header_item(self, booking: TripBooking) -> dict:
        record = booking_header_to_record(booking)
        return {
            **_header_key(booking.id),
            "entity_type": "BOOKING",
            **record,
            "GSI1PK": f"USER#{booking.user_id}",
            "GSI1SK": f"{record['created_at']}#{booking.id}",
        }

    def _component_item(self, component: ComponentBooking) -> dict:
        record = component_to_record(component)
        return {
            **_component_key(component),
            "entity_type": "COMPONENT",
            **record,
            "selection_details": json.dumps(record["selection_details"], default=str),
            "provider_details": json.dumps(record["provider_details"], default=str),
        }

    def _slot_item(self, component: ComponentBooking) -> dict:
        return {
            **_slot_key(component),
            "entity_type": "TRIP_COMPONENT_SLOT",
            "booking_id": str(component.booking_id),
            "component_type": component.component_type.value,
        }

    @staticmethod
    def _from_component_item(item: dict) -> dict:
        return {
            **item,
            "selection_details": json.loads(item.get("selection_details") or "{}"),
            "provider_details": json.loads(item.get("provider_details") or "{}"),
        }

    def _to_entity(self, item: dict) -> TripBooking:
        """DynamoDB アイテムをドメインエンティティに変換する"""
        return booking_from_record(item, components=self._load_components(item))
