import json

from aws_lambda_powertools import Logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from trip_booking.booking.domain.entity import TripBooking
from trip_booking.booking.domain.repository import ResultCache
from trip_booking.booking.domain.value_object import BookingId
from trip_booking.booking.infrastructure.booking_mapper import (
    booking_from_record,
    booking_to_record,
)
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME, child=True)

KEY_PREFIX = "booking:"


class RedisResultCache(ResultCache):
    """Redis を使用した予約結果キャッシュ

    値は集約全体の JSON（所有者 ID を含む）。ストアが正であり、
    Redis の障害や壊れたエントリはキャッシュミスとして扱う。
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisResultCache":
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
        return cls(client)

    @staticmethod
    def _key(booking_id: BookingId) -> str:
        return f"{KEY_PREFIX}{booking_id}"

    async def get(self, booking_id: BookingId) -> TripBooking | None:
        try:
            raw = await self._client.get(self._key(booking_id))
        except RedisError as e:
            logger.warning(
                "Cache read failed",
                extra={"booking_id": str(booking_id), "error": str(e)},
            )
            return None
        if raw is None:
            return None

        try:
            record = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(
                "Discarding unreadable cache entry",
                extra={"booking_id": str(booking_id)},
            )
            return None

        # 所有者を確認できないエントリは使わない
        if not record.get("user_id"):
            logger.warning(
                "Cache entry has no owner; falling back to store",
                extra={"booking_id": str(booking_id)},
            )
            return None

        try:
            return booking_from_record(record)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Discarding malformed cache entry",
                extra={"booking_id": str(booking_id), "error": str(e)},
            )
            return None

    async def set(self, booking: TripBooking, ttl_seconds: int) -> None:
        payload = json.dumps(booking_to_record(booking), default=str)
        try:
            await self._client.set(self._key(booking.id), payload, ex=ttl_seconds)
        except RedisError as e:
            logger.warning(
                "Cache write failed",
                extra={"booking_id": str(booking.id), "error": str(e)},
            )

    async def invalidate(self, booking_id: BookingId) -> None:
        try:
            await self._client.delete(self._key(booking_id))
        except RedisError as e:
            logger.warning(
                "Cache invalidation failed",
                extra={"booking_id": str(booking_id), "error": str(e)},
            )

    async def close(self) -> None:
        """接続プールを閉じる（イベントループごとに作り直すため）"""
        await self._client.aclose()
