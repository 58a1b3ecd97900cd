import asyncio
import random

from aws_lambda_powertools import Logger

from trip_booking.booking.domain.entity import ComponentBooking
from trip_booking.booking.domain.provider import ProviderAdapter
from trip_booking.shared.domain.exception import ProviderException
from trip_booking.shared.utils.logger import SERVICE_NAME

logger = Logger(service=SERVICE_NAME, child=True)


class SimulatedProviderAdapter(ProviderAdapter):
    """実プロバイダの代わりに遅延と失敗を模擬するアダプタ

    failure_rate の確率で ProviderException を送出する。
    """

    def __init__(
        self,
        failure_rate: float = 0.1,
        min_delay_seconds: float = 1.0,
        max_delay_seconds: float = 4.0,
        rng: random.Random | None = None,
    ) -> None:
        if not 0 <= failure_rate <= 1:
            raise ValueError("failure_rate must be between 0 and 1")
        if min_delay_seconds > max_delay_seconds:
            raise ValueError("min_delay_seconds must not exceed max_delay_seconds")
        self._failure_rate = failure_rate
        self._min_delay = min_delay_seconds
        self._max_delay = max_delay_seconds
        self._rng = rng or random.Random()

    async def book(self, component: ComponentBooking) -> dict:
        await asyncio.sleep(self._rng.uniform(self._min_delay, self._max_delay))

        if self._rng.random() < self._failure_rate:
            logger.debug(
                "Simulated provider failure",
                extra={"component_id": str(component.id), "provider": component.provider},
            )
            raise ProviderException(
                component.provider,
                f"Provider {component.provider} is temporarily unavailable",
            )
        return {}
