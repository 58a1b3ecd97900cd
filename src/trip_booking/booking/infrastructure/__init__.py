from .dynamodb_booking_state_store import (
    DynamoDBBookingStateStore as DynamoDBBookingStateStore,
)
from .redis_result_cache import RedisResultCache as RedisResultCache
from .simulated_provider_adapter import (
    SimulatedProviderAdapter as SimulatedProviderAdapter,
)
