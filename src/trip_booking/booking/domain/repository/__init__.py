from .booking_state_store import BookingStateStore as BookingStateStore
from .result_cache import ResultCache as ResultCache
