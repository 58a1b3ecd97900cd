from .entity import ComponentBooking as ComponentBooking
from .entity import TripBooking as TripBooking
from .enum import BookingStatus as BookingStatus
from .enum import ComponentStatus as ComponentStatus
from .enum import ComponentType as ComponentType
from .enum import PaymentEventType as PaymentEventType
from .enum import PaymentStatus as PaymentStatus
from .factory import SelectionDetails as SelectionDetails
from .factory import TripBookingFactory as TripBookingFactory
from .provider import ProviderAdapter as ProviderAdapter
from .provider import ProviderRegistry as ProviderRegistry
from .repository import BookingStateStore as BookingStateStore
from .repository import ResultCache as ResultCache
from .value_object import BookingId as BookingId
from .value_object import ComponentKey as ComponentKey
