from .component_booking import ComponentBooking as ComponentBooking
from .trip_booking import TripBooking as TripBooking
