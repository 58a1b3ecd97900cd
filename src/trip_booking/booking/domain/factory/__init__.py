from .trip_booking_factory import SelectionDetails as SelectionDetails
from .trip_booking_factory import TripBookingFactory as TripBookingFactory
