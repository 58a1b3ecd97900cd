from .booking_id import BookingId as BookingId
from .component_key import ComponentKey as ComponentKey
from .confirmation_details import CarConfirmation as CarConfirmation
from .confirmation_details import ConfirmationDetails as ConfirmationDetails
from .confirmation_details import FlightConfirmation as FlightConfirmation
from .confirmation_details import HotelConfirmation as HotelConfirmation
from .confirmation_details import TicketConfirmation as TicketConfirmation
from .confirmation_details import (
    TransportationConfirmation as TransportationConfirmation,
)
from .payment_request import PaymentRequest as PaymentRequest
from .provider_reference import ConfirmationNumber as ConfirmationNumber
from .provider_reference import ProviderReference as ProviderReference
from .refund_request import RefundRequest as RefundRequest
