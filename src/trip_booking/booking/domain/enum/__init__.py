from .booking_status import BookingStatus as BookingStatus
from .component_status import ComponentStatus as ComponentStatus
from .component_type import ComponentType as ComponentType
from .payment_status import PaymentEventType as PaymentEventType
from .payment_status import PaymentStatus as PaymentStatus
