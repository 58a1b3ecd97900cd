from decimal import Decimal

import pytest

from trip_booking.booking.domain.entity import ComponentBooking
from trip_booking.booking.domain.enum import ComponentStatus, ComponentType
from trip_booking.booking.domain.value_object import (
    BookingId,
    ComponentKey,
    ConfirmationNumber,
    ProviderReference,
)
from trip_booking.shared.domain import Money, TripId
from trip_booking.shared.domain.exception import BusinessRuleViolationException

REFERENCE = ProviderReference("SKYSCANNER-1735689600000-abc123")
CONFIRMATION = ConfirmationNumber("CN-ABCDE1234")


class TestComponentBooking:
    def test_new_component_is_pending(self, create_component):
        component = create_component()
        assert component.status == ComponentStatus.PENDING
        assert component.trip_id == TripId(value=42)
        assert component.component_type == ComponentType.FLIGHT
        assert component.updated_at == component.created_at

    def test_price_must_be_positive(self):
        with pytest.raises(BusinessRuleViolationException):
            ComponentBooking(
                id=ComponentKey(trip_id=TripId(value=1), component_type=ComponentType.HOTEL),
                booking_id=BookingId(value="TRIP-1-1"),
                provider="booking",
                price=Money.usd(Decimal("0")),
            )

    def test_confirm_after_processing(self, create_component):
        component = create_component()
        component.start_processing()
        component.confirm(REFERENCE, CONFIRMATION, {"seat": "12A"})

        assert component.status == ComponentStatus.CONFIRMED
        assert component.provider_reference == REFERENCE
        assert component.confirmation_number == CONFIRMATION
        assert component.provider_details == {"seat": "12A"}
        assert component.is_confirmed()

    def test_fail_records_error(self, create_component):
        component = create_component()
        component.start_processing()
        component.fail("Provider skyscanner is temporarily unavailable")

        assert component.is_failed()
        assert component.error == "Provider skyscanner is temporarily unavailable"

    def test_cannot_confirm_pending_component(self, create_component):
        component = create_component()
        with pytest.raises(BusinessRuleViolationException):
            component.confirm(REFERENCE, CONFIRMATION, {})

    def test_cannot_start_processing_twice(self, create_component):
        component = create_component(status=ComponentStatus.PROCESSING)
        with pytest.raises(BusinessRuleViolationException):
            component.start_processing()

    @pytest.mark.parametrize(
        "status",
        [
            ComponentStatus.PENDING,
            ComponentStatus.PROCESSING,
            ComponentStatus.CONFIRMED,
            ComponentStatus.FAILED,
        ],
    )
    def test_cancel_from_any_status(self, create_component, status):
        component = create_component(status=status)
        component.cancel()
        assert component.is_cancelled()

    def test_cancelled_component_never_transitions_again(self, create_component):
        component = create_component(status=ComponentStatus.CANCELLED)

        with pytest.raises(BusinessRuleViolationException):
            component.confirm(REFERENCE, CONFIRMATION, {})
        with pytest.raises(BusinessRuleViolationException):
            component.fail("late failure")
        with pytest.raises(BusinessRuleViolationException):
            component.start_processing()

        component.cancel()
        assert component.status == ComponentStatus.CANCELLED

    def test_equality_by_key(self, create_component):
        a = create_component(price="10.00")
        b = create_component(price="20.00")
        assert a == b
        assert a != create_component(component_type=ComponentType.HOTEL)
