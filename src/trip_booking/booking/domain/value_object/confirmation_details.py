"""確定したコンポーネント予約の詳細

コンポーネント種別ごとのバリアント（タグ付きユニオン）。
組み立ては ComponentBookingExecutor のみが行い、
それ以外の層では to_dict() の結果を不透明な値として扱う。
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import ClassVar, Union

from trip_booking.booking.domain.enum import ComponentType


@dataclass(frozen=True)
class _ConfirmationBase:
    component_type: ClassVar[ComponentType]

    provider: str
    booking_time: str
    cancellation_policy: str

    def to_dict(self) -> dict:
        return {"component_type": self.component_type.value, **asdict(self)}


@dataclass(frozen=True)
class FlightConfirmation(_ConfirmationBase):
    component_type: ClassVar[ComponentType] = ComponentType.FLIGHT

    flight_number: str
    departure: str
    arrival: str
    departure_time: str
    arrival_time: str
    seat: str
    cabin_class: str


@dataclass(frozen=True)
class HotelConfirmation(_ConfirmationBase):
    component_type: ClassVar[ComponentType] = ComponentType.HOTEL

    hotel_name: str
    room_type: str
    room_number: str
    check_in: str
    check_out: str


@dataclass(frozen=True)
class TicketConfirmation(_ConfirmationBase):
    component_type: ClassVar[ComponentType] = ComponentType.TICKET

    ticket_type: str
    section: str
    row: str
    seat: str
    delivery: str


@dataclass(frozen=True)
class CarConfirmation(_ConfirmationBase):
    component_type: ClassVar[ComponentType] = ComponentType.CAR

    car_model: str
    pickup_location: str
    return_location: str
    pickup_date: str
    return_date: str


@dataclass(frozen=True)
class TransportationConfirmation(_ConfirmationBase):
    component_type: ClassVar[ComponentType] = ComponentType.TRANSPORTATION

    service: str
    pickup: str
    dropoff: str
    eta: str


ConfirmationDetails = Union[
    FlightConfirmation,
    HotelConfirmation,
    TicketConfirmation,
    CarConfirmation,
    TransportationConfirmation,
]
