from enum import Enum


class ComponentType(str, Enum):
    """予約コンポーネントの種別"""

    FLIGHT = "flight"
    HOTEL = "hotel"
    TICKET = "ticket"
    CAR = "car"
    TRANSPORTATION = "transportation"
