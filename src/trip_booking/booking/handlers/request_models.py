from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from trip_booking.booking.domain.enum import PaymentEventType
from trip_booking.booking.domain.factory import SelectionDetails
from trip_booking.shared.utils import to_decimal


class SelectedOption(BaseModel):
    """選択されたプロバイダのオプション"""

    id: str = Field(..., min_length=1)
    provider: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0, description="料金（0より大きい値）")
    features: list[str] = Field(default_factory=list)
    availability: Literal["available", "limited", "low"] | None = None
    details: dict = Field(default_factory=dict)

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        return to_decimal(v)


class ComponentSelection(BaseModel):
    component_type: Literal["flight", "hotel", "ticket", "car", "transportation"]
    selected_option: SelectedOption
    customizations: dict = Field(default_factory=dict)

    def to_selection(self) -> SelectionDetails:
        """ファクトリへの入力に変換する（プロバイダ・料金以外は不透明な詳細）"""
        option = self.selected_option
        return {
            "component_type": self.component_type,
            "provider": option.provider,
            "price_amount": option.price,
            "selection_details": {
                **option.model_dump(mode="json", exclude={"provider", "price"}),
                "customizations": self.customizations,
            },
        }


class SubmitBookingRequest(BaseModel):
    """旅行予約リクエストモデル"""

    trip_id: int = Field(..., gt=0)
    selections: list[ComponentSelection] = Field(..., min_length=1)


class BookingHistoryQuery(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class RefundBookingRequest(BaseModel):
    """払い戻し依頼リクエストモデル"""

    reason: str = Field(..., min_length=10, max_length=500)
    components: list[str] | None = None


class PaymentEventRequest(BaseModel):
    """決済サブシステムからのイベント"""

    booking_id: str = Field(..., min_length=1)
    event_type: PaymentEventType
