from pydantic import BaseModel, Field, field_validator
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime
from decimal import Decimal

from preorder.models.order import DeliveryMethod, DeliveryStatus, PaymentStatus

MAX_ORDER_QUANTITY = 10


class CollectDelivery(BaseModel):
    delivery_method: Literal["COLLECT"]


class DeliverDelivery(BaseModel):
    delivery_method: Literal["DELIVER"]
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)

    class Config:
        str_strip_whitespace = True


# Details exist if and only if the customer asked for delivery.
Delivery = Annotated[Union[CollectDelivery, DeliverDelivery], Field(discriminator="delivery_method")]


class OrderCreate(BaseModel):
    """
    Schema for the public pre-order form.
    The amount is never accepted from the client; it is priced on the server.
    """
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=32, pattern=r"^\+?[0-9][0-9 \-]{6,19}$")
    quantity: int = Field(..., ge=1, le=MAX_ORDER_QUANTITY, strict=True)
    delivery: Delivery
    accepted_terms: bool
    accepted_privacy: bool

    class Config:
        str_strip_whitespace = True

    @field_validator("accepted_terms", "accepted_privacy")
    @classmethod
    def must_be_accepted(cls, value: bool, info) -> bool:
        if not value:
            raise ValueError(f"{info.field_name} must be accepted")
        return value


class OrderCreateInternal(BaseModel):  # Used by CRUD operations internally
    name: str
    phone: str
    quantity: int
    amount: Decimal
    delivery_method: DeliveryMethod
    delivery_address: Optional[str] = None
    delivery_city: Optional[str] = None
    delivery_postal_code: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING_PAYMENT


class OrderUpdate(BaseModel):
    """
    Fields the lifecycle engine is allowed to change after creation.
    """
    payment_status: Optional[PaymentStatus] = None
    payment_id: Optional[str] = Field(default=None, max_length=255)
    delivery_status: Optional[DeliveryStatus] = None


class DeliveryDetails(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None


class Order(BaseModel):  # Full schema for returning order data to the admin
    order_id: str
    name: str
    phone: str
    quantity: int
    amount: Decimal
    delivery_method: DeliveryMethod
    delivery_details: Optional[DeliveryDetails] = None
    payment_method: str
    payment_status: PaymentStatus
    payment_id: Optional[str] = None
    delivery_status: Optional[DeliveryStatus] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderCreated(BaseModel):
    """Returned to the storefront right after submission."""
    order_id: str
    amount: Decimal
    payment_status: PaymentStatus
    checkout_url: str

    class Config:
        from_attributes = True


class DeliveryUpdate(BaseModel):
    delivery_status: DeliveryStatus


class DeliveryUpdateResponse(BaseModel):
    success: bool
    message: str
    order_id: str
    delivery_status: DeliveryStatus
    sms_notification: str
    order: Order


class DeliveryStatusView(BaseModel):
    order_id: str
    name: str
    phone: str
    delivery_status: str
    payment_status: PaymentStatus
    delivery_method: DeliveryMethod
    created_at: datetime
    updated_at: Optional[datetime] = None


class QuantityStat(BaseModel):
    quantity: int
    orders: int
    units: int


class OrderStats(BaseModel):
    total: int
    paid: int
    pending: int
    cancelled: int
    revenue: Decimal
    quantity_breakdown: List[QuantityStat] = []
