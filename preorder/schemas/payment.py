# preorder/schemas/payment.py
from pydantic import BaseModel
from typing import Optional


class PayHereNotification(BaseModel):
    """Form fields PayHere posts to the notify_url."""
    merchant_id: str
    order_id: str
    payment_id: Optional[str] = None
    payhere_amount: str
    payhere_currency: str
    status_code: str
    md5sig: str


class PaymentNotificationAck(BaseModel):
    success: bool


class CheckoutPayload(BaseModel):
    merchant_id: str
    return_url: str
    cancel_url: str
    notify_url: str
    order_id: str
    items: str
    currency: str
    amount: str
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str
    country: str
    hash: str
