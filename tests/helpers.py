from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from preorder.core.config import Settings
from preorder.core.payhere import notification_signature
from preorder.crud import crud_order
from preorder.models.order import DeliveryMethod, Order, PaymentStatus
from preorder.schemas.order import OrderCreateInternal, OrderUpdate


def order_form(**overrides) -> dict:
    data = {
        "name": "Jane Doe",
        "phone": "0771234567",
        "quantity": 2,
        "delivery": {"delivery_method": "COLLECT"},
        "accepted_terms": True,
        "accepted_privacy": True,
    }
    data.update(overrides)
    return data


def make_order(
    db: Session,
    *,
    name: str = "Jane Doe",
    phone: str = "0771234567",
    quantity: int = 2,
    amount: Decimal = Decimal("5000"),
    payment_status: PaymentStatus = PaymentStatus.PENDING_PAYMENT,
    delivery_method: DeliveryMethod = DeliveryMethod.COLLECT,
    payment_id: Optional[str] = None,
) -> Order:
    order_in = OrderCreateInternal(
        name=name,
        phone=phone,
        quantity=quantity,
        amount=amount,
        delivery_method=delivery_method,
        payment_status=payment_status,
    )
    if delivery_method == DeliveryMethod.DELIVER:
        order_in.delivery_address = "12 Galle Road"
        order_in.delivery_city = "Colombo"
        order_in.delivery_postal_code = "00300"
    order = crud_order.create_order(db=db, obj_in=order_in)
    if payment_id:
        order = crud_order.update_order(db=db, db_obj=order, obj_in=OrderUpdate(payment_id=payment_id))
    return order


def signed_notification(
    settings: Settings,
    order_id: str,
    amount: str,
    status_code: str = "2",
    payment_id: str = "320025071278",
    currency: Optional[str] = None,
    merchant_id: Optional[str] = None,
) -> dict:
    """Form fields exactly as PayHere would post them to notify_url."""
    currency = currency or settings.CURRENCY
    merchant_id = merchant_id or settings.PAYHERE_MERCHANT_ID
    return {
        "merchant_id": merchant_id,
        "order_id": order_id,
        "payment_id": payment_id,
        "payhere_amount": amount,
        "payhere_currency": currency,
        "status_code": status_code,
        "md5sig": notification_signature(
            merchant_id, order_id, amount, currency, status_code, settings.PAYHERE_MERCHANT_SECRET
        ),
    }
