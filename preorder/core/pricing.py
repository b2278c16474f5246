from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from preorder.core.config import Settings
from preorder.models.order import DeliveryMethod
from preorder.schemas.order import OrderCreate, OrderCreateInternal, DeliverDelivery

TWO_PLACES = Decimal("0.01")


def compute_amount(quantity: int, delivery_method: DeliveryMethod, settings: Settings) -> Decimal:
    """
    unit price * quantity, plus the flat delivery fee when the order is shipped.
    """
    amount = Decimal(settings.PRODUCT_PRICE) * quantity
    if delivery_method == DeliveryMethod.DELIVER:
        amount += Decimal(settings.DELIVERY_FEE)
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_amount(amount: Union[Decimal, int, float, str]) -> str:
    # Part of the PayHere hash input on both sides: always exactly two decimals.
    return str(Decimal(str(amount)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def price_order(order_in: OrderCreate, settings: Settings) -> OrderCreateInternal:
    delivery = order_in.delivery
    delivery_method = DeliveryMethod(delivery.delivery_method)

    internal = OrderCreateInternal(
        name=order_in.name,
        phone=order_in.phone,
        quantity=order_in.quantity,
        amount=compute_amount(order_in.quantity, delivery_method, settings),
        delivery_method=delivery_method,
    )
    if isinstance(delivery, DeliverDelivery):
        internal.delivery_address = delivery.address
        internal.delivery_city = delivery.city
        internal.delivery_postal_code = delivery.postal_code
    return internal
