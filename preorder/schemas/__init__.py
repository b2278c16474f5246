from .token import Token, TokenData
from .order import (
    CollectDelivery,
    DeliverDelivery,
    OrderCreate,
    OrderCreateInternal,
    OrderUpdate,
    Order,
    OrderCreated,
    DeliveryDetails,
    DeliveryUpdate,
    DeliveryUpdateResponse,
    DeliveryStatusView,
    OrderStats,
    QuantityStat,
)
from .payment import (
    PayHereNotification,
    PaymentNotificationAck,
    CheckoutPayload,
)
