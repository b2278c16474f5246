"""
Domain errors raised by the order lifecycle, payment verification and
checkout code. Endpoints translate them into HTTP responses; nothing here
knows about HTTP.
"""


class OrderError(Exception):
    """Base class for every order-related domain error."""


class OrderNotFoundError(OrderError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class PaymentVerificationError(OrderError):
    """The payment callback could not be trusted. Nothing was read or written."""


class InvalidMerchantError(PaymentVerificationError):
    pass


class InvalidSignatureError(PaymentVerificationError):
    pass


class AmountMismatchError(OrderError):
    pass


class PaymentConfigurationError(OrderError):
    pass


class CheckoutNotAllowedError(OrderError):
    pass


class OrderNotPaidError(OrderError):
    pass


class InvalidDeliveryTransitionError(OrderError):
    pass
