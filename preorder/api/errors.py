from fastapi import HTTPException, status

from preorder.core.exceptions import (
    AmountMismatchError,
    CheckoutNotAllowedError,
    InvalidDeliveryTransitionError,
    OrderError,
    OrderNotFoundError,
    OrderNotPaidError,
    PaymentConfigurationError,
    PaymentVerificationError,
)

_STATUS_BY_ERROR = [
    (OrderNotFoundError, status.HTTP_404_NOT_FOUND),
    (PaymentVerificationError, status.HTTP_400_BAD_REQUEST),
    (AmountMismatchError, status.HTTP_400_BAD_REQUEST),
    (OrderNotPaidError, status.HTTP_409_CONFLICT),
    (InvalidDeliveryTransitionError, status.HTTP_409_CONFLICT),
    (CheckoutNotAllowedError, status.HTTP_409_CONFLICT),
    (PaymentConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def http_error_for(exc: OrderError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            detail = "Order not found" if isinstance(exc, OrderNotFoundError) else str(exc)
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
