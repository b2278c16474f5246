"""
PayHere hash recipes and status mapping.

PayHere signs with a legacy MD5 scheme; both directions reuse the
upper-cased MD5 of the merchant secret as the trailing component:

    checkout:     MD5(merchant_id + order_id + amount + currency + MD5(secret))
    notification: MD5(merchant_id + order_id + amount + currency + status_code + MD5(secret))

All digests are upper-case hex. The amount is always the two-decimal string.
"""
import hashlib
import hmac
import logging

from preorder.core.config import Settings
from preorder.core.exceptions import (
    InvalidMerchantError,
    InvalidSignatureError,
    PaymentConfigurationError,
)
from preorder.core.pricing import format_amount
from preorder.models.order import Order, PaymentStatus
from preorder.schemas.payment import CheckoutPayload, PayHereNotification

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "2"
STATUS_PENDING = "0"
STATUS_CANCELED = "-1"
STATUS_FAILED = "-2"
STATUS_CHARGEDBACK = "-3"

_STATUS_MAP = {
    STATUS_SUCCESS: PaymentStatus.PAID,
    STATUS_PENDING: PaymentStatus.PENDING_PAYMENT,
    STATUS_CANCELED: PaymentStatus.CANCELLED,
    STATUS_FAILED: PaymentStatus.CANCELLED,
    STATUS_CHARGEDBACK: PaymentStatus.CANCELLED,
}

FALLBACK_EMAIL = "customer@liftingsocial.com"
FALLBACK_ADDRESS = "Sri Lanka"
FALLBACK_CITY = "Colombo"
COUNTRY = "Sri Lanka"


def _md5_upper(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest().upper()


def hash_secret(merchant_secret: str) -> str:
    return _md5_upper(merchant_secret)


def checkout_hash(merchant_id: str, order_id: str, amount: str, currency: str, merchant_secret: str) -> str:
    return _md5_upper(f"{merchant_id}{order_id}{amount}{currency}{hash_secret(merchant_secret)}")


def notification_signature(
    merchant_id: str,
    order_id: str,
    amount: str,
    currency: str,
    status_code: str,
    merchant_secret: str,
) -> str:
    return _md5_upper(f"{merchant_id}{order_id}{amount}{currency}{status_code}{hash_secret(merchant_secret)}")


def _require_secret(settings: Settings) -> str:
    if not settings.PAYHERE_MERCHANT_ID or not settings.PAYHERE_MERCHANT_SECRET:
        logger.error("PayHere merchant id or secret is not configured.")
        raise PaymentConfigurationError("PayHere configuration missing")
    return settings.PAYHERE_MERCHANT_SECRET


def verify_notification(notification: PayHereNotification, settings: Settings) -> None:
    """
    Raise unless the callback comes from our merchant account and carries a
    valid md5sig. Must run before the order is looked up.
    """
    # Cheap rejection first: no hashing for a foreign merchant id.
    if not settings.PAYHERE_MERCHANT_ID or notification.merchant_id != settings.PAYHERE_MERCHANT_ID:
        logger.warning(f"Rejected PayHere notification for order {notification.order_id}: invalid merchant id.")
        raise InvalidMerchantError("Invalid merchant")

    secret = _require_secret(settings)
    expected = notification_signature(
        notification.merchant_id,
        notification.order_id,
        notification.payhere_amount,
        notification.payhere_currency,
        notification.status_code,
        secret,
    )
    received = (notification.md5sig or "").strip().upper()
    if not hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8")):
        logger.warning(f"Rejected PayHere notification for order {notification.order_id}: signature mismatch.")
        raise InvalidSignatureError("Invalid signature")


def map_status_code(status_code: str) -> PaymentStatus:
    code = (status_code or "").strip()
    status = _STATUS_MAP.get(code)
    if status is None:
        logger.warning(f"Unexpected PayHere status code {status_code!r}; treating as {PaymentStatus.PENDING_PAYMENT.value}.")
        return PaymentStatus.PENDING_PAYMENT
    return status


def split_name(name: str):
    parts = (name or "").split()
    if not parts:
        return "Customer", ""
    return parts[0], " ".join(parts[1:])


def build_checkout_payload(order: Order, settings: Settings) -> CheckoutPayload:
    """
    Form fields for the hosted checkout. Pure: nothing is persisted.
    """
    secret = _require_secret(settings)
    amount = format_amount(order.amount)
    first_name, last_name = split_name(order.name)

    if order.delivery_details:
        address = order.delivery_address or FALLBACK_ADDRESS
        city = order.delivery_city or FALLBACK_CITY
    else:
        address, city = FALLBACK_ADDRESS, FALLBACK_CITY

    return CheckoutPayload(
        merchant_id=settings.PAYHERE_MERCHANT_ID,
        return_url=settings.return_url,
        cancel_url=settings.cancel_url,
        notify_url=settings.notify_url,
        order_id=order.order_id,
        items=settings.PRODUCT_NAME,
        currency=settings.CURRENCY,
        amount=amount,
        first_name=first_name,
        last_name=last_name,
        email=FALLBACK_EMAIL,
        phone=order.phone,
        address=address,
        city=city,
        country=COUNTRY,
        hash=checkout_hash(settings.PAYHERE_MERCHANT_ID, order.order_id, amount, settings.CURRENCY, secret),
    )
