"""
Text.lk SMS delivery and the notification dispatcher built on top of it.

Sending never raises: every failure (missing credentials, bad phone number,
HTTP error, timeout) comes back as an unsuccessful `SmsResult` so callers can
report it without affecting order state.
"""
import asyncio
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from preorder.core.config import Settings
from preorder.core.pricing import format_amount
from preorder.models.order import DeliveryStatus

logger = logging.getLogger(__name__)

LOCAL_NUMBER_LENGTH = 9
MAX_MESSAGE_LENGTH = 320


@dataclass
class SmsResult:
    success: bool
    message: str
    message_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def summary(self) -> str:
        if self.success:
            return "SMS sent successfully"
        return f"SMS failed: {self.message}"


@dataclass
class OrderSnapshot:
    """What the notifications need from an order, copied before the session closes."""
    order_id: str
    name: str
    phone: str
    amount: Decimal

    @property
    def first_name(self) -> str:
        parts = (self.name or "").split()
        return parts[0] if parts else "Customer"

    @property
    def short_id(self) -> str:
        return self.order_id[-8:]

    @classmethod
    def from_order(cls, order) -> "OrderSnapshot":
        return cls(order_id=order.order_id, name=order.name, phone=order.phone, amount=order.amount)


def normalize_phone(phone: str, country_code: str = "94") -> Optional[str]:
    """
    Normalise a local or international number to country-coded digits,
    e.g. "077 123 4567" and "+94771234567" both become "94771234567".
    Returns None when the number does not have the expected length.
    """
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith(country_code) and len(digits) == len(country_code) + LOCAL_NUMBER_LENGTH:
        digits = digits[len(country_code):]
    if digits.startswith("0"):
        digits = digits[1:]
    if len(digits) != LOCAL_NUMBER_LENGTH:
        return None
    return f"{country_code}{digits}"


def order_confirmation_message(order: OrderSnapshot) -> str:
    return (
        f"Order Confirmed! Hi {order.first_name}, your Lifting Social order #{order.short_id} "
        f"is confirmed. We'll notify you when it ships. Thanks!"
    )


def admin_new_order_message(order: OrderSnapshot, currency: str) -> str:
    return (
        f"New Order! #{order.short_id} from {order.name} - "
        f"{currency} {format_amount(order.amount)}. Phone: {order.phone}"
    )


def delivery_update_message(order: OrderSnapshot, status: DeliveryStatus, product_name: str) -> str:
    if status == DeliveryStatus.PROCESSING:
        return f"Your Lifting Social order #{order.short_id} is being prepared. Estimated delivery: 2-3 days."
    if status == DeliveryStatus.SHIPPED:
        return f"Your order #{order.short_id} has been shipped! Track your delivery via SMS updates."
    if status == DeliveryStatus.DELIVERED:
        return f"Your {product_name} has been delivered! Enjoy your gear. Thank you for your order!"
    return f"Update on order #{order.short_id}: {status}. - Lifting Social"


class TextLkClient:
    """
    Minimal client for the Text.lk v3 API.

    A new httpx.AsyncClient is opened per send; `transport` lets tests plug in
    an httpx.MockTransport.
    """

    def __init__(
        self,
        api_token: Optional[str],
        *,
        sender_id: str,
        api_base: str = "https://app.text.lk/api/v3",
        country_code: str = "94",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token
        self.sender_id = sender_id
        self.api_base = api_base.rstrip("/")
        self.country_code = country_code
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "TextLkClient":
        return cls(
            settings.TEXTLK_API_TOKEN,
            sender_id=settings.TEXTLK_SENDER_ID,
            api_base=settings.TEXTLK_API_BASE,
            country_code=settings.PHONE_COUNTRY_CODE,
            timeout=settings.SMS_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_token)

    async def send(self, phone: str, message: str) -> SmsResult:
        if not self.is_configured:
            logger.warning("Text.lk API token not configured. Skipping SMS notification.")
            return SmsResult(success=False, message="SMS service not configured")

        recipient = normalize_phone(phone, self.country_code)
        if recipient is None:
            logger.warning(f"Not sending SMS: invalid phone number {phone!r}.")
            return SmsResult(success=False, message=f"Invalid phone number: {phone}")

        if len(message) > MAX_MESSAGE_LENGTH:
            logger.warning(f"SMS message length {len(message)} exceeds recommended {MAX_MESSAGE_LENGTH} characters")

        payload = {
            "recipient": recipient,
            "sender_id": self.sender_id,
            "type": "plain",
            "message": message,
        }
        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.api_base}/sms/send", json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"Timed out sending SMS to {recipient}")
            return SmsResult(success=False, message="SMS provider timed out")
        except httpx.HTTPError as e:
            logger.error(f"HTTP error sending SMS to {recipient}: {e}")
            return SmsResult(success=False, message=f"HTTP error: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {"response": response.text}
        if not isinstance(data, dict):
            data = {"response": data}

        if response.is_success and data.get("status") in ("success", True):
            message_id = None
            if isinstance(data.get("data"), dict):
                message_id = data["data"].get("uid") or data["data"].get("message_id")
            logger.info(f"SMS sent to {recipient}")
            return SmsResult(success=True, message="SMS sent successfully", message_id=message_id, details=data)

        reason = data.get("message") or data.get("error") or f"HTTP {response.status_code}"
        logger.error(f"SMS sending to {recipient} failed: {reason}")
        return SmsResult(success=False, message=str(reason), details=data)


class NotificationDispatcher:
    """
    Best-effort customer and admin notifications. Every public coroutine
    returns SmsResult values and swallows provider failures after logging
    them, so it is safe to run as a background task.
    """

    def __init__(self, client: TextLkClient, settings: Settings):
        self.client = client
        self.admin_phone = settings.ADMIN_PHONE
        self.currency = settings.CURRENCY
        self.product_name = settings.PRODUCT_NAME
        # Upper bound on one attempt, on top of the HTTP timeout.
        self.deadline = settings.SMS_TIMEOUT_SECONDS + 5

    async def _attempt(self, label: str, phone: str, message: str) -> SmsResult:
        try:
            return await asyncio.wait_for(self.client.send(phone, message), timeout=self.deadline)
        except asyncio.TimeoutError:
            logger.error(f"[SMS] {label} gave up after {self.deadline}s")
            return SmsResult(success=False, message="SMS attempt timed out")
        except Exception as e:
            logger.error(f"[SMS] {label} failed unexpectedly: {e}", exc_info=True)
            return SmsResult(success=False, message=str(e) or e.__class__.__name__)

    async def notify_order_paid(self, order: OrderSnapshot):
        """
        Customer confirmation and admin alert, sent concurrently and
        independently of each other.
        """
        logger.info(f"[SMS] Order confirmation - Order: {order.order_id}")
        customer, admin = await asyncio.gather(
            self._attempt("order confirmation", order.phone, order_confirmation_message(order)),
            self.notify_admin_new_order(order),
        )
        if not customer.success:
            logger.warning(f"Order {order.order_id}: customer confirmation SMS not sent: {customer.message}")
        if not admin.success:
            logger.warning(f"Order {order.order_id}: admin notification SMS not sent: {admin.message}")
        return customer, admin

    async def notify_admin_new_order(self, order: OrderSnapshot) -> SmsResult:
        if not self.admin_phone:
            logger.warning("[SMS] Admin phone not configured for order notifications")
            return SmsResult(success=False, message="Admin phone not configured")
        logger.info(f"[SMS] Admin notification - Order: {order.order_id}")
        return await self._attempt(
            "admin notification", self.admin_phone, admin_new_order_message(order, self.currency)
        )

    async def notify_delivery_update(self, order: OrderSnapshot, status: DeliveryStatus) -> SmsResult:
        logger.info(f"[SMS] Delivery update - Order: {order.order_id}, Status: {status.value}")
        return await self._attempt(
            "delivery update", order.phone, delivery_update_message(order, status, self.product_name)
        )
