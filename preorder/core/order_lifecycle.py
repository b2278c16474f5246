import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from preorder.core.config import Settings
from preorder.core.exceptions import (
    AmountMismatchError,
    InvalidDeliveryTransitionError,
    OrderNotFoundError,
    OrderNotPaidError,
)
from preorder.core.payhere import map_status_code, verify_notification
from preorder.core.sms import NotificationDispatcher, OrderSnapshot, SmsResult
from preorder.crud import crud_order
from preorder.models.order import DeliveryStatus, Order as OrderModel, PaymentStatus
from preorder.schemas.order import OrderUpdate
from preorder.schemas.payment import PayHereNotification

logger = logging.getLogger(__name__)

DELIVERY_PROGRESSION = [DeliveryStatus.PROCESSING, DeliveryStatus.SHIPPED, DeliveryStatus.DELIVERED]


@dataclass
class PaymentTransition:
    order: OrderModel
    previous_status: PaymentStatus
    requested_status: PaymentStatus
    applied: bool
    notifications_scheduled: bool = False


@dataclass
class DeliveryTransition:
    order: OrderModel
    previous_status: Optional[DeliveryStatus]
    sms: SmsResult


def is_payment_transition_allowed(current: PaymentStatus, target: PaymentStatus) -> bool:
    """
    PAID never changes again. A cancelled order may still be paid by a
    retried checkout, but never returns to pending. Pending may go anywhere.
    """
    if current == target:
        return False
    if current == PaymentStatus.PAID:
        return False
    if current == PaymentStatus.CANCELLED:
        return target == PaymentStatus.PAID
    return True


def _check_amount(order: OrderModel, notification: PayHereNotification, settings: Settings) -> None:
    # The stored amount is authoritative; the gateway's value is only compared.
    try:
        received = Decimal(notification.payhere_amount)
    except (InvalidOperation, TypeError):
        raise AmountMismatchError(f"Unparseable amount {notification.payhere_amount!r}")
    if not received.is_finite():
        raise AmountMismatchError(f"Unparseable amount {notification.payhere_amount!r}")
    if received != Decimal(order.amount):
        raise AmountMismatchError(
            f"Amount mismatch for order {order.order_id}: expected {order.amount}, got {notification.payhere_amount}"
        )
    if notification.payhere_currency != settings.CURRENCY:
        raise AmountMismatchError(
            f"Currency mismatch for order {order.order_id}: expected {settings.CURRENCY}, got {notification.payhere_currency}"
        )


def process_payment_notification(
    db: Session,
    *,
    notification: PayHereNotification,
    settings: Settings,
    dispatcher: NotificationDispatcher,
    background_tasks: BackgroundTasks,
) -> PaymentTransition:
    """
    Verify a PayHere callback and apply it to the order.

    Verification happens before anything touches the store. The write is a
    single-row update; notifications are queued on `background_tasks` only
    when this callback is the one that moves the order into PAID, so the
    acknowledgement to PayHere never waits on SMS delivery. Duplicate
    callbacks racing each other may both observe the old status, in which
    case the customer can receive the confirmation twice.
    """
    verify_notification(notification, settings)

    order = crud_order.get_order(db, order_id=notification.order_id)
    if order is None:
        logger.warning(f"PayHere notification for unknown order {notification.order_id}")
        raise OrderNotFoundError(notification.order_id)

    _check_amount(order, notification, settings)

    previous = PaymentStatus(order.payment_status)
    requested = map_status_code(notification.status_code)

    if not is_payment_transition_allowed(previous, requested):
        if previous == requested:
            logger.info(f"Order {order.order_id} already {previous.value}; treating notification as a replay.")
        else:
            logger.warning(
                f"Ignoring {requested.value} notification for order {order.order_id} in state {previous.value} "
                f"(status_code={notification.status_code}, payment_id={notification.payment_id})"
            )
        return PaymentTransition(order=order, previous_status=previous, requested_status=requested, applied=False)

    update_fields = {"payment_status": requested}
    if requested == PaymentStatus.PAID:
        update_fields["payment_id"] = notification.payment_id
    order = crud_order.update_order(db=db, db_obj=order, obj_in=OrderUpdate(**update_fields))
    logger.info(f"Order {order.order_id} updated from {previous.value} to {requested.value}")

    transition = PaymentTransition(order=order, previous_status=previous, requested_status=requested, applied=True)
    if requested == PaymentStatus.PAID:
        background_tasks.add_task(dispatcher.notify_order_paid, OrderSnapshot.from_order(order))
        transition.notifications_scheduled = True
    return transition


def _check_delivery_progression(current: Optional[DeliveryStatus], target: DeliveryStatus) -> None:
    if current is None:
        return
    if DELIVERY_PROGRESSION.index(target) < DELIVERY_PROGRESSION.index(current):
        raise InvalidDeliveryTransitionError(
            f"Cannot move delivery status back from {current.value} to {target.value}"
        )


async def update_delivery_status(
    db: Session,
    *,
    order_id: str,
    delivery_status: DeliveryStatus,
    dispatcher: NotificationDispatcher,
) -> DeliveryTransition:
    """
    Admin delivery progression. The status write is committed before the SMS
    attempt and is kept whatever the SMS outcome.
    """
    order = crud_order.get_order(db, order_id=order_id)
    if order is None:
        raise OrderNotFoundError(order_id)

    if order.payment_status != PaymentStatus.PAID.value:
        raise OrderNotPaidError(
            f"Order {order_id} is {order.payment_status}; delivery status can only be set on paid orders"
        )

    previous = DeliveryStatus(order.delivery_status) if order.delivery_status else None
    _check_delivery_progression(previous, delivery_status)

    order = crud_order.update_order(db=db, db_obj=order, obj_in=OrderUpdate(delivery_status=delivery_status))
    logger.info(f"Order {order_id} delivery status updated to {delivery_status.value}")

    sms = await dispatcher.notify_delivery_update(OrderSnapshot.from_order(order), delivery_status)
    if not sms.success:
        logger.warning(f"Delivery SMS for order {order_id} failed: {sms.message}")
    return DeliveryTransition(order=order, previous_status=previous, sms=sms)
