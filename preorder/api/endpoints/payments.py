# preorder/api/endpoints/payments.py
from fastapi import APIRouter, BackgroundTasks, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session
from typing import Optional
import datetime
import logging

from preorder.api.errors import http_error_for
from preorder.core import order_lifecycle
from preorder.core.config import Settings, get_settings
from preorder.core.dependencies import get_notification_dispatcher
from preorder.core.exceptions import CheckoutNotAllowedError, OrderError, OrderNotFoundError
from preorder.core.payhere import build_checkout_payload
from preorder.core.sms import NotificationDispatcher
from preorder.crud import crud_order
from preorder.db.session import get_db
from preorder.models.order import PaymentStatus
from preorder.schemas.payment import PayHereNotification, PaymentNotificationAck
from preorder.templating import templates

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/payhere/checkout", response_class=HTMLResponse)
async def payhere_checkout(
    request: Request,
    order_id: str = Query(..., alias="orderId", min_length=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Render an auto-submitting form that posts the signed order to the
    PayHere hosted checkout.
    """
    try:
        order = crud_order.get_order(db, order_id=order_id)
        if not order:
            raise OrderNotFoundError(order_id)
        if order.payment_status == PaymentStatus.PAID.value:
            raise CheckoutNotAllowedError(f"Order {order_id} is already paid")
        payload = build_checkout_payload(order, settings)
    except OrderError as e:
        logger.warning(f"Checkout for order {order_id} refused: {e}")
        raise http_error_for(e)

    logger.info(f"Redirecting order {order_id} to PayHere ({settings.PAYHERE_MODE}) for {payload.amount} {payload.currency}")
    return templates.TemplateResponse(
        request,
        "payhere_checkout.html",
        {"action_url": settings.payhere_checkout_url, "fields": payload.model_dump(), "current_year": datetime.datetime.utcnow().year},
    )


@router.post("/payhere/notify", response_model=PaymentNotificationAck)
async def payhere_notify(
    background_tasks: BackgroundTasks,
    merchant_id: str = Form(...),
    order_id: str = Form(...),
    payhere_amount: str = Form(...),
    payhere_currency: str = Form(...),
    status_code: str = Form(...),
    md5sig: str = Form(...),
    payment_id: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    PayHere payment notification (IPN). Public by design: authenticity comes
    only from md5sig. SMS notifications run after the acknowledgement.
    """
    notification = PayHereNotification(
        merchant_id=merchant_id,
        order_id=order_id,
        payment_id=payment_id,
        payhere_amount=payhere_amount,
        payhere_currency=payhere_currency,
        status_code=status_code,
        md5sig=md5sig,
    )
    logger.info(f"PayHere notification received: order={order_id}, payment_id={payment_id}, status_code={status_code}")

    try:
        order_lifecycle.process_payment_notification(
            db,
            notification=notification,
            settings=settings,
            dispatcher=dispatcher,
            background_tasks=background_tasks,
        )
    except OrderError as e:
        raise http_error_for(e)

    return PaymentNotificationAck(success=True)
