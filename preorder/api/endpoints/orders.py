from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from urllib.parse import urlencode
import logging

from preorder.api.errors import http_error_for
from preorder.core import order_lifecycle
from preorder.core.config import Settings, get_settings
from preorder.core.dependencies import get_current_admin, get_notification_dispatcher
from preorder.core.exceptions import OrderError
from preorder.core.pricing import price_order
from preorder.core.sms import NotificationDispatcher
from preorder.crud import crud_order
from preorder.db.session import get_db
from preorder.models.order import PaymentStatus
from preorder.schemas.order import (
    Order,
    OrderCreate,
    OrderCreated,
    OrderStats,
    DeliveryUpdate,
    DeliveryUpdateResponse,
    DeliveryStatusView,
)
from preorder.schemas.token import TokenData

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=OrderCreated, status_code=201)
async def create_new_order(
    order_in: OrderCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Create a pre-order from the public form. The amount is priced here from
    the configured unit price; the client is sent on to the checkout redirect.
    """
    order_internal_data = price_order(order_in, settings)
    order = crud_order.create_order(db=db, obj_in=order_internal_data)
    logger.info(f"Created order {order.order_id}: quantity={order.quantity}, amount={order.amount}, delivery={order.delivery_method}")

    return OrderCreated(
        order_id=order.order_id,
        amount=order.amount,
        payment_status=order.payment_status,
        checkout_url="/api/v1/payments/payhere/checkout?" + urlencode({"orderId": order.order_id}),
    )

@router.get("/", response_model=List[Order])
async def read_orders(
    db: Session = Depends(get_db),
    current_admin: TokenData = Depends(get_current_admin),
    payment_status: Optional[PaymentStatus] = Query(None, description="Filter by payment status"),
    search: Optional[str] = Query(None, max_length=100, description="Match name, order id or phone"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500)
):
    """
    Admin: list orders, newest first.
    """
    return crud_order.get_orders(db, payment_status=payment_status, search=search, skip=skip, limit=limit)

@router.get("/stats", response_model=OrderStats)
async def read_order_stats(
    db: Session = Depends(get_db),
    current_admin: TokenData = Depends(get_current_admin),
):
    """
    Admin: dashboard totals, revenue from paid orders and quantity breakdown.
    """
    return crud_order.get_order_stats(db)

@router.get("/{order_id}", response_model=Order)
async def read_order_details(
    order_id: str,
    db: Session = Depends(get_db),
    current_admin: TokenData = Depends(get_current_admin),
):
    db_order = crud_order.get_order(db, order_id=order_id)
    if not db_order:
        raise HTTPException(status_code=404, detail="Order not found")
    return db_order

@router.delete("/{order_id}")
async def delete_existing_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_admin: TokenData = Depends(get_current_admin),
):
    """
    Admin: permanently delete an order. No audit trail is kept.
    """
    deleted = crud_order.delete_order(db, order_id=order_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Order not found")
    logger.info(f"Order {order_id} deleted by {current_admin.username}")
    return {"success": True, "message": "Order deleted successfully", "order_id": order_id}

@router.get("/{order_id}/delivery", response_model=DeliveryStatusView)
async def read_delivery_status(
    order_id: str,
    db: Session = Depends(get_db),
    current_admin: TokenData = Depends(get_current_admin),
):
    db_order = crud_order.get_order(db, order_id=order_id)
    if not db_order:
        raise HTTPException(status_code=404, detail="Order not found")
    return DeliveryStatusView(
        order_id=db_order.order_id,
        name=db_order.name,
        phone=db_order.phone,
        delivery_status=db_order.delivery_status or "PENDING",
        payment_status=db_order.payment_status,
        delivery_method=db_order.delivery_method,
        created_at=db_order.created_at,
        updated_at=db_order.updated_at,
    )

@router.post("/{order_id}/delivery", response_model=DeliveryUpdateResponse)
async def update_delivery_status(
    order_id: str,
    delivery_in: DeliveryUpdate,
    db: Session = Depends(get_db),
    current_admin: TokenData = Depends(get_current_admin),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Admin: move a paid order along PROCESSING -> SHIPPED -> DELIVERED and text
    the customer. An SMS failure is reported in `sms_notification` only.
    """
    try:
        transition = await order_lifecycle.update_delivery_status(
            db, order_id=order_id, delivery_status=delivery_in.delivery_status, dispatcher=dispatcher
        )
    except OrderError as e:
        logger.warning(f"Delivery update for order {order_id} rejected: {e}")
        raise http_error_for(e)

    return DeliveryUpdateResponse(
        success=True,
        message=f"Order marked as {delivery_in.delivery_status.value}",
        order_id=order_id,
        delivery_status=delivery_in.delivery_status,
        sms_notification=transition.sms.summary(),
        order=Order.model_validate(transition.order),
    )
