from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from typing import Optional, List

from preorder.models.order import Order, PaymentStatus
from preorder.schemas.order import OrderCreateInternal, OrderUpdate, OrderStats, QuantityStat


def create_order(db: Session, *, obj_in: OrderCreateInternal) -> Order:
    """
    Create a new order. The primary key is generated here, so a second
    document can never share an existing order_id.
    """
    db_obj = Order(**obj_in.model_dump(mode="json", exclude={"amount"}), amount=obj_in.amount)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_order(db: Session, order_id: str) -> Optional[Order]:
    return db.get(Order, order_id)


def get_orders(
    db: Session,
    *,
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Order]:
    """
    Get orders newest first, optionally filtered by payment status and a
    free-text search over name, order id and phone.
    """
    query = db.query(Order)
    if payment_status is not None:
        query = query.filter(Order.payment_status == payment_status.value)
    if search and search.strip():
        term = search.strip()
        query = query.filter(
            or_(
                func.lower(Order.name).contains(term.lower()),
                func.lower(Order.order_id).contains(term.lower()),
                Order.phone.contains(term),
            )
        )
    return query.order_by(Order.created_at.desc()).offset(skip).limit(limit).all()


def update_order(db: Session, *, db_obj: Order, obj_in: OrderUpdate) -> Order:
    """
    Apply the set fields of obj_in and stamp updated_at in one commit.
    """
    update_data = obj_in.model_dump(mode="json", exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db_obj.updated_at = datetime.now(timezone.utc)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def delete_order(db: Session, *, order_id: str) -> Optional[Order]:
    db_obj = db.get(Order, order_id)
    if db_obj is None:
        return None
    db.delete(db_obj)
    db.commit()
    return db_obj


def get_order_stats(db: Session) -> OrderStats:
    counts = dict(
        db.query(Order.payment_status, func.count(Order.order_id))
        .group_by(Order.payment_status)
        .all()
    )
    revenue = (
        db.query(func.coalesce(func.sum(Order.amount), 0))
        .filter(Order.payment_status == PaymentStatus.PAID.value)
        .scalar()
    )
    breakdown = (
        db.query(Order.quantity, func.count(Order.order_id), func.sum(Order.quantity))
        .group_by(Order.quantity)
        .order_by(Order.quantity)
        .all()
    )
    return OrderStats(
        total=sum(counts.values()),
        paid=counts.get(PaymentStatus.PAID.value, 0),
        pending=counts.get(PaymentStatus.PENDING_PAYMENT.value, 0),
        cancelled=counts.get(PaymentStatus.CANCELLED.value, 0),
        revenue=Decimal(str(revenue or 0)),
        quantity_breakdown=[
            QuantityStat(quantity=quantity, orders=orders, units=units or 0)
            for quantity, orders, units in breakdown
        ],
    )
