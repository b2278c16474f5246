import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric
from preorder.db.base_class import Base


class PaymentStatus(str, enum.Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class DeliveryMethod(str, enum.Enum):
    DELIVER = "DELIVER"
    COLLECT = "COLLECT"


class DeliveryStatus(str, enum.Enum):
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"


PAYMENT_METHOD_PAYHERE = "PAYHERE"


def _new_order_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "order"

    order_id = Column(String(32), primary_key=True, default=_new_order_id)
    name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)

    delivery_method = Column(String(20), nullable=False)
    delivery_address = Column(String(500), nullable=True)
    delivery_city = Column(String(100), nullable=True)
    delivery_postal_code = Column(String(20), nullable=True)

    payment_method = Column(String(20), nullable=False, default=PAYMENT_METHOD_PAYHERE)
    payment_status = Column(String(50), nullable=False, default=PaymentStatus.PENDING_PAYMENT.value, index=True)
    payment_id = Column(String(255), nullable=True, index=True)
    delivery_status = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def delivery_details(self):
        if self.delivery_method != DeliveryMethod.DELIVER.value:
            return None
        return {
            "address": self.delivery_address,
            "city": self.delivery_city,
            "postal_code": self.delivery_postal_code,
        }

    def __repr__(self):
        return f"<Order(order_id='{self.order_id}', quantity={self.quantity}, amount={self.amount}, status='{self.payment_status}')>"
