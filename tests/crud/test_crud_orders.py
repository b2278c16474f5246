import pytest
from sqlalchemy.orm import Session
from decimal import Decimal

from preorder.crud import crud_order
from preorder.schemas.order import OrderCreateInternal, OrderUpdate
from preorder.models.order import DeliveryMethod, DeliveryStatus, PaymentStatus
from tests.helpers import make_order

pytestmark = pytest.mark.crud


def test_create_order(db_session: Session):
    order_in = OrderCreateInternal(
        name="Jane Doe",
        phone="0771234567",
        quantity=2,
        amount=Decimal("5000"),
        delivery_method=DeliveryMethod.DELIVER,
        delivery_address="12 Galle Road",
        delivery_city="Colombo",
        delivery_postal_code="00300",
    )

    created_order = crud_order.create_order(db=db_session, obj_in=order_in)

    assert created_order.order_id
    assert len(created_order.order_id) == 32
    assert created_order.amount == Decimal("5000")
    assert created_order.payment_method == "PAYHERE"
    assert created_order.payment_status == PaymentStatus.PENDING_PAYMENT.value
    assert created_order.delivery_method == DeliveryMethod.DELIVER.value
    assert created_order.delivery_details == {"address": "12 Galle Road", "city": "Colombo", "postal_code": "00300"}
    assert created_order.payment_id is None
    assert created_order.delivery_status is None
    assert created_order.created_at is not None
    assert created_order.updated_at is None


def test_collect_order_has_no_delivery_details(db_session: Session):
    order = make_order(db_session)
    assert order.delivery_details is None


def test_order_ids_are_unique(db_session: Session):
    ids = {make_order(db_session).order_id for _ in range(5)}
    assert len(ids) == 5


def test_get_order(db_session: Session):
    created = make_order(db_session)
    retrieved = crud_order.get_order(db=db_session, order_id=created.order_id)
    assert retrieved is not None
    assert retrieved.order_id == created.order_id
    assert crud_order.get_order(db=db_session, order_id="missing") is None


def test_get_orders_newest_first(db_session: Session):
    first = make_order(db_session, name="First Buyer")
    second = make_order(db_session, name="Second Buyer")
    orders = crud_order.get_orders(db=db_session)
    assert [o.order_id for o in orders] == [second.order_id, first.order_id]


def test_get_orders_filter_by_payment_status(db_session: Session):
    paid = make_order(db_session, payment_status=PaymentStatus.PAID)
    make_order(db_session)
    make_order(db_session, payment_status=PaymentStatus.CANCELLED)

    orders = crud_order.get_orders(db=db_session, payment_status=PaymentStatus.PAID)
    assert [o.order_id for o in orders] == [paid.order_id]


def test_get_orders_search(db_session: Session):
    jane = make_order(db_session, name="Jane Doe", phone="0771234567")
    kamal = make_order(db_session, name="Kamal Perera", phone="0719876543")

    assert [o.order_id for o in crud_order.get_orders(db=db_session, search="jane")] == [jane.order_id]
    assert [o.order_id for o in crud_order.get_orders(db=db_session, search="0719876543")] == [kamal.order_id]
    assert [o.order_id for o in crud_order.get_orders(db=db_session, search=kamal.order_id[:10])] == [kamal.order_id]
    assert len(crud_order.get_orders(db=db_session, search="   ")) == 2


def test_update_order_stamps_updated_at(db_session: Session):
    order = make_order(db_session)
    created_at = order.created_at

    updated = crud_order.update_order(
        db=db_session, db_obj=order,
        obj_in=OrderUpdate(payment_status=PaymentStatus.PAID, payment_id="320025071278"),
    )
    assert updated.payment_status == "PAID"
    assert updated.payment_id == "320025071278"
    assert updated.updated_at is not None
    assert updated.created_at == created_at
    assert updated.amount == Decimal("5000")

    updated = crud_order.update_order(db=db_session, db_obj=updated, obj_in=OrderUpdate(delivery_status=DeliveryStatus.SHIPPED))
    assert updated.delivery_status == "SHIPPED"
    assert updated.payment_id == "320025071278" # Should not change


def test_delete_order(db_session: Session):
    order = make_order(db_session)
    deleted = crud_order.delete_order(db=db_session, order_id=order.order_id)
    assert deleted is not None
    assert crud_order.get_order(db=db_session, order_id=order.order_id) is None
    assert crud_order.delete_order(db=db_session, order_id=order.order_id) is None


def test_get_order_stats(db_session: Session):
    make_order(db_session, quantity=1, amount=Decimal("2500"), payment_status=PaymentStatus.PAID)
    make_order(db_session, quantity=2, amount=Decimal("5000"), payment_status=PaymentStatus.PAID)
    make_order(db_session, quantity=2, amount=Decimal("5000"))
    make_order(db_session, quantity=3, amount=Decimal("7500"), payment_status=PaymentStatus.CANCELLED)

    stats = crud_order.get_order_stats(db_session)

    assert stats.total == 4
    assert stats.paid == 2
    assert stats.pending == 1
    assert stats.cancelled == 1
    assert stats.revenue == Decimal("7500")
    assert [(q.quantity, q.orders, q.units) for q in stats.quantity_breakdown] == [(1, 1, 1), (2, 2, 4), (3, 1, 3)]


def test_get_order_stats_empty(db_session: Session):
    stats = crud_order.get_order_stats(db_session)
    assert stats.total == 0
    assert stats.revenue == Decimal("0")
    assert stats.quantity_breakdown == []
