from decimal import Decimal
from olms import crud, schemas
from olms.models import OrderStatus, Role


def test_amount_rounding_regression(db_session):
    # Guard against regressions: 2-decimal rounding half up
    user = crud.create_user(
        db_session, schemas.UserCreate(name="Dana", email="dana@example.com", password="secret1", role=Role.CUSTOMER)
    )
    order = crud.create_order(
        db_session,
        schemas.OrderCreate(user_id=user.id, status=OrderStatus.PENDING, customer_name="Dana", amount=Decimal("2.675")),
    )
    assert str(order.amount) == "2.68"  # 2.675 rounds to 2.68 with HALF_UP


def test_timeline_order_is_stable_within_same_timestamp(db_session, monkeypatch):
    # events written in the same instant still come back in commit order
    from datetime import datetime, timezone
    frozen = datetime(2026, 1, 1, tzinfo=timezone.utc)
    monkeypatch.setattr(crud, "utcnow", lambda: frozen)

    user = crud.create_user(
        db_session, schemas.UserCreate(name="Eli", email="eli@example.com", password="secret1", role=Role.CUSTOMER)
    )
    order = crud.create_order(
        db_session,
        schemas.OrderCreate(user_id=user.id, status=OrderStatus.PENDING, customer_name="Eli", amount=Decimal("1")),
    )
    crud.update_order_status(db_session, order.id, OrderStatus.PROCESSING)
    crud.update_order_status(db_session, order.id, OrderStatus.MANUFACTURING)
    statuses = [e.status for e in crud.get_order_timeline(db_session, order.id)]
    assert statuses == ["pending", "processing", "manufacturing"]
