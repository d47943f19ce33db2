import json
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .auth import hash_password, verify_password
from .utils import sanitize_input, utcnow

# Business rule: amount stored rounded to 2 decimals, must stay positive

def round_amount(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# -------------------- users --------------------

def create_user(db: Session, user: schemas.UserCreate, user_id: str | None = None) -> models.User:
    now = utcnow()
    db_user = models.User(
        id=user_id or models.new_id(),
        name=sanitize_input(user.name),
        email=user.email.strip().lower(),
        password_hash=hash_password(user.password),
        role=models.Role(user.role).value,
        created_at=now,
        updated_at=now,
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ValueError("email already registered") from e
    db.refresh(db_user)
    return db_user


def list_users(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.created_at, models.User.id).all()


def get_user(db: Session, user_id: str) -> models.User | None:
    return db.get(models.User, user_id)


def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()


def authenticate(db: Session, email: str, password: str) -> models.User | None:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def update_password(db: Session, user_id: str, new_password: str) -> bool:
    user = db.get(models.User, user_id)
    if not user:
        return False
    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    db.add(user)
    db.commit()
    return True


# -------------------- orders --------------------

def list_orders(db: Session) -> List[models.Order]:
    return db.query(models.Order).order_by(models.Order.created_at, models.Order.id).all()


def list_orders_by_user(db: Session, user_id: str) -> List[models.Order]:
    return (
        db.query(models.Order)
        .filter(models.Order.user_id == user_id)
        .order_by(models.Order.created_at, models.Order.id)
        .all()
    )


def list_orders_by_status(db: Session, status: models.OrderStatus) -> List[models.Order]:
    return (
        db.query(models.Order)
        .filter(models.Order.status == models.OrderStatus(status).value)
        .order_by(models.Order.created_at, models.Order.id)
        .all()
    )


def get_order(db: Session, order_id: str) -> models.Order | None:
    return db.get(models.Order, order_id)


def get_order_timeline(db: Session, order_id: str) -> List[models.TimelineEvent]:
    return (
        db.query(models.TimelineEvent)
        .filter(models.TimelineEvent.order_id == order_id)
        .order_by(models.TimelineEvent.created_at, models.TimelineEvent.id)
        .all()
    )


def _encode_details(details) -> Optional[str]:
    if details is None or details == "":
        return None
    if isinstance(details, str):
        return details
    return json.dumps(details)


def create_order(db: Session, order: schemas.OrderCreate, order_id: str | None = None) -> models.Order:
    """Insert an order together with the timeline event for its initial status."""
    if not db.get(models.User, order.user_id):
        raise LookupError("user not found")

    amount = round_amount(order.amount)
    if amount <= 0:
        raise ValueError("amount must be positive")

    status = models.OrderStatus(order.status).value
    now = utcnow()
    db_order = models.Order(
        id=order_id or models.new_id(),
        user_id=order.user_id,
        status=status,
        customer_name=sanitize_input(order.customer_name),
        amount=amount,
        details=_encode_details(order.details),
        created_at=now,
        updated_at=now,
    )
    db.add(db_order)
    try:
        # the order row must exist before its timeline row references it
        db.flush()
        db.add(
            models.TimelineEvent(
                order_id=db_order.id,
                status=status,
                description=f"Order created with status: {status}",
                created_at=now,
            )
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ValueError("integrity error") from e
    db.refresh(db_order)
    return db_order


def update_order_status(
    db: Session, order_id: str, new_status: models.OrderStatus, description: str | None = None
) -> models.Order | None:
    # Row lock so concurrent updates of one order commit one after another.
    # SQLite ignores FOR UPDATE and serializes writers on its own.
    order = (
        db.query(models.Order)
        .filter(models.Order.id == order_id)
        .with_for_update()
        .first()
    )
    if not order:
        return None

    status = models.OrderStatus(new_status).value
    now = utcnow()
    order.status = status
    order.updated_at = now
    db.add(order)
    db.add(
        models.TimelineEvent(
            order_id=order.id,
            status=status,
            description=sanitize_input(description) or f"Status changed to {status}",
            created_at=now,
        )
    )
    # order row and timeline event land in the same commit
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(order)
    return order


def set_suggestion(db: Session, order_id: str, suggestion: str) -> models.Order | None:
    order = db.get(models.Order, order_id)
    if not order:
        return None
    order.suggestion = sanitize_input(suggestion)
    order.updated_at = utcnow()
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def delete_order(db: Session, order_id: str) -> bool:
    order = db.get(models.Order, order_id)
    if not order:
        return False
    # timeline rows first, they reference the order
    db.query(models.TimelineEvent).filter(
        models.TimelineEvent.order_id == order_id
    ).delete(synchronize_session=False)
    db.delete(order)
    db.commit()
    return True


def order_analytics(db: Session) -> dict:
    rows = (
        db.query(models.Order.status, func.count(models.Order.id))
        .group_by(models.Order.status)
        .order_by(models.Order.status)
        .all()
    )
    total = sum(count for _, count in rows)
    return {
        "totalOrders": total,
        "byStatus": {status: count for status, count in rows},
        "pieChartData": [
            {
                "status": status,
                "count": count,
                "percentage": (count / total) * 100 if total > 0 else 0,
            }
            for status, count in rows
        ],
    }
