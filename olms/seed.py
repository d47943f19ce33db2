"""
Demo data
- Three users, one per role (admin/customer/factory)
- A handful of orders owned by the demo customer, each with its initial
  timeline event

Seeding only happens into an empty users table.

Usage:
  python -m olms.seed --database-url sqlite:///./olms.db
"""
import argparse
import logging
from decimal import Decimal

from sqlalchemy.orm import Session, sessionmaker

from . import crud, models, schemas
from .db import Base, DATABASE_URL, make_engine

logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("admin-1", "Admin User", "admin@zenith.com", "admin123", models.Role.ADMIN),
    ("customer-1", "Customer One", "customer@zenith.com", "customer123", models.Role.CUSTOMER),
    ("factory-1", "Factory Staff", "factory@zenith.com", "factory123", models.Role.FACTORY),
]

DEMO_ORDERS = [
    ("order-1", models.OrderStatus.PENDING, "Akshay Kumar", "12000", {"items": [{"name": "Diamond Ring", "quantity": 1}]}),
    ("order-2", models.OrderStatus.MANUFACTURING, "Priyanka Chopra", "25000", {"items": [{"name": "Diamond Necklace", "quantity": 1}]}),
    ("order-3", models.OrderStatus.DELIVERED, "Akshay Kumar", "8000", {"items": [{"name": "Diamond Earrings", "quantity": 1}]}),
    ("order-4", models.OrderStatus.PROCESSING, "Vidya Balan", "15500", {"items": [{"name": "Gold Bangle", "quantity": 2}]}),
]


def seed_demo_data(db: Session) -> bool:
    if db.query(models.User).count() > 0:
        return False

    for user_id, name, email, password, role in DEMO_USERS:
        crud.create_user(
            db, schemas.UserCreate(name=name, email=email, password=password, role=role), user_id=user_id
        )
    for order_id, status, customer_name, amount, details in DEMO_ORDERS:
        crud.create_order(
            db,
            schemas.OrderCreate(
                user_id="customer-1",
                status=status,
                customer_name=customer_name,
                amount=Decimal(amount),
                details=details,
            ),
            order_id=order_id,
        )
    logger.info("seeded %d users and %d orders", len(DEMO_USERS), len(DEMO_ORDERS))
    return True


def main():
    parser = argparse.ArgumentParser(description="Create tables and load Zenith OLMS demo data")
    parser.add_argument("--database-url", default=DATABASE_URL, help="SQLAlchemy database URL")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    engine = make_engine(args.database_url)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)()
    try:
        if not seed_demo_data(session):
            logger.info("users already present, nothing to seed")
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    main()
