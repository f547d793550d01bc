#!/usr/bin/env python3
"""
Create the schema and load demo data, or empty every table.

Usage:
    python backend/scripts/seed_db.py [--truncate] [--database-url URL]
"""

from __future__ import annotations

import argparse

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.db import Database
from storefront.models import Product, User
from storefront.observability.logging import configure_logging, get_logger
from storefront.schemas.order import OrderCreate, OrderItemCreate
from storefront.schemas.product import ProductCreate
from storefront.schemas.review import ReviewCreate
from storefront.schemas.user import UserCreate
from storefront.services.order_service import OrderService
from storefront.services.product_service import ProductService
from storefront.services.review_service import ReviewService
from storefront.services.user_service import UserService
from storefront.settings import get_settings

log = get_logger("seed_db")

DEMO_PASSWORD = "password123"

USERS = [
    ("admin@storefront.dev", "Ada", "Admin", "admin"),
    ("moderator@storefront.dev", "Max", "Moderator", "moderator"),
    ("jane@storefront.dev", "Jane", "Doe", "customer"),
    ("john@storefront.dev", "John", "Smith", "customer"),
]

PRODUCTS = [
    ("iPhone 15", "Apple smartphone", 999.99, "Electronics", "Apple", 25),
    ("Galaxy S24", "Samsung smartphone", 899.99, "Electronics", "Samsung", 30),
    ("Noise Cancelling Headphones", "Over-ear wireless headphones", 249.5, "Electronics", "Sony", 40),
    ("Running Shoes", "Lightweight road running shoes", 129.0, "Clothing", "Nike", 60),
    ("Rain Jacket", "Waterproof shell jacket", 89.99, "Clothing", "Generic", 15),
    ("Coffee Grinder", "Burr grinder with 18 settings", 59.95, "Home", "Baratza", 12),
]


def _count(session: Session, model) -> int:
    return session.scalar(select(func.count()).select_from(model)) or 0


def seed(db_url: str, *, bcrypt_rounds: int) -> None:
    database = Database(db_url)
    database.create_all()
    session = database.session()
    try:
        if _count(session, User) or _count(session, Product):
            log.info("seed_skipped", reason="database_not_empty")
            return

        users = UserService(session, bcrypt_rounds=bcrypt_rounds)
        created_users = [
            users.create(
                UserCreate(
                    email=email,
                    password=DEMO_PASSWORD,
                    first_name=first,
                    last_name=last,
                    role=role,
                    city="Toronto",
                    state="Ontario",
                )
            )
            for email, first, last, role in USERS
        ]

        products = ProductService(session)
        created_products = [
            products.create(
                ProductCreate(
                    name=name,
                    description=description,
                    price=price,
                    category=category,
                    brand=brand,
                    stock_quantity=stock,
                )
            )
            for name, description, price, category, brand, stock in PRODUCTS
        ]

        orders = OrderService(session)
        reviews = ReviewService(session)
        customers = [u for u in created_users if u.role == "customer"]
        for i, customer in enumerate(customers):
            bought = created_products[i::2][:2]
            orders.create(
                OrderCreate(
                    shipping_address=f"{100 + i} Queen St W, Toronto, ON, Canada",
                    payment_method="Credit Card" if i % 2 == 0 else "PayPal",
                    order_items=[OrderItemCreate(product_id=p.product_id, quantity=i + 1) for p in bought],
                ),
                user_id=customer.user_id,
            )
            for j, product in enumerate(bought):
                reviews.create(
                    ReviewCreate(
                        product_id=product.product_id,
                        rating=5 - ((i + j) % 3),
                        title=f"Review of {product.name}",
                        comment="Does what it says.",
                        is_verified_purchase=True,
                    ),
                    user_id=customer.user_id,
                )

        log.info("seed_complete", users=len(created_users), products=len(created_products))
    finally:
        session.close()
        database.dispose()


def truncate(db_url: str) -> None:
    database = Database(db_url)
    database.create_all()
    database.truncate_all()
    database.dispose()
    log.info("truncate_complete")


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Seed or truncate the storefront database")
    parser.add_argument("--truncate", action="store_true", help="Delete all rows instead of seeding")
    parser.add_argument("--database-url", default=settings.database_url)
    args = parser.parse_args()

    configure_logging(level=settings.log_level, json_output=settings.log_json)
    if args.truncate:
        truncate(args.database_url)
    else:
        seed(args.database_url, bcrypt_rounds=settings.bcrypt_rounds)


if __name__ == "__main__":
    main()
