# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import Base, SessionLocal, engine, transaction
from storefront.data.models import ProductModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    {"name": "Keyboard", "price": Decimal("199.99"), "stock": 25},
    {"name": "Mouse", "price": Decimal("49.50"), "stock": 100},
    {"name": "Monitor", "price": Decimal("899.00"), "stock": 10},
]


def seed() -> int:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        # tylko pusta baza, nie nadpisujemy katalogu
        if db.query(ProductModel).first():
            return 0
        with transaction(db):
            db.add_all(ProductModel(**p) for p in PRODUCTS)
        logger.info(f"Seeded {len(PRODUCTS)} products")
        return len(PRODUCTS)
    finally:
        db.close()


if __name__ == "__main__":
    seed()
