# storefront/data/database.py
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.utils.settings import DATABASE_URL, DB_LOCK_TIMEOUT_MS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Scoped unit of work on an existing session.

    Commits when the block exits normally, rolls back and re-raises on any
    exception. On PostgreSQL a local lock_timeout bounds how long the block
    may wait for row locks.
    """
    if db.get_bind().dialect.name == "postgresql":
        db.execute(text(f"SET LOCAL lock_timeout = '{int(DB_LOCK_TIMEOUT_MS)}ms'"))
    try:
        yield db
        db.commit()
    except Exception:
        logger.info("Rolling back transaction")
        db.rollback()
        raise
