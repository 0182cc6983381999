from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)

    # rewizja koszyka, z ktorej powstalo zamowienie - jedno zamowienie na rewizje
    cart_id = Column(Integer, nullable=False)
    cart_version = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default="pending")  # pending, confirmed, shipped, delivered, cancelled
    stock_committed = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)

    total = Column(Numeric(12, 2), nullable=False)

    shipping_address = Column(String(255), nullable=False)
    shipping_city = Column(String(100), nullable=False)
    shipping_postal_code = Column(String(20), nullable=False)
    shipping_country = Column(String(100), nullable=False)

    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(50), nullable=False)
    payment_reference = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("cart_id", "cart_version", name="uq_orders_cart_revision"),
    )
