# storefront/repos/order_repo.py
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_for_update(self, order_id: int) -> OrderModel | None:
        # SELECT ... FOR UPDATE, na SQLite klauzula jest pomijana
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_order_for_cart_revision(self, cart_id: int, cart_version: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(
                OrderModel.cart_id == cart_id,
                OrderModel.cart_version == cart_version,
            )
        ).scalar_one_or_none()

    def list_orders_by_user(self, user_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def list_orders(self) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def update_order_status(
        self,
        order_id: int,
        old_version: int,
        status: str,
        stock_committed: bool,
    ) -> int:
        # optimistic locking na wersji zamowienia
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.version == old_version)
            .values(
                status=status,
                stock_committed=stock_committed,
                version=old_version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
