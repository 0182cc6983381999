# storefront/services/stock_ledger.py
from collections import defaultdict
from typing import Any, Dict, Tuple

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from storefront.data.database import transaction
from storefront.data.models.order import OrderModel
from storefront.domain.errors import ConflictError, ForbiddenError, InsufficientStockError, NotFoundError
from storefront.domain.identity import CurrentUser
from storefront.domain.status import OrderStatus, RESTOCK_STATUSES, check_transition
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import order_to_dict
from storefront.utils.retry import lock_timeout_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class StockLedger:
    """
    Jedyne miejsce, ktore zmienia Product.stock dla zamowien.

    Zmiana statusu i ruch na magazynie ida w jednej transakcji:
    - wejscie w confirmed zdejmuje towar (raz na zamowienie, flaga stock_committed)
    - powrot do pending / anulowanie oddaje towar, jesli byl zdjety
    - reszta przejsc zmienia tylko status

    Wspolbieznosc:
    - redis lock na zamowienie (jeden admin na raz)
    - SELECT ... FOR UPDATE na zamowieniu + optimistic locking na wersji
    - warunkowy update stanu (stock >= qty), produkty blokowane rosnaco po id
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()

    def transition_order_status(self, order_id: int, new_status: str, actor: CurrentUser) -> Dict[str, Any]:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")

        status = OrderStatus.parse(new_status)

        with self.lock_service.order_lock(order_id):
            try:
                order, changed = self._apply(order_id, status)
            except OperationalError as e:
                logger.warning(f"Lock timeout while updating order {order_id}: {e}")
                raise ConflictError("Order is locked by another transaction, try again") from e

        if changed:
            self.notification_service.send_order_notification(order.user_id, order.id, order.status)

        products = self.products.get_products(item.product_id for item in order.items)
        return order_to_dict(order, products)

    @lock_timeout_retry()
    def _apply(self, order_id: int, status: OrderStatus) -> Tuple[OrderModel, bool]:
        with transaction(self.db):
            order = self.orders.get_order_for_update(order_id)
            if not order:
                raise NotFoundError("Order not found")

            current = OrderStatus(order.status)
            if current == status:
                # powtorne potwierdzenie itp. - nic nie ruszamy
                logger.info(f"Order {order_id} already {status.value}, nothing to do")
                return order, False

            check_transition(current, status)

            stock_committed = order.stock_committed
            if status == OrderStatus.CONFIRMED and not stock_committed:
                self._deduct(order)
                stock_committed = True
            elif status in RESTOCK_STATUSES and stock_committed:
                self._restore(order)
                stock_committed = False

            rowcount = self.orders.update_order_status(
                order_id=order.id,
                old_version=order.version,
                status=status.value,
                stock_committed=stock_committed,
            )
            if rowcount == 0:
                raise ConflictError("Order was modified by another request")

        self.db.refresh(order)
        logger.info(f"Order {order_id}: {current.value} -> {status.value}")
        return order, True

    @staticmethod
    def _quantities(order: OrderModel) -> Dict[int, int]:
        quantities: Dict[int, int] = defaultdict(int)
        for item in order.items:
            quantities[item.product_id] += item.quantity
        # zawsze ta sama kolejnosc blokad -> brak deadlockow
        return dict(sorted(quantities.items()))

    def _deduct(self, order: OrderModel) -> None:
        quantities = self._quantities(order)
        products = self.products.get_products(quantities)

        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None:
                raise NotFoundError(f"Product {product_id} not found")

            if self.products.decrement_stock(product_id, quantity) == 0:
                raise InsufficientStockError(product.name, available=product.stock, requested=quantity)

            logger.info(f"Stock of product {product_id} -{quantity} for order {order.id}")

    def _restore(self, order: OrderModel) -> None:
        for product_id, quantity in self._quantities(order).items():
            if self.products.increment_stock(product_id, quantity) == 0:
                logger.warning(
                    f"Product {product_id} no longer exists, {quantity} units of order {order.id} not restocked"
                )
                continue
            logger.info(f"Stock of product {product_id} +{quantity} for order {order.id}")
