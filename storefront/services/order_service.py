# storefront/services/order_service.py
import hashlib
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.database import transaction
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.product import ProductModel
from storefront.domain.cart import CartSnapshot
from storefront.domain.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from storefront.domain.identity import CurrentUser
from storefront.domain.schemas import ShippingInfoIn
from storefront.domain.status import OrderStatus
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.cart_service import CartService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway, PaymentResult, to_minor_units
from storefront.utils.settings import CURRENCY
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CASH_ON_DELIVERY = "cod"
REQUIRED_SHIPPING_FIELDS = ("address", "city", "postal_code", "country")


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien.
    Zamowienie powstaje z koszyka, stan magazynowy rusza dopiero StockLedger.
    """

    def __init__(
        self,
        db: Session,
        payment_gateway: PaymentGateway | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)
        self.carts = CartService(db)
        self.payment_gateway = payment_gateway
        self.notification_service = notification_service or NotificationService()

    def place_order(
        self,
        user_id: int,
        shipping_info: ShippingInfoIn,
        payment_method: str = CASH_ON_DELIVERY,
    ) -> Dict[str, Any]:
        """
        Use Case: Tworzenie zamowienia z koszyka.

        1. Waliduje dane wysylki
        2. Robi snapshot koszyka (pusty koszyk = 400)
        3. Autoryzuje platnosc (przed zapisem zamowienia)
        4. Zapisuje zamowienie ze snapshotem cen
        5. Czysci koszyk - blad tutaj tylko logujemy, zamowienie jest zrodlem prawdy
        """
        shipping = self._validate_shipping(shipping_info)

        snapshot = self.carts.snapshot(user_id)
        if snapshot.is_empty:
            raise ValidationError("Cart is empty")

        # poprzednia proba zapisala zamowienie, ale nie wyczyscila koszyka
        existing = self.repo.get_order_for_cart_revision(snapshot.cart_id, snapshot.version)
        if existing:
            logger.warning(
                f"Order {existing.id} already placed from cart {snapshot.cart_id} "
                f"v{snapshot.version}, clearing cart again"
            )
            self._clear_cart(snapshot, existing.id)
            return self.to_dict(existing)

        total = snapshot.total
        payment = self._authorize_payment(snapshot, total, payment_method)

        order = OrderModel(
            user_id=user_id,
            cart_id=snapshot.cart_id,
            cart_version=snapshot.version,
            status=OrderStatus.PENDING.value,
            stock_committed=False,
            version=1,
            total=total,
            shipping_address=shipping["address"],
            shipping_city=shipping["city"],
            shipping_postal_code=shipping["postal_code"],
            shipping_country=shipping["country"],
            payment_method=CASH_ON_DELIVERY if payment_method == CASH_ON_DELIVERY else "card",
            payment_status=payment.status,
            payment_reference=payment.reference,
            items=[
                OrderItemModel(
                    product_id=line.product_id,
                    product_name=line.name,
                    price=line.price,
                    quantity=line.quantity,
                )
                for line in snapshot.lines
            ],
        )

        try:
            with transaction(self.db):
                self.repo.create_order(order)
        except IntegrityError as e:
            # rownolegle zlozenie zamowienia z tej samej rewizji koszyka
            if payment.reference:
                logger.error(
                    f"Payment {payment.reference} authorized but order for cart "
                    f"{snapshot.cart_id} v{snapshot.version} was not created"
                )
            raise ConflictError("An order for this cart is already being placed") from e

        logger.info(f"Order {order.id} placed by user {user_id}, total {total}")

        self._clear_cart(snapshot, order.id)
        self.notification_service.send_order_notification(user_id, order.id, order.status)

        return self.to_dict(order)

    def list_orders(self, user_id: int) -> List[Dict[str, Any]]:
        return self._to_dicts(self.repo.list_orders_by_user(user_id))

    def list_all_orders(self, actor: CurrentUser) -> List[Dict[str, Any]]:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        return self._to_dicts(self.repo.list_orders())

    def get_order(self, order_id: int, actor: CurrentUser) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("Access to this order is not allowed")
        return self.to_dict(order)

    @staticmethod
    def _validate_shipping(shipping_info: ShippingInfoIn | None) -> Dict[str, str]:
        data = shipping_info.model_dump() if shipping_info else {}
        values = {name: (data.get(name) or "").strip() for name in REQUIRED_SHIPPING_FIELDS}
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ValidationError(f"Missing shipping fields: {', '.join(missing)}")
        return values

    def _authorize_payment(
        self,
        snapshot: CartSnapshot,
        total: Decimal,
        payment_method: str,
    ) -> PaymentResult:
        if payment_method == CASH_ON_DELIVERY:
            return PaymentResult(status="pending")

        if self.payment_gateway is None:
            raise ValidationError("Online payment is not available, use cash on delivery")

        # PaymentDeclinedError / PaymentProviderError leca dalej, nic nie zostalo zapisane
        result = self.payment_gateway.authorize(
            amount_minor_units=to_minor_units(total),
            currency=CURRENCY,
            payment_method_ref=payment_method,
            idempotency_key=payment_idempotency_key(snapshot, payment_method),
        )
        logger.info(f"Payment {result.reference} for cart {snapshot.cart_id}: {result.status}")
        return result

    def _clear_cart(self, snapshot: CartSnapshot, order_id: int) -> None:
        try:
            self.carts.clear(snapshot.cart_id, snapshot.version)
        except (SQLAlchemyError, ConflictError) as e:
            logger.error(
                f"RECONCILE: order {order_id} created but cart {snapshot.cart_id} "
                f"v{snapshot.version} was not cleared: {e}"
            )

    def to_dict(self, order: OrderModel) -> Dict[str, Any]:
        products = self.products.get_products(item.product_id for item in order.items)
        return order_to_dict(order, products)

    def _to_dicts(self, orders: List[OrderModel]) -> List[Dict[str, Any]]:
        product_ids = {item.product_id for order in orders for item in order.items}
        products = self.products.get_products(product_ids)
        return [order_to_dict(order, products) for order in orders]


def payment_idempotency_key(snapshot: CartSnapshot, payment_method: str) -> str:
    # inna karta po odrzuceniu = nowa proba platnosci dla tej samej wersji koszyka
    method_digest = hashlib.sha256(payment_method.encode("utf-8")).hexdigest()[:16]
    return f"cart-{snapshot.cart_id}-v{snapshot.version}-{method_digest}"

def _product_ref(product: ProductModel | None) -> Dict[str, Any] | None:
    # produkt mogl zostac usuniety, pozycja zamowienia ma wtedy tylko snapshot
    if product is None:
        return None
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "image_urls": list(product.image_urls or []),
    }


def order_to_dict(order: OrderModel, products: Dict[int, ProductModel]) -> Dict[str, Any]:
    #dict przeksztalcany w jsona przez OrderOut
    return {
        "id": order.id,
        "user_id": order.user_id,
        "status": order.status,
        "total": order.total,
        "items": [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "price": item.price,
                "product": _product_ref(products.get(item.product_id)),
            }
            for item in order.items
        ],
        "shipping_info": {
            "address": order.shipping_address,
            "city": order.shipping_city,
            "postal_code": order.shipping_postal_code,
            "country": order.shipping_country,
        },
        "payment_info": {
            "method": order.payment_method,
            "status": order.payment_status,
            "reference": order.payment_reference,
        },
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
