# storefront/services/cart_service.py
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.orm import Session

from storefront.data.database import transaction
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.cart import CartLine, CartSnapshot
from storefront.domain.errors import ConflictError, NotFoundError, ValidationError
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use case'y dla koszyka uzytkownika.
    query (snapshot) - odczyt z aktualnymi danymi produktow, usuwa martwe pozycje
    commands (add, update, remove) - kazda podbija wersje koszyka
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    #query - odczyt
    def snapshot(self, user_id: int) -> CartSnapshot:
        """
        Resolve the user's cart against live product data.

        Returns an empty snapshot when there is no cart or no items.
        Lines pointing at deleted products are removed and the pruning
        is committed before returning.
        """
        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            return CartSnapshot(user_id=user_id)

        items = self.repo.get_cart_items(cart.id)
        products = self.products.get_products(i.product_id for i in items)

        # linie budujemy przed commitem, commit wygasza obiekty usunietych pozycji
        lines = [
            CartLine(
                product_id=i.product_id,
                name=products[i.product_id].name,
                price=Decimal(products[i.product_id].price),
                stock=products[i.product_id].stock,
                image_urls=list(products[i.product_id].image_urls or []),
                quantity=i.quantity,
            )
            for i in items
            if i.product_id in products
        ]

        dangling = [i.product_id for i in items if i.product_id not in products]
        if dangling:
            logger.warning(f"Pruning cart {cart.id}: products {dangling} no longer exist")
            try:
                with transaction(self.db):
                    self.repo.delete_cart_items(cart.id, dangling)
                    self._bump_version(cart)
            except ConflictError as e:
                # inny request zmienil koszyk, przycinanie powtorzy sie przy nastepnym odczycie
                logger.warning(f"Pruning cart {cart.id} skipped: {e}")
            self.db.refresh(cart)

        return CartSnapshot(user_id=user_id, cart_id=cart.id, version=cart.version, lines=lines)

    def get_cart(self, user_id: int) -> Dict[str, Any]:
        return self.to_dict(self.snapshot(user_id))

    #commands
    def add_item(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValidationError("Quantity must be at least 1")

        if not self.products.get_product(product_id):
            raise NotFoundError("Product not found")

        with transaction(self.db):
            # koszyk tworzony leniwie przy pierwszym dodaniu
            cart = self.repo.get_cart_by_user(user_id)
            if not cart:
                cart = self.repo.create_cart(CartModel(user_id=user_id, version=1))
                logger.info(f"Created cart {cart.id} for user {user_id}")

            existing_item = self.repo.get_cart_item(cart.id, product_id)
            if existing_item:
                existing_item.quantity += quantity
            else:
                self.repo.add_cart_item(
                    CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity)
                )

            self._bump_version(cart)

        logger.info(f"Product {product_id} x{quantity} added to cart of user {user_id}")
        return self.get_cart(user_id)

    def update_item(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValidationError("Quantity must be at least 1")

        if not self.products.get_product(product_id):
            raise NotFoundError("Product not found")

        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            raise NotFoundError("Cart not found")

        with transaction(self.db):
            item = self.repo.get_cart_item(cart.id, product_id)
            if not item:
                raise NotFoundError("Item not in cart")
            item.quantity = quantity
            self._bump_version(cart)

        return self.get_cart(user_id)

    def remove_item(self, user_id: int, product_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)
        if not cart:
            raise NotFoundError("Cart not found")

        with transaction(self.db):
            self.repo.delete_cart_items(cart.id, [product_id])
            self._bump_version(cart)

        logger.info(f"Product {product_id} removed from cart {cart.id}")
        return self.get_cart(user_id)

    def clear(self, cart_id: int, version: int) -> None:
        """Empty the cart revision an order was placed from."""
        with transaction(self.db):
            self.repo.delete_cart_items(cart_id)
            if self.repo.update_cart_version(cart_id, version) == 0:
                # ktos zmienil koszyk miedzy zlozeniem zamowienia a czyszczeniem
                raise ConflictError(f"Cart {cart_id} changed while it was being cleared")

    def _bump_version(self, cart: CartModel) -> None:
        # np w bazie update set version 2 where id 1 and version 1
        self.db.flush()
        rowcount = self.repo.update_cart_version(cart.id, cart.version)
        if rowcount == 0:
            raise ConflictError("Cart was modified by another request")

    @staticmethod
    def to_dict(snapshot: CartSnapshot) -> Dict[str, Any]:
        return {
            "cart_id": snapshot.cart_id,
            "user_id": snapshot.user_id,
            "items": [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "price": line.price,
                    "stock": line.stock,
                    "image_urls": line.image_urls,
                    "quantity": line.quantity,
                    "subtotal": line.subtotal,
                }
                for line in snapshot.lines
            ],
            "total": snapshot.total,
        }
