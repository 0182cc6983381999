# storefront/domain/cart.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List


@dataclass(frozen=True)
class CartLine:
    product_id: int
    name: str
    price: Decimal
    stock: int
    image_urls: List[str]
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    """Cart items with live product data attached; empty when the user has no cart."""

    user_id: int
    cart_id: int | None = None
    version: int | None = None
    lines: List[CartLine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0.00"))
