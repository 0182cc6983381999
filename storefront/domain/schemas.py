# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime


# =====================================================
# CATALOG
# =====================================================
class ProductCreate(BaseModel):
    """Schema dla tworzenia produktu (admin)."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0, description="Stan poczatkowy")
    category_id: Optional[int] = Field(None, alias="categoryId")
    description: str = ""
    image_urls: List[str] = Field(default_factory=list, alias="imageURLs")


class ProductUpdate(BaseModel):
    """Schema dla edycji produktu. Stanu magazynowego nie da sie tu zmienic."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[int] = Field(None, alias="categoryId")
    description: Optional[str] = None
    image_urls: Optional[List[str]] = Field(None, alias="imageURLs")


class ProductOut(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int
    category_id: Optional[int] = None
    description: str
    image_urls: List[str]

    model_config = ConfigDict(from_attributes=True)


class ProductRef(BaseModel):
    """Aktualne dane produktu dolaczone do pozycji zamowienia."""

    id: int
    name: str
    price: Decimal
    image_urls: List[str]

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# CART
# =====================================================
class CartItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(..., gt=0, alias="productId")
    quantity: int = Field(..., gt=0, description="Ilosc produktu (musi byc > 0)")


class CartQuantityIn(BaseModel):
    quantity: int = Field(..., gt=0)


class CartLineOut(BaseModel):
    product_id: int
    name: str
    price: Decimal
    stock: int
    image_urls: List[str]
    quantity: int
    subtotal: Decimal


class CartOut(BaseModel):
    cart_id: Optional[int] = None
    user_id: int
    items: List[CartLineOut]
    total: Decimal


# =====================================================
# ORDERS
# =====================================================
class ShippingInfoIn(BaseModel):
    """
    Dane wysylki. Wszystkie pola opcjonalne na poziomie schematu -
    brakujace pola wylapuje OrderService i zwraca ich liste w bledzie 400.
    """

    model_config = ConfigDict(populate_by_name=True)

    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = Field(None, alias="postalCode")
    country: Optional[str] = None


class OrderCreate(BaseModel):
    """Schema dla tworzenia zamowienia z koszyka zalogowanego uzytkownika."""

    model_config = ConfigDict(populate_by_name=True)

    shipping_info: Optional[ShippingInfoIn] = Field(default_factory=ShippingInfoIn, alias="shippingInfo")
    payment_method: str = Field("cod", min_length=1, max_length=255, alias="paymentMethod")


class OrderStatusIn(BaseModel):
    status: str


class OrderItemOut(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    price: Decimal
    product: Optional[ProductRef] = None


class ShippingInfoOut(BaseModel):
    address: str
    city: str
    postal_code: str
    country: str


class PaymentInfoOut(BaseModel):
    method: str
    status: str
    reference: Optional[str] = None


class OrderOut(BaseModel):
    """Schema dla zamowienia (response)."""

    id: int
    user_id: int
    status: str
    total: Decimal
    items: List[OrderItemOut]
    shipping_info: ShippingInfoOut
    payment_info: PaymentInfoOut
    created_at: datetime
    updated_at: datetime
