# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.auth import get_current_user
from storefront.data.database import get_db
from storefront.domain.errors import OrderError
from storefront.domain.identity import CurrentUser
from storefront.domain.schemas import CartItemIn, CartQuantityIn, CartOut
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("/", response_model=CartOut)
def get_cart(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # brak koszyka = pusty koszyk, nie 404
    try:
        return get_service(db).get_cart(user.id)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/items", response_model=CartOut, status_code=201)
def add_item(
    payload: CartItemIn,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).add_item(user.id, payload.product_id, payload.quantity)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: int,
    payload: CartQuantityIn,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).update_item(user.id, product_id, payload.quantity)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).remove_item(user.id, product_id)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
