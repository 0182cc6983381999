# storefront/api/routers/products.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from storefront.api.auth import get_current_user
from storefront.data.database import get_db
from storefront.domain.errors import OrderError
from storefront.domain.identity import CurrentUser
from storefront.domain.schemas import ProductCreate, ProductUpdate, ProductOut
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


def get_service(db: Session):
    return ProductService(db)


@router.get("/", response_model=List[ProductOut])
def list_products(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return get_service(db).list_products(limit=limit, offset=offset)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    try:
        return get_service(db).get_product(product_id)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).create_product(payload, user)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).update_product(product_id, payload, user)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        get_service(db).delete_product(product_id, user)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return Response(status_code=204)
